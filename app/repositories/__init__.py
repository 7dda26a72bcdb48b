"""Repository implementations package."""
from .memory import (
    InMemoryActivityRepository,
    InMemoryRecommendationRepository,
    InMemoryUserRepository,
    InMemoryVideoRepository,
    seed_demo_data,
)

__all__ = [
    "InMemoryActivityRepository",
    "InMemoryRecommendationRepository",
    "InMemoryUserRepository",
    "InMemoryVideoRepository",
    "seed_demo_data",
]
