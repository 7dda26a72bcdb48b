"""API package - FastAPI routes and dependencies."""
from .dependencies import (
    clear_caches,
    get_interaction_tracker,
    get_recommendation_orchestrator,
)
from .routers import health_router, interactions_router, recommendations_router

__all__ = [
    "clear_caches",
    "get_interaction_tracker",
    "get_recommendation_orchestrator",
    "health_router",
    "interactions_router",
    "recommendations_router",
]
