"""
Centralized configuration using Pydantic BaseSettings.
All environment variables are loaded here - no hardcoded values.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Content Recommendation Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Feature Flags (inference tier)
    INFERENCE_ENABLED: bool = True
    INFERENCE_KILL_SWITCH: bool = False
    INFERENCE_ROLLOUT_PERCENTAGE: int = 100  # Percentage of users routed to inference

    # Telemetry
    ENABLE_OTEL: bool = False  # Default to False to prevent gRPC errors in dev
    ENABLE_PROMETHEUS: bool = True

    # Recommendation generation
    DEFAULT_RECOMMENDATION_COUNT: int = 10
    DEFAULT_CATEGORY: str = "NBA"
    BEHAVIOR_LOOKBACK_DAYS: int = 30
    CANDIDATE_EXCLUSION_DAYS: int = 7
    MAX_PROMPT_CANDIDATES: int = 50
    HIGH_ENGAGEMENT_THRESHOLD: float = 0.8
    COLLABORATIVE_PEER_LIMIT: int = 10
    COLLABORATIVE_MIN_COMPLETION: float = 0.7
    TRENDING_SCORE: float = 0.5
    CACHED_RECOMMENDATION_SCORE: float = 0.8
    DEDUPLICATE_INFLIGHT_GENERATION: bool = True

    # Cache TTLs (seconds)
    BEHAVIOR_SUMMARY_TTL_SEC: int = 3600  # 1 hour
    RECOMMENDATION_CACHE_TTL_SEC: int = 1800  # 30 minutes

    # Inference endpoint
    INFERENCE_PROVIDER: str = "openai"  # "openai" or "stub"
    INFERENCE_API_KEY: Optional[str] = None
    INFERENCE_BASE_URL: str = "https://api.openai.com/v1"
    INFERENCE_MODEL: str = "gpt-4.1"
    INFERENCE_MAX_TOKENS: int = 500
    INFERENCE_TEMPERATURE: float = 0.7
    INFERENCE_TIMEOUT_SEC: float = 30.0
    INFERENCE_CLAMP_SCORES: bool = True

    # Circuit Breaker (inference endpoint)
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT_SEC: int = 30

    # Worker pool
    WORKER_POOL_SIZE: int = 4
    WORKER_QUEUE_CAPACITY: int = 100

    # Retention
    RECOMMENDATION_RETENTION_DAYS: int = 90
    RETENTION_SWEEP_INTERVAL_SEC: int = 86400  # 0 disables the periodic sweep

    # Demo data for the in-memory store
    SEED_DEMO_DATA: bool = True

    # Redis (for production)
    REDIS_URL: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - singleton pattern."""
    return Settings()
