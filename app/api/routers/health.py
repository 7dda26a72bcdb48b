"""
Health check router for observability.
"""
from fastapi import APIRouter

from app.api.dependencies import (
    get_cache_store,
    get_feature_flag_service,
    get_inference_circuit_breaker,
    get_inference_client,
    get_worker_pool,
)
from app.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health Check")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check() -> dict:
    """
    Readiness check for Kubernetes.
    Returns status of the inference circuit breaker, worker pool and flags.
    """
    circuit_breaker = get_inference_circuit_breaker()
    pool = get_worker_pool()
    flags = get_feature_flag_service()
    settings = get_settings()

    return {
        "status": "ready" if pool.running else "starting",
        "inference": {
            "provider": get_inference_client().name,
            "circuit_breaker": {
                "name": circuit_breaker.name,
                "state": circuit_breaker.state.value,
            },
        },
        "worker_pool": pool.stats(),
        "cache": {"backend": type(get_cache_store()).__name__},
        "feature_flags": {
            "inference_enabled": settings.INFERENCE_ENABLED,
            "kill_switch_active": flags.is_kill_switch_active(),
            "rollout_percentage": flags.rollout_percentage,
        },
    }
