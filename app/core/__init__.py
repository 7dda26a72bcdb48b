"""Core infrastructure components."""
from .cache import CacheInterface, InMemoryCache, RedisCache
from .circuit_breaker import CircuitBreaker, CircuitState
from .exceptions import (
    AppException,
    CacheError,
    InferenceUnavailableError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
    WorkerPoolSaturatedError,
)
from .worker_pool import BoundedWorkerPool

__all__ = [
    "AppException",
    "BoundedWorkerPool",
    "CacheError",
    "CacheInterface",
    "CircuitBreaker",
    "CircuitState",
    "InMemoryCache",
    "InferenceUnavailableError",
    "NotFoundError",
    "RedisCache",
    "ServiceUnavailableError",
    "ValidationError",
    "WorkerPoolSaturatedError",
]
