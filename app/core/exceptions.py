"""
Custom exception hierarchy for centralized error handling.
All exceptions map to appropriate HTTP status codes.

Only NotFoundError for the subject user/video is expected to reach API
callers from the recommendation path; the tier pipeline absorbs the rest.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            }
        }


class ValidationError(AppException):
    """Invalid input data."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=details,
        )


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, "identifier": str(identifier)},
        )


class ServiceUnavailableError(AppException):
    """Dependency service is unavailable."""

    def __init__(self, service_name: str) -> None:
        super().__init__(
            message=f"Service temporarily unavailable: {service_name}",
            status_code=503,
            error_code="SERVICE_UNAVAILABLE",
            details={"service": service_name},
        )


class WorkerPoolSaturatedError(ServiceUnavailableError):
    """Bounded worker queue is full - submission rejected."""

    def __init__(self, pool_name: str, capacity: int) -> None:
        super().__init__(service_name=pool_name)
        self.message = f"Worker pool '{pool_name}' is saturated"
        self.details["queue_capacity"] = capacity
        self.args = (self.message,)


class InferenceUnavailableError(AppException):
    """Inference endpoint failed (timeout, bad status, malformed payload)."""

    def __init__(self, reason: str = "Unknown error") -> None:
        super().__init__(
            message=f"Inference unavailable: {reason}",
            status_code=502,
            error_code="INFERENCE_UNAVAILABLE",
            details={"reason": reason},
        )


class CacheError(AppException):
    """Cache operation failed."""

    def __init__(self, operation: str, reason: str = "Unknown") -> None:
        super().__init__(
            message=f"Cache {operation} failed: {reason}",
            status_code=500,
            error_code="CACHE_ERROR",
            details={"operation": operation, "reason": reason},
        )
