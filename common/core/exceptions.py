from typing import Any, Dict, List, Optional


class AppException(Exception):
    """Base application exception."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message, **self.details}


class NotFoundError(AppException):
    """Resource not found exception."""

    status_code = 404
    error_code = "not_found"


class ValidationError(AppException):
    """Validation error exception."""

    status_code = 400
    error_code = "validation_error"


class InvalidArgumentError(AppException):
    """A required argument is missing or malformed."""

    status_code = 400
    error_code = "invalid_argument"


class ForbiddenError(AppException):
    """Caller is not allowed to perform the operation."""

    status_code = 403
    error_code = "forbidden"


class LimitExceededError(AppException):
    """Admission denied because the subscription limit would be exceeded."""

    status_code = 403
    error_code = "limit_exceeded"

    def __init__(
        self,
        message: str,
        current: int,
        limit: int,
        requested: int,
        can_upgrade: bool = True,
    ):
        super().__init__(
            message,
            {
                "current": current,
                "limit": limit,
                "requested": requested,
                "canUpgrade": can_upgrade,
            },
        )
        self.current = current
        self.limit = limit
        self.requested = requested
        self.can_upgrade = can_upgrade


class InvalidConfigurationError(AppException):
    """Subscription limits are missing or malformed for a resource."""

    status_code = 409
    error_code = "invalid_configuration"


class ValidationConflictError(AppException):
    """A plan change conflicts with current usage."""

    status_code = 409
    error_code = "validation_conflict"

    def __init__(self, message: str, violations: List[Dict[str, Any]]):
        super().__init__(message, {"violations": violations})
        self.violations = violations


class InvalidStateTransitionError(AppException):
    """Subscription status transition is not allowed."""

    status_code = 409
    error_code = "invalid_state_transition"
