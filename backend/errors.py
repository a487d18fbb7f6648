"""Application exceptions. Each maps to one HTTP status and error code."""
from typing import Any, Optional


class AppError(Exception):
    """Base exception for the application"""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(AppError):
    """Malformed, missing or out-of-range input"""

    status_code = 400
    code = "VALIDATION_ERROR"


class MalformedStateError(ValidationError):
    """A scenario state is missing a field or holds a non-numeric value"""

    code = "MALFORMED_STATE"


class NotFoundError(AppError):
    """Unknown scenario, decision point, choice or lesson"""

    status_code = 404
    code = "NOT_FOUND"


class PersistenceError(AppError):
    """Progress or profile storage failed"""

    status_code = 500
    code = "PERSISTENCE_ERROR"


class UpstreamUnavailable(AppError):
    """Text generator not configured, failing or too slow.

    Raised and caught inside the reflection adapter only.
    """

    status_code = 503
    code = "UPSTREAM_UNAVAILABLE"
