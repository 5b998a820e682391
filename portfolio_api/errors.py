"""Domain errors raised by services and converted to the JSON envelope.

Every error carries the HTTP status it maps to, a user-facing message and
optional `details` (for validation failures, the per-field violations).
"""

from typing import List, Optional


class PortfolioError(Exception):
    status_code = 500
    message = "Server Error"

    def __init__(self, message: Optional[str] = None, details: Optional[List[dict]] = None, headers: Optional[dict] = None):
        self.message = message or self.message
        self.details = details
        self.headers = headers
        super().__init__(self.message)


class ValidationFailed(PortfolioError):
    status_code = 400
    message = "Validation Error"

    def __init__(self, details: List[dict], message: Optional[str] = None):
        super().__init__(message, details=details)


class NotFound(PortfolioError):
    status_code = 404
    message = "Resource not found"


class InvalidTransition(PortfolioError):
    status_code = 400
    message = "Invalid status transition"


class UploadRejected(PortfolioError):
    status_code = 400
    message = "Upload rejected"


class AuthenticationFailed(PortfolioError):
    status_code = 401
    message = "Not authenticated"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class RateLimited(PortfolioError):
    status_code = 429
    message = "Too many requests, please try again later."

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(message, headers={"Retry-After": str(retry_after)})


class DeliveryFailed(PortfolioError):
    status_code = 500
    message = "Failed to deliver message"


def error_body(message: str, details: Optional[List[dict]] = None) -> dict:
    """Build the failure envelope shared by every error response."""
    error = {"message": message}
    if details:
        error["details"] = details
    return {"success": False, "error": error}
