"""
Domain exception hierarchy.

Services raise these; ``app_factory.register_error_handlers`` turns them into
JSON responses with the matching HTTP status code.

Usage:
    from portfolio.errors import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=project_id)
    raise ValidationError("projectTitle is required", details={"projectTitle": "required"})
"""
from typing import Any, Optional


class PortfolioError(Exception):
    """Base class for every error that maps onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PortfolioError):
    """Malformed input or a violated business rule (400)."""

    status_code = 400


class AuthenticationError(PortfolioError):
    """Missing session or wrong credentials (401)."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized", details: Optional[dict] = None) -> None:
        super().__init__(message, details)


class PermissionDeniedError(PortfolioError):
    """Logged in, but the role does not allow the operation (403)."""

    status_code = 403

    def __init__(self, message: str = "Forbidden", details: Optional[dict] = None) -> None:
        super().__init__(message, details)


class NotFoundError(PortfolioError):
    """
    Requested entity does not exist (404).

    :param resource: Human readable entity name, e.g. "Project"
    :type resource: str
    :param resource_id: Id that was looked up; kept for logs
    :type resource_id: Optional[str]
    """

    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[str] = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ConflictError(PortfolioError):
    """Uniqueness or referential rule would be broken (409)."""

    status_code = 409
