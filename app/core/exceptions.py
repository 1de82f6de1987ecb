"""
Base exception classes for application-wide error handling.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    └── ExternalServiceError - Third-party service failures

Domain apps subclass these (see chat.exceptions) so every error carries a
machine-readable ``error_code`` and can be serialized with ``to_dict()``
for REST responses and websocket ``error_message`` frames alike.

Usage:
    from core.exceptions import ValidationError

    raise ValidationError("Message text is required", error_code="EMPTY_TEXT")

    try:
        ...
    except BaseApplicationError as e:
        await self.send_json({"type": "error_message", "data": e.to_dict()})
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API and websocket responses.

        Example:
            {
                "error": "Conversation not found",
                "error_code": "INVALID_MESSAGE",
                "details": {"conversationId": "42"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for missing required fields, malformed identifiers and business rule
    violations detected in the service layer. DRF serializer validation is
    still handled by DRF itself.
    """

    default_error_code: str = "VALIDATION_ERROR"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for network timeouts, non-2xx responses and unexpected response
    bodies from third-party APIs. Log the original error for debugging but
    don't expose internal details to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
