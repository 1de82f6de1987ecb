"""
Base service layer patterns for business logic encapsulation.

This module provides the two building blocks every service in the project
uses:
- ServiceResult: Result wrapper for expected success/failure outcomes
- BaseService: Base class providing a per-service logger

Pattern Comparison:
    - ServiceResult: Expected failures (validation, missing records, degraded
      collaborators). Safe to hand across ``await`` boundaries.
    - Exceptions: Unexpected failures (database outages, bugs).

Usage:
    from core.services import BaseService, ServiceResult

    class ConversationService(BaseService):
        @classmethod
        def find_or_create_direct(cls, user_a, user_b) -> ServiceResult[Conversation]:
            if user_a.id == user_b.id:
                return ServiceResult.failure(
                    "Cannot start a conversation with yourself",
                    error_code="SAME_USER",
                )
            ...
            return ServiceResult.success(conversation)

    # In a consumer or view
    result = ConversationService.find_or_create_direct(me, other)
    if not result:
        return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        result = await dispatcher.dispatch(intent, handle)
        if result.success:
            outcome = result.data
        else:
            logger.info("Dispatch rejected: %s (%s)", result.error, result.error_code)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(
        cls, exc: Exception, error_code: str | None = None
    ) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own message and error code; any other
        exception falls back to its class name.
        """
        code = error_code or getattr(exc, "error_code", None)
        message = getattr(exc, "message", None) or str(exc)
        return cls(
            success=False,
            error=message,
            error_code=code or exc.__class__.__name__.upper(),
        )

    def to_response(self) -> dict[str, Any]:
        """Convert to API response format."""
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @classmethod (no instance state) for ORM-backed services
        - Stateful collaborators (presence registry, dispatcher) are plain
          objects constructed once per process and injected where needed
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get a logger named after the service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")
