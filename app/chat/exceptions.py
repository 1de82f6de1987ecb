"""
Chat domain exceptions.

Exception Hierarchy:
    core.exceptions.ValidationError
    └── InvalidMessage - missing or malformed fields in a realtime event
    core.exceptions.ExternalServiceError
    └── TranslationUnavailable - translation call failed or timed out
    core.exceptions.BaseApplicationError
    └── StoreWriteFailure - persisting a message failed

Only InvalidMessage and StoreWriteFailure ever reach a client (as
``error_message`` frames); TranslationUnavailable is always recovered by
falling back to the original text.
"""

from core.exceptions import BaseApplicationError, ExternalServiceError, ValidationError


class InvalidMessage(ValidationError):
    """Raised when an incoming event lacks a required field."""

    default_error_code = "INVALID_MESSAGE"


class TranslationUnavailable(ExternalServiceError):
    """Raised when the translation service cannot produce a translation."""

    default_error_code = "TRANSLATION_UNAVAILABLE"


class StoreWriteFailure(BaseApplicationError):
    """Raised when the message store rejects a write."""

    default_error_code = "STORE_WRITE_FAILURE"
