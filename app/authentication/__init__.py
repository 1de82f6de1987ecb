"""
Authentication application.

Provides the custom email-based User model. The chat core reads each
user's ``preferred_language`` to decide whether incoming messages need
translating.

Usage:
    from authentication.models import User
"""
