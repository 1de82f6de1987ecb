"""
Authentication models.

This module defines the custom user model used across the project:
- User: Email-based account carrying the chat-facing profile fields
  (display name, preferred language)

Related files:
    - managers.py: Custom user manager for email-based creation

The realtime core only ever reads ``preferred_language``; everything else
is owned by account management.
"""

import re

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models

from authentication.managers import UserManager

DEFAULT_LANGUAGE = "en"

# ISO 639-1 codes with an optional region/script suffix ("en", "pt-BR", "zh-Hans")
LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}(-[A-Za-z0-9]{2,8})?$")


def validate_language_code(value):
    """Validate that value looks like a language code accepted by translators."""
    if not LANGUAGE_CODE_PATTERN.match(value or ""):
        raise ValidationError(f"'{value}' is not a valid language code.")


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        display_name: Name shown to chat partners
        preferred_language: Language incoming messages are translated into
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email="asha@example.com",
            password="securepassword",
            preferred_language="hi",
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    display_name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Name shown to chat partners",
    )

    preferred_language = models.CharField(
        max_length=16,
        default=DEFAULT_LANGUAGE,
        validators=[validate_language_code],
        help_text="Language code that incoming messages are translated into",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        """Return the display name, falling back to the email address."""
        return self.display_name or self.email

    def get_short_name(self):
        """Return the display name, falling back to the email local part."""
        return self.display_name or self.email.split("@")[0]
