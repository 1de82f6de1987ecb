"""
Serializers for authentication models.

Only the read-side user representation lives here; it is embedded in chat
API responses (conversation participants, chat partners).
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """Public view of a user as seen by chat partners."""

    class Meta:
        model = User
        fields = ["id", "email", "display_name", "preferred_language"]
        read_only_fields = fields
