"""
Pagination classes for chat API.

This module provides cursor-based pagination for the chat system:
- MessageCursorPagination: For message lists (oldest first)
- ConversationCursorPagination: For conversation lists (most recent first)

Cursor pagination keeps pages stable while new messages keep arriving,
which offset pagination cannot.
"""

from rest_framework.pagination import CursorPagination

from chat.constants import MESSAGE_CONFIG


class MessageCursorPagination(CursorPagination):
    """
    Cursor pagination for message lists.

    Orders messages oldest-first (persisted timestamp, then id).

    Query parameters:
        cursor: Encoded cursor for position
        page_size: Number of messages (optional override, max 200)
    """

    page_size = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE
    max_page_size = 200
    page_size_query_param = "page_size"
    ordering = ("created_at", "id")
    cursor_query_param = "cursor"


class ConversationCursorPagination(CursorPagination):
    """
    Cursor pagination for conversation lists.

    Default: 20 conversations per page
    Maximum: 50 conversations per page
    """

    page_size = 20
    max_page_size = 50
    page_size_query_param = "page_size"
    ordering = ("-updated_at", "-id")
    cursor_query_param = "cursor"
