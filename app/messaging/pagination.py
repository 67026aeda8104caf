"""
Pagination classes for the messaging API.

Message history uses cursor pagination ordered by (created_at, id), the
same order in which messages were persisted, so pages stay stable while
new messages arrive.
"""

from rest_framework.pagination import CursorPagination

from messaging.constants import MESSAGE_CONFIG


class MessageCursorPagination(CursorPagination):
    """
    Cursor pagination for message history, oldest first.

    Query parameters:
        cursor: Encoded cursor for position
        page_size: Number of messages (optional override)
    """

    page_size = MESSAGE_CONFIG.PAGE_SIZE
    max_page_size = MESSAGE_CONFIG.MAX_PAGE_SIZE
    page_size_query_param = "page_size"
    ordering = ("created_at", "id")
    cursor_query_param = "cursor"
