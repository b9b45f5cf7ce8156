"""Services for django-inbox.

Public API:
    send_message: persist a message, notify staff or customer, fan out
    list_messages: cursor paging over a conversation
    can_subscribe: channel authorization (see django_inbox.authorization)
"""

from .conversations import get_or_create_for_customer
from .messaging import list_messages, send_message, start_typing, stop_typing
from .notifications import (
    broadcast_to_role,
    mark_all_from_sender_read,
    mark_all_read,
    mark_read,
    notify,
    notify_many,
    unread_count,
)

__all__ = [
    "broadcast_to_role",
    "get_or_create_for_customer",
    "list_messages",
    "mark_all_from_sender_read",
    "mark_all_read",
    "mark_read",
    "notify",
    "notify_many",
    "send_message",
    "start_typing",
    "stop_typing",
    "unread_count",
]
