"""Models for django-inbox."""

from .conversation import Conversation
from .message import Message
from .notification import Notification, NotificationType

__all__ = [
    "Conversation",
    "Message",
    "Notification",
    "NotificationType",
]
