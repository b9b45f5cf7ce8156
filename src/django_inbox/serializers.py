"""Dict serializers for API responses and broadcast payloads.

User subsets are built from an allow-list; password hashes and any other
field not on the list are never emitted.
"""

from typing import Iterable, Optional

from django.db.models.fields.files import FieldFile

from .conf import get_setting
from .models import Conversation, Message, Notification, NotificationType

RECEIVER_FIELDS = ("id", "first_name", "last_name", "email", "role")


def display_name(user) -> str:
    """Best human-readable name for a user."""
    if user is None:
        return "System"
    name = getattr(user, "display_name", "") or ""
    if name:
        return name
    full = f"{getattr(user, 'first_name', '') or ''} {getattr(user, 'last_name', '') or ''}".strip()
    if full:
        return full
    return getattr(user, "email", "") or str(user.get_username())


def serialize_user(user, fields: Optional[Iterable[str]] = None) -> Optional[dict]:
    if user is None:
        return None
    allowed = tuple(fields or get_setting("USER_DISPLAY_FIELDS"))
    data = {}
    for name in allowed:
        if name == "password":
            continue
        if name == "id":
            data["id"] = user.pk
        elif hasattr(user, name):
            value = getattr(user, name)
            if isinstance(value, FieldFile):
                value = value.name or None
            data[name] = value
    return data


def serialize_message(message: Message) -> dict:
    return {
        "id": message.pk,
        "conversation_id": message.conversation_id,
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "message": message.body,
        "product": message.product,
        "images": list(message.images or []),
        "is_product_reference": message.is_product_reference,
        "has_images": message.has_images,
        "is_quick_option": message.is_quick_option,
        "created_at": message.created_at,
        "updated_at": message.updated_at,
        "sender": serialize_user(message.sender),
        "receiver": serialize_user(message.receiver, RECEIVER_FIELDS),
    }


def serialize_conversation(conversation: Conversation, last_message: Message = None) -> dict:
    data = {
        "id": conversation.pk,
        "customer_id": conversation.customer_id,
        "customer": serialize_user(conversation.customer),
        "active_clerk_id": conversation.active_clerk_id,
        "last_message_at": conversation.last_message_at,
        "created_at": conversation.created_at,
    }
    if last_message is not None:
        data["last_message"] = serialize_message(last_message)
    return data


def serialize_notification(notification: Notification) -> dict:
    sender = notification.sender
    data = {
        "id": notification.pk,
        "sender_id": notification.sender_id,
        "receiver_id": notification.receiver_id,
        "type": notification.type,
        "title": notification.title,
        "body": notification.body,
        "data": notification.data or {},
        "is_read": notification.is_read,
        "created_at": notification.created_at,
        "sender_name": display_name(sender),
        "sender_email": getattr(sender, "email", None) if sender else None,
    }
    if notification.type in (NotificationType.MESSAGE, NotificationType.CUSTOMIZATION):
        payload = notification.data or {}
        data["customer_id"] = payload.get("customer_id")
        data["customer_name"] = payload.get("customer_name")
    return data
