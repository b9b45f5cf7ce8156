"""Django Inbox - Shared customer-service inbox with real-time fan-out."""

__version__ = "0.1.0"

__all__ = [
    # Models
    "Conversation",
    "Message",
    "Notification",
    "NotificationType",
    "Role",
    # Services
    "send_message",
    "list_messages",
    "notify",
    "broadcast_to_role",
    "can_subscribe",
    # Exceptions
    "InboxError",
    "NotAuthorizedError",
    "NotFoundError",
    "ValidationFailedError",
    "StoreError",
    "BroadcastError",
]


def __getattr__(name: str):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in ("Conversation", "Message", "Notification", "NotificationType"):
        from . import models

        return getattr(models, name)
    if name == "Role":
        from .roles import Role

        return Role
    if name in ("send_message", "list_messages", "notify", "broadcast_to_role"):
        from . import services

        return getattr(services, name)
    if name == "can_subscribe":
        from .authorization import can_subscribe

        return can_subscribe
    if name in (
        "InboxError",
        "NotAuthorizedError",
        "NotFoundError",
        "ValidationFailedError",
        "StoreError",
        "BroadcastError",
    ):
        from . import exceptions

        return getattr(exceptions, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
