"""Django Inbox configuration.

All settings can be overridden in your Django settings.py.

Example:
    # settings.py
    INBOX_BROADCAST_BACKEND = "django_inbox.broadcasting.redis_pubsub.RedisBroadcaster"
    INBOX_REDIS_URL = "redis://localhost:6379/0"
    INBOX_STAFF_ROLES = ("clerk", "admin")
"""

from django.conf import settings


DEFAULTS = {
    # Transport
    "BROADCAST_BACKEND": "django_inbox.broadcasting.console.ConsoleBroadcaster",
    "REDIS_URL": "redis://localhost:6379/0",
    "BROADCAST_TIMEOUT": 2.0,
    "BROADCAST_BACKOFF": 30.0,
    # Roles
    "ROLE_FIELD": "role",
    "STAFF_ROLES": ("clerk", "admin"),
    "CUSTOMER_ROLES": ("customer", "vip"),
    "MESSAGE_NOTIFY_ROLES": None,  # None means STAFF_ROLES
    "RECEIVER_FALLBACK_ROLES": ("clerk", "admin"),
    # Paging
    "STAFF_PAGE_SIZE": 5,
    "STAFF_MAX_PAGE_SIZE": 100,
    "CUSTOMER_MAX_PAGE_SIZE": 1000,
    "NOTIFICATION_PAGE_SIZE": 5,
    "NOTIFICATION_MAX_PAGE_SIZE": 100,
    # Serialization
    "USER_DISPLAY_FIELDS": (
        "id",
        "first_name",
        "last_name",
        "email",
        "role",
        "display_name",
        "profile_image",
    ),
    "PREVIEW_LENGTH": 120,
}


def get_setting(name: str, default=None):
    """Get a setting with INBOX_ prefix.

    Read on every call so override_settings takes effect.
    """
    if default is None:
        default = DEFAULTS.get(name)
    return getattr(settings, f"INBOX_{name}", default)


def staff_roles() -> tuple:
    return tuple(get_setting("STAFF_ROLES"))


def customer_roles() -> tuple:
    return tuple(get_setting("CUSTOMER_ROLES"))


def message_notify_roles() -> tuple:
    """Roles that receive a notification for every customer message."""
    roles = get_setting("MESSAGE_NOTIFY_ROLES")
    if roles is None:
        return staff_roles()
    return tuple(roles)


def receiver_fallback_roles() -> tuple:
    return tuple(get_setting("RECEIVER_FALLBACK_ROLES"))


def clamp_limit(value, default, maximum):
    """Coerce a page size into [1, maximum], falling back to default."""
    if value in (None, ""):
        return default
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    if value < 1:
        return default
    return min(value, maximum)


# =============================================================================
# DEFAULT SETTINGS REFERENCE
# =============================================================================

# INBOX_BROADCAST_BACKEND = 'django_inbox.broadcasting.console.ConsoleBroadcaster'
# INBOX_REDIS_URL = 'redis://localhost:6379/0'  # Used by the redis backend
# INBOX_BROADCAST_TIMEOUT = 2.0  # Seconds before a publish gives up
# INBOX_BROADCAST_BACKOFF = 30.0  # Seconds to skip publishes after a transport failure
# INBOX_ROLE_FIELD = 'role'  # Attribute on AUTH_USER_MODEL holding the role
# INBOX_STAFF_PAGE_SIZE = 5  # Default page for the staff message endpoint
