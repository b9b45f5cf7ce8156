"""Broadcast backends for django-inbox."""

from django.utils.module_loading import import_string

from ..conf import get_setting
from .base import BaseBroadcaster, PublishResult

__all__ = ["BaseBroadcaster", "PublishResult", "get_broadcaster"]


def get_broadcaster(backend: str = None) -> BaseBroadcaster:
    """Instantiate the configured broadcast backend.

    Args:
        backend: Dotted path override; defaults to INBOX_BROADCAST_BACKEND

    Raises:
        ImproperlyConfigured: if the path cannot be imported
    """
    from django.core.exceptions import ImproperlyConfigured

    path = backend or get_setting("BROADCAST_BACKEND")
    try:
        cls = import_string(path)
    except ImportError as e:
        raise ImproperlyConfigured(f"Cannot load INBOX_BROADCAST_BACKEND {path!r}: {e}") from e
    return cls()
