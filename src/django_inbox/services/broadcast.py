"""Fan-out router.

Publishes one logical event to every channel it belongs on, once per
channel. Delivery is best-effort: persistence is the source of truth, so a
failed publish is logged and reported in the results but never raised to
the caller.

A transport failure (``BroadcastError``) skips the event's remaining
channels and opens a circuit for ``INBOX_BROADCAST_BACKOFF`` seconds. While
the circuit is open every publish on that backend is skipped without
touching the transport, so one request never waits more than one
``INBOX_BROADCAST_TIMEOUT`` on an unavailable transport.
"""

import logging
import threading
import time
from typing import Optional

from django.db import transaction

from ..broadcasting import BaseBroadcaster, PublishResult, get_broadcaster
from ..conf import get_setting
from ..events import BroadcastEvent, channels_for_message
from ..exceptions import BroadcastError

logger = logging.getLogger(__name__)

__all__ = ["channels_for_message", "dispatch", "dispatch_on_commit", "circuit_open", "reset_circuit"]

SKIPPED = "transport unavailable, publish skipped"

_lock = threading.Lock()
_open_until: dict[str, float] = {}


def circuit_open(backend: str) -> bool:
    """True while publishes on ``backend`` are being skipped."""
    with _lock:
        until = _open_until.get(backend)
        if until is None:
            return False
        if time.monotonic() >= until:
            del _open_until[backend]
            logger.info(f"Broadcast circuit for '{backend}' closed, retrying transport")
            return False
        return True


def _trip(backend: str) -> None:
    backoff = float(get_setting("BROADCAST_BACKOFF"))
    if backoff <= 0:
        return
    with _lock:
        _open_until[backend] = time.monotonic() + backoff
    logger.warning(f"Broadcast circuit for '{backend}' opened for {backoff:g}s")


def reset_circuit() -> None:
    """Close every circuit."""
    with _lock:
        _open_until.clear()


def dispatch(event: BroadcastEvent, broadcaster: Optional[BaseBroadcaster] = None) -> list[PublishResult]:
    """Publish ``event`` to each of its channels.

    Returns:
        One PublishResult per channel, in channel order
    """
    try:
        broadcaster = broadcaster or get_broadcaster()
        channels = event.channels()
        payload = event.payload()
    except Exception as e:
        logger.exception(f"Could not prepare broadcast of {event.event_name}: {e}")
        return []

    backend = broadcaster.backend_name
    skip = circuit_open(backend)
    results = []
    for channel in channels:
        if skip:
            results.append(PublishResult.fail(backend, channel, event.event_name, SKIPPED))
            continue
        try:
            result = broadcaster.publish(channel, event.event_name, payload)
        except BroadcastError as e:
            logger.warning(f"Broadcast of {event.event_name} failed: {e}")
            result = PublishResult.fail(backend, channel, event.event_name, str(e))
            _trip(backend)
            skip = True
        except Exception as e:
            logger.exception(f"Unexpected error broadcasting {event.event_name} to '{channel}': {e}")
            result = PublishResult.fail(backend, channel, event.event_name, str(e))
        results.append(result)

    failed = [r.channel for r in results if not r.success]
    if failed:
        logger.warning(
            f"{event.event_name}: delivered to {len(results) - len(failed)}/{len(results)} "
            f"channels, skipped {failed}"
        )
    return results


def dispatch_on_commit(event: BroadcastEvent, broadcaster: Optional[BaseBroadcaster] = None) -> None:
    """Publish after the surrounding transaction commits.

    A rolled-back write never publishes. Outside a transaction the callback
    runs immediately.
    """
    transaction.on_commit(lambda: dispatch(event, broadcaster))
