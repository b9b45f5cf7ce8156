"""Base broadcaster interface for the pub/sub transport."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class PublishResult:
    """Result of publishing one event to one channel."""

    success: bool
    backend: str
    channel: str
    event: str
    receivers: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, backend: str, channel: str, event: str, receivers: int = None) -> "PublishResult":
        return cls(success=True, backend=backend, channel=channel, event=event, receivers=receivers)

    @classmethod
    def fail(cls, backend: str, channel: str, event: str, error: str) -> "PublishResult":
        return cls(success=False, backend=backend, channel=channel, event=event, error=error)


class BaseBroadcaster(ABC):
    """Abstract base class for broadcast backends.

    Backends publish a single event to a single named channel. They raise
    BroadcastError when the transport rejects or times out; the fan-out
    router decides what to do with that.
    """

    backend_name: str = "base"

    @abstractmethod
    def publish(self, channel: str, event: str, payload: dict) -> PublishResult:
        """Publish ``payload`` as ``event`` on ``channel``.

        Raises:
            BroadcastError: if the transport failed
        """
        raise NotImplementedError

    def envelope(self, channel: str, event: str, payload: dict) -> dict:
        """Wire format shared by all backends."""
        return {"event": event, "channel": channel, "data": payload}
