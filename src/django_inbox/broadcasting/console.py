"""Console broadcaster for development."""

import json
import logging

from django.core.serializers.json import DjangoJSONEncoder

from .base import BaseBroadcaster, PublishResult

logger = logging.getLogger(__name__)


class ConsoleBroadcaster(BaseBroadcaster):
    """Broadcaster that logs to console instead of publishing.

    Does not deliver anything to subscribers - just logs the envelope.
    """

    backend_name = "console"

    def publish(self, channel: str, event: str, payload: dict) -> PublishResult:
        body = json.dumps(self.envelope(channel, event, payload), cls=DjangoJSONEncoder, indent=2)
        rule = "=" * 60
        logger.info(
            f"\n{rule}\n"
            "CONSOLE BROADCAST (not actually published)\n"
            f"{rule}\n"
            f"Channel: {channel}\n"
            f"Event: {event}\n"
            f"{'-' * 60}\n"
            f"{body}\n"
            f"{rule}"
        )
        return PublishResult.ok(backend=self.backend_name, channel=channel, event=event)
