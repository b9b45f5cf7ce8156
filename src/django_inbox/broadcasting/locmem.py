"""In-memory broadcaster for tests.

Published envelopes are appended to the module-level ``outbox`` list, in the
same spirit as Django's locmem email backend.
"""

import json

from django.core.serializers.json import DjangoJSONEncoder

from .base import BaseBroadcaster, PublishResult

outbox: list[dict] = []


class LocmemBroadcaster(BaseBroadcaster):
    backend_name = "locmem"

    def publish(self, channel: str, event: str, payload: dict) -> PublishResult:
        # Round-trip through JSON so tests see exactly what a subscriber would.
        envelope = json.loads(
            json.dumps(self.envelope(channel, event, payload), cls=DjangoJSONEncoder)
        )
        outbox.append(envelope)
        return PublishResult.ok(backend=self.backend_name, channel=channel, event=event, receivers=1)


def clear():
    outbox.clear()
