"""Channel authorization gate.

``can_subscribe`` is consulted by the transport every time a client
subscribes. The role is taken from the ``user`` passed in, which the auth
view loads for the current request. Conversation ownership is queried from
the database on each call. Nothing is cached across reconnects.
"""

import logging

from .channels import CONVERSATION, NOTIFICATIONS, USER, parse_channel
from .roles import is_staff_identity

logger = logging.getLogger(__name__)


def can_subscribe(user, channel_name: str) -> bool:
    """Return True if ``user`` may subscribe to ``channel_name``.

    - ``conversation:{id}``: any staff identity, or the conversation's customer.
    - ``user:{id}``: the user themselves, or any staff identity.
    - ``notifications:{id}``: the user themselves only.

    Anonymous users, unknown channel kinds and malformed ids are denied.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return False

    channel = parse_channel(channel_name)
    if channel is None:
        logger.debug(f"Denied subscribe to malformed channel {channel_name!r}")
        return False

    if channel.kind == NOTIFICATIONS:
        return user.pk == channel.id

    if channel.kind == USER:
        return user.pk == channel.id or is_staff_identity(user)

    if channel.kind == CONVERSATION:
        if is_staff_identity(user):
            return True
        from .models import Conversation

        return Conversation.objects.filter(pk=channel.id, customer_id=user.pk).exists()

    return False
