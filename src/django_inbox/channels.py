"""Channel naming scheme.

These names are part of the wire contract with subscribed clients and must
not change without a migration plan.
"""

from typing import NamedTuple, Optional

CONVERSATION = "conversation"
USER = "user"
NOTIFICATIONS = "notifications"

KINDS = (CONVERSATION, USER, NOTIFICATIONS)


class ChannelName(NamedTuple):
    kind: str
    id: int


def conversation_channel(conversation_id) -> str:
    return f"{CONVERSATION}:{conversation_id}"


def user_channel(user_id) -> str:
    return f"{USER}:{user_id}"


def notifications_channel(user_id) -> str:
    return f"{NOTIFICATIONS}:{user_id}"


def parse_channel(name: str) -> Optional[ChannelName]:
    """Split ``kind:id`` into its parts, or None when malformed.

    A ``private-`` prefix added by some transports is ignored.
    """
    if not name or not isinstance(name, str):
        return None
    if name.startswith("private-"):
        name = name[len("private-"):]
    kind, sep, raw_id = name.partition(":")
    if not sep or kind not in KINDS or not raw_id.isdigit():
        return None
    return ChannelName(kind=kind, id=int(raw_id))
