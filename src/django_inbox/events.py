"""Broadcast events.

Each event knows its wire name, the channels it goes to, and its payload.
Clients de-duplicate ``message.sent`` by message id, since the same message
can arrive on both the conversation channel and a personal channel.
"""

from typing import Optional

from .channels import conversation_channel, notifications_channel, user_channel
from .serializers import serialize_message, serialize_notification, serialize_user


def channels_for_message(conversation_id, sender_id, receiver_id) -> list[str]:
    """Ordered, duplicate-free channel set for a new message.

    Conversation channel (when set), then the receiver's personal channel,
    then the sender's personal channel for echo to their other sessions.
    """
    candidates = []
    if conversation_id is not None:
        candidates.append(conversation_channel(conversation_id))
    candidates.append(user_channel(receiver_id))
    if sender_id != receiver_id:
        candidates.append(user_channel(sender_id))
    return list(dict.fromkeys(candidates))


class BroadcastEvent:
    """Base class for events published through the fan-out router."""

    event_name = ""

    def channels(self) -> list[str]:
        raise NotImplementedError

    def payload(self) -> dict:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.event_name} -> {self.channels()}>"


class MessageSent(BroadcastEvent):
    event_name = "message.sent"

    def __init__(self, message):
        self.message = message

    def channels(self) -> list[str]:
        m = self.message
        return channels_for_message(m.conversation_id, m.sender_id, m.receiver_id)

    def payload(self) -> dict:
        return serialize_message(self.message)


class TypingStarted(BroadcastEvent):
    """Transient; never persisted and carries no delivery guarantee."""

    event_name = "typing.started"

    def __init__(self, user, conversation_id):
        self.user = user
        self.conversation_id = conversation_id

    def channels(self) -> list[str]:
        return [conversation_channel(self.conversation_id)]

    def payload(self) -> dict:
        return {
            "user_id": self.user.pk,
            "conversation_id": self.conversation_id,
            "user": self.user_subset(),
        }

    def user_subset(self) -> Optional[dict]:
        return serialize_user(self.user)


class TypingStopped(TypingStarted):
    event_name = "typing.stopped"

    def user_subset(self) -> Optional[dict]:
        return None


class NotificationSent(BroadcastEvent):
    event_name = "notification.sent"

    def __init__(self, notification):
        self.notification = notification

    def channels(self) -> list[str]:
        return [notifications_channel(self.notification.receiver_id)]

    def payload(self) -> dict:
        return serialize_notification(self.notification)


class NotificationRead(BroadcastEvent):
    """Badge update after read state changes."""

    event_name = "notification.read"

    def __init__(self, user_id, unread_count: int):
        self.user_id = user_id
        self.unread_count = unread_count

    def channels(self) -> list[str]:
        return [notifications_channel(self.user_id)]

    def payload(self) -> dict:
        return {"unread_count": self.unread_count, "type": "read_update"}
