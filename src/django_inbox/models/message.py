"""Message model: append-only log entry within a conversation."""

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from .base import TimeStampedModel


class Message(TimeStampedModel):
    """A message in a conversation.

    Messages are created once and never edited. Ordering is by creation
    time, then id.
    """

    conversation = models.ForeignKey(
        "django_inbox.Conversation",
        on_delete=models.CASCADE,
        related_name="messages",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="inbox_sent_messages",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="inbox_received_messages",
    )
    body = models.TextField(null=True, blank=True)
    product = models.JSONField(
        encoder=DjangoJSONEncoder,
        null=True,
        blank=True,
        help_text="Product reference (id, name, price, images, cursor index)",
    )
    images = models.JSONField(
        encoder=DjangoJSONEncoder,
        default=list,
        blank=True,
        help_text="Ordered list of image URLs",
    )
    is_quick_option = models.BooleanField(
        default=False,
        help_text="Sent from a canned quick-reply option",
    )

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["conversation", "id"], name="inbox_msg_conv_id_idx"),
        ]

    def __str__(self):
        return f"Message {self.pk} in conversation {self.conversation_id}"

    @property
    def is_product_reference(self) -> bool:
        return bool(self.product)

    @property
    def has_images(self) -> bool:
        return bool(self.images)
