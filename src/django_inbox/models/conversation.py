"""Conversation model: one thread per customer with the staff pool."""

from django.conf import settings
from django.db import models
from django.utils import timezone

from .base import TimeStampedModel


class Conversation(TimeStampedModel):
    """The single persistent thread between one customer and the staff pool.

    Any staff identity may read and reply to any conversation. The
    ``active_clerk`` field only records the most recent staff responder for
    display; it must never be used to filter who sees what.
    """

    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="inbox_conversations",
        help_text="Customer who owns this conversation (one per customer)",
    )
    active_clerk = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Last staff member who replied (advisory only)",
    )
    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of most recent message (denormalized for sorting)",
    )

    class Meta:
        ordering = ["-last_message_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer"],
                name="inbox_unique_customer_conversation",
            ),
        ]

    def __str__(self):
        return f"Conversation {self.pk} (customer {self.customer_id})"

    def touch(self, responder=None, save: bool = True):
        """Bump last_message_at; record a staff responder as the active clerk."""
        from ..roles import is_staff_identity

        self.last_message_at = timezone.now()
        update_fields = ["last_message_at", "updated_at"]
        if responder is not None and is_staff_identity(responder):
            self.active_clerk = responder
            update_fields.append("active_clerk")
        if save:
            self.save(update_fields=update_fields)
