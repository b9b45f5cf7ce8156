"""Notification model: one durable row per (event, recipient)."""

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from .base import TimeStampedModel


class NotificationType(models.TextChoices):
    ORDER = "order", "Order"
    PROPOSAL = "proposal", "Proposal"
    MESSAGE = "message", "Message"
    CUSTOMIZATION = "customization", "Customization"
    VOUCHER = "voucher", "Voucher"
    REVIEW = "review", "Review"
    WALKIN = "walkin", "Walk-in"
    VIP = "vip", "VIP"
    SYSTEM = "system", "System"


class Notification(TimeStampedModel):
    """A notification addressed to exactly one recipient.

    A null sender means the notification was generated by the system.
    Only ``is_read`` changes after creation.
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="inbox_notifications",
    )
    type = models.CharField(
        max_length=20,
        choices=NotificationType.choices,
        default=NotificationType.SYSTEM,
    )
    title = models.CharField(max_length=255)
    body = models.TextField(blank=True)
    data = models.JSONField(
        encoder=DjangoJSONEncoder,
        default=dict,
        blank=True,
        help_text="Structured payload; shape depends on type",
    )
    is_read = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["receiver", "is_read"], name="inbox_notif_recv_read_idx"),
            models.Index(fields=["receiver", "sender"], name="inbox_notif_recv_send_idx"),
        ]

    def __str__(self):
        return f"{self.get_type_display()}: {self.title}"

    @property
    def payload(self):
        """Typed view of ``data`` for this notification's type."""
        from ..payloads import payload_for

        return payload_for(self.type, self.data)
