"""Tests for the message store and send pipeline."""

import pytest
from unittest.mock import patch
from django.db import DatabaseError

from django_inbox.exceptions import (
    NotAuthorizedError,
    NotFoundError,
    StoreError,
    ValidationFailedError,
)
from django_inbox.models import Conversation, Message, Notification, NotificationType
from django_inbox.services.messaging import (
    append_message,
    customer_page_limit,
    list_messages,
    resolve_receiver,
    send_message,
    staff_page_limit,
    start_typing,
    stop_typing,
)


PRODUCT = {
    "id": 12,
    "name": "Gold Ring",
    "price": "1499.00",
    "images": ["https://cdn.example.com/ring-1.jpg", "https://cdn.example.com/ring-2.jpg"],
    "current_image_index": 1,
}


@pytest.mark.django_db
class TestResolveReceiver:
    """Tests for receiver derivation."""

    def test_customer_routes_to_active_clerk(self, conversation, customer, clerk, second_clerk):
        conversation.active_clerk = second_clerk
        conversation.save()
        assert resolve_receiver(conversation, customer) == second_clerk

    def test_customer_falls_back_to_first_clerk(self, conversation, customer, store_admin, clerk, second_clerk):
        assert resolve_receiver(conversation, customer) == clerk

    def test_customer_falls_back_to_admin_without_clerks(self, conversation, customer, store_admin):
        assert resolve_receiver(conversation, customer) == store_admin

    def test_fallback_is_deterministic(self, conversation, customer, staff):
        picks = {resolve_receiver(conversation, customer).pk for _ in range(5)}
        assert len(picks) == 1

    def test_inactive_staff_skipped(self, conversation, customer, clerk, second_clerk):
        clerk.is_active = False
        clerk.save()
        assert resolve_receiver(conversation, customer) == second_clerk

    def test_no_staff_fails_validation(self, conversation, customer):
        with pytest.raises(ValidationFailedError) as exc:
            resolve_receiver(conversation, customer)
        assert "receiver_id" in exc.value.fields

    def test_customer_explicit_staff_receiver(self, conversation, customer, clerk, second_clerk):
        assert resolve_receiver(conversation, customer, second_clerk.pk) == second_clerk

    def test_customer_cannot_address_another_customer(self, conversation, customer, other_customer, clerk):
        with pytest.raises(ValidationFailedError):
            resolve_receiver(conversation, customer, other_customer.pk)

    def test_unknown_receiver(self, conversation, customer, clerk):
        with pytest.raises(ValidationFailedError):
            resolve_receiver(conversation, customer, 424242)

    def test_staff_routes_to_customer(self, conversation, customer, clerk):
        assert resolve_receiver(conversation, clerk) == customer

    def test_staff_explicit_receiver_must_be_owner(self, conversation, other_customer, clerk):
        with pytest.raises(ValidationFailedError):
            resolve_receiver(conversation, clerk, other_customer)


@pytest.mark.django_db
class TestListMessages:
    """Tests for cursor paging."""

    def test_no_cursor_returns_newest_in_ascending_order(self, add_messages, conversation, customer, clerk):
        created = add_messages(12, customer, clerk)
        result = list_messages(conversation, limit=5)
        assert [m.pk for m in result] == [m.pk for m in created[-5:]]

    def test_ids_strictly_increasing(self, add_messages, conversation, customer, clerk):
        add_messages(8, customer, clerk)
        ids = [m.pk for m in list_messages(conversation)]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_no_limit_returns_everything(self, add_messages, conversation, customer, clerk):
        add_messages(30, customer, clerk)
        assert len(list_messages(conversation, limit=None)) == 30

    def test_before_id_page(self, add_messages, conversation, customer, clerk):
        """Paging back from the 21st of 41 messages yields the five just before it."""
        created = add_messages(41, customer, clerk)
        cursor = created[20].pk

        result = list_messages(conversation, before_id=cursor, limit=5)

        assert [m.pk for m in result] == [m.pk for m in created[15:20]]
        assert all(m.pk < cursor for m in result)

    def test_before_id_never_returns_cursor_or_newer(self, add_messages, conversation, customer, clerk):
        created = add_messages(10, customer, clerk)
        result = list_messages(conversation, before_id=created[3].pk, limit=100)
        assert [m.pk for m in result] == [m.pk for m in created[:3]]

    def test_after_id_returns_oldest_newer_page(self, add_messages, conversation, customer, clerk):
        created = add_messages(10, customer, clerk)
        result = list_messages(conversation, after_id=created[2].pk, limit=3)
        assert [m.pk for m in result] == [m.pk for m in created[3:6]]

        result = list_messages(conversation, after_id=result[-1].pk, limit=3)
        assert [m.pk for m in result] == [m.pk for m in created[6:9]]

    def test_after_id_without_limit_returns_everything_newer(self, add_messages, conversation, customer, clerk):
        created = add_messages(10, customer, clerk)
        result = list_messages(conversation, after_id=created[6].pk, limit=None)
        assert [m.pk for m in result] == [m.pk for m in created[7:]]

    def test_scoped_to_conversation(self, add_messages, conversation, customer, other_customer, clerk):
        add_messages(3, customer, clerk)
        other = Conversation.objects.create(customer=other_customer)
        Message.objects.create(conversation=other, sender=other_customer, receiver=clerk, body="hi")
        assert len(list_messages(conversation)) == 3

    def test_page_limits(self, settings):
        assert customer_page_limit(None) is None
        assert customer_page_limit("") is None
        assert customer_page_limit(20) == 20
        assert customer_page_limit(5000) == 1000
        assert staff_page_limit(None) == 5
        assert staff_page_limit(50) == 50
        assert staff_page_limit(500) == 100
        settings.INBOX_STAFF_PAGE_SIZE = 10
        assert staff_page_limit(None) == 10


@pytest.mark.django_db
class TestAppendMessage:
    def test_append_returns_saved_message(self, conversation, customer, clerk):
        message = append_message(conversation, customer, clerk, body="Hello", images=["https://x/1.jpg"])
        assert message.pk is not None
        assert message.created_at is not None
        assert message.images == ["https://x/1.jpg"]
        assert message.has_images is True
        assert message.is_product_reference is False

    def test_missing_conversation(self, customer, clerk):
        with pytest.raises(NotFoundError):
            append_message(Conversation(customer=customer), customer, clerk, body="Hello")


@pytest.mark.django_db
class TestSendMessage:
    """Tests for the send pipeline."""

    def test_first_customer_message(self, customer, staff, outbox, django_capture_on_commit_callbacks):
        """A brand-new customer's message creates the conversation and notifies all staff."""
        with django_capture_on_commit_callbacks(execute=True):
            message = send_message(customer, body="Hello")

        conversation = Conversation.objects.get(customer=customer)
        assert message.conversation == conversation
        assert message.receiver_id in {s.pk for s in staff}
        assert conversation.last_message_at is not None

        rows = Notification.objects.filter(type=NotificationType.MESSAGE)
        assert sorted(rows.values_list("receiver_id", flat=True)) == sorted(s.pk for s in staff)

        sent = [e for e in outbox if e["event"] == "message.sent"]
        assert {e["channel"] for e in sent} == {
            f"conversation:{conversation.pk}",
            f"user:{message.receiver_id}",
            f"user:{customer.pk}",
        }

    def test_receiver_always_resolved(self, customer, clerk):
        message = send_message(customer, body="Anyone there?")
        message.refresh_from_db()
        assert message.receiver_id is not None

    def test_staff_reply(self, conversation, customer, clerk, outbox, django_capture_on_commit_callbacks):
        """A clerk reply marks them active clerk and fans out to both personal channels."""
        with django_capture_on_commit_callbacks(execute=True):
            message = send_message(clerk, body="How can I help?", conversation=conversation)

        conversation.refresh_from_db()
        assert conversation.active_clerk == clerk
        assert conversation.last_message_at is not None
        assert message.receiver == customer

        channels = [e["channel"] for e in outbox if e["event"] == "message.sent"]
        assert sorted(channels) == sorted([
            f"conversation:{conversation.pk}",
            f"user:{customer.pk}",
            f"user:{clerk.pk}",
        ])

    def test_staff_reply_notifies_customer(self, conversation, customer, clerk):
        send_message(clerk, body="Your ring is ready", conversation=conversation)
        notification = Notification.objects.get(receiver=customer)
        assert notification.type == NotificationType.MESSAGE
        assert notification.title == "New Message"
        assert notification.body == "Carla Clerk: Your ring is ready"

    def test_staff_starts_thread_by_customer_id(self, customer, clerk):
        message = send_message(clerk, body="Hi there", customer=customer.pk)
        assert message.conversation.customer == customer
        assert message.receiver == customer

    def test_staff_needs_customer_or_conversation(self, clerk):
        with pytest.raises(ValidationFailedError):
            send_message(clerk, body="Hi")

    def test_customer_cannot_post_to_foreign_conversation(self, conversation, other_customer, clerk):
        with pytest.raises(NotAuthorizedError):
            send_message(other_customer, body="Hi", conversation=conversation)

    def test_empty_message_rejected(self, customer, clerk):
        with pytest.raises(ValidationFailedError):
            send_message(customer, body="   ")
        assert Message.objects.count() == 0

    def test_image_only_message(self, customer, clerk):
        message = send_message(customer, images=["https://cdn.example.com/a.jpg"])
        assert message.body is None
        notification = Notification.objects.get(receiver=clerk)
        assert notification.data["preview"] == "Sent an attachment"

    def test_product_reference_stored(self, customer, clerk):
        message = send_message(customer, body="Can this be resized?", product=PRODUCT)
        message.refresh_from_db()
        assert message.product["name"] == "Gold Ring"
        assert message.product["current_image_index"] == 1
        assert message.is_product_reference is True

    def test_first_product_message_requests_customization(self, customer, staff):
        send_message(customer, body="Can this be resized?", product=PRODUCT)
        rows = Notification.objects.filter(type=NotificationType.CUSTOMIZATION)
        assert rows.count() == len(staff)
        assert rows.first().title == "New Customization Request"

    def test_later_product_message_no_customization(self, customer, staff):
        send_message(customer, body="Hello")
        send_message(customer, body="And this one?", product=PRODUCT)
        assert not Notification.objects.filter(type=NotificationType.CUSTOMIZATION).exists()

    def test_no_staff_is_validation_error(self, customer):
        with pytest.raises(ValidationFailedError):
            send_message(customer, body="Hello")
        assert Message.objects.count() == 0
        assert Conversation.objects.count() == 0

    def test_store_failure_publishes_nothing(self, customer, clerk, outbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            with patch(
                "django_inbox.services.messaging.append_message",
                side_effect=DatabaseError("disk full"),
            ):
                with pytest.raises(StoreError):
                    send_message(customer, body="Hello")

        assert Message.objects.count() == 0
        assert Conversation.objects.count() == 0
        assert Notification.objects.count() == 0
        assert outbox == []

    def test_broadcast_failure_keeps_message(self, customer, clerk, django_capture_on_commit_callbacks):
        with patch(
            "django_inbox.broadcasting.locmem.LocmemBroadcaster.publish",
            side_effect=RuntimeError("transport down"),
        ):
            with django_capture_on_commit_callbacks(execute=True):
                message = send_message(customer, body="Hello")

        assert Message.objects.filter(pk=message.pk).exists()

    def test_roster_failure_keeps_message(self, customer, clerk, outbox, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            with patch(
                "django_inbox.services.notifications.users_with_roles",
                side_effect=DatabaseError("roster down"),
            ):
                message = send_message(customer, body="Hello")

        assert message.pk is not None
        assert Message.objects.count() == 1
        assert Notification.objects.count() == 0
        assert f"conversation:{message.conversation_id}" in [e["channel"] for e in outbox]

    def test_reply_notification_database_error_keeps_message(self, conversation, customer, clerk):
        with patch(
            "django_inbox.services.notifications.notify_chat_message",
            side_effect=DatabaseError("connection reset"),
        ):
            message = send_message(clerk, body="On it", conversation=conversation)

        assert Message.objects.filter(pk=message.pk).exists()

    def test_unknown_role_cannot_send(self, make_user, clerk):
        stranger = make_user("supplier")
        with pytest.raises(NotAuthorizedError):
            send_message(stranger, body="Hi")


@pytest.mark.django_db
class TestTyping:
    """Tests for typing events."""

    def test_started_goes_to_conversation_channel_only(self, conversation, clerk, outbox):
        start_typing(clerk, conversation.pk)

        assert len(outbox) == 1
        envelope = outbox[0]
        assert envelope["event"] == "typing.started"
        assert envelope["channel"] == f"conversation:{conversation.pk}"
        assert envelope["data"]["user_id"] == clerk.pk
        assert envelope["data"]["conversation_id"] == conversation.pk
        assert envelope["data"]["user"]["first_name"] == "Carla"

    def test_stopped_has_no_user_subset(self, conversation, customer, outbox):
        stop_typing(customer, conversation.pk)
        assert outbox[0]["event"] == "typing.stopped"
        assert outbox[0]["data"]["user"] is None

    def test_not_persisted(self, conversation, customer):
        start_typing(customer, conversation.pk)
        assert Message.objects.count() == 0

    def test_foreign_customer_rejected(self, conversation, other_customer, outbox):
        with pytest.raises(NotAuthorizedError):
            start_typing(other_customer, conversation.pk)
        assert outbox == []

    def test_missing_conversation(self, clerk):
        with pytest.raises(NotFoundError):
            stop_typing(clerk, 12345)
