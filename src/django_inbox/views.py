"""JSON views for django-inbox.

Every response uses the envelope ``{"ok": true, "data": ...}`` or
``{"ok": false, "error": {"code", "message"}}``. Identity comes from
``request.user``; authentication itself is handled upstream.
"""

import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse
from django.views import View

from .authorization import can_subscribe
from .exceptions import (
    InboxError,
    NotAuthorizedError,
    NotFoundError,
    StoreError,
    ValidationFailedError,
)
from .forms import (
    ChannelAuthForm,
    LimitForm,
    MessageListForm,
    SendMessageForm,
    StaffMessageListForm,
    TypingForm,
)
from .roles import is_customer, is_staff_identity
from .serializers import serialize_conversation, serialize_message, serialize_notification
from .services import conversations, messaging, notifications

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotAuthorizedError: 403,
    NotFoundError: 404,
    ValidationFailedError: 422,
    StoreError: 500,
}


def ok(data, status=200) -> JsonResponse:
    return JsonResponse({"ok": True, "data": data}, status=status, encoder=DjangoJSONEncoder)


def error(code: str, message: str, status: int, fields: dict = None) -> JsonResponse:
    body = {"code": code, "message": message}
    if fields:
        body["fields"] = fields
    return JsonResponse({"ok": False, "error": body}, status=status)


class InboxAPIView(View):
    """Base view: requires an identity and maps inbox errors to responses."""

    staff_only = False
    customer_only = False

    def dispatch(self, request, *args, **kwargs):
        if not request.user.is_authenticated:
            return error("AUTH_REQUIRED", "Authentication required", 401)
        try:
            if self.staff_only and not is_staff_identity(request.user):
                raise NotAuthorizedError("use the staff inbox")
            if self.customer_only and not is_customer(request.user):
                raise NotAuthorizedError("use the customer inbox")
            return super().dispatch(request, *args, **kwargs)
        except ValidationFailedError as e:
            return error(e.code, str(e), 422, e.fields)
        except InboxError as e:
            status = next((s for cls, s in ERROR_STATUS.items() if isinstance(e, cls)), 400)
            if status >= 500:
                logger.error(f"{request.method} {request.path} failed: {e}")
                return error(e.code, "Internal error, please retry", status)
            return error(e.code, str(e), status)

    def http_method_not_allowed(self, request, *args, **kwargs):
        return error("METHOD_NOT_ALLOWED", f"Method {request.method} not allowed", 405)

    def payload(self):
        """Request body as a dict: JSON when sent as JSON, else form data."""
        if self.request.content_type == "application/json":
            try:
                body = json.loads(self.request.body or b"{}")
            except ValueError:
                raise ValidationFailedError({"body": ["Malformed JSON."]})
            if not isinstance(body, dict):
                raise ValidationFailedError({"body": ["Expected a JSON object."]})
            return body
        return self.request.POST

    def validate(self, form_class, data):
        form = form_class(data)
        if not form.is_valid():
            raise ValidationFailedError(
                {field: [str(m) for m in messages] for field, messages in form.errors.items()}
            )
        return form.cleaned_data


# =============================================================================
# Messages
# =============================================================================


class CustomerMessagesView(InboxAPIView):
    """The customer's own thread. No limit returns the full history."""

    customer_only = True

    def get(self, request):
        params = self.validate(MessageListForm, request.GET)
        conversation = conversations.get_customer_conversation(request.user)
        if conversation is None:
            return ok({"conversation": None, "messages": []})

        messages = messaging.list_messages(
            conversation,
            after_id=params["after_id"],
            before_id=params["before_id"],
            limit=messaging.customer_page_limit(params["limit"]),
        )
        return ok({
            "conversation": serialize_conversation(conversation),
            "messages": [serialize_message(m) for m in messages],
        })

    def post(self, request):
        data = self.validate(SendMessageForm, self.payload())
        message = messaging.send_message(
            request.user,
            body=data["message"],
            product=data["product"],
            images=data["images"],
            is_quick_option=data["is_quick_option"],
            receiver=data["receiver_id"],
        )
        return ok({"message": serialize_message(message)}, status=201)


class StaffMessagesView(InboxAPIView):
    """Staff paging over any customer's thread, and staff replies."""

    staff_only = True

    def get(self, request):
        params = self.validate(StaffMessageListForm, request.GET)
        if params["conversation_id"]:
            conversation = conversations.get_conversation_for(request.user, params["conversation_id"])
        else:
            conversation = conversations.get_conversation_for_customer_id(params["customer_id"])
        if conversation is None:
            return ok({"conversation": None, "messages": []})

        messages = messaging.list_messages(
            conversation,
            after_id=params["after_id"],
            before_id=params["before_id"],
            limit=messaging.staff_page_limit(params["limit"]),
        )
        return ok({
            "conversation": serialize_conversation(conversation),
            "messages": [serialize_message(m) for m in messages],
        })

    def post(self, request):
        data = self.validate(SendMessageForm, self.payload())
        conversation = None
        if data["conversation_id"]:
            conversation = conversations.get_conversation_for(request.user, data["conversation_id"])
        message = messaging.send_message(
            request.user,
            body=data["message"],
            product=data["product"],
            images=data["images"],
            is_quick_option=data["is_quick_option"],
            receiver=data["receiver_id"],
            conversation=conversation,
            customer=data["customer_id"],
        )
        return ok({"message": serialize_message(message)}, status=201)


class ConversationListView(InboxAPIView):
    """Shared staff inbox, or the customer's own conversation."""

    def get(self, request):
        if is_staff_identity(request.user):
            params = self.validate(LimitForm, request.GET)
            inbox = conversations.get_staff_inbox(params["limit"])
            return ok({"conversations": [serialize_conversation(c, last) for c, last in inbox]})

        conversation = conversations.get_customer_conversation(request.user)
        items = [serialize_conversation(conversation)] if conversation else []
        return ok({"conversations": items})


class TypingView(InboxAPIView):
    started = True

    def post(self, request):
        data = self.validate(TypingForm, self.payload())
        if self.started:
            messaging.start_typing(request.user, data["conversation_id"])
        else:
            messaging.stop_typing(request.user, data["conversation_id"])
        return ok({"conversation_id": data["conversation_id"]})


# =============================================================================
# Notifications
# =============================================================================


class NotificationListView(InboxAPIView):
    def get(self, request):
        params = self.validate(LimitForm, request.GET)
        items = notifications.list_notifications(request.user, params["limit"])
        return ok({
            "notifications": [serialize_notification(n) for n in items],
            "unread_count": notifications.unread_count(request.user),
        })


class UnreadCountView(InboxAPIView):
    def get(self, request):
        return ok({"unread_count": notifications.unread_count(request.user)})


class NotificationReadView(InboxAPIView):
    def post(self, request, notification_id):
        notification = notifications.mark_read(request.user, notification_id)
        return ok({
            "notification": serialize_notification(notification),
            "unread_count": notifications.unread_count(request.user),
        })


class NotificationReadAllView(InboxAPIView):
    def post(self, request):
        changed = notifications.mark_all_read(request.user)
        return ok({"updated": changed, "unread_count": 0})


class NotificationReadFromSenderView(InboxAPIView):
    def post(self, request, sender_id):
        changed = notifications.mark_all_from_sender_read(request.user, sender_id)
        return ok({"updated": changed, "unread_count": notifications.unread_count(request.user)})


# =============================================================================
# Transport hook
# =============================================================================


class ChannelAuthView(InboxAPIView):
    """Subscribe-time authorization for the pub/sub gateway."""

    def post(self, request):
        data = self.validate(ChannelAuthForm, self.payload())
        channel_name = data["channel_name"]
        if not can_subscribe(request.user, channel_name):
            logger.info(f"User {request.user.pk} denied subscription to {channel_name}")
            return error("ACCESS_DENIED", f"Not authorized to subscribe to {channel_name}", 403)
        return ok({"channel": channel_name})
