"""Message store and send pipeline.

Sending is two-phase: the conversation lookup, receiver resolution, insert
and conversation touch commit together; notifications and the
``message.sent`` broadcast follow and are best-effort.
"""

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction

from ..conf import clamp_limit, get_setting, receiver_fallback_roles
from ..events import MessageSent, TypingStarted, TypingStopped
from ..exceptions import (
    InboxError,
    NotAuthorizedError,
    NotFoundError,
    StoreError,
    ValidationFailedError,
)
from ..models import Conversation, Message
from ..payloads import ProductReference
from ..roles import is_customer, is_staff_identity, users_with_roles
from .broadcast import dispatch, dispatch_on_commit
from .conversations import get_conversation_for, get_or_create_for_customer

logger = logging.getLogger(__name__)


# =============================================================================
# Receiver resolution
# =============================================================================


def _load_user(user_or_id, field: str):
    if hasattr(user_or_id, "pk"):
        return user_or_id
    User = get_user_model()
    try:
        return User.objects.get(pk=user_or_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise ValidationFailedError({field: ["Unknown user."]})


def _fallback_staff():
    """First staff identity by role order, then pk.

    No availability or load signal is consulted.
    """
    for role in receiver_fallback_roles():
        user = users_with_roles([role]).first()
        if user is not None:
            return user
    return None


def resolve_receiver(conversation: Conversation, sender, receiver=None):
    """Work out who a message is addressed to. Never returns None.

    Customer senders go to the explicit receiver (must be staff), else the
    active clerk, else the first available staff member. Staff senders go to
    the conversation's customer.

    Raises:
        ValidationFailedError: if no valid receiver can be determined
    """
    if is_staff_identity(sender):
        if receiver is None:
            return conversation.customer
        receiver = _load_user(receiver, "receiver_id")
        if receiver.pk != conversation.customer_id:
            raise ValidationFailedError(
                {"receiver_id": ["Receiver must be the conversation's customer."]}
            )
        return receiver

    if receiver is not None:
        receiver = _load_user(receiver, "receiver_id")
        if not is_staff_identity(receiver):
            raise ValidationFailedError({"receiver_id": ["Receiver must be a staff member."]})
        return receiver

    clerk = conversation.active_clerk
    if clerk is not None and is_staff_identity(clerk):
        return clerk

    fallback = _fallback_staff()
    if fallback is None:
        raise ValidationFailedError({"receiver_id": ["No staff member is available to receive this message."]})
    logger.warning(
        f"Conversation {conversation.pk} has no active clerk; routing to fallback user {fallback.pk}"
    )
    return fallback


# =============================================================================
# Store
# =============================================================================


def _clean_content(body, product, images) -> tuple[Optional[str], Optional[dict], list]:
    errors = {}
    body = body.strip() if isinstance(body, str) else body
    body = body or None

    if product:
        try:
            product = ProductReference.from_dict(product).to_dict()
        except ValueError as e:
            errors["product"] = [str(e)]
    else:
        product = None

    images = images or []
    if not isinstance(images, (list, tuple)) or not all(isinstance(i, str) and i for i in images):
        errors["images"] = ["Images must be a list of URLs."]
    images = list(images) if not errors.get("images") else []

    if not errors and body is None and product is None and not images:
        errors["message"] = ["A message needs text, a product or at least one image."]
    if errors:
        raise ValidationFailedError(errors)
    return body, product, images


def append_message(
    conversation: Conversation,
    sender,
    receiver,
    body: Optional[str] = None,
    product: Optional[dict] = None,
    images: Optional[list] = None,
    is_quick_option: bool = False,
) -> Message:
    """Insert a message into an existing conversation.

    Raises:
        NotFoundError: the conversation does not exist
    """
    if conversation.pk is None or not Conversation.objects.filter(pk=conversation.pk).exists():
        raise NotFoundError("Conversation", conversation.pk)

    return Message.objects.create(
        conversation=conversation,
        sender=sender,
        receiver=receiver,
        body=body,
        product=product,
        images=list(images or []),
        is_quick_option=bool(is_quick_option),
    )


def customer_page_limit(limit) -> Optional[int]:
    """Customers get their full history when no limit is given."""
    maximum = get_setting("CUSTOMER_MAX_PAGE_SIZE")
    if limit in (None, ""):
        return None
    return clamp_limit(limit, maximum, maximum)


def staff_page_limit(limit) -> int:
    """Staff paging defaults to a small page."""
    return clamp_limit(limit, get_setting("STAFF_PAGE_SIZE"), get_setting("STAFF_MAX_PAGE_SIZE"))


def list_messages(
    conversation: Conversation,
    after_id=None,
    before_id=None,
    limit: Optional[int] = None,
) -> list[Message]:
    """Messages of a conversation in ascending id order.

    - ``after_id``: the ``limit`` messages just newer than the cursor (live
      polling); a client that gets a full page polls again from its last id.
    - ``before_id``: the ``limit`` messages just older than the cursor.
    - neither: the newest ``limit`` messages.

    A ``limit`` of None means no limit.
    """
    qs = Message.objects.filter(conversation=conversation).select_related("sender", "receiver")

    if after_id is not None:
        oldest_first = qs.filter(id__gt=after_id).order_by("id")
        if limit is not None:
            oldest_first = oldest_first[:limit]
        return list(oldest_first)

    if before_id is not None:
        qs = qs.filter(id__lt=before_id)

    newest_first = qs.order_by("-id")
    if limit is not None:
        newest_first = newest_first[:limit]
    return list(reversed(list(newest_first)))


# =============================================================================
# Send
# =============================================================================


def _conversation_for_send(sender, conversation, customer) -> tuple[Conversation, bool]:
    if is_customer(sender):
        if conversation is not None and conversation.customer_id != sender.pk:
            raise NotAuthorizedError("send to this conversation")
        return get_or_create_for_customer(sender)

    if is_staff_identity(sender):
        if conversation is not None:
            return conversation, False
        if customer is None:
            raise ValidationFailedError({"customer_id": ["A customer or conversation is required."]})
        customer = _load_user(customer, "customer_id")
        if not is_customer(customer):
            raise ValidationFailedError({"customer_id": ["User is not a customer."]})
        return get_or_create_for_customer(customer)

    raise NotAuthorizedError("send messages")


def send_message(
    sender,
    body: Optional[str] = None,
    product: Optional[dict] = None,
    images: Optional[list] = None,
    is_quick_option: bool = False,
    receiver=None,
    conversation: Optional[Conversation] = None,
    customer=None,
) -> Message:
    """Persist a message, notify, and fan it out.

    Args:
        sender: Authenticated user sending the message
        body: Message text
        product: Product reference dict
        images: Image URLs already uploaded to media storage
        is_quick_option: Sent from a quick-reply option
        receiver: Explicit receiver (user or id); derived when omitted
        conversation: Target conversation (staff); customers always use their own
        customer: Customer (user or id) for staff starting or continuing a thread

    Returns:
        The persisted Message

    Raises:
        NotAuthorizedError, ValidationFailedError, NotFoundError: bad request
        StoreError: the write failed; nothing was published
    """
    body, product, images = _clean_content(body, product, images)

    try:
        with transaction.atomic():
            conversation, created = _conversation_for_send(sender, conversation, customer)
            receiver = resolve_receiver(conversation, sender, receiver)
            message = append_message(
                conversation,
                sender,
                receiver,
                body=body,
                product=product,
                images=images,
                is_quick_option=is_quick_option,
            )
            conversation.touch(responder=sender)
    except DatabaseError as e:
        logger.exception(f"Failed to store message from user {sender.pk}")
        raise StoreError("store message", original_error=e) from e

    logger.info(
        f"Message {message.pk} stored in conversation {conversation.pk}: "
        f"{sender.pk} -> {receiver.pk}"
    )

    _notify_for_message(message, created)
    dispatch_on_commit(MessageSent(message))
    return message


def _notify_for_message(message: Message, new_conversation: bool) -> None:
    """Notification side effects. The message is already saved."""
    from . import notifications

    try:
        if is_customer(message.sender):
            if new_conversation and message.product:
                notifications.notify_customization_request(message)
            count = notifications.notify_staff_of_customer_message(message)
            logger.info(f"Message {message.pk}: notified {count} staff")
        else:
            notifications.notify_chat_message(message)
    except InboxError as e:
        logger.error(f"Message {message.pk} saved but notifications failed: {e}")
    except DatabaseError:
        logger.exception(f"Message {message.pk} saved but notifications failed")


# =============================================================================
# Typing
# =============================================================================


def start_typing(user, conversation_id):
    """Publish typing.started to the conversation channel.

    Raises:
        NotFoundError, NotAuthorizedError: same rules as reading the conversation
    """
    conversation = get_conversation_for(user, conversation_id)
    return dispatch(TypingStarted(user, conversation.pk))


def stop_typing(user, conversation_id):
    conversation = get_conversation_for(user, conversation_id)
    return dispatch(TypingStopped(user, conversation.pk))
