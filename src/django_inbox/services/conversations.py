"""Conversation registry.

Maps each customer to exactly one conversation and keeps the denormalized
``last_message_at`` / ``active_clerk`` fields current. The staff inbox is
shared: every staff identity sees every conversation.
"""

import logging
from typing import Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, OuterRef, Subquery

from ..conf import clamp_limit, get_setting
from ..exceptions import NotAuthorizedError, NotFoundError, StoreError
from ..models import Conversation, Message
from ..roles import is_staff_identity

logger = logging.getLogger(__name__)


def get_or_create_for_customer(customer) -> tuple[Conversation, bool]:
    """Find or create the customer's conversation. MUST be idempotent.

    Two simultaneous first contacts race on the unique constraint; the
    loser re-reads the winner's row.

    Returns:
        Tuple of (Conversation, created_bool)

    Raises:
        StoreError: if the database is unavailable
    """
    try:
        try:
            with transaction.atomic():
                return Conversation.objects.get_or_create(customer=customer)
        except IntegrityError:
            logger.info(f"Conversation for customer {customer.pk} created concurrently, re-reading")
            return Conversation.objects.get(customer=customer), False
    except DatabaseError as e:
        logger.exception(f"Could not get or create conversation for customer {customer.pk}")
        raise StoreError("load conversation", original_error=e) from e


def touch(conversation: Conversation, responder=None) -> Conversation:
    """Update last_message_at; last staff responder becomes active clerk."""
    conversation.touch(responder=responder)
    return conversation


def get_conversation_for(user, conversation_id) -> Conversation:
    """Load a conversation the user may read.

    Staff may read any conversation. A customer may read only their own.

    Raises:
        NotFoundError: no such conversation
        NotAuthorizedError: the user is not staff and not the owner
    """
    try:
        conversation = Conversation.objects.select_related("customer").get(pk=conversation_id)
    except (Conversation.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Conversation", conversation_id)

    if is_staff_identity(user) or conversation.customer_id == user.pk:
        return conversation
    raise NotAuthorizedError("access this conversation")


def get_customer_conversation(customer) -> Optional[Conversation]:
    """The customer's conversation, or None before their first message."""
    return Conversation.objects.filter(customer=customer).first()


def get_staff_inbox(limit=None) -> list[tuple[Conversation, Optional[Message]]]:
    """All conversations for the shared staff inbox, most recent first.

    Not filtered by active clerk: every staff member sees every thread.

    Returns:
        List of (conversation, last_message) tuples
    """
    limit = clamp_limit(
        limit,
        get_setting("STAFF_PAGE_SIZE"),
        get_setting("STAFF_MAX_PAGE_SIZE"),
    )
    latest = Message.objects.filter(conversation=OuterRef("pk")).order_by("-id").values("id")[:1]
    conversations = list(
        Conversation.objects.select_related("customer")
        .annotate(last_message_id=Subquery(latest))
        .order_by(F("last_message_at").desc(nulls_last=True), "-id")[:limit]
    )

    ids = [c.last_message_id for c in conversations if c.last_message_id]
    messages = Message.objects.select_related("sender", "receiver").in_bulk(ids)
    return [(c, messages.get(c.last_message_id)) for c in conversations]


def get_conversation_for_customer_id(customer_id) -> Optional[Conversation]:
    """Staff lookup by customer id; None when the customer has no thread yet."""
    return Conversation.objects.select_related("customer").filter(customer_id=customer_id).first()
