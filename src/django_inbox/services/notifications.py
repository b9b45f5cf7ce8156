"""Notification dispatcher.

Creates one durable Notification row per recipient and pushes it to the
recipient's private ``notifications:{id}`` channel after commit. Creation
and real-time delivery are independent: a failed publish never undoes the
row, and a reconnecting client finds it through the listing endpoint.

Recipient rosters for role broadcasts are queried on every call, so newly
added staff start receiving notifications immediately.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional, Union

from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.html import strip_tags
from django.utils.text import Truncator

from ..conf import clamp_limit, get_setting, message_notify_roles, staff_roles
from ..events import NotificationRead, NotificationSent
from ..exceptions import NotFoundError, StoreError
from ..models import Message, Notification, NotificationType
from ..payloads import (
    CustomizationNotificationData,
    MessageNotificationData,
    NotificationData,
    OrderNotificationData,
    ProposalNotificationData,
    ReviewNotificationData,
    VoucherNotificationData,
    WalkinNotificationData,
    payload_to_dict,
)
from ..roles import Role, users_with_roles
from ..serializers import display_name
from .broadcast import dispatch_on_commit

logger = logging.getLogger(__name__)


def _pk(user_or_id):
    return getattr(user_or_id, "pk", user_or_id)


def notify(
    sender,
    receiver,
    notification_type: str,
    title: str,
    body: str = "",
    data: Union[NotificationData, dict, None] = None,
) -> Notification:
    """Create a notification and publish it to the receiver.

    Args:
        sender: User (or id) that triggered it; None for system notifications
        receiver: User (or id) that receives it
        notification_type: A NotificationType value
        title: Short heading
        body: Notification text
        data: Typed payload or plain dict

    Returns:
        The created Notification

    Raises:
        StoreError: if the insert failed (nothing is published)
    """
    try:
        with transaction.atomic():
            notification = Notification.objects.create(
                sender_id=_pk(sender),
                receiver_id=_pk(receiver),
                type=notification_type,
                title=title,
                body=body,
                data=payload_to_dict(data),
            )
    except DatabaseError as e:
        logger.exception(
            f"Failed to create {notification_type} notification for user {_pk(receiver)}: {title}"
        )
        raise StoreError("create notification", original_error=e) from e

    dispatch_on_commit(NotificationSent(notification))
    logger.info(f"Notification {notification.pk} created: {notification_type} to user {_pk(receiver)} - {title}")
    return notification


def notify_many(
    sender,
    recipients: Iterable,
    notification_type: str,
    title: str,
    body: str = "",
    data: Union[NotificationData, dict, None] = None,
) -> int:
    """Notify each recipient. Returns the number of rows created.

    A failed insert for one recipient is logged and skipped. Publish
    failures do not count against the total.
    """
    count = 0
    for recipient in recipients:
        try:
            notify(sender, recipient, notification_type, title, body, data)
        except StoreError as e:
            logger.error(f"Skipping notification to user {_pk(recipient)}: {e}")
            continue
        count += 1
    return count


def broadcast_to_role(
    sender,
    roles: Union[str, Iterable[str]],
    notification_type: str,
    title: str,
    body: str = "",
    data: Union[NotificationData, dict, None] = None,
) -> int:
    """Notify every active user holding one of ``roles``.

    The roster is resolved now, not cached.

    Raises:
        StoreError: if the roster could not be loaded (nothing is created)
    """
    if isinstance(roles, str):
        roles = [roles]
    roles = list(roles)
    try:
        with transaction.atomic():
            recipients = list(users_with_roles(roles))
    except DatabaseError as e:
        logger.exception(f"Failed to load recipients with roles {roles} for '{notification_type}' notification")
        raise StoreError("load recipients", original_error=e) from e
    count = notify_many(sender, recipients, notification_type, title, body, data)
    logger.info(
        f"Broadcast '{notification_type}' notification to {count}/{len(recipients)} users "
        f"with roles {roles}: {title}"
    )
    return count


def message_preview(message: Message) -> str:
    """Short plain-text preview of a message for notification bodies."""
    text = strip_tags(message.body or "").strip()
    if text:
        return Truncator(text).chars(get_setting("PREVIEW_LENGTH"), truncate="...")
    if message.has_images:
        return "Sent an attachment"
    return "Sent a message"


# =============================================================================
# Messaging notifications
# =============================================================================


def notify_staff_of_customer_message(message: Message) -> int:
    """Notify the full staff roster of a customer message.

    Every current staff identity gets a row, not just the active clerk.
    """
    customer = message.sender
    customer_name = display_name(customer)
    preview = message_preview(message)
    conversation = message.conversation

    data = MessageNotificationData(
        message_id=message.pk,
        conversation_id=message.conversation_id,
        customer_id=customer.pk,
        customer_name=customer_name,
        sender_id=customer.pk,
        sender_name=customer_name,
        preview=preview,
        has_images=message.has_images,
        assigned_clerk_id=conversation.active_clerk_id,
        message=message.body,
        images=list(message.images) if message.has_images else None,
    )
    return broadcast_to_role(
        customer,
        message_notify_roles(),
        NotificationType.MESSAGE,
        "New Customer Message",
        f"{customer_name}: {preview}",
        data,
    )


def notify_chat_message(message: Message, recipient=None) -> Optional[Notification]:
    """Notify the receiver of a staff reply. Self-messages notify nobody."""
    sender = message.sender
    recipient = recipient or message.receiver
    if recipient is None or sender.pk == recipient.pk:
        return None

    sender_name = display_name(sender)
    preview = message_preview(message)
    data = MessageNotificationData(
        message_id=message.pk,
        conversation_id=message.conversation_id,
        sender_id=sender.pk,
        sender_name=sender_name,
        preview=preview,
        has_images=message.has_images,
    )
    return notify(
        sender,
        recipient,
        NotificationType.MESSAGE,
        "New Message",
        f"{sender_name}: {preview}",
        data,
    )


def notify_customization_request(message: Message) -> int:
    """Notify staff that a customer opened a thread about a product."""
    customer = message.sender
    customer_name = display_name(customer)
    product = message.product or {}
    product_name = product.get("name") or "a product"

    body = f"{customer_name} wants to customize {product_name}"
    if message.body:
        body = f"{body}: {message.body}"

    data = CustomizationNotificationData(
        message_id=message.pk,
        conversation_id=message.conversation_id,
        customer_id=customer.pk,
        customer_name=customer_name,
        product_data=message.product,
        message=message.body,
    )
    return broadcast_to_role(
        customer,
        staff_roles(),
        NotificationType.CUSTOMIZATION,
        "New Customization Request",
        body,
        data,
    )


# =============================================================================
# Storefront notifications
#
# Orders, proposals, vouchers, reviews and walk-in sales live in other apps;
# these helpers take the primitive values they need.
# =============================================================================


ORDER_STATUS_LABELS = {
    "pending": "Pending",
    "confirmed": "Confirmed",
    "processing": "Processing",
    "packaging": "Packaging",
    "on_delivery": "On Delivery",
    "delivered": "Delivered",
}


def _money(value) -> str:
    return f"{Decimal(str(value)):,.2f}"


def _order_number(order_id) -> str:
    return f"ORD-{int(order_id):06d}"


def notify_order_created(customer, order_id, total_amount, status: str = "pending") -> int:
    """Tell all staff about a new order."""
    order_number = _order_number(order_id)
    return broadcast_to_role(
        customer,
        staff_roles(),
        NotificationType.ORDER,
        "New Order Received",
        f"{display_name(customer)} placed a new order (#{order_number}) for {_money(total_amount)}",
        OrderNotificationData(
            order_id=order_id,
            order_number=order_number,
            total_amount=total_amount,
            status=status,
        ),
    )


def notify_order_status_updated(customer, order_id, old_status: str, new_status: str) -> Notification:
    """Tell the customer their order moved to ``new_status``."""
    order_number = _order_number(order_id)
    label = ORDER_STATUS_LABELS.get(new_status) or str(new_status).replace("_", " ").capitalize()
    return notify(
        None,
        customer,
        NotificationType.ORDER,
        "Order Status Updated",
        f"Your order #{order_number} status has been updated to: {label}",
        OrderNotificationData(
            order_id=order_id,
            order_number=order_number,
            old_status=old_status,
            new_status=new_status,
            status_label=label,
        ),
    )


def notify_proposal_created(
    clerk, customer, proposal_id, proposal_name: str, category: str = None, total_price=None
) -> Notification:
    return notify(
        clerk,
        customer,
        NotificationType.PROPOSAL,
        "New Custom Proposal",
        f"{display_name(clerk)} has created a custom proposal: {proposal_name}",
        ProposalNotificationData(
            proposal_id=proposal_id,
            proposal_name=proposal_name,
            category=category,
            total_price=total_price,
        ),
    )


def notify_voucher_sent(
    customer,
    voucher_id,
    voucher_name: str,
    percent,
    voucher_code: str = None,
    user_voucher_id=None,
    expires_at=None,
) -> Notification:
    return notify(
        None,
        customer,
        NotificationType.VOUCHER,
        "New Voucher Received",
        f"You've received a new voucher: {voucher_name} ({percent}% off)",
        VoucherNotificationData(
            voucher_id=voucher_id,
            user_voucher_id=user_voucher_id,
            voucher_code=voucher_code,
            voucher_name=voucher_name,
            percent=percent,
            expires_at=expires_at.isoformat() if expires_at else None,
        ),
    )


def _notify_voucher_holders(recipients, voucher_id, voucher_name, percent, title, body) -> int:
    recipients = list(recipients)
    if not recipients:
        logger.info(f"No active holders of voucher {voucher_id}, nothing to notify")
        return 0
    count = notify_many(
        None,
        recipients,
        NotificationType.VOUCHER,
        title,
        body,
        VoucherNotificationData(voucher_id=voucher_id, voucher_name=voucher_name, percent=percent),
    )
    logger.info(f"'{title}' for voucher {voucher_id} sent to {count}/{len(recipients)} holders")
    return count


def notify_voucher_enabled(recipients, voucher_id, voucher_name: str, percent) -> int:
    """Tell current holders of a voucher that it can be used again.

    ``recipients`` are the users holding an unused, unexpired copy.
    """
    return _notify_voucher_holders(
        recipients,
        voucher_id,
        voucher_name,
        percent,
        "Voucher Enabled",
        f"Great news! The voucher '{voucher_name}' ({percent}% off) is now enabled and available for use.",
    )


def notify_voucher_disabled(recipients, voucher_id, voucher_name: str, percent) -> int:
    return _notify_voucher_holders(
        recipients,
        voucher_id,
        voucher_name,
        percent,
        "Voucher Disabled",
        f"The voucher '{voucher_name}' ({percent}% off) has been disabled and is no longer available for use.",
    )


def notify_voucher_used(
    customer, order_id, voucher_id, voucher_name: str, voucher_code: str, discount_amount
) -> Notification:
    return notify(
        None,
        customer,
        NotificationType.VOUCHER,
        "Voucher Applied Successfully",
        f"Your voucher '{voucher_name}' has been applied to Order #{order_id}. "
        f"You saved {_money(discount_amount)}!",
        VoucherNotificationData(
            voucher_id=voucher_id,
            voucher_code=voucher_code,
            order_id=order_id,
            discount_amount=discount_amount,
        ),
    )


def notify_review_submitted(customer, review_id, rating: int, comment: str = None) -> int:
    """Tell every admin about a new product review."""
    customer_name = display_name(customer) if customer is not None else "Customer"
    return broadcast_to_role(
        customer,
        Role.ADMIN,
        NotificationType.REVIEW,
        "New Customer Review",
        f"{customer_name} left a {rating}-star review.",
        ReviewNotificationData(
            review_id=review_id,
            rating=rating,
            comment=comment,
            customer_id=_pk(customer),
            customer_name=customer_name,
        ),
    )


def notify_walkin_purchase_created(
    purchase_id, customer_name: str, product_name: str, total_price, category: str = None
) -> int:
    """Tell all staff about a purchase recorded at the counter."""
    return broadcast_to_role(
        None,
        staff_roles(),
        NotificationType.WALKIN,
        "New Walk-In Purchase",
        f"Walk-in purchase from {customer_name}: {product_name} - {_money(total_price)}",
        WalkinNotificationData(
            purchase_id=purchase_id,
            customer_name=customer_name,
            product_name=product_name,
            total_price=total_price,
            category=category,
        ),
    )


def notify_vip_promotion(customer) -> Notification:
    return notify(
        None,
        customer,
        NotificationType.VIP,
        "You are now a VIP!",
        f"Congratulations {display_name(customer)}, your account has been upgraded to VIP status. "
        "Enjoy exclusive perks and rewards.",
        {
            "customer_id": _pk(customer),
            "role": Role.VIP.value,
            "promoted_at": timezone.now().isoformat(),
        },
    )


def notify_system(receiver, title: str, body: str = "", data: dict = None) -> Notification:
    """System notification with no sender."""
    return notify(None, receiver, NotificationType.SYSTEM, title, body, data)


# =============================================================================
# Read state
# =============================================================================


def unread_count(user) -> int:
    return Notification.objects.filter(receiver_id=_pk(user), is_read=False).count()


def list_notifications(user, limit=None) -> list[Notification]:
    """Newest notifications first."""
    limit = clamp_limit(
        limit,
        get_setting("NOTIFICATION_PAGE_SIZE"),
        get_setting("NOTIFICATION_MAX_PAGE_SIZE"),
    )
    return list(
        Notification.objects.filter(receiver_id=_pk(user))
        .select_related("sender")
        .order_by("-created_at", "-id")[:limit]
    )


def _publish_unread_count(user_id, changed: int) -> None:
    if changed:
        dispatch_on_commit(NotificationRead(user_id, unread_count(user_id)))


def mark_read(user, notification_id) -> Notification:
    """Mark one of the user's notifications read. Idempotent.

    Raises:
        NotFoundError: no such notification for this receiver
    """
    try:
        notification = Notification.objects.get(pk=notification_id, receiver_id=_pk(user))
    except (Notification.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Notification", notification_id)

    if notification.is_read:
        return notification

    changed = Notification.objects.filter(pk=notification.pk, is_read=False).update(is_read=True)
    notification.is_read = True
    _publish_unread_count(_pk(user), changed)
    return notification


def mark_all_read(user) -> int:
    """Mark every unread notification for the user read. Returns rows changed."""
    changed = Notification.objects.filter(receiver_id=_pk(user), is_read=False).update(is_read=True)
    _publish_unread_count(_pk(user), changed)
    return changed


def mark_all_from_sender_read(user, sender_id) -> int:
    """Clear every unread notification tied to one counterpart.

    Matches the sender column, or the customer/sender recorded in the
    payload, so opening a customer's thread clears everything about them.
    """
    try:
        sender_id = int(sender_id)
    except (TypeError, ValueError):
        raise NotFoundError("User", sender_id)

    changed = (
        Notification.objects.filter(receiver_id=_pk(user), is_read=False)
        .filter(Q(sender_id=sender_id) | Q(data__customer_id=sender_id) | Q(data__sender_id=sender_id))
        .update(is_read=True)
    )
    logger.info(f"Marked {changed} notifications from user {sender_id} read for user {_pk(user)}")
    _publish_unread_count(_pk(user), changed)
    return changed
