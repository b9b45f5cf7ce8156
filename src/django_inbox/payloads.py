"""Typed views over the JSON blobs stored on messages and notifications.

``Message.product`` holds a :class:`ProductReference`. ``Notification.data``
holds one of the notification payload variants, selected by the
notification's ``type``. Unknown types and unrecognized keys fall through to
:class:`OtherNotificationData` so stored rows always parse.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional, Union


def _known(cls, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in (data or {}).items() if k in names}


@dataclass
class ProductReference:
    """Product card attached to a message."""

    id: Any = None
    name: str = ""
    price: Any = None
    material: Optional[str] = None
    description: Optional[str] = None
    images: list = field(default_factory=list)
    current_image_index: int = 0
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ProductReference":
        if not isinstance(data, dict):
            raise ValueError("Product reference must be an object")
        ref = cls(**_known(cls, data))
        if not isinstance(ref.images, list):
            raise ValueError("Product images must be a list")
        try:
            ref.current_image_index = int(ref.current_image_index or 0)
        except (TypeError, ValueError):
            raise ValueError("current_image_index must be an integer")
        return ref

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MessageNotificationData:
    message_id: Optional[int] = None
    conversation_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: str = ""
    sender_id: Optional[int] = None
    sender_name: str = ""
    preview: str = ""
    has_images: bool = False
    assigned_clerk_id: Optional[int] = None
    message: Optional[str] = None
    images: Optional[list] = None


@dataclass
class CustomizationNotificationData:
    message_id: Optional[int] = None
    conversation_id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: str = ""
    product_data: Optional[dict] = None
    message: Optional[str] = None


@dataclass
class ProposalNotificationData:
    proposal_id: Any = None
    proposal_name: str = ""
    category: Optional[str] = None
    total_price: Any = None


@dataclass
class VoucherNotificationData:
    voucher_id: Any = None
    user_voucher_id: Any = None
    voucher_code: Optional[str] = None
    voucher_name: Optional[str] = None
    percent: Any = None
    expires_at: Optional[str] = None
    order_id: Any = None
    discount_amount: Any = None


@dataclass
class OrderNotificationData:
    order_id: Any = None
    order_number: str = ""
    total_amount: Any = None
    status: Optional[str] = None
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    status_label: Optional[str] = None


@dataclass
class ReviewNotificationData:
    review_id: Any = None
    rating: Optional[int] = None
    comment: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: str = ""


@dataclass
class WalkinNotificationData:
    purchase_id: Any = None
    customer_name: str = ""
    product_name: str = ""
    total_price: Any = None
    category: Optional[str] = None


@dataclass
class OtherNotificationData:
    """Catch-all for system and VIP notifications."""

    values: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "OtherNotificationData":
        return cls(values=dict(data or {}))

    def to_dict(self) -> dict:
        return dict(self.values)


NotificationData = Union[
    MessageNotificationData,
    CustomizationNotificationData,
    ProposalNotificationData,
    VoucherNotificationData,
    OrderNotificationData,
    ReviewNotificationData,
    WalkinNotificationData,
    OtherNotificationData,
]

PAYLOAD_TYPES = {
    "message": MessageNotificationData,
    "customization": CustomizationNotificationData,
    "proposal": ProposalNotificationData,
    "voucher": VoucherNotificationData,
    "order": OrderNotificationData,
    "review": ReviewNotificationData,
    "walkin": WalkinNotificationData,
}


def payload_for(notification_type: str, data: Optional[dict]) -> NotificationData:
    """Parse stored notification data into the variant for its type."""
    cls = PAYLOAD_TYPES.get(notification_type)
    if cls is None:
        return OtherNotificationData.from_dict(data)
    return cls(**_known(cls, data))


def payload_to_dict(payload: Union[NotificationData, dict, None]) -> dict:
    """Serialize a payload variant (or a plain dict) for storage."""
    if payload is None:
        return {}
    if isinstance(payload, dict):
        return dict(payload)
    if isinstance(payload, OtherNotificationData):
        return payload.to_dict()
    return {k: v for k, v in asdict(payload).items() if v is not None}
