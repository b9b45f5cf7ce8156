"""Role lookup for identities supplied by the authentication layer."""

from typing import Iterable

from django.contrib.auth import get_user_model
from django.db import models

from .conf import customer_roles, get_setting, staff_roles


class Role(models.TextChoices):
    """Known identity roles."""

    CUSTOMER = "customer", "Customer"
    VIP = "vip", "VIP"
    CLERK = "clerk", "Clerk"
    ADMIN = "admin", "Admin"


def get_role(user) -> str:
    """Return the user's role, or an empty string for anonymous users."""
    if user is None or not getattr(user, "is_authenticated", False):
        return ""
    return getattr(user, get_setting("ROLE_FIELD"), "") or ""


def is_staff_identity(user) -> bool:
    """True for any staff variant (clerk, admin). Not Django's is_staff flag."""
    return get_role(user) in staff_roles()


def is_customer(user) -> bool:
    return get_role(user) in customer_roles()


def users_with_roles(roles: Iterable[str]) -> models.QuerySet:
    """Active users holding any of the given roles, queried fresh each call."""
    User = get_user_model()
    lookup = {f"{get_setting('ROLE_FIELD')}__in": list(roles)}
    qs = User.objects.filter(**lookup)
    if any(f.name == "is_active" for f in User._meta.get_fields()):
        qs = qs.filter(is_active=True)
    return qs.order_by("pk")
