from django.core.exceptions import PermissionDenied

from .models import Membership
from .models.entitymembership import WRITE_ROLES


def get_role(business, user):
    """Role of `user` in `business`, or None without an active membership."""
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    membership = (
        Membership.objects.for_business(business)
        .filter(user=user, is_active=True)
        .only("role")
        .first()
    )
    return membership.role if membership else None


def can_write(role):
    return role in WRITE_ROLES


def require_member(business, user):
    role = get_role(business, user)
    if role is None:
        raise PermissionDenied("Not a member of this business.")
    return role


def require_write(business, user):
    role = require_member(business, user)
    if not can_write(role):
        raise PermissionDenied("Your role cannot modify payables.")
    return role
