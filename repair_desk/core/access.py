"""
Authorization policy shared by route guards and conditional rendering.
"""

from enum import Enum
from typing import Collection, Dict, Optional, Tuple

from ..models import Role

ADMIN_ONLY: Tuple[str, ...] = (Role.SUPER_ADMIN.value,)
STAFF: Tuple[str, ...] = (Role.SUPER_ADMIN.value, Role.TECHNICIAN.value)

# Roles allowed on each back-office view
VIEW_ROLES: Dict[str, Tuple[str, ...]] = {
    "dashboard": STAFF,
    "clients": ADMIN_ONLY,
    "tickets": STAFF,
    "pos": ADMIN_ONLY,
    "products": ADMIN_ONLY,
    "orders": ADMIN_ONLY,
    "invoices": ADMIN_ONLY,
    "profile": STAFF,
    "settings": ADMIN_ONLY,
    "user-management": ADMIN_ONLY,
}


class AccessDecision(str, Enum):
    ALLOW = "allow"
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    DENIED = "denied"


def can_access(role: Optional[str], required_roles: Optional[Collection[str]] = None) -> bool:
    """True when no roles are required or the role is one of them. A missing role never passes."""
    if required_roles is None:
        return True
    if role is None:
        return False
    return role in required_roles


def check_access(loading: bool, authenticated: bool, role: Optional[str],
                 required_role: Optional[str] = None,
                 allowed_roles: Optional[Collection[str]] = None) -> AccessDecision:
    if loading:
        return AccessDecision.LOADING
    if not authenticated:
        return AccessDecision.UNAUTHENTICATED
    if required_role is not None and not can_access(role, (required_role,)):
        return AccessDecision.DENIED
    if allowed_roles is not None and not can_access(role, allowed_roles):
        return AccessDecision.DENIED
    return AccessDecision.ALLOW


def can_view(role: Optional[str], view: str) -> bool:
    return can_access(role, VIEW_ROLES.get(view, ADMIN_ONLY))
