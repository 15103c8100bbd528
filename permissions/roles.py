# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (STAFF JOB ROLES)
# =========================================================
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_PHARMACIST = "pharmacist"
ROLE_CASHIER = "cashier"

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_PHARMACIST,
    ROLE_CASHIER,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_POS_SELL = "pos.sell"

# Business-wide credit book: list + outstanding summary.
CAP_CREDIT_VIEW_ALL = "credit.view_all"
# Counter work: look up one credit, a customer's history, take a payment.
CAP_CREDIT_COLLECT = "credit.collect"

ALL_CAPABILITIES = {
    CAP_POS_SELL,
    CAP_CREDIT_VIEW_ALL,
    CAP_CREDIT_COLLECT,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        CAP_POS_SELL,
        CAP_CREDIT_VIEW_ALL,
        CAP_CREDIT_COLLECT,
    },
    ROLE_CASHIER: {
        CAP_POS_SELL,
        CAP_CREDIT_COLLECT,
    },
    ROLE_PHARMACIST: {
        CAP_POS_SELL,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> set[str]:
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


# =========================================================
# Base Role Permission
# =========================================================
class BaseRolePermission(BasePermission):
    """
    Base permission for role-based access control.

    Subclasses must define:
    - allowed_roles (set)
    """

    allowed_roles: set[str] = set()

    def has_permission(self, request, view):
        user = request.user

        if not user or not user.is_authenticated:
            return False

        user_role = get_user_role(user)
        if not user_role:
            return False

        return user_role in self.allowed_roles


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_CREDIT_COLLECT
    """

    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default
            return False

        return required in effective_capabilities_for(user)


class IsAdmin(BaseRolePermission):
    allowed_roles = {ROLE_ADMIN}


class IsStaff(BaseRolePermission):
    allowed_roles = STAFF_ROLES
