from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIRequestFactory

from permissions.roles import (
    CAP_CREDIT_COLLECT,
    CAP_CREDIT_VIEW_ALL,
    CAP_POS_SELL,
    HasCapability,
    IsAdmin,
    IsStaff,
    effective_capabilities_for,
)

User = get_user_model()


class PermissionRoleTests(TestCase):
    """
    Tests for role-based permissions.

    GUARANTEES:
    - Correct role access
    - No privilege escalation
    - Anonymous users denied everywhere
    """

    def setUp(self):
        self.factory = APIRequestFactory()

        self.admin = User.objects.create_user(
            email="admin@example.com",
            password="pass",
            role="admin",
        )
        self.manager = User.objects.create_user(
            email="manager@example.com",
            password="pass",
            role="manager",
        )
        self.pharmacist = User.objects.create_user(
            email="pharmacist@example.com",
            password="pass",
            role="pharmacist",
        )
        self.cashier = User.objects.create_user(
            email="cashier@example.com",
            password="pass",
            role="cashier",
        )

    # --------------------------------------------------
    # Helpers
    # --------------------------------------------------

    def _request_for(self, user=None):
        request = self.factory.get("/")
        request.user = user
        return request

    def _can(self, user, capability):
        view = SimpleNamespace(required_capability=capability)
        return HasCapability().has_permission(self._request_for(user), view)

    # --------------------------------------------------
    # ROLE CLASSES
    # --------------------------------------------------

    def test_admin_permissions(self):
        request = self._request_for(self.admin)

        self.assertTrue(IsAdmin().has_permission(request, None))
        self.assertTrue(IsStaff().has_permission(request, None))

    def test_non_admin_staff(self):
        for user in (self.manager, self.pharmacist, self.cashier):
            with self.subTest(role=user.role):
                request = self._request_for(user)
                self.assertFalse(IsAdmin().has_permission(request, None))
                self.assertTrue(IsStaff().has_permission(request, None))

    # --------------------------------------------------
    # CAPABILITIES
    # --------------------------------------------------

    def test_admin_and_manager_see_the_whole_credit_book(self):
        self.assertTrue(self._can(self.admin, CAP_CREDIT_VIEW_ALL))
        self.assertTrue(self._can(self.manager, CAP_CREDIT_VIEW_ALL))
        self.assertFalse(self._can(self.cashier, CAP_CREDIT_VIEW_ALL))
        self.assertFalse(self._can(self.pharmacist, CAP_CREDIT_VIEW_ALL))

    def test_cashier_collects_credit_payments(self):
        self.assertTrue(self._can(self.cashier, CAP_CREDIT_COLLECT))
        self.assertTrue(self._can(self.manager, CAP_CREDIT_COLLECT))
        self.assertFalse(self._can(self.pharmacist, CAP_CREDIT_COLLECT))

    def test_every_staff_role_can_sell(self):
        for user in (self.admin, self.manager, self.pharmacist, self.cashier):
            with self.subTest(role=user.role):
                self.assertTrue(self._can(user, CAP_POS_SELL))

    def test_view_without_capability_is_denied(self):
        self.assertFalse(self._can(self.admin, None))

    def test_superuser_has_every_capability(self):
        root = User.objects.create_superuser(email="root@example.com", password="pass")

        self.assertIn(CAP_CREDIT_VIEW_ALL, effective_capabilities_for(root))
        self.assertIn(CAP_CREDIT_COLLECT, effective_capabilities_for(root))

    # --------------------------------------------------
    # ANONYMOUS
    # --------------------------------------------------

    def test_anonymous_user_denied_everywhere(self):
        request = self._request_for(None)

        self.assertFalse(IsAdmin().has_permission(request, None))
        self.assertFalse(IsStaff().has_permission(request, None))
        self.assertFalse(self._can(None, CAP_POS_SELL))
