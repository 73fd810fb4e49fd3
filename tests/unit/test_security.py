"""
Unit tests - Role permissions.
"""

import pytest
from fastapi import HTTPException

from app.core.security import Permission, UserRole, rbac_service, require_permission


class TestRBAC:

    @pytest.mark.parametrize("role", [UserRole.OWNER, UserRole.MANAGER, UserRole.ACCOUNTANT])
    def test_full_access_roles(self, role):
        assert set(rbac_service.get_user_permissions(role)) == set(Permission)

    def test_cashier_cannot_export_or_recalculate(self):
        assert rbac_service.has_permission(UserRole.CASHIER, Permission.BALANCE_VIEW)
        assert not rbac_service.has_permission(UserRole.CASHIER, Permission.REPORT_EXPORT)
        assert not rbac_service.has_permission(UserRole.CASHIER, Permission.BALANCE_RECALCULATE)

    def test_viewer_only_views_reports(self):
        assert rbac_service.get_user_permissions(UserRole.VIEWER) == [Permission.REPORT_VIEW]


class TestRequirePermission:

    def test_missing_header_is_unauthorized(self):
        with pytest.raises(HTTPException) as exc:
            require_permission(Permission.REPORT_VIEW)(x_user_role=None)
        assert exc.value.status_code == 401

    def test_unknown_role_is_forbidden(self):
        with pytest.raises(HTTPException) as exc:
            require_permission(Permission.REPORT_VIEW)(x_user_role="intern")
        assert exc.value.status_code == 403

    def test_missing_permission_is_forbidden(self):
        with pytest.raises(HTTPException) as exc:
            require_permission(Permission.BALANCE_RECALCULATE)(x_user_role="viewer")
        assert exc.value.status_code == 403

    def test_role_is_case_insensitive(self):
        assert require_permission(Permission.REPORT_EXPORT)(x_user_role="Accountant") is UserRole.ACCOUNTANT
