"""
Security Core - Role based access to reports and balance maintenance.

The acting role travels with each request in the X-User-Role header.
"""

import logging
from enum import Enum

from fastapi import Header, HTTPException, status

logger = logging.getLogger(__name__)

ROLE_HEADER = "X-User-Role"


class UserRole(str, Enum):
    OWNER = "owner"
    MANAGER = "manager"
    ACCOUNTANT = "accountant"
    CASHIER = "cashier"
    VIEWER = "viewer"


class Permission(str, Enum):
    REPORT_VIEW = "report_view"
    REPORT_EXPORT = "report_export"
    BALANCE_VIEW = "balance_view"
    BALANCE_RECALCULATE = "balance_recalculate"


ROLE_PERMISSIONS: dict[UserRole, list[Permission]] = {
    UserRole.OWNER: list(Permission),
    UserRole.MANAGER: list(Permission),
    UserRole.ACCOUNTANT: [
        Permission.REPORT_VIEW,
        Permission.REPORT_EXPORT,
        Permission.BALANCE_VIEW,
        Permission.BALANCE_RECALCULATE,
    ],
    UserRole.CASHIER: [Permission.REPORT_VIEW, Permission.BALANCE_VIEW],
    UserRole.VIEWER: [Permission.REPORT_VIEW],
}


class RBACService:
    def has_permission(self, role: UserRole, permission: Permission) -> bool:
        return permission in ROLE_PERMISSIONS.get(role, [])

    def get_user_permissions(self, role: UserRole) -> list[Permission]:
        return ROLE_PERMISSIONS.get(role, [])


rbac_service = RBACService()


def require_permission(permission: Permission):
    """
    Dependency factory - Rejects the request unless the caller's role grants
    the permission.

    Usage:
        @router.get("/x", dependencies=[Depends(require_permission(Permission.REPORT_VIEW))])
    """

    def dependency(x_user_role: str | None = Header(default=None)) -> UserRole:
        if not x_user_role:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"{ROLE_HEADER} header is required",
            )
        try:
            role = UserRole(x_user_role.lower())
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Unknown role: {x_user_role}",
            ) from None

        if not rbac_service.has_permission(role, permission):
            logger.info("Role %s denied %s", role.value, permission.value)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {role.value} lacks permission {permission.value}",
            )
        return role

    return dependency
