"""
Authentication Middleware and Dependencies

Provides:
- get_current_user_required: Extract and validate the tenant user from a JWT token
- PermissionChecker: Dependency for permission-based access control

The tenant id returned on AuthUser is the only tenant context the API uses;
handlers pass it explicitly to every service call.
"""

from typing import Optional
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from logging_config import set_request_context
from sentry_integration import set_user
from services.auth import decode_token, AuthUser, Permission

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


def _user_from_credentials(credentials: Optional[HTTPAuthorizationCredentials]) -> AuthUser:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    token_data = decode_token(credentials.credentials)

    if not token_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    if token_data.token_type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = AuthUser(
        id=token_data.user_id,
        email=token_data.email,
        role=token_data.role,
        tenant_id=token_data.tenant_id,
    )

    set_request_context(user_id=user.id, tenant_id=user.tenant_id)
    set_user(user.id, tenant_id=user.tenant_id, role=user.role)

    return user


# ==================== DEPENDENCIES ====================

async def get_current_user_required(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> AuthUser:
    """
    Extract current user from JWT token.
    Raises 401 if no token or invalid token.
    """
    return _user_from_credentials(credentials)


class PermissionChecker:
    """
    Dependency class for permission-based access control.

    Usage:
        @router.post("/import-statement")
        async def import_statement(user: AuthUser = Depends(PermissionChecker("bankbook:import"))):
            ...
    """

    def __init__(self, permission: str):
        self.permission = permission

    async def __call__(
        self,
        credentials: HTTPAuthorizationCredentials = Depends(security)
    ) -> AuthUser:
        user = _user_from_credentials(credentials)

        if not user.has_permission(self.permission):
            logger.warning(
                f"Permission denied: {self.permission} for user {user.id}",
                extra={"permission": self.permission, "role": user.role}
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"You don't have permission: {self.permission}"
            )

        return user


# Convenience permission checkers
require_bankbook_import = PermissionChecker(Permission.BANKBOOK_IMPORT.value)
require_bankbook_reconcile = PermissionChecker(Permission.BANKBOOK_RECONCILE.value)
require_bankbook_manual = PermissionChecker(Permission.BANKBOOK_MANUAL.value)
require_journal_create = PermissionChecker(Permission.JOURNAL_CREATE.value)
