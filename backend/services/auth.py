"""
Authentication & Authorization Service for the Bank Book API

Implements:
- JWT-based authentication (tokens are issued by the identity service;
  this module decodes them and can mint them for tooling and tests)
- Role-based access control with per-action permissions

Every access token carries the caller's tenant. All bank book and journal
queries are scoped by that tenant id.

Roles:
- admin: Full access
- accountant: Accounting operations (import, reconcile, manual adjustments, journals)
- viewer: Read-only access
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, FrozenSet
import logging
from enum import Enum

from jose import JWTError, jwt
from pydantic import BaseModel

from config import get_settings

logger = logging.getLogger(__name__)


# ==================== ROLES & PERMISSIONS ====================

class UserRole(str, Enum):
    admin = "admin"
    accountant = "accountant"
    viewer = "viewer"


class Permission(str, Enum):
    BANKBOOK_IMPORT = "bankbook:import"
    BANKBOOK_RECONCILE = "bankbook:reconcile"
    BANKBOOK_MANUAL = "bankbook:manual"
    JOURNAL_CREATE = "journal:create"


# Read endpoints are not permission-protected; any authenticated tenant user may read
ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    UserRole.admin.value: frozenset(p.value for p in Permission),
    UserRole.accountant.value: frozenset({
        Permission.BANKBOOK_IMPORT.value,
        Permission.BANKBOOK_RECONCILE.value,
        Permission.BANKBOOK_MANUAL.value,
        Permission.JOURNAL_CREATE.value,
    }),
    UserRole.viewer.value: frozenset(),
}


# ==================== MODELS ====================

class TokenData(BaseModel):
    """Data extracted from JWT token"""
    user_id: str
    email: str
    role: str
    tenant_id: str
    exp: Optional[datetime] = None
    token_type: str = "access"


class AuthUser(BaseModel):
    """Authenticated user context"""
    id: str
    email: str
    role: str
    tenant_id: str
    is_active: bool = True

    @property
    def permissions(self) -> FrozenSet[str]:
        return ROLE_PERMISSIONS.get(self.role, frozenset())

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value


# ==================== JWT UTILITIES ====================

def create_access_token(
    user_id: str,
    email: str,
    role: str,
    tenant_id: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token"""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "sub": user_id,
        "email": email,
        "role": role,
        "tenant_id": tenant_id,
        "type": "access",
        "exp": expire,
        "iat": now,
    }

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[TokenData]:
    """Decode and validate a JWT token"""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        return None

    user_id = payload.get("sub")
    email = payload.get("email")
    role = payload.get("role")
    tenant_id = payload.get("tenant_id")
    exp = payload.get("exp")

    if not user_id or not email or not role or not tenant_id:
        return None

    return TokenData(
        user_id=user_id,
        email=email,
        role=role,
        tenant_id=tenant_id,
        token_type=payload.get("type", "access"),
        exp=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None
    )

