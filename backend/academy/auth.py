"""Authentication and authorization.

Tokens are issued by the identity service. This module only verifies bearer
access tokens, resolves the active user (and with it the tenant) and applies
the role permission matrix.
"""
from typing import Optional
from datetime import timedelta
import logging
import time
from uuid import UUID
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from .config import settings
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

# Bearer token scheme
security = HTTPBearer()


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token (dev tooling and tests; production tokens come from the identity service)."""
    to_encode = data.copy()
    now = int(time.time())
    if expires_delta:
        exp = now + int(expires_delta.total_seconds())
    else:
        exp = now + int(settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES) * 60
    to_encode.update({"exp": exp, "iat": now, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode JWT token."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        raise _credentials_exception()

    now = int(time.time())
    exp = payload.get("exp")
    if exp is None:
        raise _credentials_exception()
    try:
        exp_int = int(exp)
    except (TypeError, ValueError):
        raise _credentials_exception()
    if now > exp_int + int(settings.JWT_LEEWAY_SECONDS):
        raise _credentials_exception("Token expired")

    iat = payload.get("iat")
    if iat is not None:
        try:
            iat_int = int(iat)
        except (TypeError, ValueError):
            raise _credentials_exception()
        # Reject tokens issued far in the future (clock skew / malicious tokens).
        if iat_int > now + int(settings.JWT_LEEWAY_SECONDS):
            raise _credentials_exception()
    return payload


def _parse_token_subject(payload: dict) -> UUID:
    """Parse and validate JWT subject as UUID."""
    sub = payload.get("sub")
    if not sub:
        raise _credentials_exception()
    try:
        return UUID(str(sub))
    except ValueError:
        raise _credentials_exception()


def _get_token_version(payload: dict) -> int:
    """Return token version from JWT payload (legacy tokens default to 0)."""
    ver = payload.get("ver", 0)
    try:
        return int(ver)
    except (TypeError, ValueError):
        raise _credentials_exception()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user."""
    payload = decode_token(credentials.credentials)

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    user_id = _parse_token_subject(payload)
    user = db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )
    if user.org_id is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is not bound to an organization",
        )

    if user.token_version != _get_token_version(payload):
        logger.info("auth.revoked_token user=%s", user.id)
        raise _credentials_exception("Token has been revoked")

    return user


# Permission checks
class PermissionChecker:
    """Check user permissions based on role."""

    def __init__(self, required_permission: str):
        self.required_permission = required_permission

    def __call__(self, current_user: User = Depends(get_current_user)):
        """Check if user has required permission."""
        if not check_permission(current_user, self.required_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {self.required_permission} required"
            )
        return current_user


# Role permissions matrix
ROLE_PERMISSIONS = {
    "owner": {
        "canViewEquipmentAudits": True,
        "canManageEquipmentAudits": True,
        "canApproveAdjustments": True,
        "canViewAudit": True,
    },
    "admin": {
        "canViewEquipmentAudits": True,
        "canManageEquipmentAudits": True,
        "canApproveAdjustments": True,
        "canViewAudit": True,
    },
    "staff": {
        "canViewEquipmentAudits": True,
        "canManageEquipmentAudits": True,
        "canApproveAdjustments": False,
        "canViewAudit": False,
    },
    "coach": {
        "canViewEquipmentAudits": True,
        "canManageEquipmentAudits": True,
        "canApproveAdjustments": False,
        "canViewAudit": False,
    },
    "member": {
        "canViewEquipmentAudits": False,
        "canManageEquipmentAudits": False,
        "canApproveAdjustments": False,
        "canViewAudit": False,
    },
}


def check_permission(user: User, permission: str) -> bool:
    """Check if user has specific permission."""
    permissions = ROLE_PERMISSIONS.get(user.role, {})
    return permissions.get(permission, False)
