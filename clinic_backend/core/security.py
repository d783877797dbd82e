"""JWT credentials, password hashing and the permission gate."""

import bcrypt
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, List

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from clinic_backend.core.config import settings
from clinic_backend.core.exceptions import AuthenticationError, AuthorizationError
from clinic_backend.db.session import get_db

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as carried by the bearer token."""

    user_id: int
    email: Optional[str] = None
    roles: List[str] = field(default_factory=list)

    def has_role(self, role_name: str) -> bool:
        return role_name in self.roles


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def create_access_token(
    user_id: int,
    email: str,
    roles: List[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a JWT access token carrying identity and role claims."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "roles": list(roles),
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")


def principal_from_token(token: str) -> Principal:
    """Extract identity and role claims from an already-issued credential."""
    payload = decode_token(token)
    subject = payload.get("sub")
    if subject is None or payload.get("type") != "access":
        raise AuthenticationError("Invalid token payload")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token payload")
    roles = payload.get("roles") or []
    return Principal(user_id=user_id, email=payload.get("email"), roles=list(roles))


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Principal:
    """Resolve the caller from the Bearer token or fail as unauthenticated."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")
    return principal_from_token(credentials.credentials)


def authorize(db: Session, principal: Optional[Principal], permission: str) -> Principal:
    """Allow the call if ``principal`` holds ``permission``.

    Raises AuthenticationError when there is no principal and
    AuthorizationError when the permission is absent. The error never
    names the missing permission.
    """
    from clinic_backend.services.permission_service import permission_service

    if principal is None:
        raise AuthenticationError("Not authenticated")
    if not permission_service.has_permission(db, principal.user_id, permission):
        raise AuthorizationError()
    return principal


class RequirePermission:
    """Dependency that checks the caller holds a permission, resolved per request."""

    def __init__(self, permission: str):
        self.permission = permission

    async def __call__(
        self,
        principal: Principal = Depends(get_current_principal),
        db: Session = Depends(get_db),
    ) -> Principal:
        return authorize(db, principal, self.permission)
