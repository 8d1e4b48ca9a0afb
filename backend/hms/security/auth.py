"""
Authentication and authorization
Tokens are issued by the identity provider; this module only verifies them and
exposes the caller as an opaque (id, role) principal.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from hms.config import settings
from hms.models.enums import UserRole

logger = logging.getLogger(__name__)

security = HTTPBearer()


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: UserRole


def create_access_token(user_id: str, role: UserRole,
                        expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT for ``user_id``"""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "sub": str(user_id),
        "role": role.value if isinstance(role, UserRole) else str(role),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> CurrentUser:
    """Resolve the bearer token into the calling principal"""
    payload = decode_token(credentials.credentials)

    user_id = payload.get("sub")
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        role = None
    if not user_id or role is None:
        logger.warning("Rejected token with sub=%r role=%r", user_id, payload.get("role"))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
    return CurrentUser(id=user_id, role=role)


def require_roles(*allowed_roles: UserRole):
    """Dependency factory: the caller's role must be one of ``allowed_roles``"""
    async def role_checker(current_user: CurrentUser = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user
    return role_checker


require_staff = require_roles(UserRole.CLERK, UserRole.MANAGER)
require_manager = require_roles(UserRole.MANAGER)
require_travel = require_roles(UserRole.TRAVEL)
