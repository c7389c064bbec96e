"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes (capabilities, admin access
  level, department scoping)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from pms.core.config import get_settings
from pms.core.exceptions import AuthenticationError, NotFoundError, PermissionDeniedError
from pms.core.roles import Capability, Role, has_capability
from pms.db.mongodb import get_collection
from pms.services.mongo_service import parse_object_id

logger = logging.getLogger(__name__)

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.bcrypt_rounds)

# Bearer token extractor; missing headers are reported by get_current_user
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"iat": int(now.timestamp()), "exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_user_token(user: dict) -> str:
    return create_access_token({"sub": str(user["_id"]), "role": user["role"]})


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _timestamp(value: datetime) -> int:
    # pymongo hands back naive datetimes that are UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def password_changed_after(user: dict, issued_at: Optional[int]) -> bool:
    changed_at = user.get("passwordChangedAt")
    if changed_at is None or issued_at is None:
        return False
    return _timestamp(changed_at) > int(issued_at)


def user_role(user: dict) -> Optional[Role]:
    try:
        return Role(user.get("role"))
    except ValueError:
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """
    FastAPI dependency - Get current authenticated user document.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authorized to access this route. No token provided.")

    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise AuthenticationError("Not authorized. Invalid token.")

    try:
        user_id = parse_object_id(payload["sub"], "User")
    except NotFoundError:
        raise AuthenticationError("Not authorized. Invalid token.")

    user = get_collection("users").find_one({"_id": user_id}, {"password": 0})
    if not user:
        raise AuthenticationError("Not authorized. User not found.")

    if not user.get("isActive", True):
        raise AuthenticationError("Account is deactivated. Please contact administrator.")

    if password_changed_after(user, payload.get("iat")):
        raise AuthenticationError("User recently changed password. Please log in again.")

    return user


def require_capability(capability: Capability):
    """Dependency factory - the caller's role must grant `capability`."""

    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        role = user_role(user)
        if role is None or not has_capability(role, capability):
            logger.debug("Role %s denied capability %s", user.get("role"), capability.value)
            raise PermissionDeniedError(
                f"User role '{user.get('role')}' is not authorized to access this route"
            )
        return user

    return dependency


def require_admin_access_level(levels: Tuple[str, ...], message: str):
    """
    Dependency factory - caller must be an admin whose own administrator
    profile has one of the given access levels.
    """

    async def dependency(user: dict = Depends(require_capability(Capability.manage_administrators))) -> dict:
        profile = get_collection("administrators").find_one({"userId": user["_id"]}, {"accessLevel": 1})
        if not profile or profile.get("accessLevel") not in levels:
            raise PermissionDeniedError(message)
        return user

    return dependency


require_admin_access = require_admin_access_level(
    ("superAdmin", "admin"), "Access denied. Admin access required."
)
require_super_admin = require_admin_access_level(
    ("superAdmin",), "Access denied. Super Admin access required."
)


def check_department_access(user: dict, department: str) -> None:
    """Roles without access_all_departments may only act on their own department."""
    role = user_role(user)
    if role is not None and has_capability(role, Capability.access_all_departments):
        return
    own = (user.get("department") or "").upper()
    if own and own == (department or "").upper():
        return
    if role == Role.department_hod:
        raise PermissionDeniedError("Access denied. You can only access your department data.")
    raise PermissionDeniedError("Access denied. You can only access your assigned department data.")
