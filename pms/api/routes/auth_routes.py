"""
Authentication Routes

POST /auth/register        - Register new user
POST /auth/login           - Login and get JWT token (rate limited per client)
GET  /auth/me              - Get current user info
PUT  /auth/change-password - Change own password
"""

import logging

from fastapi import APIRouter, Depends, Request

from pms.core.auth import create_user_token, get_current_user, user_role
from pms.core.exceptions import RateLimitExceeded
from pms.core.rate_limit import FixedWindowRateLimiter
from pms.core.roles import capabilities_for
from pms.schemas.schemas import ChangePasswordRequest, LoginRequest, MessageResponse, RegisterRequest
from pms.services.user_service import UserService, public_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_login_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.login_limiter


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _user_payload(user: dict) -> dict:
    payload = public_user(user)
    role = user_role(user)
    payload["permissions"] = sorted(c.value for c in capabilities_for(role)) if role else []
    return payload


@router.post("/register", status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account.

    Returns the user and an access token.
    """
    user = UserService().register(request)
    return {
        "success": True,
        "message": "User registered successfully",
        "token": create_user_token(user),
        "user": _user_payload(user),
    }


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_login_limiter),
):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    decision = limiter.check(client_key(request))
    if not decision.allowed:
        logger.warning("Login rate limit hit for %s", client_key(request))
        raise RateLimitExceeded(
            "Too many login attempts. Please try again later.",
            retry_after=decision.retry_after,
        )

    user = UserService().authenticate(body.email, body.password)
    return {
        "success": True,
        "message": "Login successful",
        "token": create_user_token(user),
        "user": _user_payload(user),
    }


@router.get("/me")
async def me(user: dict = Depends(get_current_user)):
    """Get current user info."""
    return {"success": True, "user": _user_payload(user)}


@router.put("/change-password", response_model=MessageResponse)
async def change_password(body: ChangePasswordRequest, user: dict = Depends(get_current_user)):
    UserService().change_password(user["_id"], body.currentPassword, body.newPassword)
    return MessageResponse(message="Password changed successfully")
