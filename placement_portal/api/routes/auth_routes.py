"""
Authentication Routes

POST /auth/register - Register new user (and their profile documents)
POST /auth/login - Login and get JWT token
POST /auth/logout - Revoke the current token
GET /auth/me - Get current user info
POST /auth/password-reset - Request a password reset email
POST /auth/password-reset/confirm - Set a new password with a reset token
"""

from fastapi import APIRouter, Depends

from placement_portal.core.auth import get_current_user
from placement_portal.services.identity_service import get_identity_service
from placement_portal.schemas.schemas import (
    RegisterRequest, LoginRequest, TokenResponse, PasswordResetRequest,
    PasswordResetConfirm, MessageResponse
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account.

    Students get an empty student profile; recruiters start unverified.
    """
    get_identity_service().register_with_email(
        request.email, request.password, request.role.value, request.profile
    )
    return MessageResponse(message=f"Registered successfully as {request.role.value}. Please login.")


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    result = get_identity_service().login(request.email, request.password)
    return TokenResponse(**result)


@router.post("/logout", response_model=MessageResponse)
async def logout(user: dict = Depends(get_current_user)):
    get_identity_service().logout(user["token"])
    return MessageResponse(message="Logged out")


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info and profile document."""
    profile = get_identity_service().get_profile(user["user_id"]) or {}
    return {
        "user_id": user["user_id"],
        "email": user["email"],
        "role": user["role"],
        "profile": profile.get("profile", {}),
        "recruiter_verified": profile.get("recruiter_verified"),
    }


@router.post("/password-reset", response_model=MessageResponse)
async def request_password_reset(request: PasswordResetRequest):
    """Always answers the same way, whether or not the email is registered."""
    get_identity_service().reset_password(request.email)
    return MessageResponse(message="If the email is registered, a reset link has been sent.")


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(request: PasswordResetConfirm):
    get_identity_service().confirm_password_reset(request.token, request.new_password)
    return MessageResponse(message="Password updated. Please login.")
