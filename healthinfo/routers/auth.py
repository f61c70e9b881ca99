"""
Authentication router with register, sign-in, refresh, revoke and me endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from healthinfo.core.config import Settings, get_settings
from healthinfo.core.deps import get_current_user, get_current_user_id
from healthinfo.core.errors import AuthenticationFailure
from healthinfo.core.security import verify_password
from healthinfo.db.session import get_db
from healthinfo.models.user import User
from healthinfo.schemas.auth import (
    MessageResponse,
    RegisterResponse,
    SignInResponse,
    TokenRefresh,
    TokenRevoke,
    UserLogin,
    UserRegister,
    UserResponse,
)
from healthinfo.services.tokens import RefreshTokenService
from healthinfo.services.users import create_user, find_user_by_email, find_user_by_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid email or password"


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserRegister, db: Session = Depends(get_db)) -> RegisterResponse:
    """
    Register a new user account.
    Tokens are not issued here; the user signs in afterwards.
    """
    user = create_user(db, user_data.email, user_data.password)
    return RegisterResponse(message="User registered successfully.", user=UserResponse.model_validate(user))


@router.post("/sign-in", response_model=SignInResponse)
def sign_in(
    credentials: UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SignInResponse:
    """
    Authenticate user and return tokens.
    Unknown email and wrong password produce the same response.
    """
    user = find_user_by_email(db, credentials.email)
    if user is None or not verify_password(credentials.password, user.password_hash):
        logger.info("Sign-in rejected: invalid credentials")
        raise AuthenticationFailure(INVALID_CREDENTIALS)

    tokens = RefreshTokenService(db, settings).issue(user.id)
    logger.info(f"User {user.id} signed in")
    return SignInResponse(
        message="Signed in successfully.",
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=SignInResponse)
def refresh(
    token_data: TokenRefresh,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> SignInResponse:
    """
    Exchange a refresh token for a new access/refresh pair.
    The presented refresh token is revoked and cannot be used again.
    """
    tokens = RefreshTokenService(db, settings).refresh(
        token_data.refresh_token,
        lambda user_id: find_user_by_id(db, user_id),
    )
    return SignInResponse(
        message="Tokens refreshed successfully.",
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )


@router.post("/revoke", response_model=MessageResponse)
def revoke(
    token_data: Optional[TokenRevoke] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> MessageResponse:
    """
    Revoke one of the caller's refresh tokens, or all of them when the
    request has no body (sign out everywhere).
    """
    service = RefreshTokenService(db, settings)
    if token_data is not None:
        if service.revoke(user_id, token_data.refresh_token):
            return MessageResponse(message="Refresh token revoked.")
        return MessageResponse(message="Refresh token was already revoked or does not exist.")

    count = service.revoke_all_for_user(user_id)
    return MessageResponse(message=f"Revoked {count} refresh token(s).")


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Get current authenticated user info."""
    return UserResponse.model_validate(current_user)
