"""
FastAPI dependencies for authentication and shared services.
"""
import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from healthinfo.core.config import Settings, get_settings
from healthinfo.core.crypto import FieldCipher, get_field_cipher
from healthinfo.core.errors import AuthenticationFailure
from healthinfo.core.security import get_token_from_request, verify_token_server_side
from healthinfo.db.session import get_db
from healthinfo.models.user import User
from healthinfo.services.users import find_user_by_id

logger = logging.getLogger(__name__)


def get_cipher() -> FieldCipher:
    return get_field_cipher()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Resolve the authenticated user from the bearer token.

    Uses the server-side verification path, independent of the edge
    middleware, and checks that the user still exists.
    """
    token = get_token_from_request(request.headers)
    if token is None:
        raise AuthenticationFailure("Authentication required.")

    payload = verify_token_server_side(token, settings)
    if payload is None:
        raise AuthenticationFailure("Invalid or expired token.")

    user = find_user_by_id(db, payload.user_id)
    if user is None:
        logger.warning(f"Token presented for missing user {payload.user_id}")
        raise AuthenticationFailure("Invalid or expired token.")
    return user


def get_current_user_id(request: Request) -> str:
    """User id placed on the request by AuthMiddleware."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise AuthenticationFailure("Authentication required.")
    return user_id
