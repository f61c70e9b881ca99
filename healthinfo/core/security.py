"""
Security utilities for password hashing and JWT token handling.

Tokens are HS256 JWTs carrying {userId, iat, exp, jti}. They are signed with
python-jose and can be verified on two paths that honour the same contract:

- verify_token_server_side: python-jose, called from request handlers.
- verify_token_for_middleware: PyJWT coroutine, called from the edge
  middleware before a request reaches a router.

Both require a valid signature, the configured algorithm, exp and iat claims,
an iat that is not in the future and a non-empty string userId. Any change to
the claim set must be made in _payload_from_claims so both paths stay equal.
"""
import logging
import time
import uuid
from typing import Any, Mapping, Optional, Union

import bcrypt
import jwt as pyjwt
from jose import jwt
from jose.exceptions import JOSEError

from healthinfo.core.config import Settings
from healthinfo.schemas.auth import TokenPair, TokenPayload

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10

USER_ID_CLAIM = "userId"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        logger.warning("Password verification failed: malformed hash or oversized password")
        return False


def _user_id_of(payload: Union[TokenPayload, Mapping[str, Any], str]) -> str:
    if isinstance(payload, TokenPayload):
        return payload.user_id
    if isinstance(payload, Mapping):
        user_id = payload.get("user_id") or payload.get(USER_ID_CLAIM)
        if not user_id:
            raise ValueError("Token payload has no user id")
        return str(user_id)
    return str(payload)


def _create_token(user_id: str, expires_in: int, settings: Settings) -> str:
    issued_at = int(time.time())
    to_encode = {
        USER_ID_CLAIM: user_id,
        "iat": issued_at,
        "exp": issued_at + expires_in,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def generate_access_token(payload: Union[TokenPayload, Mapping[str, Any], str], settings: Settings) -> str:
    """Create a short-lived JWT access token."""
    return _create_token(_user_id_of(payload), settings.access_token_expires_seconds, settings)


def generate_refresh_token(payload: Union[TokenPayload, Mapping[str, Any], str], settings: Settings) -> str:
    """Create a long-lived JWT refresh token. Callers persist it with RefreshTokenService.store."""
    return _create_token(_user_id_of(payload), settings.refresh_token_expires_seconds, settings)


def issue_token_pair(user_id: Any, settings: Settings) -> TokenPair:
    payload = TokenPayload(user_id=str(user_id))
    return TokenPair(
        access_token=generate_access_token(payload, settings),
        refresh_token=generate_refresh_token(payload, settings),
    )


def _payload_from_claims(claims: Mapping[str, Any]) -> TokenPayload:
    """Apply the checks shared by both verification paths."""
    iat = claims.get("iat")
    if not isinstance(iat, int) or iat > int(time.time()):
        raise ValueError("Invalid iat claim")

    # One expiry boundary for both paths: a token is dead from its exp second on
    exp = claims.get("exp")
    if not isinstance(exp, int) or exp <= time.time():
        raise ValueError("Token has expired")

    user_id = claims.get(USER_ID_CLAIM)
    if not isinstance(user_id, str) or not user_id:
        raise ValueError("Missing userId in payload")

    return TokenPayload(user_id=user_id)


def verify_token_server_side(token: str, settings: Settings) -> Optional[TokenPayload]:
    """Decode and validate a JWT in a request handler. Returns payload or None if invalid."""
    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_exp": True, "require_iat": True},
        )
        return _payload_from_claims(claims)
    except (JOSEError, ValueError, TypeError, AttributeError) as e:
        logger.info(f"Token verification (server-side) failed: {e}")
        return None


async def verify_token_for_middleware(token: str, settings: Settings) -> Optional[TokenPayload]:
    """Decode and validate a JWT in the edge middleware. Returns payload or None if invalid."""
    try:
        claims = pyjwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
        return _payload_from_claims(claims)
    except (pyjwt.PyJWTError, ValueError, TypeError) as e:
        logger.info(f"Token verification (middleware) failed: {e}")
        return None


def get_token_from_request(headers: Mapping[str, str]) -> Optional[str]:
    """Extract the bearer token from an Authorization header, or None."""
    auth_header = headers.get("authorization") or headers.get("Authorization")
    if not auth_header:
        return None

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1]:
        logger.warning("Malformed Authorization header")
        return None
    return parts[1]
