"""
Refresh token persistence: storing, validating, revoking and rotating.

A refresh token is accepted only if it verifies as a JWT AND a live record
for it exists (not revoked, not expired). Rotation revokes the presented
token and stores its replacement in a single transaction, so a failed write
never leaves the caller without a usable token, and two concurrent refreshes
of the same token cannot both succeed.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from healthinfo.core.config import Settings
from healthinfo.core.errors import AuthenticationFailure, DuplicateTokenError, StorageError
from healthinfo.core.security import issue_token_pair, verify_token_server_side
from healthinfo.models.refresh_token import RefreshToken
from healthinfo.models.user import User
from healthinfo.schemas.auth import TokenPair

logger = logging.getLogger(__name__)

INVALID_REFRESH_TOKEN = "Invalid or expired refresh token."


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_uuid(user_id: Any) -> Optional[UUID]:
    if isinstance(user_id, UUID):
        return user_id
    try:
        return UUID(str(user_id))
    except ValueError:
        return None


class RefreshTokenService:
    """Token lifecycle operations backed by the refresh_tokens table."""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    def _new_record(self, user_id: UUID, token: str) -> RefreshToken:
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.settings.refresh_token_expires_seconds)
        return RefreshToken(user_id=user_id, token=token, expires_at=expires_at, revoked=False)

    def store(self, user_id: Any, token: str) -> RefreshToken:
        """
        Persist a newly issued refresh token.

        Raises:
            DuplicateTokenError: the token string is already stored
            StorageError: any other persistence failure
        """
        uid = _to_uuid(user_id)
        if uid is None:
            raise StorageError("Failed to store refresh token.")

        record = self._new_record(uid, token)
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Refresh token for user {uid} rejected by the database")
            raise DuplicateTokenError("Failed to store refresh token.") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store refresh token for user {uid}: {e.__class__.__name__}")
            raise StorageError("Failed to store refresh token.") from e

        logger.info(f"Stored refresh token for user {uid}")
        return record

    def validate(self, user_id: Any, token: str) -> bool:
        """
        Check that a refresh token verifies, belongs to user_id and has a live record.

        A record found past its expiry is revoked on the spot. Never raises.
        """
        payload = verify_token_server_side(token, self.settings)
        if payload is None or payload.user_id != str(user_id):
            return False

        uid = _to_uuid(user_id)
        if uid is None:
            return False

        try:
            record = self.db.execute(
                select(RefreshToken).where(
                    RefreshToken.token == token,
                    RefreshToken.user_id == uid,
                    RefreshToken.revoked.is_(False),
                )
            ).scalar_one_or_none()

            if record is None:
                logger.info(f"No active refresh token record for user {uid}")
                return False

            if _as_utc(record.expires_at) <= datetime.now(timezone.utc):
                logger.info(f"Refresh token for user {uid} expired in store; revoking")
                record.revoked = True
                self.db.commit()
                return False

            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Refresh token validation failed for user {uid}: {e.__class__.__name__}")
            return False

    def revoke(self, user_id: Any, token: str) -> bool:
        """Revoke one live token of a user. Returns whether a record changed."""
        uid = _to_uuid(user_id)
        if uid is None:
            return False

        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(
                    RefreshToken.user_id == uid,
                    RefreshToken.token == token,
                    RefreshToken.revoked.is_(False),
                )
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to revoke refresh token for user {uid}: {e.__class__.__name__}")
            raise StorageError("Failed to revoke refresh token.") from e

        if result.rowcount == 0:
            logger.info(f"No active refresh token to revoke for user {uid}")
            return False
        logger.info(f"Revoked refresh token for user {uid}")
        return True

    def revoke_all_for_user(self, user_id: Any) -> int:
        """Revoke every live token of a user. Returns how many were revoked."""
        uid = _to_uuid(user_id)
        if uid is None:
            return 0

        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(RefreshToken.user_id == uid, RefreshToken.revoked.is_(False))
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to revoke refresh tokens for user {uid}: {e.__class__.__name__}")
            raise StorageError("Failed to revoke refresh tokens.") from e

        logger.info(f"Revoked {result.rowcount} refresh token(s) for user {uid}")
        return result.rowcount

    def revoke_token(self, token: str) -> bool:
        """
        Revoke a token by its string alone.

        Used when a presented refresh token fails verification, so the caller
        cannot be trusted to name the owner. Failures are logged, not raised.
        """
        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(RefreshToken.token == token, RefreshToken.revoked.is_(False))
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Defensive refresh token revocation failed: {e.__class__.__name__}")
            return False

        if result.rowcount:
            logger.info("Revoked a stored refresh token that failed verification")
        return result.rowcount > 0

    def issue(self, user_id: Any) -> TokenPair:
        """Issue a new access/refresh pair and store the refresh token."""
        tokens = issue_token_pair(user_id, self.settings)
        self.store(user_id, tokens.refresh_token)
        return tokens

    def refresh(self, old_token: str, find_user: Callable[[str], Optional[User]]) -> TokenPair:
        """
        Exchange a refresh token for a new pair, revoking the old one.

        Raises:
            AuthenticationFailure: the token is invalid, revoked, expired,
                belongs to a deleted user or was already rotated
            StorageError: the rotation could not be persisted; the old
                token remains valid
        """
        payload = verify_token_server_side(old_token, self.settings)
        if payload is None:
            self.revoke_token(old_token)
            raise AuthenticationFailure(INVALID_REFRESH_TOKEN)

        user_id = payload.user_id
        if not self.validate(user_id, old_token):
            logger.warning(f"Refresh token for user {user_id} is not active")
            raise AuthenticationFailure(INVALID_REFRESH_TOKEN)

        if find_user(user_id) is None:
            logger.warning(f"Refresh requested for missing user {user_id}")
            try:
                self.revoke_all_for_user(user_id)
            except StorageError:
                logger.warning(f"Could not revoke tokens of missing user {user_id}")
            raise AuthenticationFailure(INVALID_REFRESH_TOKEN)

        return self._rotate(user_id, old_token)

    def _rotate(self, user_id: str, old_token: str) -> TokenPair:
        uid = _to_uuid(user_id)
        tokens = issue_token_pair(user_id, self.settings)

        try:
            result = self.db.execute(
                update(RefreshToken)
                .where(
                    RefreshToken.user_id == uid,
                    RefreshToken.token == old_token,
                    RefreshToken.revoked.is_(False),
                )
                .values(revoked=True)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                # Another request rotated this token first
                self.db.rollback()
                logger.warning(f"Refresh token for user {uid} was already rotated")
                raise AuthenticationFailure(INVALID_REFRESH_TOKEN)

            self.db.add(self._new_record(uid, tokens.refresh_token))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Token rotation failed for user {uid}: {e.__class__.__name__}")
            raise StorageError("Failed to store refresh token.") from e

        logger.info(f"Rotated refresh token for user {uid}")
        return tokens
