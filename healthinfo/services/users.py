"""
User account lookups and registration.
"""
import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from healthinfo.core.errors import ConflictError, StorageError
from healthinfo.core.security import hash_password
from healthinfo.models.user import User

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "User with this email already exists."


def find_user_by_id(db: Session, user_id: Any) -> Optional[User]:
    try:
        uid = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
    except ValueError:
        return None
    return db.get(User, uid)


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def create_user(db: Session, email: str, password: str) -> User:
    """Register a new user. Raises ConflictError if the email is taken."""
    if find_user_by_email(db, email) is not None:
        raise ConflictError(EMAIL_TAKEN)

    user = User(email=email, password_hash=hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(EMAIL_TAKEN) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create user: {e.__class__.__name__}")
        raise StorageError("Failed to register user.") from e

    db.refresh(user)
    logger.info(f"Registered user {user.id}")
    return user
