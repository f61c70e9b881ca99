"""
Generic write pipeline shared by the client, program and enrollment services.

Each write runs validate -> transform -> persist: the request body has already
been validated by its pydantic schema, the transform turns the plain values
into column values (field encryption for clients and enrollment notes, the
identity for programs), and persistence maps database conflicts to
ConflictError. Mapping the stored record back to a response is left to the
caller, which knows which mapper applies.
"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from healthinfo.core.crypto import EncryptStatus, FieldCipher
from healthinfo.core.errors import ConflictError, EncryptionFailure, NotFoundError, StorageError, ValidationError
from healthinfo.db.base import Base

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
Transform = Callable[[Dict[str, Any]], Dict[str, Any]]

NO_FIELDS_TO_UPDATE = "No valid fields provided for update."


def identity(values: Dict[str, Any]) -> Dict[str, Any]:
    return values


def encrypting(cipher: FieldCipher, fields: Iterable[str], label: str) -> Transform:
    """
    Build a transform that encrypts the named fields present in the values.

    A missing, None or "" value is stored as NULL. If the cipher fails on any
    field the whole write is aborted with EncryptionFailure.
    """
    fields = tuple(fields)

    def transform(values: Dict[str, Any]) -> Dict[str, Any]:
        encrypted = dict(values)
        for name in fields:
            if name not in encrypted:
                continue
            result = cipher.encrypt_field(encrypted[name])
            if result.status is EncryptStatus.EMPTY:
                encrypted[name] = None
            elif result.failed:
                logger.error(f"Encryption of {label} field {name} failed")
                raise EncryptionFailure(f"Failed to securely process {label} data.")
            else:
                encrypted[name] = result.value
        return encrypted

    return transform


def get_record(db: Session, model: Type[ModelT], record_id: UUID, not_found_message: str) -> ModelT:
    record = db.get(model, record_id)
    if record is None:
        raise NotFoundError(not_found_message)
    return record


def _commit(db: Session, action: str, conflict_message: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error during {action}: {e.orig.__class__.__name__}")
        raise ConflictError(conflict_message) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during {action}: {e.__class__.__name__}")
        raise StorageError(f"Failed to {action}.") from e


def create_record(
    db: Session,
    model: Type[ModelT],
    data: BaseModel,
    conflict_message: str,
    transform: Transform = identity,
) -> ModelT:
    """Insert a new row built from the schema values after the transform."""
    values = transform(data.model_dump())
    record = model(**values)
    db.add(record)
    _commit(db, f"create {model.__tablename__} record", conflict_message)
    db.refresh(record)
    logger.info(f"Created {model.__tablename__} record {record.id}")
    return record


def update_record(
    db: Session,
    model: Type[ModelT],
    record_id: UUID,
    data: BaseModel,
    conflict_message: str,
    not_found_message: str,
    transform: Transform = identity,
) -> ModelT:
    """
    Apply a partial update. Only fields explicitly present in the request
    body are changed; an empty body is a ValidationError.
    """
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError(NO_FIELDS_TO_UPDATE)

    record = get_record(db, model, record_id, not_found_message)
    for name, value in transform(changes).items():
        setattr(record, name, value)
    _commit(db, f"update {model.__tablename__} record", conflict_message)
    db.refresh(record)
    logger.info(f"Updated {model.__tablename__} record {record.id}")
    return record


def delete_record(
    db: Session,
    model: Type[ModelT],
    record_id: UUID,
    not_found_message: str,
    conflict_message: str,
    guard: Optional[Callable[[ModelT], None]] = None,
) -> None:
    """Delete a row. guard may raise to refuse the delete."""
    record = get_record(db, model, record_id, not_found_message)
    if guard is not None:
        guard(record)
    db.delete(record)
    _commit(db, f"delete {model.__tablename__} record", conflict_message)
    logger.info(f"Deleted {model.__tablename__} record {record_id}")
