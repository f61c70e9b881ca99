"""
Enrollment operations. Enrollment notes are encrypted like client fields.
"""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from healthinfo.core.crypto import FieldCipher
from healthinfo.core.errors import ConflictError, NotFoundError, ValidationError
from healthinfo.models.client import Client
from healthinfo.models.enrollment import Enrollment
from healthinfo.models.program import Program
from healthinfo.schemas.enrollment import EnrollmentCreate, EnrollmentListResponse, EnrollmentResponse, EnrollmentUpdate
from healthinfo.services.mappers import map_enrollment
from healthinfo.services.pipeline import create_record, delete_record, encrypting, update_record

logger = logging.getLogger(__name__)

ENROLLMENT_NOT_FOUND = "Enrollment not found."
ALREADY_ENROLLED = "Client is already enrolled in this program."
INVALID_REFERENCE = "Invalid Client or Program ID provided."
ENROLLMENT_DELETE_FAILED = "Enrollment could not be deleted."

ENCRYPTED_ENROLLMENT_FIELDS = ("notes",)


class EnrollmentService:

    def __init__(self, db: Session, cipher: FieldCipher):
        self.db = db
        self.cipher = cipher
        self._encrypt = encrypting(cipher, ENCRYPTED_ENROLLMENT_FIELDS, "enrollment")

    def _load(self, enrollment_id: UUID) -> Enrollment:
        enrollment = self.db.execute(
            select(Enrollment)
            .where(Enrollment.id == enrollment_id)
            .options(selectinload(Enrollment.client), selectinload(Enrollment.program))
        ).scalar_one_or_none()
        if enrollment is None:
            raise NotFoundError(ENROLLMENT_NOT_FOUND)
        return enrollment

    def list_enrollments(self) -> EnrollmentListResponse:
        """All enrollments, most recent enrollment date first."""
        enrollments = self.db.execute(
            select(Enrollment)
            .options(selectinload(Enrollment.client), selectinload(Enrollment.program))
            .order_by(Enrollment.enrollment_date.desc(), Enrollment.created_at.desc())
        ).scalars().all()
        items = [map_enrollment(e, self.cipher) for e in enrollments]
        return EnrollmentListResponse(items=items, total=len(items))

    def create_enrollment(self, data: EnrollmentCreate) -> EnrollmentResponse:
        if self.db.get(Client, data.client_id) is None or self.db.get(Program, data.program_id) is None:
            raise ValidationError(INVALID_REFERENCE)

        duplicate = self.db.execute(
            select(Enrollment.id).where(
                Enrollment.client_id == data.client_id,
                Enrollment.program_id == data.program_id,
            )
        ).first()
        if duplicate is not None:
            raise ConflictError(ALREADY_ENROLLED)

        enrollment = create_record(self.db, Enrollment, data, ALREADY_ENROLLED, transform=self._encrypt)
        return map_enrollment(self._load(enrollment.id), self.cipher)

    def get_enrollment(self, enrollment_id: UUID) -> EnrollmentResponse:
        return map_enrollment(self._load(enrollment_id), self.cipher)

    def update_enrollment(self, enrollment_id: UUID, data: EnrollmentUpdate) -> EnrollmentResponse:
        update_record(
            self.db, Enrollment, enrollment_id, data, ALREADY_ENROLLED, ENROLLMENT_NOT_FOUND, transform=self._encrypt
        )
        return map_enrollment(self._load(enrollment_id), self.cipher)

    def delete_enrollment(self, enrollment_id: UUID) -> None:
        delete_record(self.db, Enrollment, enrollment_id, ENROLLMENT_NOT_FOUND, ENROLLMENT_DELETE_FAILED)
