"""
Map stored records to response schemas, decrypting sensitive fields.

Every encrypted field is decrypted on its own. A field that fails is logged
with the record id and field name and replaced by DECRYPTION_FAILED, so one
corrupt value never hides the rest of the record.
"""
import logging
from typing import Optional

from healthinfo.core.crypto import DecryptionError, FieldCipher
from healthinfo.models.client import Client
from healthinfo.models.enrollment import Enrollment
from healthinfo.models.program import Program
from healthinfo.schemas.client import ClientResponse, ClientWithEnrollments
from healthinfo.schemas.enrollment import ClientSummary, EnrollmentResponse, ProgramSummary
from healthinfo.schemas.program import ProgramResponse

logger = logging.getLogger(__name__)

DECRYPTION_FAILED = "[DECRYPTION_FAILED]"


def decrypt_or_placeholder(cipher: FieldCipher, value: Optional[str], record_id, field: str) -> Optional[str]:
    """Decrypt one stored field. NULL stays None."""
    if value is None:
        return None
    try:
        return cipher.decrypt(value)
    except DecryptionError:
        logger.error(f"Failed to decrypt field {field} of record {record_id}")
        return DECRYPTION_FAILED


def _required(cipher: FieldCipher, value: Optional[str], record_id, field: str) -> str:
    decrypted = decrypt_or_placeholder(cipher, value, record_id, field)
    return DECRYPTION_FAILED if decrypted is None else decrypted


def map_client(client: Client, cipher: FieldCipher) -> ClientResponse:
    return ClientResponse(
        id=client.id,
        first_name=_required(cipher, client.first_name, client.id, "first_name"),
        last_name=_required(cipher, client.last_name, client.id, "last_name"),
        date_of_birth=_required(cipher, client.date_of_birth, client.id, "date_of_birth"),
        gender=decrypt_or_placeholder(cipher, client.gender, client.id, "gender"),
        contact_number=_required(cipher, client.contact_number, client.id, "contact_number"),
        email=_required(cipher, client.email, client.id, "email"),
        address=decrypt_or_placeholder(cipher, client.address, client.id, "address"),
        created_at=client.created_at,
        updated_at=client.updated_at,
    )


def map_program(program: Program) -> ProgramResponse:
    return ProgramResponse.model_validate(program)


def map_enrollment(enrollment: Enrollment, cipher: FieldCipher, include_related: bool = True) -> EnrollmentResponse:
    client_summary = None
    program_summary = None
    if include_related:
        if enrollment.client is not None:
            client = enrollment.client
            client_summary = ClientSummary(
                id=client.id,
                first_name=_required(cipher, client.first_name, client.id, "first_name"),
                last_name=_required(cipher, client.last_name, client.id, "last_name"),
            )
        if enrollment.program is not None:
            program_summary = ProgramSummary(id=enrollment.program.id, name=enrollment.program.name)

    return EnrollmentResponse(
        id=enrollment.id,
        client_id=enrollment.client_id,
        program_id=enrollment.program_id,
        enrollment_date=enrollment.enrollment_date,
        status=enrollment.status,
        notes=decrypt_or_placeholder(cipher, enrollment.notes, enrollment.id, "notes"),
        created_at=enrollment.created_at,
        updated_at=enrollment.updated_at,
        client=client_summary,
        program=program_summary,
    )


def map_client_with_enrollments(client: Client, cipher: FieldCipher) -> ClientWithEnrollments:
    enrollments = sorted(
        client.enrollments,
        key=lambda e: (e.enrollment_date, e.created_at),
        reverse=True,
    )
    return ClientWithEnrollments(
        **map_client(client, cipher).model_dump(),
        enrollments=[map_enrollment(e, cipher) for e in enrollments],
    )
