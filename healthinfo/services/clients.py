"""
Client registry operations.

Person fields are encrypted before they are written and decrypted when
mapped back, so the database never holds client data in plaintext.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from healthinfo.core.crypto import FieldCipher
from healthinfo.core.errors import NotFoundError
from healthinfo.models.client import Client, ENCRYPTED_CLIENT_FIELDS
from healthinfo.models.enrollment import Enrollment
from healthinfo.schemas.client import ClientCreate, ClientListResponse, ClientUpdate, ClientResponse, ClientWithEnrollments
from healthinfo.schemas.enrollment import EnrollmentResponse
from healthinfo.services.mappers import map_client, map_client_with_enrollments, map_enrollment
from healthinfo.services.pipeline import create_record, delete_record, encrypting, get_record, update_record

logger = logging.getLogger(__name__)

CLIENT_NOT_FOUND = "Client not found."
CLIENT_EMAIL_TAKEN = "A client with this email already exists."
CLIENT_DELETE_FAILED = "Client could not be deleted."
SEARCH_UNSUPPORTED = "Search is not supported on encrypted client data; no results returned."


class ClientService:
    """Create, read, update and delete clients with field-level encryption."""

    def __init__(self, db: Session, cipher: FieldCipher):
        self.db = db
        self.cipher = cipher
        self._encrypt = encrypting(cipher, ENCRYPTED_CLIENT_FIELDS, "client")

    def list_clients(self, query: Optional[str] = None) -> ClientListResponse:
        """
        List all clients, newest first.

        Client fields are encrypted with random IVs, so they cannot be
        matched in the database. A non-empty query returns no results and a
        warning instead of silently ignoring the filter.
        """
        if query and query.strip():
            logger.warning("Client search requested but encrypted fields are not searchable")
            return ClientListResponse(items=[], total=0, warning=SEARCH_UNSUPPORTED)

        clients = self.db.execute(select(Client).order_by(Client.created_at.desc())).scalars().all()
        items = [map_client(c, self.cipher) for c in clients]
        return ClientListResponse(items=items, total=len(items))

    def create_client(self, data: ClientCreate) -> ClientResponse:
        client = create_record(self.db, Client, data, CLIENT_EMAIL_TAKEN, transform=self._encrypt)
        return map_client(client, self.cipher)

    def get_client(self, client_id: UUID) -> ClientWithEnrollments:
        client = self.db.execute(
            select(Client)
            .where(Client.id == client_id)
            .options(selectinload(Client.enrollments).selectinload(Enrollment.program))
        ).scalar_one_or_none()
        if client is None:
            raise NotFoundError(CLIENT_NOT_FOUND)
        return map_client_with_enrollments(client, self.cipher)

    def update_client(self, client_id: UUID, data: ClientUpdate) -> ClientResponse:
        client = update_record(
            self.db, Client, client_id, data, CLIENT_EMAIL_TAKEN, CLIENT_NOT_FOUND, transform=self._encrypt
        )
        return map_client(client, self.cipher)

    def delete_client(self, client_id: UUID) -> None:
        """Delete a client together with all of its enrollments."""
        delete_record(self.db, Client, client_id, CLIENT_NOT_FOUND, CLIENT_DELETE_FAILED)

    def list_client_enrollments(self, client_id: UUID) -> List[EnrollmentResponse]:
        get_record(self.db, Client, client_id, CLIENT_NOT_FOUND)
        enrollments = self.db.execute(
            select(Enrollment)
            .where(Enrollment.client_id == client_id)
            .options(selectinload(Enrollment.client), selectinload(Enrollment.program))
            .order_by(Enrollment.enrollment_date.desc(), Enrollment.created_at.desc())
        ).scalars().all()
        return [map_enrollment(e, self.cipher) for e in enrollments]
