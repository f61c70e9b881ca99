"""
Clients router. Requests reach here only after AuthMiddleware has verified
the access token.
"""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from healthinfo.core.crypto import FieldCipher
from healthinfo.core.deps import get_cipher, get_current_user_id
from healthinfo.db.session import get_db
from healthinfo.schemas.client import ClientCreate, ClientListResponse, ClientResponse, ClientUpdate, ClientWithEnrollments
from healthinfo.schemas.enrollment import EnrollmentResponse
from healthinfo.services.clients import ClientService

router = APIRouter(prefix="/clients", tags=["clients"], dependencies=[Depends(get_current_user_id)])


def get_client_service(db: Session = Depends(get_db), cipher: FieldCipher = Depends(get_cipher)) -> ClientService:
    return ClientService(db, cipher)


@router.get("", response_model=ClientListResponse)
def list_clients(
    query: Optional[str] = Query(None, description="Not supported on encrypted data; a non-empty value returns no results"),
    service: ClientService = Depends(get_client_service),
):
    return service.list_clients(query)


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
def create_client(data: ClientCreate, service: ClientService = Depends(get_client_service)):
    return service.create_client(data)


@router.get("/{client_id}", response_model=ClientWithEnrollments)
def get_client(client_id: UUID, service: ClientService = Depends(get_client_service)):
    return service.get_client(client_id)


@router.put("/{client_id}", response_model=ClientResponse)
def update_client(client_id: UUID, data: ClientUpdate, service: ClientService = Depends(get_client_service)):
    """Partially update a client. Omitted fields keep their current values."""
    return service.update_client(client_id, data)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_client(client_id: UUID, service: ClientService = Depends(get_client_service)):
    """Delete a client and all of its enrollments."""
    service.delete_client(client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{client_id}/enrollments", response_model=List[EnrollmentResponse])
def list_client_enrollments(client_id: UUID, service: ClientService = Depends(get_client_service)):
    return service.list_client_enrollments(client_id)
