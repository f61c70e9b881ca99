"""
Enrollments router.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from healthinfo.core.crypto import FieldCipher
from healthinfo.core.deps import get_cipher, get_current_user_id
from healthinfo.db.session import get_db
from healthinfo.schemas.enrollment import EnrollmentCreate, EnrollmentListResponse, EnrollmentResponse, EnrollmentUpdate
from healthinfo.services.enrollments import EnrollmentService

router = APIRouter(prefix="/enrollments", tags=["enrollments"], dependencies=[Depends(get_current_user_id)])


def get_enrollment_service(db: Session = Depends(get_db), cipher: FieldCipher = Depends(get_cipher)) -> EnrollmentService:
    return EnrollmentService(db, cipher)


@router.get("", response_model=EnrollmentListResponse)
def list_enrollments(service: EnrollmentService = Depends(get_enrollment_service)):
    return service.list_enrollments()


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
def create_enrollment(data: EnrollmentCreate, service: EnrollmentService = Depends(get_enrollment_service)):
    """Enroll a client in a program. 400 for unknown ids, 409 if already enrolled."""
    return service.create_enrollment(data)


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
def get_enrollment(enrollment_id: UUID, service: EnrollmentService = Depends(get_enrollment_service)):
    return service.get_enrollment(enrollment_id)


@router.put("/{enrollment_id}", response_model=EnrollmentResponse)
def update_enrollment(
    enrollment_id: UUID,
    data: EnrollmentUpdate,
    service: EnrollmentService = Depends(get_enrollment_service),
):
    return service.update_enrollment(enrollment_id, data)


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_enrollment(enrollment_id: UUID, service: EnrollmentService = Depends(get_enrollment_service)):
    service.delete_enrollment(enrollment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
