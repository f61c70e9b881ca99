"""
Health programs router.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from healthinfo.core.deps import get_current_user_id
from healthinfo.db.session import get_db
from healthinfo.schemas.program import ProgramCreate, ProgramListResponse, ProgramResponse, ProgramUpdate
from healthinfo.services.programs import ProgramService

router = APIRouter(prefix="/programs", tags=["programs"], dependencies=[Depends(get_current_user_id)])


def get_program_service(db: Session = Depends(get_db)) -> ProgramService:
    return ProgramService(db)


@router.get("", response_model=ProgramListResponse)
def list_programs(service: ProgramService = Depends(get_program_service)):
    return service.list_programs()


@router.post("", response_model=ProgramResponse, status_code=status.HTTP_201_CREATED)
def create_program(data: ProgramCreate, service: ProgramService = Depends(get_program_service)):
    return service.create_program(data)


@router.get("/{program_id}", response_model=ProgramResponse)
def get_program(program_id: UUID, service: ProgramService = Depends(get_program_service)):
    return service.get_program(program_id)


@router.put("/{program_id}", response_model=ProgramResponse)
def update_program(program_id: UUID, data: ProgramUpdate, service: ProgramService = Depends(get_program_service)):
    return service.update_program(program_id, data)


@router.delete("/{program_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_program(program_id: UUID, service: ProgramService = Depends(get_program_service)):
    """Delete a program. Returns 409 while enrollments reference it."""
    service.delete_program(program_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
