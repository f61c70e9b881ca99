"""
Health program operations. Programs hold no sensitive data, so the write
pipeline runs with the identity transform.
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from healthinfo.core.errors import ConflictError
from healthinfo.models.enrollment import Enrollment
from healthinfo.models.program import Program
from healthinfo.schemas.program import ProgramCreate, ProgramListResponse, ProgramResponse, ProgramUpdate
from healthinfo.services.mappers import map_program
from healthinfo.services.pipeline import create_record, delete_record, get_record, update_record

logger = logging.getLogger(__name__)

PROGRAM_NOT_FOUND = "Program not found."
PROGRAM_NAME_TAKEN = "A program with this name already exists."
PROGRAM_NAME_TAKEN_ON_UPDATE = "Another program with this name already exists."
PROGRAM_IN_USE = "Cannot delete program because it has associated enrollments."


class ProgramService:

    def __init__(self, db: Session):
        self.db = db

    def list_programs(self) -> ProgramListResponse:
        programs = self.db.execute(select(Program).order_by(Program.name)).scalars().all()
        return ProgramListResponse(items=[map_program(p) for p in programs], total=len(programs))

    def create_program(self, data: ProgramCreate) -> ProgramResponse:
        if self._name_taken(data.name):
            raise ConflictError(PROGRAM_NAME_TAKEN)
        return map_program(create_record(self.db, Program, data, PROGRAM_NAME_TAKEN))

    def get_program(self, program_id: UUID) -> ProgramResponse:
        return map_program(get_record(self.db, Program, program_id, PROGRAM_NOT_FOUND))

    def update_program(self, program_id: UUID, data: ProgramUpdate) -> ProgramResponse:
        if data.name is not None and self._name_taken(data.name, exclude_id=program_id):
            raise ConflictError(PROGRAM_NAME_TAKEN_ON_UPDATE)
        program = update_record(
            self.db, Program, program_id, data, PROGRAM_NAME_TAKEN_ON_UPDATE, PROGRAM_NOT_FOUND
        )
        return map_program(program)

    def delete_program(self, program_id: UUID) -> None:
        """Delete a program. Refused while any enrollment references it."""
        delete_record(
            self.db, Program, program_id, PROGRAM_NOT_FOUND, PROGRAM_IN_USE, guard=self._ensure_unused
        )

    def _ensure_unused(self, program: Program) -> None:
        in_use = self.db.execute(select(exists().where(Enrollment.program_id == program.id))).scalar()
        if in_use:
            logger.info(f"Refusing to delete program {program.id} with enrollments")
            raise ConflictError(PROGRAM_IN_USE)

    def _name_taken(self, name: str, exclude_id: Optional[UUID] = None) -> bool:
        stmt = select(Program.id).where(Program.name == name)
        if exclude_id is not None:
            stmt = stmt.where(Program.id != exclude_id)
        return self.db.execute(stmt).first() is not None
