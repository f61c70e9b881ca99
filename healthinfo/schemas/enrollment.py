"""
Enrollment schemas.
"""
from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

EnrollmentStatus = Literal["active", "completed", "withdrawn"]


class EnrollmentCreate(BaseModel):
    client_id: UUID
    program_id: UUID
    enrollment_date: date
    status: EnrollmentStatus = "active"
    notes: Optional[str] = Field(default=None, max_length=5000)


class EnrollmentUpdate(BaseModel):
    """Partial update. notes may be cleared with an explicit null."""
    enrollment_date: Optional[date] = None
    status: Optional[EnrollmentStatus] = None
    notes: Optional[str] = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "EnrollmentUpdate":
        for name in ("enrollment_date", "status"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ClientSummary(BaseModel):
    id: UUID
    first_name: str
    last_name: str


class ProgramSummary(BaseModel):
    id: UUID
    name: str


class EnrollmentResponse(BaseModel):
    """Enrollment with decrypted notes and summaries of the linked records."""
    id: UUID
    client_id: UUID
    program_id: UUID
    enrollment_date: date
    status: EnrollmentStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    client: Optional[ClientSummary] = None
    program: Optional[ProgramSummary] = None


class EnrollmentListResponse(BaseModel):
    items: List[EnrollmentResponse]
    total: int
