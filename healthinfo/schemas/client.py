"""
Client schemas.

Request bodies carry plaintext; the service encrypts the person fields
before they reach the database. Responses carry decrypted values, or the
"[DECRYPTION_FAILED]" placeholder for a field that could not be decrypted,
so response fields are plain strings rather than validated types.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from healthinfo.schemas.enrollment import EnrollmentResponse

DATE_OF_BIRTH_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class ClientCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    date_of_birth: str = Field(pattern=DATE_OF_BIRTH_PATTERN, description="YYYY-MM-DD")
    gender: Optional[str] = Field(default=None, max_length=50)
    contact_number: str = Field(min_length=1, max_length=30)
    email: EmailStr
    address: Optional[str] = Field(default=None, max_length=500)


class ClientUpdate(BaseModel):
    """Partial update. Only fields present in the body are changed."""
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    date_of_birth: Optional[str] = Field(default=None, pattern=DATE_OF_BIRTH_PATTERN)
    gender: Optional[str] = Field(default=None, max_length=50)
    contact_number: Optional[str] = Field(default=None, min_length=1, max_length=30)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "ClientUpdate":
        for name in ("first_name", "last_name", "date_of_birth", "contact_number", "email"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ClientResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    date_of_birth: str
    gender: Optional[str] = None
    contact_number: str
    email: str
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ClientWithEnrollments(ClientResponse):
    enrollments: List[EnrollmentResponse] = []


class ClientListResponse(BaseModel):
    items: List[ClientResponse]
    total: int
    warning: Optional[str] = None
