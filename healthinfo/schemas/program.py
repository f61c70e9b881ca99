"""
Program schemas. Program data is not sensitive and is stored in plaintext.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProgramCreate(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    description: Optional[str] = None


class ProgramUpdate(BaseModel):
    """Partial update. Only fields present in the body are changed."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=256)
    description: Optional[str] = None

    @model_validator(mode="after")
    def name_not_null(self) -> "ProgramUpdate":
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("name cannot be null")
        return self


class ProgramResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProgramListResponse(BaseModel):
    items: List[ProgramResponse]
    total: int
