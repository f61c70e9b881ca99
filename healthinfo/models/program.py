import uuid
from sqlalchemy import Column, DateTime, String, Text, Uuid, func
from sqlalchemy.orm import relationship

from healthinfo.db.base import Base


class Program(Base):
    """Health program clients can be enrolled in (e.g. TB, Malaria, HIV)."""
    __tablename__ = "programs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(256), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    enrollments = relationship("Enrollment", back_populates="program", passive_deletes="all")
