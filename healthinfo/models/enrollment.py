"""
Enrollment linking a client to a program.

notes may contain clinical detail and is stored encrypted like client fields.
"""
import uuid
from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, Text, Uuid, func
from sqlalchemy.orm import relationship

from healthinfo.db.base import Base

ENROLLMENT_STATUSES = ("active", "completed", "withdrawn")


class Enrollment(Base):
    __tablename__ = "enrollments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    program_id = Column(Uuid(as_uuid=True), ForeignKey("programs.id", ondelete="RESTRICT"), nullable=False)
    enrollment_date = Column(Date, nullable=False)
    status = Column(Enum(*ENROLLMENT_STATUSES, name="enrollment_status"), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    client = relationship("Client", back_populates="enrollments")
    program = relationship("Program", back_populates="enrollments")

    __table_args__ = (
        # A client is enrolled in a given program at most once
        Index('idx_enrollments_client_program', 'client_id', 'program_id', unique=True),
        Index('ix_enrollments_program_id', 'program_id'),
    )
