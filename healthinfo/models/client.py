"""
Client (patient) model.

Person fields hold encrypted text produced by FieldCipher, never plaintext.
gender and address are NULL when not provided.
"""
import uuid
from sqlalchemy import Column, DateTime, Text, Uuid, func
from sqlalchemy.orm import relationship

from healthinfo.db.base import Base

ENCRYPTED_CLIENT_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "gender",
    "contact_number",
    "email",
    "address",
)


class Client(Base):
    __tablename__ = "clients"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    date_of_birth = Column(Text, nullable=False)
    gender = Column(Text, nullable=True)
    contact_number = Column(Text, nullable=False)
    email = Column(Text, nullable=False, unique=True)
    address = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    enrollments = relationship("Enrollment", back_populates="client", cascade="all, delete-orphan")
