"""
Refresh token records backing token revocation and rotation.

Every issued refresh token is stored verbatim. A record is only ever
mutated to flip revoked to True; a refreshed, logged-out or expired token
stays in the table as a dead record until its user is deleted.
"""
import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Text, Uuid, func, false
from sqlalchemy.orm import relationship

from healthinfo.db.base import Base


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # The signed token itself
    token = Column(Text, nullable=False, unique=True)

    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index('idx_refresh_tokens_user_revoked', 'user_id', 'revoked'),
    )
