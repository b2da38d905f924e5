"""
Session Participant database model.

One player's commitment to one session.
"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dinkup.app.db.session import Base
from dinkup.app.models.enums import ParticipantStatus


class SessionParticipant(Base):
    __tablename__ = "session_participants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    player_id = Column(String(36), ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True)

    is_admin = Column(Boolean, default=False, nullable=False)
    status = Column(Enum(ParticipantStatus), default=ParticipantStatus.COMMITTED, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    session = relationship("PlaySession", back_populates="participants")
    player = relationship("Player", lazy="joined")

    __table_args__ = (
        UniqueConstraint("session_id", "player_id", name="uq_session_participant"),
    )

    def __repr__(self):
        return f"<SessionParticipant(session={self.session_id}, player={self.player_id}, status='{self.status.value}')>"
