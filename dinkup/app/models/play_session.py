"""
Play Session database model.

One proposed game at a pool, with the cost settings used at roster lock.
"""

import uuid
from sqlalchemy import Column, String, Integer, Numeric, Boolean, Date, Time, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dinkup.app.db.session import Base


class PlaySession(Base):
    """
    Play Session model.

    guest_pool_per_court is what guests split between them per reserved court.
    admin_cost_per_court is tracked for display only and never invoiced.
    """
    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    pool_id = Column(String(36), ForeignKey("pools.id"), nullable=False, index=True)

    proposed_date = Column(Date, nullable=False)
    proposed_time = Column(Time, nullable=False)

    # Costs
    courts_needed = Column(Integer, nullable=False, default=1)
    admin_cost_per_court = Column(Numeric(10, 2), nullable=False, default=0)
    guest_pool_per_court = Column(Numeric(10, 2), nullable=False, default=0)

    roster_locked = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    pool = relationship("Pool", lazy="joined")
    participants = relationship(
        "SessionParticipant",
        back_populates="session",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<PlaySession(id={self.id}, date={self.proposed_date}, locked={self.roster_locked})>"
