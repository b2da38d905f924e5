"""
Pool database model.

A group of players run by one admin (the owner).
"""

import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dinkup.app.db.session import Base


class Pool(Base):
    __tablename__ = "pools"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)

    # Admin; their Venmo account receives guest payments
    owner_player_id = Column(String(36), ForeignKey("players.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    owner = relationship("Player", lazy="joined")

    def __repr__(self):
        return f"<Pool(id={self.id}, name='{self.name}')>"
