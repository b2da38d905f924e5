"""
Player database model.

A person who can join pools and sessions. Only the fields the ledger reads.
"""

import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from dinkup.app.db.session import Base


class Player(Base):
    __tablename__ = "players"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(100), nullable=False)
    venmo_account = Column(String(100), nullable=True)  # "@handle" or "handle"
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Player(id={self.id}, name='{self.name}')>"
