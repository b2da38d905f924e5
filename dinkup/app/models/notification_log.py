"""
Notification Log database model.

Append-only record of every outbound email/SMS attempt.
"""

import uuid
from sqlalchemy import Column, String, Text, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from dinkup.app.db.session import Base
from dinkup.app.models.enums import NotificationEvent, NotificationChannel


class NotificationLogEntry(Base):
    """
    Notification log entry.
    Written once per delivery attempt; never updated or deleted.
    """
    __tablename__ = "notifications_log"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    event_type = Column(Enum(NotificationEvent), nullable=False, index=True)
    session_id = Column(String(36), nullable=True, index=True)
    payment_id = Column(String(36), nullable=True, index=True)
    player_id = Column(String(36), nullable=True, index=True)

    recipient = Column(String(255), nullable=False)
    channel = Column(Enum(NotificationChannel), default=NotificationChannel.EMAIL, nullable=False)
    success = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<NotificationLogEntry(event='{self.event_type.value}', to='{self.recipient}', success={self.success})>"
