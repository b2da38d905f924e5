"""
Audit Log Database Model.

Tracks every ledger and reconciliation write for later review.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from dinkup.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for ledger events.

    Events logged:
    - OBLIGATIONS_CREATED
    - PAYMENT_STATUS_CHANGED / PAYMENT_TRANSITION_SKIPPED / PAYMENT_REQUEST_SENT
    - TRANSACTION_INGESTED / TRANSACTION_DUPLICATE / EMAIL_UNPARSEABLE
    - TRANSACTION_MATCHED / TRANSACTION_UNMATCHED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action ("system" for webhook processing)
    actor = Column(String(100), nullable=False, default="system")

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(String(64), index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
