"""
Payment Transaction database model.

One row per ingested Venmo notification email.
"""

import uuid
from sqlalchemy import Column, String, Text, Numeric, Boolean, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dinkup.app.db.session import Base
from dinkup.app.models.enums import TransactionType, MatchMethod


class PaymentTransaction(Base):
    """
    Parsed provider transaction.

    dedup_key is unique: a redelivered email maps to the same key and
    never produces a second row.
    """
    __tablename__ = "payment_transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    dedup_key = Column(String(64), nullable=False, unique=True, index=True)

    # Parsed content
    transaction_type = Column(Enum(TransactionType), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    sender_name = Column(String(255), nullable=False)
    recipient_name = Column(String(255), nullable=False)
    note = Column(Text, nullable=True)
    token = Column(String(255), nullable=True)  # e.g. "#dinkup-<payment id>"

    # Source metadata
    email_subject = Column(Text, nullable=False)
    email_from = Column(String(255), nullable=False)
    email_date = Column(String(100), nullable=True)
    message_id = Column(String(512), nullable=True)
    raw_payload = Column(JSON, nullable=True)

    # Reconciliation
    payment_id = Column(String(36), ForeignKey("payments.id", ondelete="SET NULL"), nullable=True, index=True)
    match_method = Column(Enum(MatchMethod), default=MatchMethod.NONE, nullable=False)
    matched_at = Column(DateTime(timezone=True), nullable=True)
    needs_review = Column(Boolean, default=False, nullable=False, index=True)
    processed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    payment = relationship("Payment")

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<PaymentTransaction(id={self.id}, type='{self.transaction_type.value}', amount={self.amount}, match='{self.match_method.value}')>"
