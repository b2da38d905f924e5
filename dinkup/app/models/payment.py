"""
Payment database model.

One guest's fixed obligation for one session.
"""

import uuid
from sqlalchemy import Column, String, Text, Numeric, DateTime, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from dinkup.app.db.session import Base
from dinkup.app.models.enums import PaymentStatus, PaymentMethod


class Payment(Base):
    """
    Payment obligation model.

    The id doubles as the reconciliation token embedded in Venmo notes.
    The amount is a snapshot taken at roster lock and is never recomputed.
    Status changes only through the ledger service state machine.
    """
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Linkage
    session_participant_id = Column(
        String(36),
        ForeignKey("session_participants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Financials
    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.VENMO, nullable=False)
    payment_link = Column(Text, nullable=True)  # Request link (admin -> guest)

    # Status
    status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Lifecycle timestamps
    request_sent_at = Column(DateTime(timezone=True), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    participant = relationship("SessionParticipant", lazy="joined")

    __mapper_args__ = {"eager_defaults": True}

    def __repr__(self):
        return f"<Payment(id={self.id}, status='{self.status.value}', amount={self.amount})>"
