"""
Payment ledger schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional, List

from dinkup.app.models.enums import PaymentMethod, PaymentStatus


class PaymentResponse(BaseModel):
    """Schema for displaying a payment obligation."""
    id: str
    session_participant_id: str
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    amount: Decimal
    payment_method: PaymentMethod
    payment_link: Optional[str]
    status: PaymentStatus
    notes: Optional[str]
    request_sent_at: Optional[datetime]
    payment_date: Optional[datetime]
    refunded_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True

    @classmethod
    def from_payment(cls, payment) -> "PaymentResponse":
        response = cls.model_validate(payment)
        participant = payment.participant
        if participant and participant.player:
            response.player_id = participant.player.id
            response.player_name = participant.player.name
        return response


class StatusUpdateRequest(BaseModel):
    status: PaymentStatus
    notes: Optional[str] = Field(None, max_length=1000)


class TransitionResponse(BaseModel):
    payment: PaymentResponse
    changed: bool


class LockRosterResponse(BaseModel):
    session_id: str
    count: int
    payments: List[PaymentResponse]


class CostSummaryResponse(BaseModel):
    total_players: int
    guest_count: int
    courts_needed: int
    admin_cost: Decimal
    guest_pool: Decimal
    guest_cost: Decimal

    class Config:
        from_attributes = True


class PaymentSummaryResponse(BaseModel):
    """Totals for one session's obligations."""
    total_owed: Decimal
    total_paid: Decimal
    total_pending: Decimal
    total_forgiven: Decimal
    payments_count: int
    paid_count: int
    pending_count: int
    cost: Optional[CostSummaryResponse] = None

    class Config:
        from_attributes = True


class PendingPaymentResponse(BaseModel):
    payment_id: str
    amount: Decimal
    session_id: str
    session_date: date
    session_time: time
    pool_name: Optional[str]
    pay_link: Optional[str]
