"""
Transaction record schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Optional

from dinkup.app.models.enums import MatchMethod, TransactionType


class TransactionResponse(BaseModel):
    """Schema for displaying an ingested provider transaction."""
    id: str
    transaction_type: TransactionType
    amount: Decimal
    sender_name: str
    recipient_name: str
    note: Optional[str]
    token: Optional[str]
    email_subject: str
    email_from: str
    email_date: Optional[str]
    payment_id: Optional[str]
    match_method: MatchMethod
    matched_at: Optional[datetime]
    needs_review: bool
    processed: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
