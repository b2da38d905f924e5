"""
Ingestion webhook schemas.
"""

from pydantic import BaseModel, Field
from typing import Optional

from dinkup.app.domain.reconciliation.email_parser import RawEmail


class InboundEmailPayload(BaseModel):
    """Forwarded email as posted by the mail relay."""
    from_address: str = Field(..., alias="from", min_length=1)
    to: str
    subject: str
    text: Optional[str] = None
    html: Optional[str] = None
    date: Optional[str] = None
    message_id: Optional[str] = Field(None, alias="messageId")

    class Config:
        populate_by_name = True

    def to_email(self) -> RawEmail:
        return RawEmail(
            from_address=self.from_address,
            subject=self.subject,
            to_address=self.to,
            text=self.text,
            html=self.html,
            date=self.date,
            message_id=self.message_id,
        )


class IngestionResponse(BaseModel):
    success: bool = True
    transaction_id: Optional[str] = Field(None, alias="transactionId")
    matched: bool
    duplicate: bool = False
    message: Optional[str] = None

    class Config:
        populate_by_name = True
