"""
Notification Schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from dinkup.app.models.enums import NotificationChannel, NotificationEvent


class PaymentReminderRequest(BaseModel):
    custom_message: Optional[str] = Field(None, max_length=500)


class NotifyResultResponse(BaseModel):
    sent: int
    failed: int
    errors: List[str]

    class Config:
        from_attributes = True


class NotificationLogResponse(BaseModel):
    id: str
    event_type: NotificationEvent
    session_id: Optional[str]
    payment_id: Optional[str]
    player_id: Optional[str]
    recipient: str
    channel: NotificationChannel
    success: bool
    error_message: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
