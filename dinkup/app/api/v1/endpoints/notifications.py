"""
Payment notification API Endpoints.
"""

from fastapi import APIRouter, Depends, Path, Body
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from dinkup.app.db.session import get_db
from dinkup.app.core.dependencies import get_message_sender, require_admin_key
from dinkup.app.schemas.notification import (
    NotificationLogResponse,
    NotifyResultResponse,
    PaymentReminderRequest,
)
from dinkup.app.services.notification_service import MessageSender, NotificationService

router = APIRouter(
    prefix="/admin/sessions",
    tags=["Admin - Notifications"],
    dependencies=[Depends(require_admin_key)],
)


@router.post("/{session_id}/notify/roster-locked", response_model=NotifyResultResponse)
async def send_roster_locked_notices(
    session_id: str = Path(...),
    sender: MessageSender = Depends(get_message_sender),
    db: AsyncSession = Depends(get_db),
):
    """
    Email every pending guest their amount due and pay link.

    Partial delivery still answers 200 with the failure count.
    """
    result = await NotificationService(sender).notify_roster_locked(db, session_id)
    await db.commit()
    return result


@router.post("/{session_id}/notify/payment-reminder", response_model=NotifyResultResponse)
async def send_payment_reminders(
    session_id: str = Path(...),
    body: Optional[PaymentReminderRequest] = Body(None),
    sender: MessageSender = Depends(get_message_sender),
    db: AsyncSession = Depends(get_db),
):
    custom_message = body.custom_message if body else None
    result = await NotificationService(sender).notify_payment_reminder(db, session_id, custom_message)
    await db.commit()
    return result


@router.get("/{session_id}/notifications", response_model=List[NotificationLogResponse])
async def list_session_notifications(
    session_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.get_session_notification_log(db, session_id)
