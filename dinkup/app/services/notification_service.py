"""
Payment notification service.

Sends "payment due" and reminder messages for a session's pending
obligations. Every attempt is written to the notification log; delivery
failures are counted and reported, never raised, and never undo ledger
changes.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Protocol

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from dinkup.app.core.config import settings
from dinkup.app.core.exceptions import NotificationDeliveryError, ResourceNotFoundError
from dinkup.app.core.reliability import CircuitBreaker, CircuitOpenError, notification_circuit_breaker
from dinkup.app.domain.ledger.ledger_service import LedgerService
from dinkup.app.domain.ledger.links import build_pay_link, format_session_date, format_session_time
from dinkup.app.models.enums import NotificationChannel, NotificationEvent, PaymentStatus
from dinkup.app.models.notification_log import NotificationLogEntry
from dinkup.app.models.payment import Payment
from dinkup.app.models.play_session import PlaySession

logger = logging.getLogger("dinkup.notifications")


class MessageSender(Protocol):
    """Outbound transport. Should raise NotificationDeliveryError on failure;
    any other exception is also recorded as a failed attempt."""

    async def send(self, to: str, subject: str, body: str) -> None:
        ...


class LoggingMessageSender:
    """Default transport: writes the message to the log instead of delivering it."""

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.info("Message to %s: %s", to, subject)
        logger.debug(body)


@dataclass
class NotifyResult:
    sent: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)


def first_name(full_name: Optional[str]) -> str:
    parts = (full_name or "").split()
    return parts[0] if parts else "there"


def _money(amount) -> str:
    return f"${Decimal(amount):.2f}"


class NotificationService:

    def __init__(self, sender: MessageSender, breaker: CircuitBreaker = notification_circuit_breaker):
        self.sender = sender
        self.breaker = breaker

    async def _load_session(self, db: AsyncSession, session_id: str) -> PlaySession:
        session = await db.get(PlaySession, session_id)
        if not session:
            raise ResourceNotFoundError("Session", session_id)
        return session

    async def _pending_payments(self, db: AsyncSession, session_id: str) -> List[Payment]:
        payments = await LedgerService.get_session_payments(db, session_id)
        return [p for p in payments if p.status == PaymentStatus.PENDING]

    def _pay_url(self, session: PlaySession, payment: Payment) -> str:
        admin = session.pool.owner if session.pool else None
        if admin and admin.venmo_account:
            return build_pay_link(
                admin.venmo_account,
                payment.amount,
                session.proposed_date,
                session.proposed_time,
                session.pool.name,
                payment.id,
            )
        return f"{settings.app_url}/s/{session.id}"

    async def _deliver(
        self,
        db: AsyncSession,
        event: NotificationEvent,
        session: PlaySession,
        payment: Payment,
        subject: str,
        body: str,
        result: NotifyResult,
    ) -> bool:
        player = payment.participant.player
        error = None
        try:
            await self.breaker.call(self.sender.send, player.email, subject, body)
        except CircuitOpenError:
            error = "delivery circuit open"
        except NotificationDeliveryError as e:
            error = str(e) or e.__class__.__name__
        except Exception as e:
            # Any transport failure is one failed attempt; earlier sends stand
            logger.exception("Unexpected error sending %s to %s", event.value, player.email)
            error = f"{e.__class__.__name__}: {e}"

        db.add(NotificationLogEntry(
            event_type=event,
            session_id=session.id,
            payment_id=payment.id,
            player_id=player.id,
            recipient=player.email,
            channel=NotificationChannel.EMAIL,
            success=error is None,
            error_message=error,
        ))
        await db.flush()

        if error:
            logger.warning("Failed to send %s to %s: %s", event.value, player.email, error)
            result.failed += 1
            result.errors.append(f"{player.email}: {error}")
            return False

        result.sent += 1
        return True

    async def notify_roster_locked(self, db: AsyncSession, session_id: str) -> NotifyResult:
        """Send each pending guest their amount due and a pay link. Caller commits."""
        session = await self._load_session(db, session_id)
        pool_name = session.pool.name if session.pool else "your pool"
        if not (session.pool and session.pool.owner and session.pool.owner.venmo_account):
            logger.warning("Pool owner for session %s has no Venmo account configured", session_id)

        result = NotifyResult()
        for payment in await self._pending_payments(db, session_id):
            player = payment.participant.player
            if not player.email:
                continue

            amount = _money(payment.amount)
            subject = f"Payment Due: {amount} for {pool_name}"
            body = (
                f"Hey {first_name(player.name)}!\n\n"
                f"The roster has been locked for {pool_name}. You're committed!\n\n"
                f"Date: {format_session_date(session.proposed_date)}\n"
                f"Time: {format_session_time(session.proposed_time)}\n"
                f"Amount Due: {amount}\n\n"
                f"Please pay via Venmo before the session:\n{self._pay_url(session, payment)}\n"
            )

            if await self._deliver(db, NotificationEvent.ROSTER_LOCKED, session, payment, subject, body, result):
                await LedgerService.mark_request_sent(db, payment.id)

        logger.info("Roster-locked notices for session %s: %s sent, %s failed",
                    session_id, result.sent, result.failed)
        return result

    async def notify_payment_reminder(
        self,
        db: AsyncSession,
        session_id: str,
        custom_message: Optional[str] = None,
    ) -> NotifyResult:
        """Remind guests whose payments are still pending."""
        session = await self._load_session(db, session_id)
        pool_name = session.pool.name if session.pool else "your pool"

        result = NotifyResult()
        for payment in await self._pending_payments(db, session_id):
            player = payment.participant.player
            if not player.email:
                continue

            amount = _money(payment.amount)
            subject = f"Reminder: {amount} due for {pool_name}"
            body = (
                f"Hey {first_name(player.name)}!\n\n"
                f"Friendly reminder - you still owe {amount} for the {pool_name} "
                f"session on {format_session_date(session.proposed_date)}.\n"
            )
            if custom_message:
                body += f'\n"{custom_message}"\n'
            body += f"\nPlease pay via Venmo at your earliest convenience:\n{self._pay_url(session, payment)}\n"

            await self._deliver(db, NotificationEvent.PAYMENT_REMINDER, session, payment, subject, body, result)

        logger.info("Payment reminders for session %s: %s sent, %s failed",
                    session_id, result.sent, result.failed)
        return result

    @staticmethod
    async def get_session_notification_log(db: AsyncSession, session_id: str) -> List[NotificationLogEntry]:
        result = await db.execute(
            select(NotificationLogEntry)
            .where(NotificationLogEntry.session_id == session_id)
            .order_by(desc(NotificationLogEntry.created_at), desc(NotificationLogEntry.id))
        )
        return list(result.scalars().all())
