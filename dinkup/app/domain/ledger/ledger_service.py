"""
Payment Ledger Service (Domain Logic).

Creates per-guest obligations at roster lock and owns every payment
status change. Transitions are compare-and-set on the current status so
a racing writer can never silently overwrite another's result.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dinkup.app.core.exceptions import (
    InvalidTransitionError,
    ResourceNotFoundError,
    RosterAlreadyLockedError,
)
from dinkup.app.domain.ledger.cost_model import SessionCostSummary, summarize_session_cost, to_money
from dinkup.app.domain.ledger.links import build_pay_link, build_request_link
from dinkup.app.models.enums import ParticipantStatus, PaymentStatus
from dinkup.app.models.payment import Payment
from dinkup.app.models.play_session import PlaySession
from dinkup.app.models.session_participant import SessionParticipant
from dinkup.app.services.audit import SYSTEM_ACTOR, AuditAction, log_event

logger = logging.getLogger("dinkup.ledger")

OWING_STATUSES = (ParticipantStatus.COMMITTED, ParticipantStatus.PAID)

ALLOWED_TRANSITIONS = {
    (PaymentStatus.PENDING, PaymentStatus.PAID),
    (PaymentStatus.PENDING, PaymentStatus.FORGIVEN),
    (PaymentStatus.PAID, PaymentStatus.REFUNDED),
}

# Timestamp stamped when entering a status
TIMESTAMP_FIELDS = {
    PaymentStatus.PAID: "payment_date",
    PaymentStatus.REFUNDED: "refunded_at",
}


def is_allowed_transition(current: PaymentStatus, requested: PaymentStatus) -> bool:
    return current == requested or (current, requested) in ALLOWED_TRANSITIONS


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TransitionResult:
    payment: Payment
    changed: bool


@dataclass
class PaymentSummary:
    total_owed: Decimal
    total_paid: Decimal
    total_pending: Decimal
    total_forgiven: Decimal
    payments_count: int
    paid_count: int
    pending_count: int


@dataclass
class PendingPayment:
    payment: Payment
    session: PlaySession
    pay_link: Optional[str]


class LedgerService:

    @staticmethod
    async def _get_session(db: AsyncSession, session_id: str) -> PlaySession:
        session = await db.get(PlaySession, session_id)
        if not session:
            raise ResourceNotFoundError("Session", session_id)
        return session

    @staticmethod
    async def _owing_participants(db: AsyncSession, session_id: str) -> List[SessionParticipant]:
        result = await db.execute(
            select(SessionParticipant)
            .where(
                SessionParticipant.session_id == session_id,
                SessionParticipant.status.in_(OWING_STATUSES),
            )
            .order_by(SessionParticipant.created_at, SessionParticipant.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_session_cost_summary(db: AsyncSession, session_id: str) -> SessionCostSummary:
        session = await LedgerService._get_session(db, session_id)
        participants = await LedgerService._owing_participants(db, session_id)
        guests = [p for p in participants if not p.is_admin]

        return summarize_session_cost(
            courts_needed=session.courts_needed,
            admin_cost_per_court=session.admin_cost_per_court,
            guest_pool_per_court=session.guest_pool_per_court,
            total_players=len(participants),
            guest_count=len(guests),
        )

    @staticmethod
    async def create_obligations_for_session(
        db: AsyncSession,
        session_id: str,
        actor: str = SYSTEM_ACTOR,
    ) -> List[Payment]:
        """
        Create one pending payment per committed/paid non-admin participant.

        Flow:
        1. Load session and owing participants
        2. Compute the per-guest charge (skip entirely if there are no guests)
        3. Create payments with ids generated up front so each request
           link can carry its own reconciliation tag
        4. Audit

        Calling this twice for the same session creates a second batch;
        use lock_roster() to guard against that.

        Returns:
            Created payments (empty list when the session has no guests)
        """
        session = await LedgerService._get_session(db, session_id)
        participants = await LedgerService._owing_participants(db, session_id)
        guests = [p for p in participants if not p.is_admin]

        if not guests:
            logger.info("Session %s has no guests; no obligations created", session_id)
            return []

        summary = summarize_session_cost(
            courts_needed=session.courts_needed,
            admin_cost_per_court=session.admin_cost_per_court,
            guest_pool_per_court=session.guest_pool_per_court,
            total_players=len(participants),
            guest_count=len(guests),
        )

        payments = []
        for participant in guests:
            payment_id = str(uuid.uuid4())
            guest_account = participant.player.venmo_account if participant.player else None
            request_link = None
            if guest_account:
                request_link = build_request_link(
                    guest_account,
                    summary.guest_cost,
                    session.proposed_date,
                    session.proposed_time,
                    session.pool.name,
                    payment_id,
                )

            payments.append(Payment(
                id=payment_id,
                participant=participant,
                amount=summary.guest_cost,
                payment_link=request_link,
                status=PaymentStatus.PENDING,
            ))

        db.add_all(payments)
        await db.flush()

        await log_event(
            db=db,
            action=AuditAction.OBLIGATIONS_CREATED,
            actor=actor,
            entity_type="session",
            entity_id=session_id,
            metadata={
                "count": len(payments),
                "amount": str(summary.guest_cost),
                "guest_pool": str(summary.guest_pool),
                "payment_ids": [p.id for p in payments],
            },
        )

        logger.info(
            "Created %d obligations of %s for session %s",
            len(payments), summary.guest_cost, session_id,
        )
        return payments

    @staticmethod
    async def lock_roster(
        db: AsyncSession,
        session_id: str,
        actor: str = SYSTEM_ACTOR,
    ) -> List[Payment]:
        """
        Lock a session's roster and create its obligations in one transaction.

        Raises:
            RosterAlreadyLockedError: If the roster was locked before
        """
        result = await db.execute(
            update(PlaySession)
            .where(PlaySession.id == session_id, PlaySession.roster_locked.is_(False))
            .values(roster_locked=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await LedgerService._get_session(db, session_id)
            raise RosterAlreadyLockedError(session_id)

        session = await LedgerService._get_session(db, session_id)
        await db.refresh(session)

        return await LedgerService.create_obligations_for_session(db, session_id, actor=actor)

    @staticmethod
    async def transition(
        db: AsyncSession,
        payment_id: str,
        new_status: PaymentStatus,
        notes: Optional[str] = None,
        actor: str = SYSTEM_ACTOR,
    ) -> TransitionResult:
        """
        Move a payment to a new status.

        Same-status requests succeed without changes. The update only
        applies if the status is still what was read; if another writer got
        there first the call returns changed=False with the fresh row.

        Raises:
            ResourceNotFoundError: If the payment does not exist
            InvalidTransitionError: If the state machine forbids the move
        """
        payment = await db.get(Payment, payment_id)
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)

        current = payment.status
        if current == new_status:
            return TransitionResult(payment=payment, changed=False)

        if (current, new_status) not in ALLOWED_TRANSITIONS:
            raise InvalidTransitionError(payment_id, current.value, new_status.value)

        values = {"status": new_status}
        timestamp_field = TIMESTAMP_FIELDS.get(new_status)
        if timestamp_field:
            values[timestamp_field] = utcnow()
        if notes is not None:
            values["notes"] = notes

        result = await db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(payment)

        if result.rowcount == 0:
            logger.info(
                "Payment %s changed concurrently (now %s); %s -> %s skipped",
                payment_id, payment.status.value, current.value, new_status.value,
            )
            await log_event(
                db=db,
                action=AuditAction.PAYMENT_TRANSITION_SKIPPED,
                actor=actor,
                entity_type="payment",
                entity_id=payment_id,
                metadata={
                    "expected_status": current.value,
                    "actual_status": payment.status.value,
                    "requested_status": new_status.value,
                },
            )
            return TransitionResult(payment=payment, changed=False)

        await log_event(
            db=db,
            action=AuditAction.PAYMENT_STATUS_CHANGED,
            actor=actor,
            entity_type="payment",
            entity_id=payment_id,
            metadata={
                "from": current.value,
                "to": new_status.value,
                "notes": notes,
            },
        )
        return TransitionResult(payment=payment, changed=True)

    @staticmethod
    async def mark_paid(db: AsyncSession, payment_id: str, notes: Optional[str] = None,
                        actor: str = SYSTEM_ACTOR) -> TransitionResult:
        return await LedgerService.transition(db, payment_id, PaymentStatus.PAID, notes, actor)

    @staticmethod
    async def forgive(db: AsyncSession, payment_id: str, notes: Optional[str] = None,
                      actor: str = SYSTEM_ACTOR) -> TransitionResult:
        """Forgive a payment (first-timer discount, replacement found)."""
        return await LedgerService.transition(db, payment_id, PaymentStatus.FORGIVEN, notes, actor)

    @staticmethod
    async def refund(db: AsyncSession, payment_id: str, notes: Optional[str] = None,
                     actor: str = SYSTEM_ACTOR) -> TransitionResult:
        return await LedgerService.transition(db, payment_id, PaymentStatus.REFUNDED, notes, actor)

    @staticmethod
    async def mark_request_sent(
        db: AsyncSession,
        payment_id: str,
        actor: str = SYSTEM_ACTOR,
    ) -> Payment:
        """Stamp request_sent_at the first time a request goes out. Idempotent."""
        payment = await db.get(Payment, payment_id)
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)

        result = await db.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.request_sent_at.is_(None))
            .values(request_sent_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.refresh(payment)

        if result.rowcount:
            await log_event(
                db=db,
                action=AuditAction.PAYMENT_REQUEST_SENT,
                actor=actor,
                entity_type="payment",
                entity_id=payment_id,
            )
        return payment

    @staticmethod
    async def get_session_payments(db: AsyncSession, session_id: str) -> List[Payment]:
        """All payments for a session, oldest first, with participant and player loaded."""
        result = await db.execute(
            select(Payment)
            .join(SessionParticipant, Payment.session_participant_id == SessionParticipant.id)
            .where(SessionParticipant.session_id == session_id)
            .order_by(Payment.created_at, Payment.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_payment_summary(db: AsyncSession, session_id: str) -> PaymentSummary:
        payments = await LedgerService.get_session_payments(db, session_id)

        summary = PaymentSummary(
            total_owed=to_money(0),
            total_paid=to_money(0),
            total_pending=to_money(0),
            total_forgiven=to_money(0),
            payments_count=len(payments),
            paid_count=0,
            pending_count=0,
        )

        for payment in payments:
            amount = to_money(payment.amount)
            summary.total_owed += amount

            if payment.status == PaymentStatus.PAID:
                summary.total_paid += amount
                summary.paid_count += 1
            elif payment.status == PaymentStatus.PENDING:
                summary.total_pending += amount
                summary.pending_count += 1
            elif payment.status == PaymentStatus.FORGIVEN:
                summary.total_forgiven += amount

        return summary

    @staticmethod
    async def get_player_pending_payments(db: AsyncSession, player_id: str) -> List[PendingPayment]:
        """Pending payments for one player, each with a pay link to the pool admin."""
        result = await db.execute(
            select(Payment, PlaySession)
            .join(SessionParticipant, Payment.session_participant_id == SessionParticipant.id)
            .join(PlaySession, SessionParticipant.session_id == PlaySession.id)
            .where(
                SessionParticipant.player_id == player_id,
                Payment.status == PaymentStatus.PENDING,
            )
            .order_by(Payment.created_at, Payment.id)
        )

        pending = []
        for payment, session in result.unique().all():
            admin = session.pool.owner if session.pool else None
            pay_link = None
            if admin and admin.venmo_account:
                pay_link = build_pay_link(
                    admin.venmo_account,
                    payment.amount,
                    session.proposed_date,
                    session.proposed_time,
                    session.pool.name,
                    payment.id,
                )
            pending.append(PendingPayment(payment=payment, session=session, pay_link=pay_link))

        return pending
