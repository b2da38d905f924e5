"""
Payment Ledger API Endpoints.

Admin routes lock rosters and move payments through their lifecycle;
the player route lists what a player still owes.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from dinkup.app.db.session import get_db
from dinkup.app.core.dependencies import require_admin_key
from dinkup.app.domain.ledger.ledger_service import LedgerService
from dinkup.app.schemas.payment import (
    CostSummaryResponse,
    LockRosterResponse,
    PaymentResponse,
    PaymentSummaryResponse,
    PendingPaymentResponse,
    StatusUpdateRequest,
    TransitionResponse,
)

ADMIN_ACTOR = "admin"

admin_router = APIRouter(
    prefix="/admin",
    tags=["Admin - Payments"],
    dependencies=[Depends(require_admin_key)],
)
player_router = APIRouter(prefix="/players", tags=["Players"])


@admin_router.post("/sessions/{session_id}/lock", response_model=LockRosterResponse)
async def lock_session_roster(
    session_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Lock the roster and create one pending payment per guest.

    Returns 409 if the roster is already locked.
    """
    payments = await LedgerService.lock_roster(db, session_id, actor=ADMIN_ACTOR)
    await db.commit()
    for payment in payments:
        await db.refresh(payment)

    return LockRosterResponse(
        session_id=session_id,
        count=len(payments),
        payments=[PaymentResponse.from_payment(p) for p in payments],
    )


@admin_router.get("/sessions/{session_id}/payments", response_model=List[PaymentResponse])
async def list_session_payments(
    session_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    payments = await LedgerService.get_session_payments(db, session_id)
    return [PaymentResponse.from_payment(p) for p in payments]


@admin_router.get("/sessions/{session_id}/payments/summary", response_model=PaymentSummaryResponse)
async def get_session_payment_summary(
    session_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    """Totals owed / paid / pending / forgiven plus the cost breakdown."""
    cost = await LedgerService.get_session_cost_summary(db, session_id)
    summary = await LedgerService.get_payment_summary(db, session_id)

    response = PaymentSummaryResponse.model_validate(summary)
    response.cost = CostSummaryResponse.model_validate(cost)
    return response


@admin_router.post("/payments/{payment_id}/status", response_model=TransitionResponse)
async def update_payment_status(
    body: StatusUpdateRequest,
    payment_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Mark paid, forgive or refund a payment.

    Invalid moves answer 409 naming the current and requested status.
    A move lost to a concurrent writer answers 200 with changed=false.
    """
    result = await LedgerService.transition(
        db, payment_id, body.status, notes=body.notes, actor=ADMIN_ACTOR
    )
    await db.commit()

    return TransitionResponse(
        payment=PaymentResponse.from_payment(result.payment),
        changed=result.changed,
    )


@admin_router.post("/payments/{payment_id}/request-sent", response_model=PaymentResponse)
async def mark_payment_request_sent(
    payment_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    payment = await LedgerService.mark_request_sent(db, payment_id, actor=ADMIN_ACTOR)
    await db.commit()
    return PaymentResponse.from_payment(payment)


@player_router.get("/{player_id}/pending-payments", response_model=List[PendingPaymentResponse])
async def list_player_pending_payments(
    player_id: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    """Pending payments for a player, each with a pay link to the pool admin."""
    pending = await LedgerService.get_player_pending_payments(db, player_id)
    return [
        PendingPaymentResponse(
            payment_id=item.payment.id,
            amount=item.payment.amount,
            session_id=item.session.id,
            session_date=item.session.proposed_date,
            session_time=item.session.proposed_time,
            pool_name=item.session.pool.name if item.session.pool else None,
            pay_link=item.pay_link,
        )
        for item in pending
    ]
