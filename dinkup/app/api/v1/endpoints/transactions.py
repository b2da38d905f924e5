"""
Transaction ingestion API Endpoints.

The mail relay posts every forwarded provider email here. Anything that is
not a hard failure answers 200 so the relay stops retrying content it
will never understand.
"""

import logging
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from dinkup.app.db.session import get_db
from dinkup.app.core.dependencies import get_reconciliation_config, require_admin_key, verify_webhook_secret
from dinkup.app.domain.reconciliation.config import ReconciliationConfig
from dinkup.app.domain.reconciliation.ingestion_service import IngestionService
from dinkup.app.schemas.ingestion import InboundEmailPayload, IngestionResponse
from dinkup.app.schemas.transaction import TransactionResponse

logger = logging.getLogger("dinkup.api.transactions")

router = APIRouter(prefix="/transactions", tags=["Transactions"])
admin_router = APIRouter(
    prefix="/admin/transactions",
    tags=["Admin - Transactions"],
    dependencies=[Depends(require_admin_key)],
)


@router.post(
    "",
    response_model=IngestionResponse,
    dependencies=[Depends(verify_webhook_secret)],
)
async def ingest_transaction_email(
    payload: InboundEmailPayload,
    config: ReconciliationConfig = Depends(get_reconciliation_config),
    db: AsyncSession = Depends(get_db),
):
    """
    Parse, store and reconcile one forwarded email.

    Redelivery of an already-processed email returns the original
    transaction id without creating a second record.
    """
    result = await IngestionService.ingest(
        db,
        payload.to_email(),
        config,
        raw_payload=payload.model_dump(by_alias=True, exclude_none=True),
    )
    await db.commit()

    return IngestionResponse(
        success=True,
        transaction_id=result.transaction_id,
        matched=result.matched,
        duplicate=result.duplicate,
        message=result.message,
    )


@admin_router.get("/review", response_model=List[TransactionResponse])
async def get_review_queue(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Heuristic matches and unlinked transactions awaiting manual review."""
    return await IngestionService.list_review_queue(db, limit=limit)
