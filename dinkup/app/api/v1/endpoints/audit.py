"""
Audit trail API Endpoints.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dinkup.app.db.session import get_db
from dinkup.app.core.dependencies import require_admin_key
from dinkup.app.schemas.audit import AuditLogResponse, AuditTrailResponse
from dinkup.app.services.audit import get_audit_trail

router = APIRouter(
    prefix="/admin",
    tags=["Admin - Audit"],
    dependencies=[Depends(require_admin_key)],
)


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def get_audit_logs(
    entity_id: str = Query(None, description="Filter by payment or transaction ID"),
    action: str = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the ledger audit trail, most recent first.

    Payment status changes, ingested emails and match decisions all land here.
    """
    logs = await get_audit_trail(
        db=db,
        entity_id=entity_id,
        action=action,
        limit=limit
    )

    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
