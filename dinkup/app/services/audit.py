"""
Audit logging service for ledger and reconciliation events.

Provides a single append-only trail of every money-related write.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from dinkup.app.models.audit_log import AuditLog


SYSTEM_ACTOR = "system"


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""

    # Payment ledger
    OBLIGATIONS_CREATED = "OBLIGATIONS_CREATED"
    PAYMENT_STATUS_CHANGED = "PAYMENT_STATUS_CHANGED"
    PAYMENT_TRANSITION_SKIPPED = "PAYMENT_TRANSITION_SKIPPED"
    PAYMENT_REQUEST_SENT = "PAYMENT_REQUEST_SENT"

    # Transaction ingestion
    TRANSACTION_INGESTED = "TRANSACTION_INGESTED"
    TRANSACTION_DUPLICATE = "TRANSACTION_DUPLICATE"
    EMAIL_UNPARSEABLE = "EMAIL_UNPARSEABLE"

    # Reconciliation
    TRANSACTION_MATCHED = "TRANSACTION_MATCHED"
    TRANSACTION_UNMATCHED = "TRANSACTION_UNMATCHED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor: str = SYSTEM_ACTOR,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Append an event to the audit log.

    The row joins the caller's transaction; it is committed (or rolled
    back) together with the ledger change it describes.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor: Who performed it; "system" for automated processing
        entity_type: Kind of record affected ("payment", "transaction", "session")
        entity_id: ID of the affected record
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor=actor,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Args:
        db: Database session
        entity_id: Filter by affected record ID
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
