"""
Transaction ingestion.

Turns one forwarded provider email into at most one stored transaction and
runs it through the matcher. Redelivery of the same email is a no-op that
reports the original outcome.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dinkup.app.domain.reconciliation.config import ReconciliationConfig
from dinkup.app.domain.reconciliation.email_parser import RawEmail, Unparseable, parse_email
from dinkup.app.domain.reconciliation.matcher import TransactionMatcher
from dinkup.app.models.enums import MatchMethod
from dinkup.app.models.payment_transaction import PaymentTransaction
from dinkup.app.services.audit import AuditAction, log_event

logger = logging.getLogger("dinkup.reconciliation.ingestion")


def compute_dedup_key(email: RawEmail) -> str:
    """
    Stable identity for an email.

    The Message-ID when the forwarder supplies one, otherwise
    sender + subject + date.
    """
    if email.message_id and email.message_id.strip():
        material = f"message-id:{email.message_id.strip()}"
    else:
        material = "|".join((email.from_address or "", email.subject or "", email.date or ""))
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


@dataclass
class IngestionResult:
    transaction: Optional[PaymentTransaction]
    matched: bool
    duplicate: bool = False
    parsed: bool = True
    message: str = ""

    @property
    def transaction_id(self) -> Optional[str]:
        return self.transaction.id if self.transaction else None


class IngestionService:

    @staticmethod
    async def get_by_dedup_key(db: AsyncSession, dedup_key: str) -> Optional[PaymentTransaction]:
        result = await db.execute(
            select(PaymentTransaction).where(PaymentTransaction.dedup_key == dedup_key)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _duplicate(db: AsyncSession, existing: PaymentTransaction) -> IngestionResult:
        await log_event(
            db=db,
            action=AuditAction.TRANSACTION_DUPLICATE,
            entity_type="transaction",
            entity_id=existing.id,
            metadata={"message_id": existing.message_id},
        )
        logger.info("Duplicate delivery of transaction %s ignored", existing.id)
        return IngestionResult(
            transaction=existing,
            matched=existing.payment_id is not None,
            duplicate=True,
            message="Already processed",
        )

    @staticmethod
    async def ingest(
        db: AsyncSession,
        email: RawEmail,
        config: ReconciliationConfig,
        raw_payload: Optional[Dict[str, Any]] = None,
        matcher: Optional[TransactionMatcher] = None,
    ) -> IngestionResult:
        """
        Store and reconcile one email. Caller commits.

        Unparseable emails are recorded in the audit log only; no
        transaction row is created for them.
        """
        dedup_key = compute_dedup_key(email)

        existing = await IngestionService.get_by_dedup_key(db, dedup_key)
        if existing:
            return await IngestionService._duplicate(db, existing)

        parsed = parse_email(email, config)
        if isinstance(parsed, Unparseable):
            await log_event(
                db=db,
                action=AuditAction.EMAIL_UNPARSEABLE,
                metadata={
                    "subject": email.subject,
                    "from": email.from_address,
                    "message_id": email.message_id,
                    "reason": parsed.reason,
                },
            )
            logger.info("Unparseable email %r: %s", email.subject, parsed.reason)
            return IngestionResult(
                transaction=None,
                matched=False,
                parsed=False,
                message="Could not parse a transaction from this email",
            )

        record = PaymentTransaction(
            dedup_key=dedup_key,
            transaction_type=parsed.transaction_type,
            amount=parsed.amount,
            sender_name=parsed.sender_name,
            recipient_name=parsed.recipient_name,
            note=parsed.note,
            token=parsed.token,
            email_subject=parsed.email_subject,
            email_from=parsed.email_from,
            email_date=parsed.email_date,
            message_id=email.message_id,
            raw_payload=raw_payload,
            match_method=MatchMethod.NONE,
        )
        db.add(record)
        try:
            await db.flush()  # unique dedup_key rejects a concurrent delivery
        except IntegrityError:
            await db.rollback()
            existing = await IngestionService.get_by_dedup_key(db, dedup_key)
            if existing is None:
                raise
            return await IngestionService._duplicate(db, existing)

        await log_event(
            db=db,
            action=AuditAction.TRANSACTION_INGESTED,
            entity_type="transaction",
            entity_id=record.id,
            metadata={
                "type": parsed.transaction_type.value,
                "amount": str(parsed.amount),
                "token": parsed.token,
            },
        )

        matcher = matcher or TransactionMatcher(config)
        outcome = await matcher.reconcile(db, record, parsed)

        return IngestionResult(
            transaction=record,
            matched=outcome.linked,
            message="Matched" if outcome.linked else "Stored for review",
        )

    @staticmethod
    async def list_review_queue(db: AsyncSession, limit: int = 100) -> List[PaymentTransaction]:
        """Heuristic links and unlinked transactions awaiting a human, newest first."""
        result = await db.execute(
            select(PaymentTransaction)
            .where(
                PaymentTransaction.needs_review.is_(True),
                or_(
                    PaymentTransaction.match_method == MatchMethod.AUTO_HEURISTIC,
                    PaymentTransaction.payment_id.is_(None),
                ),
            )
            .order_by(desc(PaymentTransaction.created_at), desc(PaymentTransaction.id))
            .limit(limit)
        )
        return list(result.scalars().all())
