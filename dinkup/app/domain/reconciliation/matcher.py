"""
Transaction-to-payment matching.

Strategies run in order and the first one that links wins:

1. TokenMatchStrategy: the note carries "#dinkup-<payment id>" and the
   payment's amount agrees within tolerance. Confident enough to mark a
   pending payment paid.
2. AmountNameMatchStrategy: received payments only. A pending payment with
   exactly the same amount whose player name resembles the Venmo sender.
   Only proposes a link for manual review; never moves money.

A transaction no strategy can place is stored unlinked for manual triage.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dinkup.app.domain.ledger.ledger_service import LedgerService
from dinkup.app.domain.reconciliation.config import ReconciliationConfig
from dinkup.app.domain.reconciliation.email_parser import ParsedTransaction, decode_token
from dinkup.app.models.enums import MatchMethod, PaymentStatus, TransactionType
from dinkup.app.models.payment import Payment
from dinkup.app.models.payment_transaction import PaymentTransaction
from dinkup.app.services.audit import AuditAction, log_event

logger = logging.getLogger("dinkup.reconciliation.matcher")

# Money actually changed hands; requests never settle a payment
SETTLING_TYPES = (TransactionType.PAYMENT_RECEIVED, TransactionType.PAYMENT_SENT)

NICKNAME_GROUPS = (
    {"mike", "michael", "mikey"},
    {"bob", "bobby", "rob", "robby", "robert"},
    {"dan", "danny", "daniel"},
    {"will", "bill", "billy", "william"},
    {"chris", "christopher"},
    {"jon", "john", "johnny", "jonathan"},
    {"matt", "matty", "matthew"},
)

_NICKNAMES = {}
for _group in NICKNAME_GROUPS:
    for _name in _group:
        _NICKNAMES.setdefault(_name, set()).update(_group)


def names_match(player_name: Optional[str], sender_name: Optional[str]) -> bool:
    """
    Loose comparison of a stored player name with a Venmo display name.

    "Mike B" ~ "Mike Berkman" (containment either way)
    "Mike" ~ "Michael Chen" (nickname table, first names only)
    """
    a = " ".join((player_name or "").lower().split())
    b = " ".join((sender_name or "").lower().split())
    if not a or not b:
        return False

    if a in b or b in a:
        return True

    first_a, first_b = a.split()[0], b.split()[0]
    return first_b in _NICKNAMES.get(first_a, ())


@dataclass(frozen=True)
class MatchOutcome:
    linked: bool
    payment_id: Optional[str]
    auto_transition: bool
    method: MatchMethod = MatchMethod.NONE


NO_MATCH = MatchOutcome(linked=False, payment_id=None, auto_transition=False)


class MatchStrategy(ABC):
    """One tier of the pipeline. Must not modify ledger state."""

    name = "base"

    @abstractmethod
    async def attempt(
        self,
        db: AsyncSession,
        parsed: ParsedTransaction,
        config: ReconciliationConfig,
    ) -> MatchOutcome:
        ...


class TokenMatchStrategy(MatchStrategy):
    name = "token"

    async def attempt(self, db, parsed, config):
        payment_id = decode_token(parsed.token, config)
        if not payment_id:
            return NO_MATCH

        payment = await db.get(Payment, payment_id)
        if not payment:
            logger.info("Token %s names unknown payment %s", parsed.token, payment_id)
            return NO_MATCH

        if abs(payment.amount - parsed.amount) > config.amount_tolerance:
            logger.info(
                "Token %s amount mismatch: payment %s owes %s, email says %s",
                parsed.token, payment_id, payment.amount, parsed.amount,
            )
            return NO_MATCH

        return MatchOutcome(
            linked=True,
            payment_id=payment.id,
            auto_transition=(
                # A request email is not proof of payment, so only settling types auto-pay
                payment.status == PaymentStatus.PENDING
                and parsed.transaction_type in SETTLING_TYPES
            ),
            method=MatchMethod.AUTO_TOKEN,
        )


class AmountNameMatchStrategy(MatchStrategy):
    name = "amount_name"

    async def candidates(self, db: AsyncSession, parsed: ParsedTransaction,
                         config: ReconciliationConfig) -> Sequence[Payment]:
        result = await db.execute(
            select(Payment)
            .where(
                Payment.status == PaymentStatus.PENDING,
                Payment.amount == parsed.amount,
            )
            .order_by(Payment.created_at, Payment.id)
            .limit(config.heuristic_candidate_limit)
        )
        return result.scalars().all()

    async def attempt(self, db, parsed, config):
        if parsed.transaction_type != TransactionType.PAYMENT_RECEIVED:
            return NO_MATCH

        for payment in await self.candidates(db, parsed, config):
            player = payment.participant.player if payment.participant else None
            if player and names_match(player.name, parsed.sender_name):
                logger.info(
                    "Possible match: %s -> payment %s (%s); needs review",
                    parsed.sender_name, payment.id, player.name,
                )
                return MatchOutcome(
                    linked=True,
                    payment_id=payment.id,
                    auto_transition=False,
                    method=MatchMethod.AUTO_HEURISTIC,
                )

        return NO_MATCH


DEFAULT_STRATEGIES = (TokenMatchStrategy(), AmountNameMatchStrategy())


class TransactionMatcher:
    """
    Runs the strategy pipeline for one stored transaction and applies the
    first successful outcome: link the record, and settle the payment only
    when the outcome asks for it.
    """

    def __init__(self, config: ReconciliationConfig, strategies: Iterable[MatchStrategy] = DEFAULT_STRATEGIES):
        self.config = config
        self.strategies = tuple(strategies)

    async def find_match(self, db: AsyncSession, parsed: ParsedTransaction) -> tuple:
        for strategy in self.strategies:
            outcome = await strategy.attempt(db, parsed, self.config)
            if outcome.linked:
                return strategy, outcome
        return None, NO_MATCH

    async def reconcile(
        self,
        db: AsyncSession,
        record: PaymentTransaction,
        parsed: ParsedTransaction,
    ) -> MatchOutcome:
        strategy, outcome = await self.find_match(db, parsed)

        if not outcome.linked:
            record.match_method = MatchMethod.NONE
            record.needs_review = True
            record.processed = False
            await db.flush()
            await log_event(
                db=db,
                action=AuditAction.TRANSACTION_UNMATCHED,
                entity_type="transaction",
                entity_id=record.id,
                metadata={
                    "type": parsed.transaction_type.value,
                    "amount": str(parsed.amount),
                    "sender": parsed.sender_name,
                    "token": parsed.token,
                },
            )
            logger.info("Transaction %s left unmatched for manual triage", record.id)
            return outcome

        record.payment_id = outcome.payment_id
        record.match_method = outcome.method
        record.matched_at = datetime.now(timezone.utc)
        confident = outcome.method == MatchMethod.AUTO_TOKEN
        record.needs_review = not confident
        record.processed = confident
        await db.flush()

        transitioned = False
        if outcome.auto_transition:
            result = await LedgerService.mark_paid(
                db,
                outcome.payment_id,
                notes=f"Auto-matched from Venmo email ({parsed.token})",
            )
            transitioned = result.changed

        await log_event(
            db=db,
            action=AuditAction.TRANSACTION_MATCHED,
            entity_type="transaction",
            entity_id=record.id,
            metadata={
                "tier": strategy.name,
                "method": outcome.method.value,
                "payment_id": outcome.payment_id,
                "auto_transition": outcome.auto_transition,
                "transitioned": transitioned,
            },
        )
        logger.info(
            "Transaction %s linked to payment %s via %s (paid=%s)",
            record.id, outcome.payment_id, strategy.name, transitioned,
        )
        return outcome
