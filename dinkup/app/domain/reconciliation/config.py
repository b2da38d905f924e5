"""
Reconciliation configuration.

Passed explicitly into the parser and matcher so they never read
process-wide settings.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple

from dinkup.app.core.config import Settings


@dataclass(frozen=True)
class ReconciliationConfig:
    # Hashtag namespaces recognised in notes ("#dinkup-...", "#session-...")
    token_namespaces: Tuple[str, ...] = ("dinkup", "pay", "payment", "session")
    # Subset whose suffix is a payment id
    obligation_namespaces: Tuple[str, ...] = ("dinkup", "pay", "payment")
    amount_tolerance: Decimal = Decimal("0.01")
    heuristic_candidate_limit: int = 10
    max_note_length: int = 500

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReconciliationConfig":
        return cls(
            token_namespaces=tuple(ns.lower() for ns in settings.token_namespaces),
            obligation_namespaces=tuple(ns.lower() for ns in settings.obligation_namespaces),
            amount_tolerance=Decimal(str(settings.amount_tolerance)),
            heuristic_candidate_limit=settings.heuristic_candidate_limit,
        )
