"""
Session Cost Model.

Pure functions splitting a session's court cost between its guests.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Amount = Union[Decimal, int, str]


def to_money(value: Amount) -> Decimal:
    """Quantize a value to cents using half-up rounding."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_guest_charge(courts_needed: int, guest_pool_per_court: Amount, guest_count: int) -> Decimal:
    """
    Per-guest charge for a session.

    The guest pool (per-court pool x courts) is split evenly and rounded
    half-up to the cent. Callers must skip obligation creation entirely
    when there are no guests.

    Raises:
        ValueError: If guest_count is not positive.
    """
    if guest_count <= 0:
        raise ValueError("guest_count must be at least 1")

    guest_pool = Decimal(str(guest_pool_per_court)) * courts_needed
    return to_money(guest_pool / guest_count)


@dataclass(frozen=True)
class SessionCostSummary:
    total_players: int
    guest_count: int
    courts_needed: int
    admin_cost: Decimal
    guest_pool: Decimal
    guest_cost: Decimal


def summarize_session_cost(
    courts_needed: int,
    admin_cost_per_court: Amount,
    guest_pool_per_court: Amount,
    total_players: int,
    guest_count: int,
) -> SessionCostSummary:
    """Build the cost breakdown shown to the admin. admin_cost is display-only."""
    guest_cost = (
        compute_guest_charge(courts_needed, guest_pool_per_court, guest_count)
        if guest_count > 0
        else to_money(0)
    )
    return SessionCostSummary(
        total_players=total_players,
        guest_count=guest_count,
        courts_needed=courts_needed,
        admin_cost=to_money(Decimal(str(admin_cost_per_court)) * courts_needed),
        guest_pool=to_money(Decimal(str(guest_pool_per_court)) * courts_needed),
        guest_cost=guest_cost,
    )
