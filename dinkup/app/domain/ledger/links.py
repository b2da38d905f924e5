"""
Venmo Link Generator.

Builds request ("charge") and pay deep links whose note carries the
reconciliation tag ``#<namespace>-<payment id>``. The tag format must stay
in sync with the token pattern in the email parser.
"""

from datetime import date, time
from decimal import Decimal
from typing import Union
from urllib.parse import quote

from dinkup.app.core.config import settings
from dinkup.app.domain.ledger.cost_model import to_money

# Same characters JavaScript's encodeURIComponent leaves alone
_NOTE_SAFE_CHARS = "-_.!~*'()"


def format_session_date(session_date: date) -> str:
    """date(2026, 1, 10) -> "Sat Jan 10"."""
    return f"{session_date:%a} {session_date:%b} {session_date.day}"


def format_session_time(session_time: time) -> str:
    """time(13, 0) -> "1:00 PM"."""
    hour = session_time.hour % 12 or 12
    meridiem = "AM" if session_time.hour < 12 else "PM"
    return f"{hour}:{session_time.minute:02d} {meridiem}"


def reconciliation_tag(payment_id: str, namespace: str = None) -> str:
    return f"#{namespace or settings.link_namespace}-{payment_id}"


def build_note(
    session_date: date,
    session_time: time,
    pool_name: str,
    payment_id: str = None,
    activity: str = None,
    namespace: str = None,
) -> str:
    """
    "Pickleball - Weekend Warriors - Sat Jan 10 @ 1:00 PM #dinkup-<id>"
    """
    note = (
        f"{activity or settings.activity_label} - {pool_name} - "
        f"{format_session_date(session_date)} @ {format_session_time(session_time)}"
    )
    if payment_id:
        note += f" {reconciliation_tag(payment_id, namespace)}"
    return note


def _build_link(account: str, txn: str, amount: Union[Decimal, int, str], note: str) -> str:
    username = account.strip().lstrip("@")
    return (
        f"{settings.provider_base_url}/{quote(username, safe='')}"
        f"?txn={txn}&amount={to_money(amount):.2f}"
        f"&note={quote(note, safe=_NOTE_SAFE_CHARS)}"
    )


def build_request_link(
    guest_account: str,
    amount: Union[Decimal, int, str],
    session_date: date,
    session_time: time,
    pool_name: str,
    payment_id: str,
) -> str:
    """Charge link: the admin requests ``amount`` from the guest."""
    note = build_note(session_date, session_time, pool_name, payment_id)
    return _build_link(guest_account, "charge", amount, note)


def build_pay_link(
    admin_account: str,
    amount: Union[Decimal, int, str],
    session_date: date,
    session_time: time,
    pool_name: str,
    payment_id: str,
) -> str:
    """Pay link: the guest pays ``amount`` to the admin."""
    note = build_note(session_date, session_time, pool_name, payment_id)
    return _build_link(admin_account, "pay", amount, note)
