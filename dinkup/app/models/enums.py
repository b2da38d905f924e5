"""
Ledger enumerations.

Status and tag values shared by payments, transactions and notifications.
"""

import enum


class PaymentStatus(str, enum.Enum):
    """
    Payment obligation status.

    pending -> paid -> refunded
    pending -> forgiven
    """
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FORGIVEN = "forgiven"


class PaymentMethod(str, enum.Enum):
    VENMO = "venmo"


class ParticipantStatus(str, enum.Enum):
    """Session participant status. Only committed/paid players owe money."""
    COMMITTED = "committed"
    PAID = "paid"
    MAYBE = "maybe"
    OUT = "out"
    WAITLIST = "waitlist"


class TransactionType(str, enum.Enum):
    PAYMENT_SENT = "payment_sent"
    PAYMENT_RECEIVED = "payment_received"
    REQUEST_SENT = "request_sent"
    REQUEST_RECEIVED = "request_received"


class MatchMethod(str, enum.Enum):
    NONE = "none"
    AUTO_TOKEN = "auto_token"
    AUTO_HEURISTIC = "auto_heuristic"


class NotificationEvent(str, enum.Enum):
    ROSTER_LOCKED = "roster_locked"
    PAYMENT_REMINDER = "payment_reminder"


class NotificationChannel(str, enum.Enum):
    EMAIL = "email"
    SMS = "sms"
