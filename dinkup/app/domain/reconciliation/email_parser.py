"""
Venmo Notification Email Parser.

Turns a forwarded Venmo notification into a structured transaction.

Flow:
1. Strip forwarding prefixes (Fwd:/Fw:/Re:) from the subject
2. Run the ordered subject patterns; the first match decides type,
   counterparty and amount. No match means the email is not a transaction.
3. Validate the amount; a malformed amount makes the email unparseable
4. Look for the payment note in the body, then the raw subject, then the
   whole payload as text
5. Look for a reconciliation tag (``#dinkup-<payment id>``) in the same places

Stripped HTML is full of CSS fragments and attribute values, so every note
candidate passes through a markup-noise filter first.
"""

import html as html_lib
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Iterable, Optional, Pattern, Tuple, Union

from dinkup.app.domain.ledger.cost_model import to_money
from dinkup.app.domain.reconciliation.config import ReconciliationConfig
from dinkup.app.models.enums import TransactionType

logger = logging.getLogger("dinkup.reconciliation.parser")

YOU = "You"

_FORWARD_PREFIX = re.compile(r"^(?:\s*(?:fwd?|re)\s*:\s*)+", re.IGNORECASE)
_AMOUNT_TEXT = re.compile(r"^\d+(?:\.\d+)?$")
_UUID = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
_UUID_TAG = re.compile(r"#[\w-]*?" + _UUID, re.IGNORECASE)
_UUID_ONLY = re.compile(_UUID, re.IGNORECASE)

# A quoted string that is not an attribute value (class="x", style="y")
_QUOTED = re.compile(r'(?<![=\w])"([^"\n]+)"')
_LABELS = (
    re.compile(r"Note:\s*(.+?)(?:\n|$)", re.IGNORECASE),
    re.compile(r"Message:\s*(.+?)(?:\n|$)", re.IGNORECASE),
    re.compile(r'for\s+"([^"]+)"', re.IGNORECASE),
)

_CSS_NOISE = re.compile(
    r"font-family\s*:|font-size\s*:|font-weight\s*:|line-height\s*:|"
    r"color\s*:\s*#|background(?:-color)?\s*:|margin(?:-\w+)?\s*:|padding(?:-\w+)?\s*:|"
    r"border(?:-\w+)?\s*:|text-align\s*:|(?<![\w-])#[0-9a-f]{6}\b",
    re.IGNORECASE,
)
_HTML_NOISE = re.compile(r"<\s*/?\s*[a-z]+|&nbsp;|&amp;|&#\d+;|style\s*=|class\s*=|href\s*=", re.IGNORECASE)


# --- Inputs and results ------------------------------------------------------

@dataclass(frozen=True)
class RawEmail:
    from_address: str
    subject: str
    to_address: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None
    date: Optional[str] = None
    message_id: Optional[str] = None

    def as_text(self) -> str:
        """Every populated field, one per line."""
        parts = [self.from_address, self.to_address, self.subject,
                 self.text, self.html, self.date, self.message_id]
        return "\n".join(part for part in parts if part)


@dataclass(frozen=True)
class ParsedTransaction:
    transaction_type: TransactionType
    amount: Decimal
    sender_name: str
    recipient_name: str
    note: Optional[str]
    token: Optional[str]
    email_subject: str
    email_from: str
    email_date: Optional[str] = None

    @property
    def counterparty(self) -> str:
        return self.recipient_name if self.sender_name == YOU else self.sender_name


@dataclass(frozen=True)
class Unparseable:
    reason: str


ParseResult = Union[ParsedTransaction, Unparseable]


# --- Subject patterns --------------------------------------------------------

@dataclass(frozen=True)
class SubjectMatch:
    transaction_type: TransactionType
    counterparty: str
    amount_text: str
    counterparty_is_sender: bool


@dataclass(frozen=True)
class SubjectPattern:
    """
    One named subject shape. ``regex`` must define ``name`` and ``amount`` groups.
    """
    name: str
    transaction_type: TransactionType
    regex: Pattern
    counterparty_is_sender: bool

    def match(self, subject: str) -> Optional[SubjectMatch]:
        m = self.regex.search(subject)
        if not m:
            return None
        return SubjectMatch(
            transaction_type=self.transaction_type,
            counterparty=clean_name(m.group("name")),
            amount_text=m.group("amount"),
            counterparty_is_sender=self.counterparty_is_sender,
        )


# The dollar sign is required; payee names can contain words like "7"
_AMT = r"\$(?P<amount>\d\S*)"

# Order matters: first match wins
SUBJECT_PATTERNS: Tuple[SubjectPattern, ...] = (
    SubjectPattern(
        name="you_paid",
        transaction_type=TransactionType.PAYMENT_SENT,
        regex=re.compile(r"^You paid (?P<name>.+?) " + _AMT, re.IGNORECASE),
        counterparty_is_sender=False,
    ),
    SubjectPattern(
        name="paid_you",
        transaction_type=TransactionType.PAYMENT_RECEIVED,
        regex=re.compile(r"^(?P<name>.+?) paid you " + _AMT, re.IGNORECASE),
        counterparty_is_sender=True,
    ),
    SubjectPattern(
        name="you_requested",
        transaction_type=TransactionType.REQUEST_SENT,
        regex=re.compile(r"^You requested " + _AMT + r" from (?P<name>.+)$", re.IGNORECASE),
        counterparty_is_sender=False,
    ),
    SubjectPattern(
        name="requests",
        transaction_type=TransactionType.REQUEST_RECEIVED,
        regex=re.compile(r"^(?P<name>.+?) requests " + _AMT, re.IGNORECASE),
        counterparty_is_sender=True,
    ),
)


def match_subject(subject: str, patterns: Iterable[SubjectPattern] = SUBJECT_PATTERNS) -> Optional[SubjectMatch]:
    for pattern in patterns:
        matched = pattern.match(subject)
        if matched:
            logger.debug("Subject matched pattern %s", pattern.name)
            return matched
    return None


# --- Text helpers ------------------------------------------------------------

def clean_subject(subject: str) -> str:
    """ "Fwd: RE: Mike paid you $16.00" -> "Mike paid you $16.00" """
    return _FORWARD_PREFIX.sub("", subject or "").strip()


def clean_name(name: str) -> str:
    return _FORWARD_PREFIX.sub("", name).strip()


def parse_amount(amount_text: str) -> Optional[Decimal]:
    """
    "16.00" -> Decimal("16.00"), "1,234.56" -> Decimal("1234.56").
    Returns None for anything that is not a plain number once thousands
    separators and trailing sentence punctuation are removed.
    """
    cleaned = amount_text.replace(",", "").rstrip(".!?;:)")
    if not _AMOUNT_TEXT.match(cleaned):
        return None
    try:
        return to_money(Decimal(cleaned))
    except InvalidOperation:
        return None


def strip_html(markup: str) -> str:
    text = re.sub(r"<(style|script|head)\b[^>]*>.*?</\1\s*>", "", markup, flags=re.IGNORECASE | re.DOTALL)
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"</p\s*>", "\n\n", text, flags=re.IGNORECASE)
    text = re.sub(r"</(div|tr|li|h\d)\s*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = html_lib.unescape(text).replace("\xa0", " ")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n\s*\n\s*\n+", "\n\n", text)
    return text.strip()


def is_markup_noise(text: Optional[str]) -> bool:
    """
    True for strings that are almost certainly leftovers of stripped HTML:
    CSS properties, bare hex colours, tag/attribute syntax, or mostly
    punctuation (under 30% alphanumeric).
    """
    if not text or not text.strip():
        return True
    if _CSS_NOISE.search(text) or _HTML_NOISE.search(text):
        return True
    alphanumeric = sum(1 for ch in text if ch.isalnum())
    return alphanumeric < len(text) * 0.3


# --- Note and token extraction -----------------------------------------------

@lru_cache(maxsize=16)
def _namespace_pattern(namespaces: Tuple[str, ...]) -> Pattern:
    # Longest first so "payment" wins over "pay"
    ordered = sorted({ns.lower() for ns in namespaces}, key=len, reverse=True)
    alternation = "|".join(re.escape(ns) for ns in ordered)
    return re.compile(r"#(?P<ns>" + alternation + r")[-_](?P<id>[\w-]+)", re.IGNORECASE)


def extract_note(text: Optional[str], config: ReconciliationConfig) -> Optional[str]:
    """
    First acceptable note candidate, tried in order:
    a. a quoted string (not an attribute value)
    b. a "Note:" / "Message:" / 'for "..."' label
    c. a whole line holding a recognised hashtag
    """
    if not text:
        return None
    limit = config.max_note_length

    for m in _QUOTED.finditer(text):
        candidate = m.group(1).strip()
        if candidate and len(candidate) < limit and not is_markup_noise(candidate):
            return candidate

    for pattern in _LABELS:
        for m in pattern.finditer(text):
            candidate = m.group(1).strip()
            if candidate and len(candidate) < limit and not is_markup_noise(candidate):
                return candidate

    hashtag = _namespace_pattern(tuple(config.token_namespaces))
    for line in text.splitlines():
        line = line.strip()
        if hashtag.search(line) and len(line) < limit and not is_markup_noise(line):
            return line

    return None


def extract_token(text: Optional[str], config: ReconciliationConfig) -> Optional[str]:
    """
    "#dinkup-<id>" style tag from a whitelisted namespace, else any hashtag
    carrying a UUID. Bare hex colours (#2f3033) never match either form.
    """
    if not text:
        return None

    m = _namespace_pattern(tuple(config.token_namespaces)).search(text)
    if m:
        return m.group(0).rstrip("-_")

    m = _UUID_TAG.search(text)
    if m:
        return m.group(0)

    return None


def decode_token(token: Optional[str], config: ReconciliationConfig) -> Optional[str]:
    """
    Payment id carried by a reconciliation tag, or None.

    "#dinkup-abc-123" -> "abc-123". Tags in a non-payment namespace
    ("#session-...") decode to nothing.
    """
    if not token:
        return None

    m = _namespace_pattern(tuple(config.token_namespaces)).fullmatch(token)
    if m:
        if m.group("ns").lower() not in config.obligation_namespaces:
            return None
        payment_id = m.group("id")
        return payment_id.lower() if _UUID_ONLY.fullmatch(payment_id) else payment_id

    m = _UUID_ONLY.search(token)
    if m:
        return m.group(0).lower()

    return None


def _first(values: Iterable[Optional[str]], extractor, config: ReconciliationConfig) -> Optional[str]:
    for value in values:
        found = extractor(value, config)
        if found:
            return found
    return None


# --- Entry point -------------------------------------------------------------

def email_body(email: RawEmail) -> str:
    """Plain text when supplied, otherwise the HTML part with tags stripped."""
    if email.text and email.text.strip():
        return email.text
    return strip_html(email.html or "")


def parse_email(email: RawEmail, config: ReconciliationConfig) -> ParseResult:
    """
    Parse a forwarded Venmo email.

    Returns:
        ParsedTransaction, or Unparseable when the subject is not a known
        transaction shape or its amount is malformed
    """
    subject = clean_subject(email.subject)

    matched = match_subject(subject)
    if not matched:
        return Unparseable(reason="subject does not describe a transaction")

    amount = parse_amount(matched.amount_text)
    if amount is None:
        logger.info("Malformed amount %r in subject %r", matched.amount_text, email.subject)
        return Unparseable(reason=f"malformed amount: {matched.amount_text}")

    if matched.counterparty_is_sender:
        sender_name, recipient_name = matched.counterparty, YOU
    else:
        sender_name, recipient_name = YOU, matched.counterparty

    body = email_body(email)
    raw_text = email.as_text()

    note = _first((body, email.subject, raw_text), extract_note, config)
    token = _first((body, note, email.subject, raw_text), extract_token, config)

    return ParsedTransaction(
        transaction_type=matched.transaction_type,
        amount=amount,
        sender_name=sender_name,
        recipient_name=recipient_name,
        note=note,
        token=token,
        email_subject=email.subject,
        email_from=email.from_address,
        email_date=email.date,
    )
