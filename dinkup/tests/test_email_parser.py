"""
Venmo email parser tests.
"""

import pytest
from decimal import Decimal

from dinkup.app.domain.reconciliation.config import ReconciliationConfig
from dinkup.app.domain.reconciliation.email_parser import (
    ParsedTransaction,
    RawEmail,
    Unparseable,
    clean_subject,
    decode_token,
    extract_note,
    extract_token,
    is_markup_noise,
    parse_amount,
    parse_email,
    strip_html,
)
from dinkup.app.models.enums import TransactionType

CONFIG = ReconciliationConfig()
PAYMENT_ID = "3fa85f64-5717-4562-b3fc-2c963f66afa6"


def _email(subject, text=None, html=None, **kwargs):
    return RawEmail(from_address="venmo@venmo.com", subject=subject, text=text, html=html, **kwargs)


@pytest.mark.parametrize("subject, expected_type, sender, recipient", [
    ("You paid Jane Smith $20.00", TransactionType.PAYMENT_SENT, "You", "Jane Smith"),
    ("Mike Berkman paid you $16.00", TransactionType.PAYMENT_RECEIVED, "Mike Berkman", "You"),
    ("You requested $16.00 from Jane Smith", TransactionType.REQUEST_SENT, "You", "Jane Smith"),
    ("Jane Smith requests $16.00", TransactionType.REQUEST_RECEIVED, "Jane Smith", "You"),
])
def test_subject_patterns(subject, expected_type, sender, recipient):
    result = parse_email(_email(subject), CONFIG)

    assert isinstance(result, ParsedTransaction)
    assert result.transaction_type == expected_type
    assert result.sender_name == sender
    assert result.recipient_name == recipient


@pytest.mark.parametrize("subject, counterparty, amount", [
    ("You paid Court 7 Crew $48.00", "Court 7 Crew", Decimal("48.00")),
    ("Court 7 Crew paid you $12.50", "Court 7 Crew", Decimal("12.50")),
    ("You requested $16.00 from 3rd Street Dinkers", "3rd Street Dinkers", Decimal("16.00")),
])
def test_names_with_digits_keep_the_dollar_amount(subject, counterparty, amount):
    result = parse_email(_email(subject), CONFIG)

    assert isinstance(result, ParsedTransaction)
    assert result.counterparty == counterparty
    assert result.amount == amount


def test_forward_prefixes_are_stripped():
    assert clean_subject("Fwd: RE: fw: Mike paid you $16.00") == "Mike paid you $16.00"

    result = parse_email(_email("Fwd: Re: Mike paid you $16.00"), CONFIG)
    assert result.transaction_type == TransactionType.PAYMENT_RECEIVED
    assert result.sender_name == "Mike"
    assert result.email_subject == "Fwd: Re: Mike paid you $16.00"


def test_non_transaction_subject_is_unparseable():
    result = parse_email(_email("Your Venmo weekly summary"), CONFIG)
    assert isinstance(result, Unparseable)


@pytest.mark.parametrize("text, expected", [
    ("16.00", Decimal("16.00")),
    ("1,234.56", Decimal("1234.56")),
    ("16", Decimal("16.00")),
    ("16.00.", Decimal("16.00")),
    ("12abc", None),
    ("1.2.3", None),
])
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


def test_malformed_amount_makes_email_unparseable():
    result = parse_email(_email("Mike paid you $12abc"), CONFIG)
    assert isinstance(result, Unparseable)
    assert "12abc" in result.reason


def test_quoted_note_and_token_from_plain_text():
    body = f'Mike paid you $16.00\n\n"Pickleball - Weekend Warriors - Sat Jan 10 @ 1:00 PM #dinkup-{PAYMENT_ID}"\n'
    result = parse_email(_email("Mike paid you $16.00", text=body), CONFIG)

    assert result.amount == Decimal("16.00")
    assert result.note == f"Pickleball - Weekend Warriors - Sat Jan 10 @ 1:00 PM #dinkup-{PAYMENT_ID}"
    assert result.token == f"#dinkup-{PAYMENT_ID}"


def test_labelled_note():
    body = "Jane Smith paid you $16.00\nNote: court fees for Saturday\n"
    result = parse_email(_email("Jane Smith paid you $16.00", text=body), CONFIG)
    assert result.note == "court fees for Saturday"
    assert result.token is None


def test_html_body_used_when_no_plain_text():
    html = (
        "<html><head><style>p { font-family: Arial; color: #2f3033; }</style></head>"
        "<body><div class=\"header\">Mike paid you $16.00</div>"
        f"<p>&quot;Court fees #dinkup-{PAYMENT_ID}&quot;</p></body></html>"
    )
    result = parse_email(_email("Mike paid you $16.00", html=html), CONFIG)

    assert result.note == f"Court fees #dinkup-{PAYMENT_ID}"
    assert result.token == f"#dinkup-{PAYMENT_ID}"


def test_token_found_in_subject_when_body_has_none():
    subject = "Fwd: Mike paid you $16.00 #dinkup-abc-123"
    result = parse_email(_email(subject, text="Mike paid you $16.00"), CONFIG)
    assert result.token == "#dinkup-abc-123"


def test_strip_html():
    text = strip_html("<style>.x{margin:0}</style><p>Hello&nbsp;there</p><br/>World")
    assert "margin" not in text
    assert "Hello there" in text
    assert "World" in text


# Garbage rejection

@pytest.mark.parametrize("candidate", [
    "font-family: Helvetica, Arial",
    "#2f3033",
    "<div class=\"note\">",
    "margin: 0 auto",
    "--- || ** ::",
    "",
])
def test_markup_noise(candidate):
    assert is_markup_noise(candidate)


@pytest.mark.parametrize("candidate", [
    "Pickleball - Weekend Warriors - Sat Jan 10 @ 1:00 PM #dinkup-abc-123",
    "court fees",
    "thanks for the game!",
])
def test_real_notes_are_not_noise(candidate):
    assert not is_markup_noise(candidate)


def test_css_fragments_never_become_a_note():
    text = 'td { font-family: Helvetica; color: #2f3033 } "#2f3033" "<div class=x>"'
    assert extract_note(text, CONFIG) is None


def test_attribute_values_are_not_quoted_notes():
    text = '<td style="padding: 4px" class="amount">Court fees</td>'
    assert extract_note(text, CONFIG) is None


def test_hex_colours_are_not_tokens():
    assert extract_token("color: #2f3033; background: #ffffff", CONFIG) is None


# Token decoding

def test_decode_token_namespaces():
    assert decode_token("#dinkup-abc-123", CONFIG) == "abc-123"
    assert decode_token("#payment_abc-123", CONFIG) == "abc-123"
    assert decode_token("#pay-abc-123", CONFIG) == "abc-123"
    # session tags identify sessions, not payments
    assert decode_token("#session-abc-123", CONFIG) is None
    assert decode_token(None, CONFIG) is None


def test_namespaced_uuid_decodes_lowercase():
    assert decode_token(f"#DINKUP-{PAYMENT_ID.upper()}", CONFIG) == PAYMENT_ID
    assert decode_token(f"#dinkup-{PAYMENT_ID}", CONFIG) == PAYMENT_ID
    # non-uuid ids keep their case
    assert decode_token("#dinkup-ABC-123", CONFIG) == "ABC-123"


def test_uuid_hashtag_fallback():
    text = f"see #court{PAYMENT_ID.upper()} thanks"
    token = extract_token(text, CONFIG)

    assert token == f"#court{PAYMENT_ID.upper()}"
    assert decode_token(token, CONFIG) == PAYMENT_ID


def test_custom_namespaces_come_from_config():
    config = ReconciliationConfig(token_namespaces=("club",), obligation_namespaces=("club",))

    assert extract_token("paid #club-xyz-1", config) == "#club-xyz-1"
    assert decode_token("#club-xyz-1", config) == "xyz-1"
    assert extract_token("paid #dinkup-xyz-1", config) is None
