"""
Integration tests for the transaction ingestion webhook.

Verifies auth, idempotent delivery and the end-to-end reconciliation
scenarios through POST /v1/transactions.
"""

import pytest
from sqlalchemy import func, select

from dinkup.app.core.config import settings
from dinkup.app.domain.ledger.ledger_service import LedgerService
from dinkup.app.domain.ledger.links import build_note
from dinkup.app.models.audit_log import AuditLog
from dinkup.app.models.enums import MatchMethod, PaymentStatus
from dinkup.app.models.payment import Payment
from dinkup.app.models.payment_transaction import PaymentTransaction
from dinkup.app.services.audit import AuditAction

URL = "/v1/transactions"


def _payload(subject, text=None, message_id="<msg-1@venmo.com>", date="Sat, 10 Jan 2026 15:02:11 +0000"):
    payload = {
        "from": "venmo@venmo.com",
        "to": "payments@dinkup.link",
        "subject": subject,
        "date": date,
    }
    if text is not None:
        payload["text"] = text
    if message_id is not None:
        payload["messageId"] = message_id
    return payload


async def _lock(db_session, seed):
    seeded = await seed(db_session)
    payments = await LedgerService.lock_roster(db_session, seeded.session.id)
    await db_session.commit()
    return seeded, {p.participant.player.name: p for p in payments}


async def _count(session_factory, model, *criteria):
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar_one()


async def _load(session_factory, model, object_id):
    async with session_factory() as session:
        return await session.get(model, object_id)


# Authentication

@pytest.mark.asyncio
async def test_missing_secret_rejected(client, session_factory):
    response = await client.post(URL, json=_payload("Mike paid you $16.00"))

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"
    assert await _count(session_factory, PaymentTransaction) == 0
    assert await _count(session_factory, AuditLog) == 0


@pytest.mark.asyncio
async def test_wrong_secret_rejected(client, session_factory):
    response = await client.post(
        URL, json=_payload("Mike paid you $16.00"), headers={"X-Webhook-Secret": "guess"}
    )

    assert response.status_code == 401
    assert await _count(session_factory, PaymentTransaction) == 0


@pytest.mark.asyncio
async def test_unconfigured_secret_is_a_server_error(client, webhook_headers, monkeypatch):
    monkeypatch.setattr(settings, "webhook_secret", None)

    response = await client.post(URL, json=_payload("Mike paid you $16.00"), headers=webhook_headers)

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_CONFIG_001"


@pytest.mark.asyncio
async def test_missing_subject_is_a_validation_error(client, webhook_headers):
    payload = _payload("x")
    del payload["subject"]

    response = await client.post(URL, json=payload, headers=webhook_headers)

    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "ERR_VALIDATION"
    errors = body["details"]["errors"]
    assert errors[0]["loc"] == ["body", "subject"]
    assert "input" not in errors[0]


# Scenarios

@pytest.mark.asyncio
async def test_happy_path_token_match(client, db_session, seed, session_factory, webhook_headers):
    """3 guests split $48 -> $16.00 each; the tagged payment email settles Jane's payment."""
    seeded, payments = await _lock(db_session, seed)
    jane = payments["Jane Smith"]
    assert jane.amount == 16

    note = build_note(seeded.session.proposed_date, seeded.session.proposed_time, seeded.pool.name, jane.id)
    body = f'jsmith paid you $16.00\n\n"{note}"\n\nView in Venmo'

    response = await client.post(URL, json=_payload("jsmith paid you $16.00", text=body), headers=webhook_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["matched"] is True
    assert data["duplicate"] is False
    assert data["transactionId"]

    record = await _load(session_factory, PaymentTransaction, data["transactionId"])
    assert record.payment_id == jane.id
    assert record.match_method == MatchMethod.AUTO_TOKEN
    assert record.token == f"#dinkup-{jane.id}"
    assert record.raw_payload["messageId"] == "<msg-1@venmo.com>"

    payment = await _load(session_factory, Payment, jane.id)
    assert payment.status == PaymentStatus.PAID
    assert payment.payment_date is not None

    others = [payments["Michael Chen"].id, payments["Robert Jones"].id]
    assert await _count(session_factory, Payment, Payment.id.in_(others), Payment.status == PaymentStatus.PENDING) == 2


@pytest.mark.asyncio
async def test_redelivery_is_idempotent(client, db_session, seed, session_factory, webhook_headers):
    _, payments = await _lock(db_session, seed)
    jane = payments["Jane Smith"]
    payload = _payload("Fwd: Jane Smith paid you $16.00", text=f'"Court #dinkup-{jane.id}"')

    first = await client.post(URL, json=payload, headers=webhook_headers)
    second = await client.post(URL, json=payload, headers=webhook_headers)

    assert first.status_code == second.status_code == 200
    assert second.json()["transactionId"] == first.json()["transactionId"]
    assert second.json()["duplicate"] is True
    assert second.json()["matched"] is True

    assert await _count(session_factory, PaymentTransaction) == 1
    assert await _count(
        session_factory, AuditLog, AuditLog.action == AuditAction.PAYMENT_STATUS_CHANGED
    ) == 1
    assert await _count(
        session_factory, AuditLog, AuditLog.action == AuditAction.TRANSACTION_DUPLICATE
    ) == 1


@pytest.mark.asyncio
async def test_dedup_without_message_id_uses_sender_subject_date(client, session_factory, webhook_headers):
    payload = _payload("Mike paid you $16.00", message_id=None)

    await client.post(URL, json=payload, headers=webhook_headers)
    repeat = await client.post(URL, json=payload, headers=webhook_headers)
    assert repeat.json()["duplicate"] is True

    later = _payload("Mike paid you $16.00", message_id=None, date="Sun, 11 Jan 2026 09:00:00 +0000")
    response = await client.post(URL, json=later, headers=webhook_headers)
    assert response.json()["duplicate"] is False

    assert await _count(session_factory, PaymentTransaction) == 2


@pytest.mark.asyncio
async def test_heuristic_fallback_flags_for_review(client, db_session, seed, session_factory, webhook_headers):
    """'Mike paid you $16.00', no tag, Michael Chen owes $16.00."""
    _, payments = await _lock(db_session, seed)
    michael = payments["Michael Chen"]

    response = await client.post(
        URL, json=_payload("Mike paid you $16.00", text="Mike paid you $16.00"), headers=webhook_headers
    )

    assert response.status_code == 200
    data = response.json()
    record = await _load(session_factory, PaymentTransaction, data["transactionId"])
    assert record.payment_id == michael.id
    assert record.match_method == MatchMethod.AUTO_HEURISTIC
    assert record.needs_review is True

    payment = await _load(session_factory, Payment, michael.id)
    assert payment.status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_no_match_is_stored_unlinked(client, session_factory, webhook_headers):
    response = await client.post(
        URL, json=_payload("Mike paid you $16.00", text="thanks!"), headers=webhook_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["matched"] is False

    record = await _load(session_factory, PaymentTransaction, data["transactionId"])
    assert record.payment_id is None
    assert record.match_method == MatchMethod.NONE
    assert record.needs_review is True


@pytest.mark.asyncio
async def test_unparseable_email_is_acknowledged(client, session_factory, webhook_headers):
    response = await client.post(
        URL, json=_payload("Your Venmo statement is ready", text="<p>hello</p>"), headers=webhook_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["transactionId"] is None
    assert data["matched"] is False

    assert await _count(session_factory, PaymentTransaction) == 0
    assert await _count(session_factory, AuditLog, AuditLog.action == AuditAction.EMAIL_UNPARSEABLE) == 1
