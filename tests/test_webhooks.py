import json
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.api.v1.webhooks import service as webhook_service
from bursar.api.v1.webhooks.service import compute_signature
from bursar.core.exceptions import ReconciliationError
from bursar.core.models import FeeObligation, FeePayment, FeeType, GatewayTransaction, ReconciliationIssue, Student

SECRET = "sk_test_secret"


def _charge_event(reference: str, amount_kobo: int, metadata=None, email: str = "payer@example.com") -> dict:
    return {
        "event": "charge.success",
        "data": {
            "reference": reference,
            "amount": amount_kobo,
            "status": "success",
            "currency": "NGN",
            "channel": "card",
            "paid_at": "2024-10-18T09:30:00.000Z",
            "customer": {"email": email},
            "metadata": metadata or {},
        },
    }


async def _post_event(client: AsyncClient, event: dict, signature: str = None, body: bytes = None):
    body = body if body is not None else json.dumps(event).encode()
    headers = {"Content-Type": "application/json"}
    headers["x-paystack-signature"] = signature if signature is not None else compute_signature(body, SECRET)
    return await client.post("/api/v1/webhooks/paystack", content=body, headers=headers)


async def _initialize(client: AsyncClient, headers, student: Student, fee_type: FeeType, **extra) -> dict:
    payload = {
        "student_id": str(student.id),
        "fee_type_id": str(fee_type.id),
        "session": "2024/2025",
        "term": "first",
    }
    payload.update(extra)
    response = await client.post("/api/v1/payments/initialize", json=payload, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


async def _payment_count(db: AsyncSession) -> int:
    return (await db.execute(select(func.count(FeePayment.id)))).scalar_one()


@pytest.mark.asyncio
async def test_tampered_body_is_rejected_without_side_effects(
    client: AsyncClient, student: Student, fee_type: FeeType, db_session: AsyncSession, resend
) -> None:
    event = _charge_event("TXN-TAMPER", 2000000, {"student_id": str(student.id), "fee_type_id": str(fee_type.id)})
    body = json.dumps(event).encode()
    signature = compute_signature(body, SECRET)
    tampered = body.replace(b"2000000", b"9000000")

    response = await _post_event(client, event, signature=signature, body=tampered)
    assert response.status_code == 401
    assert await _payment_count(db_session) == 0
    assert resend.sent == []


@pytest.mark.asyncio
async def test_missing_signature_is_rejected(client: AsyncClient, db_session: AsyncSession) -> None:
    response = await client.post(
        "/api/v1/webhooks/paystack",
        content=json.dumps(_charge_event("TXN-NOSIG", 100)).encode(),
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 401
    assert await _payment_count(db_session) == 0


@pytest.mark.asyncio
async def test_malformed_json_with_valid_signature(client: AsyncClient) -> None:
    response = await _post_event(client, {}, body=b"{not json")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_charge_success_records_against_checkout_intent(
    client: AsyncClient,
    auth_headers,
    student: Student,
    fee_type: FeeType,
    paystack,
    resend,
    db_session: AsyncSession,
) -> None:
    checkout = await _initialize(client, auth_headers, student, fee_type)
    reference = checkout["reference"]

    # Metadata on the wire names nothing; the stored intent supplies the context
    response = await _post_event(client, _charge_event(reference, 2000000))
    assert response.status_code == 200
    ack = response.json()
    assert ack["received"] is True
    assert ack["queued"] is False
    assert ack["receipt_number"].startswith("RCP")

    payment = (await db_session.execute(select(FeePayment))).scalar_one()
    assert payment.student_id == student.id
    assert payment.fee_type_id == fee_type.id
    assert payment.payment_method == "online"
    assert payment.amount_paid == Decimal("20000")
    assert payment.platform_fee == Decimal("1000")
    assert payment.school_amount == Decimal("19000")

    ob = (await db_session.execute(select(FeeObligation))).scalar_one()
    await db_session.refresh(ob)
    assert ob.status == "paid"
    assert ob.balance == Decimal("0")

    intent = (await db_session.execute(select(GatewayTransaction))).scalar_one()
    await db_session.refresh(intent)
    assert intent.status == "success"

    assert len(resend.sent) == 1
    assert resend.sent[0]["to"] == ["payer@example.com"]


@pytest.mark.asyncio
async def test_redelivery_records_once(
    client: AsyncClient, student: Student, fee_type: FeeType, resend, db_session: AsyncSession
) -> None:
    metadata = {
        "custom_fields": [
            {"display_name": "Session", "variable_name": "session", "value": "2024/2025"},
            {"display_name": "Term", "variable_name": "term", "value": "First"},
        ],
        "student_id": str(student.id),
        "fee_type_id": str(fee_type.id),
    }
    event = _charge_event("TXN-REDELIVER", 2000000, metadata)

    first = await _post_event(client, event)
    second = await _post_event(client, event)
    assert first.status_code == second.status_code == 200
    assert first.json()["receipt_number"] == second.json()["receipt_number"]
    assert await _payment_count(db_session) == 1
    assert len(resend.sent) == 1

    ob = (await db_session.execute(select(FeeObligation))).scalar_one()
    await db_session.refresh(ob)
    assert ob.term == "first"
    assert ob.amount_paid == Decimal("20000")


@pytest.mark.asyncio
async def test_unknown_metadata_still_records_unlinked_payment(
    client: AsyncClient, db_session: AsyncSession
) -> None:
    event = _charge_event("TXN-ORPHAN", 500000, {"student_id": "00000000-0000-0000-0000-000000000000"})
    response = await _post_event(client, event)
    assert response.status_code == 200
    payment = (await db_session.execute(select(FeePayment))).scalar_one()
    assert payment.student_id is None
    assert payment.obligation_id is None
    assert payment.amount_paid == Decimal("5000")


@pytest.mark.asyncio
@pytest.mark.parametrize("event_type", ["charge.failed", "transfer.success", "transfer.failed", "subscription.create"])
async def test_other_events_are_acknowledged(
    client: AsyncClient, db_session: AsyncSession, event_type: str
) -> None:
    response = await _post_event(client, {"event": event_type, "data": {"reference": "TXN-OTHER", "status": "failed"}})
    assert response.status_code == 200
    assert response.json() == {"received": True, "queued": False, "receipt_number": None}
    assert await _payment_count(db_session) == 0


@pytest.mark.asyncio
async def test_recording_failure_is_queued_then_retried(
    client: AsyncClient,
    auth_headers,
    student: Student,
    fee_type: FeeType,
    db_session: AsyncSession,
    monkeypatch,
) -> None:
    async def _broken(db, transaction):
        raise ReconciliationError("database unavailable")

    monkeypatch.setattr(webhook_service, "record_successful_transaction", _broken)
    event = _charge_event(
        "TXN-QUEUED",
        2000000,
        {"student_id": str(student.id), "fee_type_id": str(fee_type.id), "session": "2024/2025", "term": "first"},
    )
    response = await _post_event(client, event)
    assert response.status_code == 200
    assert response.json()["queued"] is True
    assert await _payment_count(db_session) == 0

    issue = (await db_session.execute(select(ReconciliationIssue))).scalar_one()
    assert issue.reference == "TXN-QUEUED"
    assert issue.source == "webhook"
    assert issue.status == "OPEN"

    listed = await client.get("/api/v1/reconciliation/issues", headers=auth_headers)
    assert [i["reference"] for i in listed.json()] == ["TXN-QUEUED"]

    retried = await client.post(f"/api/v1/reconciliation/issues/{issue.id}/retry", headers=auth_headers)
    assert retried.status_code == 200
    body = retried.json()
    assert body["status"] == "RESOLVED"
    assert body["attempts"] == 1
    assert body["payment_id"] is not None
    assert await _payment_count(db_session) == 1


@pytest.mark.asyncio
async def test_queue_failure_returns_500(
    client: AsyncClient, db_session: AsyncSession, monkeypatch
) -> None:
    from sqlalchemy.exc import OperationalError

    async def _broken(db, transaction):
        raise ReconciliationError("database unavailable")

    async def _broken_queue(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(webhook_service, "record_successful_transaction", _broken)
    monkeypatch.setattr(webhook_service, "queue_reconciliation_issue", _broken_queue)
    response = await _post_event(client, _charge_event("TXN-LOST", 100000))
    assert response.status_code == 500
