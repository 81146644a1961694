from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.api.v1.reminders.service import run_fee_reminders
from bursar.core.exceptions import ConfigurationError
from bursar.core.models import FeeObligation, FeeType, Student
from bursar.integrations.resend import ResendMailer


async def _obligation(
    db: AsyncSession, student: Student, fee_type: FeeType, paid: str = "0", term: str = "first"
) -> FeeObligation:
    total = Decimal("20000")
    amount_paid = Decimal(paid)
    balance = max(Decimal("0"), total - amount_paid)
    status = "paid" if balance == 0 else ("partial" if amount_paid > 0 else "pending")
    ob = FeeObligation(
        student_id=student.id,
        fee_type_id=fee_type.id,
        session="2024/2025",
        term=term,
        total_amount=total,
        amount_paid=amount_paid,
        balance=balance,
        status=status,
    )
    db.add(ob)
    await db.commit()
    return ob


@pytest.mark.asyncio
async def test_sweep_counts_sent_failed_and_skipped(
    db_session: AsyncSession, student: Student, fee_type: FeeType, resend, mailer: ResendMailer
) -> None:
    no_contact = Student(admission_number="GFA/2024/010", full_name="No Email", class_name="JSS2")
    bounced = Student(admission_number="GFA/2024/011", full_name="Bad Email", class_name="JSS2", email="bounce@example.com")
    db_session.add_all([no_contact, bounced])
    await db_session.commit()

    await _obligation(db_session, student, fee_type, term="first")
    await _obligation(db_session, student, fee_type, paid="10000", term="second")
    await _obligation(db_session, student, fee_type, paid="20000", term="third")
    await _obligation(db_session, no_contact, fee_type)
    await _obligation(db_session, bounced, fee_type)
    resend.fail_for.add("bounce@example.com")

    summary = await run_fee_reminders(db_session, mailer, send_interval=0)

    assert summary.sent == 2
    assert summary.failed == 1
    assert summary.skipped == 1
    assert len(summary.errors) == 1
    assert "Invalid recipient" in summary.errors[0]
    assert [m["to"] for m in resend.sent] == [["parent@example.com"], ["parent@example.com"]]
    assert all("GFA/2024/001" in m["subject"] for m in resend.sent)
    assert "Outstanding Balance" in resend.sent[0]["html"]


@pytest.mark.asyncio
async def test_sweep_requires_email_configuration(db_session: AsyncSession) -> None:
    with pytest.raises(ConfigurationError):
        await run_fee_reminders(db_session, ResendMailer(None), send_interval=0)


@pytest.mark.asyncio
async def test_sweep_with_nothing_outstanding(db_session: AsyncSession, mailer: ResendMailer, resend) -> None:
    summary = await run_fee_reminders(db_session, mailer, send_interval=0)
    assert (summary.sent, summary.failed, summary.skipped, summary.errors) == (0, 0, 0, [])
    assert resend.sent == []


@pytest.mark.asyncio
async def test_run_endpoint_requires_cron_secret(
    client: AsyncClient, db_session: AsyncSession, student: Student, fee_type: FeeType, resend
) -> None:
    await _obligation(db_session, student, fee_type)

    denied = await client.post("/api/v1/reminders/run", headers={"X-Cron-Secret": "wrong"})
    assert denied.status_code == 401
    assert resend.sent == []

    allowed = await client.post("/api/v1/reminders/run", headers={"X-Cron-Secret": "cron-test-secret"})
    assert allowed.status_code == 200
    assert allowed.json()["sent"] == 1


@pytest.mark.asyncio
async def test_single_obligation_reminder(
    client: AsyncClient, auth_headers, db_session: AsyncSession, student: Student, fee_type: FeeType, resend
) -> None:
    outstanding = await _obligation(db_session, student, fee_type, paid="5000")
    settled = await _obligation(db_session, student, fee_type, paid="20000", term="second")

    response = await client.post(f"/api/v1/obligations/{outstanding.id}/reminder", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["sent"] is True
    assert response.json()["recipient"] == "parent@example.com"
    assert "15,000.00" in resend.sent[0]["html"]

    rejected = await client.post(f"/api/v1/obligations/{settled.id}/reminder", headers=auth_headers)
    assert rejected.status_code == 400
