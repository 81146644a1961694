from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.core.models import FeeAuditLog, FeeObligation, FeeType, Student


@pytest.mark.asyncio
async def test_assign_obligation_defaults_to_fee_type_amount(
    client: AsyncClient, auth_headers, student: Student, fee_type: FeeType, db_session: AsyncSession
) -> None:
    response = await client.post(
        "/api/v1/obligations",
        json={
            "student_id": str(student.id),
            "fee_type_id": str(fee_type.id),
            "session": "2024/2025",
            "term": "First",
            "allow_installments": True,
        },
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert Decimal(data["total_amount"]) == Decimal("20000")
    assert Decimal(data["balance"]) == Decimal("20000")
    assert Decimal(data["amount_paid"]) == Decimal("0")
    assert data["status"] == "pending"
    assert data["term"] == "first"

    audit = (
        await db_session.execute(select(FeeAuditLog).where(FeeAuditLog.reference_table == "fee_obligations"))
    ).scalars().all()
    assert [a.action_type for a in audit] == ["CREATE"]


@pytest.mark.asyncio
async def test_duplicate_assignment_conflicts(
    client: AsyncClient, auth_headers, student: Student, fee_type: FeeType
) -> None:
    payload = {
        "student_id": str(student.id),
        "fee_type_id": str(fee_type.id),
        "session": "2024/2025",
        "term": "first",
        "total_amount": "15000",
    }
    first = await client.post("/api/v1/obligations", json=payload, headers=auth_headers)
    assert first.status_code == 201
    second = await client.post("/api/v1/obligations", json=payload, headers=auth_headers)
    assert second.status_code == 409


@pytest.mark.asyncio
async def test_bulk_assign_skips_already_assigned(
    client: AsyncClient, auth_headers, student: Student, fee_type: FeeType, db_session: AsyncSession
) -> None:
    classmate = Student(admission_number="GFA/2024/002", full_name="Bola Ade", class_name="JSS1")
    other_class = Student(admission_number="GFA/2024/003", full_name="Emeka Obi", class_name="JSS2")
    db_session.add_all([classmate, other_class])
    await db_session.commit()

    await client.post(
        "/api/v1/obligations",
        json={"student_id": str(student.id), "fee_type_id": str(fee_type.id), "session": "2024/2025", "term": "first"},
        headers=auth_headers,
    )
    response = await client.post(
        "/api/v1/obligations/bulk",
        json={"fee_type_id": str(fee_type.id), "session": "2024/2025", "term": "first", "class_name": "JSS1"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["created"] == 1
    assert data["skipped_student_ids"] == [str(student.id)]

    rows = (await db_session.execute(select(FeeObligation))).scalars().all()
    assert {r.student_id for r in rows} == {student.id, classmate.id}


@pytest.mark.asyncio
async def test_bulk_assign_requires_target(client: AsyncClient, auth_headers, fee_type: FeeType) -> None:
    response = await client.post(
        "/api/v1/obligations/bulk",
        json={"fee_type_id": str(fee_type.id), "session": "2024/2025", "term": "first"},
        headers=auth_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_and_payment_options(
    client: AsyncClient, auth_headers, student: Student, fee_type: FeeType
) -> None:
    created = await client.post(
        "/api/v1/obligations",
        json={
            "student_id": str(student.id),
            "fee_type_id": str(fee_type.id),
            "session": "2024/2025",
            "term": "second",
            "allow_installments": True,
        },
        headers=auth_headers,
    )
    obligation_id = created.json()["id"]

    listed = await client.get(
        "/api/v1/obligations",
        params={"student_id": str(student.id), "status": "pending"},
        headers=auth_headers,
    )
    assert listed.status_code == 200
    assert [o["id"] for o in listed.json()] == [obligation_id]

    options = await client.get(f"/api/v1/obligations/{obligation_id}/payment-options", headers=auth_headers)
    assert options.status_code == 200
    body = options.json()
    assert [(o["option"], Decimal(o["amount"]), o["installment_number"]) for o in body["options"]] == [
        ("full", Decimal("20000"), None),
        ("first_installment", Decimal("10000"), 1),
    ]


@pytest.mark.asyncio
async def test_unknown_obligation_is_404(client: AsyncClient, auth_headers) -> None:
    response = await client.get("/api/v1/obligations/00000000-0000-0000-0000-000000000000", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_permissions_enforced(
    client: AsyncClient, headers_for, student: Student, fee_type: FeeType
) -> None:
    payload = {"student_id": str(student.id), "fee_type_id": str(fee_type.id), "session": "2024/2025", "term": "first"}

    unauthenticated = await client.post("/api/v1/obligations", json=payload)
    assert unauthenticated.status_code == 401

    reader = headers_for("Accountant", {"fees": {"read": True}})
    forbidden = await client.post("/api/v1/obligations", json=payload, headers=reader)
    assert forbidden.status_code == 403

    writer = headers_for("Accountant", {"fees": {"create": True}})
    allowed = await client.post("/api/v1/obligations", json=payload, headers=writer)
    assert allowed.status_code == 201
