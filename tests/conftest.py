import json
import os
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_secret"
os.environ.pop("PAYSTACK_WEBHOOK_SECRET", None)
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["CRON_SECRET"] = "cron-test-secret"

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bursar.auth.security import create_access_token
from bursar.core.models import FeeType, Guardian, Student, StudentGuardian
from bursar.db.session import Base, get_db
from bursar.integrations.paystack import PaystackClient, get_paystack_client
from bursar.integrations.resend import ResendMailer, get_mailer
from bursar.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"
ADMIN_USER_ID = "5b0c3f0e-8f7a-4c59-9a53-1f6d2b1e8c11"


class FakePaystack:
    """In-memory stand-in for the Paystack API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.transactions: Dict[str, dict] = {}
        self.fail_with: Optional[httpx.Response] = None

    def add_transaction(self, reference: str, amount_kobo: int, status: str = "success", **extra) -> dict:
        transaction = {
            "reference": reference,
            "amount": amount_kobo,
            "status": status,
            "currency": "NGN",
            "channel": "card",
            "paid_at": "2024-10-18T09:30:00.000Z",
            "customer": {"email": "payer@example.com"},
            "metadata": {},
        }
        transaction.update(extra)
        self.transactions[reference] = transaction
        return transaction

    def calls(self, path_prefix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(path_prefix)]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return self.fail_with
        path = request.url.path
        if request.method == "POST" and path == "/transaction/initialize":
            body = json.loads(request.content)
            reference = body["reference"]
            return _ok({
                "authorization_url": f"https://checkout.paystack.com/{reference}",
                "access_code": f"AC{reference[-6:]}",
                "reference": reference,
            })
        if request.method == "GET" and path.startswith("/transaction/verify/"):
            reference = path.rsplit("/", 1)[-1]
            if reference not in self.transactions:
                return httpx.Response(400, json={"status": False, "message": "Transaction reference not found"})
            return _ok(self.transactions[reference])
        if request.method == "POST" and path == "/subaccount":
            body = json.loads(request.content)
            return _ok({
                "subaccount_code": "ACCT_school001",
                "business_name": body["business_name"],
                "settlement_bank": "Access Bank",
                "account_number": body["account_number"],
                "percentage_charge": body["percentage_charge"],
            })
        if request.method == "POST" and path == "/split":
            return _ok({"split_code": "SPL_school001", "name": "School Fee Split"})
        if request.method == "GET" and path == "/bank":
            return _ok([
                {"name": "Access Bank", "code": "044", "slug": "access-bank"},
                {"name": "Zenith Bank", "code": "057", "slug": "zenith-bank"},
            ])
        if request.method == "GET" and path == "/bank/resolve":
            return _ok({"account_name": "GREENFIELD ACADEMY", "account_number": request.url.params["account_number"]})
        return httpx.Response(404, json={"status": False, "message": "Not found"})


def _ok(data) -> httpx.Response:
    return httpx.Response(200, json={"status": True, "message": "ok", "data": data})


class FakeResend:
    def __init__(self) -> None:
        self.sent: List[dict] = []
        self.fail_for: set = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if set(body["to"]) & self.fail_for:
            return httpx.Response(422, json={"message": "Invalid recipient"})
        self.sent.append(body)
        return httpx.Response(200, json={"id": f"email-{len(self.sent)}"})


@pytest.fixture()
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest inside the test transaction
    @event.listens_for(engine.sync_engine, "connect")
    def _no_implicit_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture()
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for a test and override FastAPI dependency."""
    async_session = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()


@pytest.fixture()
def paystack():
    fake = FakePaystack()
    app.dependency_overrides[get_paystack_client] = lambda: paystack_client(fake)
    yield fake
    app.dependency_overrides.pop(get_paystack_client, None)


def paystack_client(fake: FakePaystack) -> PaystackClient:
    return PaystackClient("sk_test_secret", base_url="https://api.paystack.test", transport=httpx.MockTransport(fake.handler))


@pytest.fixture()
def resend():
    fake = FakeResend()
    app.dependency_overrides[get_mailer] = lambda: resend_mailer(fake)
    yield fake
    app.dependency_overrides.pop(get_mailer, None)


def resend_mailer(fake: FakeResend) -> ResendMailer:
    return ResendMailer("re_test_key", base_url="https://api.resend.test", transport=httpx.MockTransport(fake.handler))


@pytest.fixture()
async def client(db_session: AsyncSession, paystack: FakePaystack, resend: FakeResend) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_token(role: str = "SUPER_ADMIN", permissions: Optional[dict] = None) -> str:
    return create_access_token(
        subject={"user_id": ADMIN_USER_ID, "role": role, "permissions": permissions or {}},
    )


@pytest.fixture()
def auth_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture()
async def student(db_session: AsyncSession) -> Student:
    s = Student(admission_number="GFA/2024/001", full_name="Ada Okafor", class_name="JSS1", is_active=True)
    guardian = Guardian(full_name="Chidi Okafor", email="parent@example.com")
    db_session.add_all([s, guardian])
    await db_session.flush()
    db_session.add(StudentGuardian(student_id=s.id, guardian_id=guardian.id, is_primary=True))
    await db_session.commit()
    return s


@pytest.fixture()
async def fee_type(db_session: AsyncSession) -> FeeType:
    ft = FeeType(name="Tuition", amount=Decimal("20000.00"), is_active=True)
    db_session.add(ft)
    await db_session.commit()
    return ft


@pytest.fixture()
def headers_for():
    """Build auth headers for a non-admin role with the given permissions."""

    def _headers(role: str, permissions: dict) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(role, permissions)}"}

    return _headers


@pytest.fixture()
def mailer(resend: FakeResend) -> ResendMailer:
    return resend_mailer(resend)
