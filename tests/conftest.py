import os
import tempfile
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport
from sqlalchemy import select

# Configure the environment before the application modules are imported; they
# read it at import time.
_DB_DIR = tempfile.mkdtemp(prefix="donation-api-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_DB_DIR}/test.db")
os.environ.setdefault(
    "JWT_SECRET",
    "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef",
)
os.environ["COOKIE_SECURE"] = "false"
os.environ["AUTH_RATE_LIMIT"] = "1000"
os.environ["GENERAL_RATE_LIMIT"] = "10000"
os.environ["ALLOWED_ORIGINS"] = "http://allowed.example"
os.environ.setdefault("STRICT_TRANSPORT_SECURITY", "max-age=63072000; includeSubDomains")
os.environ.pop("PASSWORD_RESET_REQUEST_COOLDOWN", None)
os.environ.pop("PASSWORD_RESET_TTL_MINUTES", None)

from donation_api import models  # noqa: E402
from donation_api.database import Base, SessionLocal, engine  # noqa: E402
from donation_api.main import app  # noqa: E402

_client_ctx: ContextVar[httpx.AsyncClient | None] = ContextVar(
    "_client_ctx", default=None
)

TEST_PASSWORD = "supersecret"
_counter = 0


def get_client() -> httpx.AsyncClient:
    client = _client_ctx.get()
    if client is None:
        raise RuntimeError("The async client fixture must be used in this test")
    return client


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
        token = _client_ctx.set(async_client)
        try:
            yield async_client
        finally:
            _client_ctx.reset(token)


@pytest.fixture(scope="session")
def openapi_schema():
    """Build the OpenAPI schema once and cache it for all tests."""
    return app.openapi()


def unique_email(prefix: str = "alice") -> str:
    global _counter
    _counter += 1
    return f"{prefix}{_counter}@example.com"


async def register_user(
    client: httpx.AsyncClient | None = None,
    *,
    email: str | None = None,
    password: str = TEST_PASSWORD,
) -> tuple[str, str]:
    """Register a new account and return its email and user id."""

    client_instance = client or get_client()
    email = email or unique_email()
    resp = await client_instance.post(
        "/auth/register",
        json={
            "name": "Alice",
            "email": email,
            "password": password,
            "phone": "+620000000",
        },
    )
    assert resp.status_code == 200, resp.text
    return email, resp.json()["data"]["id"]


async def register_and_login(
    client: httpx.AsyncClient | None = None,
    *,
    password: str = TEST_PASSWORD,
) -> tuple[str, str, str]:
    """Create a new user and return an access token, user id and email."""

    client_instance = client or get_client()
    email, user_id = await register_user(client_instance, password=password)
    resp = await client_instance.post(
        "/auth/login", json={"email": email, "password": password}
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["token"], user_id, email


def get_user_row(email: str) -> models.User:
    with SessionLocal() as db:
        return db.execute(
            select(models.User).where(models.User.email == email)
        ).scalar_one()


def add_donation(user_id: str, amount: str, status: models.DonationStatus) -> None:
    with SessionLocal() as db:
        db.add(
            models.Donation(
                user_id=uuid.UUID(user_id),
                amount=Decimal(amount),
                status=status.value,
                created_at=datetime.now(UTC),
            )
        )
        db.commit()
