"""Tests covering the password reset flow."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import select

from donation_api import models
from donation_api.auth import verify_password
from donation_api.database import SessionLocal
from donation_api.utils import password_reset

from .conftest import TEST_PASSWORD, get_user_row, register_user

NEW_PASSWORD = "brand-new-pass"
BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock(monkeypatch):
    """Freeze the reset clock; tests move it by assigning ``clock.now``."""

    class _Clock:
        now = BASE_TIME

    frozen = _Clock()
    monkeypatch.setattr(password_reset, "_now", lambda: frozen.now)
    return frozen


def _tokens_for(email: str) -> list[models.PasswordResetToken]:
    user = get_user_row(email)
    with SessionLocal() as db:
        return list(
            db.execute(
                select(models.PasswordResetToken)
                .where(models.PasswordResetToken.user_id == user.id)
                .order_by(models.PasswordResetToken.id)
            ).scalars()
        )


def _latest_token(email: str) -> models.PasswordResetToken:
    tokens = _tokens_for(email)
    assert tokens
    return max(tokens, key=lambda t: password_reset._as_utc(t.updated_at))


async def _request_reset(client, email):
    return await client.post("/auth/forgot-password", json={"email": email})


async def _confirm(client, email, token, password=NEW_PASSWORD):
    return await client.post(
        "/auth/reset-password",
        json={"email": email, "password": password, "token": token},
    )


async def test_request_reset_issues_pending_token(client, clock):
    email, _ = await register_user(client)
    resp = await _request_reset(client, email)
    assert resp.status_code == 200
    body = resp.json()
    assert body == {
        "status": "success",
        "http_code": 200,
        "message": "Reset password link has been sent to email!",
        "data": None,
    }

    (record,) = _tokens_for(email)
    assert record.status == models.ResetTokenStatus.PENDING
    assert len(record.token) >= 43
    assert record.link == f"forgot-password/{record.token}"
    assert record.token not in resp.text


async def test_request_reset_unknown_email(client):
    resp = await _request_reset(client, "nobody-here@example.com")
    assert resp.status_code == 404
    body = resp.json()
    assert body["status"] == "error"
    assert body["message"] == "user not found!"


async def test_request_reset_is_throttled_per_user(client, clock):
    email, _ = await register_user(client)
    other_email, _ = await register_user(client)

    assert (await _request_reset(client, email)).status_code == 200

    clock.now = BASE_TIME + timedelta(seconds=100)
    throttled = await _request_reset(client, email)
    assert throttled.status_code == 400
    body = throttled.json()
    assert body["status"] == "failed"
    assert body["message"] == "Too many request!. Please wait"
    assert throttled.headers["Retry-After"] == "80"
    assert len(_tokens_for(email)) == 1

    # Another user's window is independent.
    assert (await _request_reset(client, other_email)).status_code == 200

    clock.now = BASE_TIME + timedelta(seconds=200)
    assert (await _request_reset(client, email)).status_code == 200
    tokens = _tokens_for(email)
    assert len(tokens) == 2
    assert all(t.status == models.ResetTokenStatus.PENDING for t in tokens)


async def test_confirm_reset_changes_password(client, clock):
    email, _ = await register_user(client)
    await _request_reset(client, email)
    record = _latest_token(email)

    resp = await _confirm(client, email, record.token)
    assert resp.status_code == 200
    assert resp.json()["message"] == "success change password!"
    assert resp.json()["data"] is None

    user = get_user_row(email)
    assert verify_password(NEW_PASSWORD, user.password_hash)
    assert not verify_password(TEST_PASSWORD, user.password_hash)
    assert _latest_token(email).status == models.ResetTokenStatus.USED

    login = await client.post(
        "/auth/login", json={"email": email, "password": NEW_PASSWORD}
    )
    assert login.status_code == 200


async def test_confirm_reset_rejects_reused_token(client, clock):
    email, _ = await register_user(client)
    await _request_reset(client, email)
    token = _latest_token(email).token

    assert (await _confirm(client, email, token)).status_code == 200
    again = await _confirm(client, email, token, password="another-pass")
    assert again.status_code == 401
    assert again.json()["message"] == "token already used"
    assert verify_password(NEW_PASSWORD, get_user_row(email).password_hash)


async def test_confirm_reset_rejects_expired_token(client, clock):
    email, _ = await register_user(client)
    await _request_reset(client, email)
    token = _latest_token(email).token

    clock.now = BASE_TIME + timedelta(minutes=61)
    resp = await _confirm(client, email, token)
    assert resp.status_code == 401
    assert resp.json()["message"] == "token expired"
    assert verify_password(TEST_PASSWORD, get_user_row(email).password_hash)
    assert _latest_token(email).status == models.ResetTokenStatus.PENDING


async def test_confirm_reset_rejects_token_of_other_user(client, clock):
    owner_email, _ = await register_user(client)
    attacker_email, _ = await register_user(client)
    await _request_reset(client, owner_email)
    token = _latest_token(owner_email).token

    resp = await _confirm(client, attacker_email, token)
    assert resp.status_code == 401
    body = resp.json()
    assert body["status"] == "failed"
    assert body["message"] == "error token"
    assert verify_password(TEST_PASSWORD, get_user_row(attacker_email).password_hash)
    assert _latest_token(owner_email).status == models.ResetTokenStatus.PENDING


async def test_confirm_reset_unknown_token_changes_nothing(client, clock):
    email, _ = await register_user(client)
    await _request_reset(client, email)
    before = [(t.id, t.status) for t in _tokens_for(email)]

    resp = await _confirm(client, email, "definitely-not-a-token")
    assert resp.status_code == 401
    assert resp.json()["message"] == "error token"
    assert [(t.id, t.status) for t in _tokens_for(email)] == before
    assert verify_password(TEST_PASSWORD, get_user_row(email).password_hash)


async def test_confirm_reset_unknown_user(client, clock):
    email, _ = await register_user(client)
    await _request_reset(client, email)
    token = _latest_token(email).token

    resp = await _confirm(client, "ghost@example.com", token)
    assert resp.status_code == 404
    assert resp.json()["message"] == "user not found!"


async def test_confirm_reset_validates_payload(client):
    resp = await client.post(
        "/auth/reset-password", json={"email": "a@example.com", "password": "123"}
    )
    assert resp.status_code == 400
    errors = resp.json()["data"]
    assert errors["token"] == ["The token field is required."]
    assert errors["password"] == ["The password must be at least 6 characters."]


def test_can_issue_measures_from_latest_pending_token():
    with SessionLocal() as db:
        user = models.User(
            name="Carol",
            email="carol-window@example.com",
            password_hash="x",
            phone="1",
        )
        db.add(user)
        db.flush()
        password_reset.issue_password_reset_token(db, user, now=BASE_TIME)
        db.flush()

        allowed, wait = password_reset.can_issue_password_reset(
            db, user, now=BASE_TIME + timedelta(seconds=179)
        )
        assert not allowed
        assert wait == pytest.approx(1.0)

        allowed, wait = password_reset.can_issue_password_reset(
            db, user, now=BASE_TIME + timedelta(seconds=180)
        )
        assert allowed
        assert wait == 0.0
        db.rollback()


def test_build_reset_link():
    assert password_reset.build_reset_link("abc") == "forgot-password/abc"
    assert password_reset.generate_reset_token() != password_reset.generate_reset_token()
