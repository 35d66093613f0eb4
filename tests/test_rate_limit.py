from donation_api import rate_limit
from donation_api.rate_limit import RateLimiter


async def test_rate_limit_respects_forwarded_for_header(client, monkeypatch):
    """Rate limiter should honor X-Forwarded-For for client IPs."""
    monkeypatch.setattr(rate_limit, "general_limiter", RateLimiter(1, 60))

    resp1 = await client.get("/", headers={"X-Forwarded-For": "1.1.1.1"})
    assert resp1.status_code == 200

    resp2 = await client.get("/", headers={"X-Forwarded-For": "1.1.1.1"})
    assert resp2.status_code == 429
    body = resp2.json()
    assert body["status"] == "failed"
    assert body["http_code"] == 429
    assert int(resp2.headers["Retry-After"]) >= 0

    resp3 = await client.get("/", headers={"X-Forwarded-For": "2.2.2.2"})
    assert resp3.status_code == 200


async def test_login_uses_credential_limiter(client, monkeypatch):
    monkeypatch.setattr(rate_limit, "auth_limiter", RateLimiter(1, 60))
    headers = {"X-Forwarded-For": "3.3.3.3"}
    payload = {"email": "limit@example.com", "password": "whatever"}

    first = await client.post("/auth/login", json=payload, headers=headers)
    assert first.status_code == 400
    second = await client.post("/auth/login", json=payload, headers=headers)
    assert second.status_code == 429

    # Other routes draw from the general budget.
    other = await client.get("/", headers=headers)
    assert other.status_code == 200


async def test_rate_limiter_hit_and_miss():
    """First request allowed, second blocked for same key."""
    limiter = RateLimiter(1, 60)

    allowed, remaining, _ = await limiter.is_allowed("1.1.1.1")
    assert allowed
    assert remaining == 0
    allowed, _, retry_after = await limiter.is_allowed("1.1.1.1")
    assert not allowed
    assert 0 < retry_after <= 60
    allowed, _, _ = await limiter.is_allowed("2.2.2.2")
    assert allowed


async def test_rate_limiter_window_slides():
    limiter = RateLimiter(2, 10)
    expired = rate_limit.time.monotonic() - 11
    limiter.history["k"].extend([expired, expired])

    allowed, remaining, _ = await limiter.is_allowed("k")
    assert allowed
    assert remaining == 1
    assert len(limiter.history["k"]) == 1


async def test_rate_limiter_forgets_idle_clients():
    limiter = RateLimiter(5, 10)
    now = rate_limit.time.monotonic()
    limiter.history["idle"].append(now - 30)
    limiter.history["active"].append(now - 1)
    limiter._last_sweep = now - 11

    allowed, _, _ = await limiter.is_allowed("fresh")

    assert allowed
    assert "idle" not in limiter.history
    assert set(limiter.history) == {"active", "fresh"}
