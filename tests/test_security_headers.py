"""Tests ensuring that the API includes secure HTTP headers on responses."""

from donation_api.config import SECURITY_HEADERS


async def test_security_headers_are_set(client):
    """The middleware should add the expected security headers to responses."""

    response = await client.get("/")

    assert response.status_code == 200
    for header, value in SECURITY_HEADERS.items():
        if header.lower() == "strict-transport-security":
            assert header not in response.headers
        else:
            assert response.headers.get(header) == value


async def test_security_headers_on_error_envelopes(client):
    response = await client.get("/auth/profile")

    assert response.status_code == 401
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Cache-Control"] == "no-store"


async def test_hsts_header_is_only_sent_for_https(client):
    """HSTS should be emitted only when the effective scheme is HTTPS."""

    response = await client.get("/", headers={"X-Forwarded-Proto": "https"})

    assert response.status_code == 200
    assert (
        response.headers.get("Strict-Transport-Security")
        == SECURITY_HEADERS["Strict-Transport-Security"]
    )


async def test_cors_allows_configured_origin(client):
    response = await client.options(
        "/auth/login",
        headers={
            "Origin": "http://allowed.example",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert response.headers["access-control-allow-origin"] == "http://allowed.example"


async def test_unknown_route_uses_envelope(client):
    response = await client.get("/does-not-exist")
    assert response.status_code == 404
    body = response.json()
    assert body["status"] == "error"
    assert body["http_code"] == 404


async def test_account_routes_are_never_cached(client):
    response = await client.get("/dashboard/login")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "no-store"


async def test_health_route_keeps_default_caching(client):
    response = await client.get("/")

    assert "Cache-Control" not in response.headers
