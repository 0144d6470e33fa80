import httpx
import pytest


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_relays_json_and_appends_credentials(app_client, upstream):
    upstream.handler = lambda request: httpx.Response(200, json={"ok": True, "rooms": [{"roomid": "433"}]})

    response = await app_client.get("/ucl-proxy/roombookings/rooms", params={"token": "user-token", "siteid": "212"})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "rooms": [{"roomid": "433"}]}
    assert response.headers["access-control-allow-origin"] == "*"

    forwarded = upstream.requests[0]
    assert str(forwarded.url).startswith("https://uclapi.com/roombookings/rooms?")
    assert forwarded.url.params.multi_items() == [
        ("siteid", "212"),
        ("token", "user-token"),
        ("client_secret", "server-secret"),
    ]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_relays_upstream_error_status(app_client, upstream):
    upstream.handler = lambda request: httpx.Response(401, json={"ok": False, "error": "Token is invalid."})

    response = await app_client.get("/ucl-proxy/oauth/user/data", params={"token": "expired"})

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Token is invalid."}


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_forwards_post_body(app_client, upstream):
    upstream.handler = lambda request: httpx.Response(200, json={"ok": True})

    response = await app_client.post(
        "/ucl-proxy/libcal/space/book",
        params={"token": "user-token"},
        content=b'{"seat": 12}',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert upstream.requests[0].method == "POST"
    assert upstream.requests[0].content == b'{"seat": 12}'


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_rejects_missing_token(app_client, upstream):
    response = await app_client.get("/ucl-proxy/timetable/personal")

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "Missing token parameter"}
    assert upstream.requests == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_requires_server_secret(app_client, upstream, configured_settings, monkeypatch):
    monkeypatch.setattr(configured_settings, "ucl_client_secret", "")

    with_token = await app_client.get("/ucl-proxy/timetable/personal", params={"token": "user-token"})
    without_token = await app_client.get("/ucl-proxy/timetable/personal")

    assert with_token.status_code == 500
    assert without_token.status_code == 500
    assert with_token.json() == {"ok": False, "error": "Server configuration error"}
    assert upstream.requests == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_wraps_non_json_upstream_response(app_client, upstream):
    page = "<html><body>" + "Service Unavailable " * 30 + "</body></html>"
    upstream.handler = lambda request: httpx.Response(503, text=page, headers={"content-type": "text/html"})

    response = await app_client.get("/ucl-proxy/resources/desktops", params={"token": "user-token"})

    assert response.status_code == 502
    body = response.json()
    assert body["ok"] is False
    assert body["status"] == 503
    assert body["endpoint"] == "/resources/desktops"
    assert body["previewContent"] == page[:200]


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_answers_preflight(app_client, upstream):
    response = await app_client.options("/ucl-proxy/timetable/personal")

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "content-type" in response.headers["access-control-allow-headers"]
    assert upstream.requests == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_answers_browser_preflight_from_any_origin(app_client, upstream):
    response = await app_client.options(
        "/ucl-proxy/timetable/personal",
        headers={
            "Origin": "https://dashucl.example",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "content-type",
        },
    )

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "GET" in response.headers["access-control-allow-methods"]
    assert upstream.requests == []


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_cors_headers_ignore_frontend_origins(app_client, upstream):
    upstream.handler = lambda request: httpx.Response(200, json={"ok": True})

    response = await app_client.get(
        "/ucl-proxy/roombookings/rooms",
        params={"token": "user-token"},
        headers={"Origin": "https://dashucl.example"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in response.headers


@pytest.mark.integration
@pytest.mark.asyncio
async def test_proxy_relays_head_status(app_client, upstream):
    upstream.handler = lambda request: httpx.Response(401)

    response = await app_client.head("/ucl-proxy/roombookings/rooms", params={"token": "expired"})

    assert response.status_code == 401
    assert response.content == b""
    assert upstream.requests[0].method == "HEAD"
    assert response.headers["access-control-allow-origin"] == "*"

@pytest.mark.integration
@pytest.mark.asyncio
async def test_healthz(app_client):
    response = await app_client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["data"] == {"status": "ok", "redis": True}
    assert response.headers["x-request-id"]
