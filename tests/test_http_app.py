import json

import httpx
import pytest

from webfetch_lib.config import Settings
from webfetch_lib.http_app import SESSION_HEADER, create_app
from tests._fetch_test_helpers import FakeFetcher, call, fetch_call


@pytest.fixture
def app(fake_fetcher):
    return create_app(Settings(), fetcher=fake_fetcher)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.mark.anyio("asyncio")
async def test_info_and_health(client):
    info = await client.get("/")
    assert info.status_code == 200
    body = info.json()
    assert body["name"] == "webfetch"
    assert body["endpoints"]["sse"] == "/sse"
    assert body["endpoints"]["message"] == "/message"

    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"


@pytest.mark.anyio("asyncio")
async def test_single_shot_initialize(client):
    response = await client.post("/mcp", json=call("initialize", {}))
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == 1
    assert body["result"]["serverInfo"]["name"] == "webfetch"


@pytest.mark.anyio("asyncio")
async def test_single_shot_fetch(client, fake_fetcher):
    response = await client.post("/mcp", json=fetch_call({"url": "https://example.com/"}))
    assert response.status_code == 200
    result = response.json()["result"]
    assert json.loads(result["content"][0]["text"])["content"] == "# Hi\n\nWorld"
    assert fake_fetcher.calls == [("https://example.com/", 10.0)]


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize(
    "payload, code",
    [
        ({"jsonrpc": "1.0", "id": 1, "method": "initialize"}, -32600),
        (call("resources/list"), -32601),
    ],
)
async def test_single_shot_protocol_errors_are_400(client, payload, code):
    response = await client.post("/mcp", json=payload)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == code


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize(
    "params",
    [{"name": "nope"}, {"name": "fetch", "arguments": {}}, {"name": "fetch", "arguments": "x"}],
)
async def test_single_shot_tool_call_failures_are_500(client, params):
    response = await client.post("/mcp", json=call("tools/call", params, request_id=21))
    assert response.status_code == 500
    body = response.json()
    assert body["id"] == 21
    assert body["error"]["code"] == -32603


@pytest.mark.anyio("asyncio")
async def test_single_shot_notification_is_accepted(client):
    response = await client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert response.status_code == 202
    assert response.content == b""


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize("path", ["/mcp", "/message?sessionId=abc"])
async def test_invalid_json_body(client, path):
    response = await client.post(path, content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json() == {"error": "invalid JSON"}


@pytest.mark.anyio("asyncio")
async def test_message_for_unknown_session_is_404(client):
    response = await client.post("/message?sessionId=missing", json=call("ping"))
    assert response.status_code == 404
    assert response.json() == {"error": "session not found"}

    response = await client.post("/message", json=call("ping"), headers={SESSION_HEADER: "also-missing"})
    assert response.status_code == 404


@pytest.mark.anyio("asyncio")
async def test_message_for_open_session_is_queued(app, client):
    adapter = app.state.adapter
    session = adapter.open()
    try:
        response = await client.post(f"/message?sessionId={session.id}", json=call("ping", request_id=11))
        assert response.status_code == 202
        assert response.text == "Accepted"
        reply = await session.channel.next_reply(timeout=1.0)
        assert reply.id == 11
        assert reply.result == {}

        response = await client.post("/message", json=call("ping", request_id=12), headers={SESSION_HEADER: session.id})
        assert response.status_code == 202
        assert (await session.channel.next_reply(timeout=1.0)).id == 12
    finally:
        adapter.close(session.id)
    assert session.id not in app.state.sessions


@pytest.mark.anyio("asyncio")
async def test_sse_head_advertises_event_stream(client):
    response = await client.head("/sse")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-store"


@pytest.mark.anyio("asyncio")
async def test_cors_preflight_allows_any_origin(client):
    response = await client.options(
        "/mcp",
        headers={
            "Origin": "https://client.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_custom_message_path_is_routed():
    app = create_app(Settings(message_path="/messages"), fetcher=FakeFetcher())
    paths = {getattr(route, "path", None) for route in app.routes}
    assert "/messages" in paths
    assert "/message" not in paths
