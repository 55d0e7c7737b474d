"""Starlette transport for the webfetch MCP server.

- GET  /         -> server info
- GET  /health   -> liveness
- POST /mcp      -> single-shot JSON-RPC call, reply in the response body
- GET  /sse      -> opens a streaming session; first event names the message URL
- HEAD /sse      -> 200 + text/event-stream headers
- POST /message  -> posted call for ``?sessionId=`` (or ``Mcp-Session-Id``);
                    202 once queued, the reply arrives on the session's stream
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import uvicorn
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response, StreamingResponse
from starlette.routing import Route

from webfetch_lib.channel import StreamingChannelAdapter
from webfetch_lib.config import Settings, load_settings
from webfetch_lib.dispatcher import SERVER_NAME, SERVER_VERSION, ProtocolDispatcher, Retriever
from webfetch_lib.errors import INTERNAL_ERROR, SessionNotFound
from webfetch_lib.fetcher import ContentFetcher
from webfetch_lib.log import configure_logging
from webfetch_lib.sessions import SessionRegistry
from webfetch_lib.tools import ToolRegistry

LOGGER = logging.getLogger("webfetch.http")

SESSION_HEADER = "Mcp-Session-Id"
SSE_HEADERS = {
    "Cache-Control": "no-store",
    "Connection": "keep-alive",
    "X-Content-Type-Options": "nosniff",
}


async def _read_json(request: Request) -> tuple[object, Response | None]:
    try:
        return await request.json(), None
    except ValueError:
        return None, JSONResponse({"error": "invalid JSON"}, status_code=400)


def create_app(settings: Settings | None = None, *, fetcher: Retriever | None = None) -> Starlette:
    settings = settings or load_settings()
    tools = ToolRegistry()
    retriever = fetcher or ContentFetcher(user_agent=settings.user_agent)

    def new_dispatcher() -> ProtocolDispatcher:
        return ProtocolDispatcher(registry=tools, fetcher=retriever, fetch_timeout=settings.fetch_timeout)

    sessions = SessionRegistry()
    adapter = StreamingChannelAdapter(
        sessions,
        new_dispatcher,
        message_path=settings.message_path,
        keepalive_interval=settings.keepalive_interval,
        sole_session_fallback=settings.sole_session_fallback,
    )
    single_shot = new_dispatcher()

    async def info(_: Request) -> Response:
        return JSONResponse(
            {
                "name": SERVER_NAME,
                "version": SERVER_VERSION,
                "transports": ["streamable-http", "sse"],
                "status": "running",
                "description": "Web content fetching and conversion for LLMs",
                "endpoints": {
                    "mcp": "/mcp",
                    "sse": "/sse",
                    "message": settings.message_path,
                    "health": "/health",
                },
            }
        )

    async def health(_: Request) -> Response:
        return JSONResponse({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})

    async def post_mcp(request: Request) -> Response:
        payload, error = await _read_json(request)
        if error is not None:
            return error
        reply = await single_shot.handle(payload)
        if reply is None:
            return Response(status_code=202)
        status = 200
        if not reply.ok:
            status = 500 if reply.error_code == INTERNAL_ERROR else 400
        return JSONResponse(reply.to_dict(), status_code=status)

    async def sse_head(_: Request) -> Response:
        return Response(status_code=200, headers={**SSE_HEADERS, "Content-Type": "text/event-stream"})

    async def sse_open(_: Request) -> Response:
        session = adapter.open()
        return StreamingResponse(
            adapter.event_stream(session),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, SESSION_HEADER: session.id},
        )

    async def post_message(request: Request) -> Response:
        session_id = request.query_params.get("sessionId") or request.headers.get(SESSION_HEADER)
        payload, error = await _read_json(request)
        if error is not None:
            return error
        try:
            adapter.post(session_id, payload)
        except SessionNotFound as exc:
            LOGGER.info("Rejected posted call: %s", exc)
            return JSONResponse({"error": "session not found"}, status_code=404)
        return Response("Accepted", status_code=202)

    routes = [
        Route("/", info, methods=["GET"]),
        Route("/health", health, methods=["GET"]),
        Route("/mcp", post_mcp, methods=["POST"]),
        Route("/sse", sse_head, methods=["HEAD"]),
        Route("/sse", sse_open, methods=["GET"]),
        Route(settings.message_path, post_message, methods=["POST"]),
    ]
    app = Starlette(routes=routes)
    app.state.settings = settings
    app.state.sessions = sessions
    app.state.adapter = adapter
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "HEAD", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", SESSION_HEADER],
        expose_headers=[SESSION_HEADER],
        allow_credentials=False,
    )
    return app


def run(settings: Settings | None = None) -> None:
    settings = settings or load_settings()
    configure_logging(level=settings.log_level, log_path=settings.log_path)
    LOGGER.info(
        "Launching webfetch on %s:%d (MCP endpoint /mcp, SSE endpoint /sse, fallback=%s)",
        settings.host,
        settings.port,
        "on" if settings.sole_session_fallback else "off",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level="info")
