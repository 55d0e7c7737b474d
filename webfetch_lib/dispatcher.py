from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Protocol

from mcp import types

from webfetch_lib.config import DEFAULT_FETCH_TIMEOUT
from webfetch_lib.envelope import CallEnvelope, ReplyEnvelope
from webfetch_lib.errors import (
    InternalError,
    InvalidArguments,
    MethodNotFound,
    ProtocolError,
    ToolExecutionError,
)
from webfetch_lib.fetcher import ContentFetcher, RetrievedPayload
from webfetch_lib.tools import FETCH_TOOL_NAME, ToolRegistry
from webfetch_lib.transform import coerce_fetch_arguments, transform

LOGGER = logging.getLogger("webfetch.dispatcher")

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "webfetch"
SERVER_VERSION = "1.0.0"


class Method(Enum):
    INITIALIZE = "initialize"
    PING = "ping"
    INITIALIZED = "notifications/initialized"
    TOOLS_LIST = "tools/list"
    TOOLS_CALL = "tools/call"
    UNRECOGNIZED = None

    @classmethod
    def from_name(cls, name: str) -> "Method":
        try:
            return cls(name)
        except ValueError:
            return cls.UNRECOGNIZED


class Retriever(Protocol):
    async def retrieve(self, url: str, timeout: float = ...) -> RetrievedPayload: ...


Handler = Callable[[CallEnvelope], Awaitable["dict[str, Any] | None"]]


class ProtocolDispatcher:
    """Turns one JSON-RPC call into one reply (or none, for notifications).

    Holds no per-call state; a streaming session binds its own instance.
    """

    def __init__(
        self,
        *,
        registry: ToolRegistry | None = None,
        fetcher: Retriever | None = None,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    ):
        self.registry = registry or ToolRegistry()
        self.fetcher = fetcher or ContentFetcher()
        self.fetch_timeout = fetch_timeout
        self._handlers: dict[Method, Handler] = {
            Method.INITIALIZE: self._initialize,
            Method.PING: self._ping,
            Method.INITIALIZED: self._initialized,
            Method.TOOLS_LIST: self._tools_list,
            Method.TOOLS_CALL: self._tools_call,
            Method.UNRECOGNIZED: self._unrecognized,
        }
        missing = set(Method) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for methods: {sorted(m.name for m in missing)}")

    async def handle(self, payload: Any) -> ReplyEnvelope | None:
        try:
            call = CallEnvelope.parse(payload)
        except ProtocolError as exc:
            LOGGER.warning("Rejected envelope: %s", exc.message)
            return ReplyEnvelope.failure(exc.request_id, exc)
        return await self.dispatch(call)

    async def dispatch(self, call: CallEnvelope) -> ReplyEnvelope | None:
        method = Method.from_name(call.method)
        LOGGER.info("Dispatching %s (id=%s)", call.method, call.id)
        try:
            result = await self._handlers[method](call)
        except ProtocolError as exc:
            LOGGER.warning("%s failed: %s", call.method, exc.message)
            return ReplyEnvelope.failure(call.id, exc)
        except Exception as exc:
            LOGGER.exception("Unexpected failure handling %s", call.method)
            return ReplyEnvelope.failure(call.id, InternalError(str(exc) or type(exc).__name__))
        if result is None:
            return None
        return ReplyEnvelope.success(call.id, result)

    async def _initialize(self, call: CallEnvelope) -> dict[str, Any]:
        result = types.InitializeResult(
            protocolVersion=PROTOCOL_VERSION,
            capabilities=types.ServerCapabilities(tools=types.ToolsCapability()),
            serverInfo=types.Implementation(name=SERVER_NAME, version=SERVER_VERSION),
        )
        return _dump(result)

    async def _ping(self, call: CallEnvelope) -> dict[str, Any]:
        return {}

    async def _initialized(self, call: CallEnvelope) -> None:
        return None

    async def _tools_list(self, call: CallEnvelope) -> dict[str, Any]:
        return {"tools": [descriptor.to_dict() for descriptor in self.registry.list()]}

    async def _tools_call(self, call: CallEnvelope) -> dict[str, Any]:
        name = call.params.get("name")
        descriptor = self.registry.describe(name)
        arguments = call.params.get("arguments") or {}
        if not isinstance(arguments, Mapping):
            raise InvalidArguments("Invalid arguments: arguments must be an object")
        if descriptor.name == FETCH_TOOL_NAME:
            return await self._call_fetch(arguments)
        raise InternalError(f"Tool {descriptor.name} has no implementation")

    async def _call_fetch(self, arguments: Mapping[str, Any]) -> dict[str, Any]:
        url = arguments.get("url")
        if url is None or isinstance(url, (dict, list)):
            raise InvalidArguments("Invalid arguments: url is required and must be a string")
        url = str(url).strip()
        if not url:
            raise InvalidArguments("Invalid arguments: url must not be empty")

        args = coerce_fetch_arguments(url, arguments)
        try:
            payload = await self.fetcher.retrieve(args.url, self.fetch_timeout)
            result = transform(payload.text, args.raw, args.start_index, args.max_length, url=args.url)
        except ToolExecutionError as exc:
            LOGGER.warning("Fetch error for %s: %s", args.url, exc)
            return _text_result(f"Error fetching URL: {exc}", is_error=True)

        LOGGER.info("Fetch successful for %s, content length: %d", args.url, result.length)
        return _text_result(result.to_text())

    async def _unrecognized(self, call: CallEnvelope) -> None:
        raise MethodNotFound(f"Method not found: {call.method}")


# Added by newer mcp releases; not part of the 2024-11-05 result shapes.
_UNVERSIONED_FIELDS = ("resultType",)


def _dump(model: Any) -> dict[str, Any]:
    data = model.model_dump(mode="json", by_alias=True, exclude_none=True)
    for key in _UNVERSIONED_FIELDS:
        data.pop(key, None)
    return data


def _text_result(text: str, *, is_error: bool = False) -> dict[str, Any]:
    result = types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=is_error,
    )
    return _dump(result)
