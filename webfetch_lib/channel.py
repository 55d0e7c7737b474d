"""Streaming sessions: one SSE channel plus one dispatcher per client.

A client opens the stream, learns its message URL from the initial
``endpoint`` event, then posts calls to that URL. Calls for one session are
dispatched one at a time, in arrival order, by a per-session worker task;
replies are pushed onto the channel in that same order.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Callable

from webfetch_lib.config import DEFAULT_KEEPALIVE_INTERVAL, DEFAULT_MESSAGE_PATH
from webfetch_lib.dispatcher import ProtocolDispatcher
from webfetch_lib.envelope import ReplyEnvelope
from webfetch_lib.errors import SessionNotFound
from webfetch_lib.sessions import Session, SessionRegistry

LOGGER = logging.getLogger("webfetch.channel")

_CLOSED = object()


def format_event(event: str, data: str) -> bytes:
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n".encode("utf-8")


KEEPALIVE_FRAME = b": keepalive\n\n"


class StreamChannel:
    """Outbound half of a session: an ordered queue of reply envelopes."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self.closed = False

    def push(self, reply: ReplyEnvelope) -> None:
        if self.closed:
            LOGGER.debug("Dropping reply %s for closed channel", reply.id)
            return
        self._queue.put_nowait(reply)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSED)

    async def next_reply(self, timeout: float | None = None) -> ReplyEnvelope | None:
        """Next queued reply; ``None`` once closed. Raises ``asyncio.TimeoutError`` when idle."""

        item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            return None
        return item


class StreamingChannelAdapter:
    def __init__(
        self,
        registry: SessionRegistry,
        dispatcher_factory: Callable[[], ProtocolDispatcher],
        *,
        message_path: str = DEFAULT_MESSAGE_PATH,
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        sole_session_fallback: bool = False,
    ):
        self.registry = registry
        self.dispatcher_factory = dispatcher_factory
        self.message_path = message_path
        self.keepalive_interval = keepalive_interval
        self.sole_session_fallback = sole_session_fallback

    def open(self) -> Session:
        session = self.registry.create(StreamChannel(), self.dispatcher_factory())
        session.worker = asyncio.get_running_loop().create_task(
            self._drain(session), name=f"webfetch-session-{session.id}"
        )
        return session

    def endpoint_for(self, session: Session) -> str:
        return f"{self.message_path}?sessionId={session.id}"

    def post(self, session_id: str | None, payload: Any) -> Session:
        session = self.registry.resolve(session_id, allow_sole_fallback=self.sole_session_fallback)
        if session is None or session.channel.closed:
            raise SessionNotFound(session_id)
        session.inbox.put_nowait(payload)
        return session

    def close(self, session_id: str) -> None:
        session = self.registry.remove(session_id)
        if session is None:
            return
        session.channel.close()
        if session.worker is not None and not session.worker.done():
            session.worker.cancel()
        LOGGER.info("Session %s closed", session_id)

    async def _drain(self, session: Session) -> None:
        while True:
            payload = await session.inbox.get()
            reply = await session.dispatcher.handle(payload)
            if reply is not None:
                session.channel.push(reply)

    async def event_stream(self, session: Session) -> AsyncIterator[bytes]:
        """SSE frames for ``session``; closes the session when iteration stops."""

        try:
            yield format_event("endpoint", self.endpoint_for(session))
            while True:
                try:
                    reply = await session.channel.next_reply(timeout=self.keepalive_interval)
                except asyncio.TimeoutError:
                    yield KEEPALIVE_FRAME
                    continue
                if reply is None:
                    break
                yield format_event("message", json.dumps(reply.to_dict(), ensure_ascii=False))
        finally:
            self.close(session.id)
