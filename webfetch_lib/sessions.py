from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Dict

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from webfetch_lib.channel import StreamChannel
    from webfetch_lib.dispatcher import ProtocolDispatcher

LOGGER = logging.getLogger("webfetch.sessions")


def _new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Session:
    id: str
    channel: "StreamChannel"
    dispatcher: "ProtocolDispatcher"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    inbox: "asyncio.Queue[object]" = field(default_factory=asyncio.Queue, repr=False)
    worker: "asyncio.Task[None] | None" = field(default=None, repr=False)


class SessionRegistry:
    """Owns the live sessions. The only writer of the session map.

    Every operation takes the same lock, so creation, lookup and removal are
    safe from concurrent request handlers (and from worker threads).
    """

    def __init__(self, *, id_factory: Callable[[], str] = _new_session_id):
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._id_factory = id_factory

    def create(self, channel: "StreamChannel", dispatcher: "ProtocolDispatcher") -> Session:
        with self._lock:
            session_id = self._id_factory()
            while session_id in self._sessions:
                session_id = self._id_factory()
            session = Session(id=session_id, channel=channel, dispatcher=dispatcher)
            self._sessions[session_id] = session
            count = len(self._sessions)
        LOGGER.info("Session %s created (%d active)", session_id, count)
        return session

    def lookup(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.pop(session_id, None)
            count = len(self._sessions)
        if session is not None:
            LOGGER.info("Session %s removed (%d active)", session_id, count)
        return session

    def resolve(self, session_id: str | None, *, allow_sole_fallback: bool = False) -> Session | None:
        """Lookup with the optional single-client compatibility fallback.

        When no ``session_id`` is given and exactly one session is open, that
        session is returned, but only if ``allow_sole_fallback``. An id that
        is given but unknown (for example a closed session's) never falls back.
        """

        with self._lock:
            if session_id:
                return self._sessions.get(session_id)
            if allow_sole_fallback and len(self._sessions) == 1:
                session = next(iter(self._sessions.values()))
                LOGGER.warning("Routing call without a session id to sole active session %s", session.id)
                return session
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)
