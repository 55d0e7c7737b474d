from __future__ import annotations

from .channel import StreamChannel, StreamingChannelAdapter
from .config import Settings, load_settings
from .dispatcher import Method, ProtocolDispatcher
from .envelope import CallEnvelope, ReplyEnvelope
from .errors import (
    InternalError,
    InvalidArguments,
    InvalidRequest,
    MethodNotFound,
    ProtocolError,
    RetrievalError,
    SessionNotFound,
    ToolExecutionError,
    UnknownTool,
)
from .fetcher import ContentFetcher, RetrievedPayload
from .sessions import Session, SessionRegistry
from .tools import FETCH_TOOL, ToolDescriptor, ToolRegistry
from .transform import FetchResult

__all__ = [
    "StreamChannel",
    "StreamingChannelAdapter",
    "Settings",
    "load_settings",
    "Method",
    "ProtocolDispatcher",
    "CallEnvelope",
    "ReplyEnvelope",
    "InternalError",
    "InvalidArguments",
    "InvalidRequest",
    "MethodNotFound",
    "ProtocolError",
    "RetrievalError",
    "SessionNotFound",
    "ToolExecutionError",
    "UnknownTool",
    "ContentFetcher",
    "RetrievedPayload",
    "Session",
    "SessionRegistry",
    "FETCH_TOOL",
    "ToolDescriptor",
    "ToolRegistry",
    "FetchResult",
]
