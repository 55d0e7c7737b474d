from __future__ import annotations

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


class ProtocolError(Exception):
    """Failure surfaced to the caller as a JSON-RPC error envelope."""

    code = INTERNAL_ERROR

    def __init__(self, message: str, *, request_id: str | int | float | None = None):
        super().__init__(message)
        self.message = message
        self.request_id = request_id

    def to_dict(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message}


class InvalidRequest(ProtocolError):
    code = INVALID_REQUEST


class MethodNotFound(ProtocolError):
    code = METHOD_NOT_FOUND


class InvalidArguments(ProtocolError):
    """Unusable ``tools/call`` arguments, such as a missing ``url``."""

    code = INTERNAL_ERROR


class UnknownTool(ProtocolError):
    code = INTERNAL_ERROR

    def __init__(self, name: object):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InternalError(ProtocolError):
    code = INTERNAL_ERROR


class ToolExecutionError(RuntimeError):
    """Tool-level failure; reported inside a successful envelope with isError."""


class RetrievalError(ToolExecutionError):
    TIMEOUT = "timeout"
    NETWORK = "network"
    STATUS = "status"

    def __init__(self, reason: str, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class SessionNotFound(LookupError):
    def __init__(self, session_id: str | None):
        super().__init__(f"Session not found: {session_id or '<missing>'}")
        self.session_id = session_id
