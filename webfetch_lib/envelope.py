from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping

from webfetch_lib.errors import InvalidRequest, ProtocolError

JSONRPC_VERSION = "2.0"

RequestId = str | int | float | None


def _extract_id(payload: Any) -> RequestId:
    if isinstance(payload, Mapping):
        value = payload.get("id")
        if isinstance(value, bool):
            return None
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if isinstance(value, (str, int, float)):
            return value
    return None


@dataclass(frozen=True)
class CallEnvelope:
    id: RequestId
    method: str
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def parse(cls, payload: Any) -> "CallEnvelope":
        """Validate an inbound JSON-RPC object.

        Raises ``InvalidRequest`` for anything that is not a JSON-RPC 2.0 call;
        the offending ``id`` is attached so the reply can still echo it.
        """

        request_id = _extract_id(payload)
        if not isinstance(payload, Mapping):
            raise InvalidRequest("Invalid Request: expected a JSON object", request_id=request_id)
        if payload.get("jsonrpc") != JSONRPC_VERSION:
            raise InvalidRequest("Invalid Request: jsonrpc must be 2.0", request_id=request_id)
        method = payload.get("method")
        if not isinstance(method, str) or not method:
            raise InvalidRequest(
                "Invalid Request: method must be a non-empty string", request_id=request_id
            )
        params = payload.get("params")
        if params is None:
            params = {}
        elif not isinstance(params, Mapping):
            raise InvalidRequest("Invalid Request: params must be an object", request_id=request_id)
        return cls(id=request_id, method=method, params=dict(params))


@dataclass(frozen=True)
class ReplyEnvelope:
    id: RequestId
    result: dict[str, Any] | None = None
    error: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("ReplyEnvelope carries exactly one of result or error")

    @classmethod
    def success(cls, request_id: RequestId, result: dict[str, Any]) -> "ReplyEnvelope":
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: RequestId, exc: ProtocolError) -> "ReplyEnvelope":
        return cls(id=request_id, error=exc.to_dict())

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_code(self) -> int | None:
        return None if self.error is None else int(self.error["code"])

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "id": self.id}
        if self.error is not None:
            payload["error"] = dict(self.error)
        else:
            payload["result"] = self.result
        return payload
