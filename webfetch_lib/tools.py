from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from mcp import types

from webfetch_lib.errors import UnknownTool

DEFAULT_MAX_LENGTH = 5000
DEFAULT_START_INDEX = 0
FETCH_TOOL_NAME = "fetch"

FETCH_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "url": {
            "type": "string",
            "description": "URL to fetch",
        },
        "max_length": {
            "type": "number",
            "description": f"Maximum number of characters to return (default: {DEFAULT_MAX_LENGTH})",
            "default": DEFAULT_MAX_LENGTH,
        },
        "start_index": {
            "type": "number",
            "description": f"Start content from this character index (default: {DEFAULT_START_INDEX})",
            "default": DEFAULT_START_INDEX,
        },
        "raw": {
            "type": "boolean",
            "description": "Get raw content instead of markdown (default: false)",
            "default": False,
        },
    },
    "required": ["url"],
}


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: dict[str, Any]

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(self.input_schema.get("required", ()))

    def to_tool(self) -> types.Tool:
        return types.Tool(name=self.name, description=self.description, inputSchema=self.input_schema)

    def to_dict(self) -> dict[str, Any]:
        return self.to_tool().model_dump(mode="json", by_alias=True, exclude_none=True)


FETCH_TOOL = ToolDescriptor(
    name=FETCH_TOOL_NAME,
    description="Fetches a URL from the internet and extracts its contents as markdown.",
    input_schema=FETCH_INPUT_SCHEMA,
)


class ToolRegistry:
    """Static, ordered catalog of callable tools."""

    def __init__(self, descriptors: Iterable[ToolDescriptor] = (FETCH_TOOL,)):
        ordered = tuple(descriptors)
        names = [descriptor.name for descriptor in ordered]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate tool names in registry: {names}")
        self._descriptors = ordered
        self._by_name = {descriptor.name: descriptor for descriptor in ordered}

    def list(self) -> Sequence[ToolDescriptor]:
        return self._descriptors

    def describe(self, name: object) -> ToolDescriptor:
        descriptor = self._by_name.get(name) if isinstance(name, str) else None
        if descriptor is None:
            raise UnknownTool(name)
        return descriptor

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name in self._by_name
