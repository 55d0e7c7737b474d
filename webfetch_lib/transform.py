"""Lossy HTML-to-markdown rewriting and character-window slicing.

The markdown conversion is an ordered chain of pure text passes. Each pass
assumes every earlier pass has run; the order in ``TRANSFORM_PASSES`` is part
of the contract. This is a best-effort approximation, not an HTML parser:
tags that span lines are matched only where noted.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import asdict, dataclass
from typing import Any, Callable, Mapping

from webfetch_lib.tools import DEFAULT_MAX_LENGTH, DEFAULT_START_INDEX

_FLAGS = re.IGNORECASE

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", _FLAGS)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", _FLAGS)
_HEADING_RE = re.compile(r"<h([1-3])\b[^>]*>(.*?)</h\1\s*>", _FLAGS)
_PARAGRAPH_RE = re.compile(r"<p\b[^>]*>(.*?)</p\s*>", _FLAGS)
_BREAK_RE = re.compile(r"<br\b\s*/?>", _FLAGS)
_ANCHOR_RE = re.compile(r"<a\b[^>]*?\bhref=\"([^\"]*)\"[^>]*>(.*?)</a\s*>", _FLAGS)
_BOLD_RE = re.compile(r"<(strong|b)\b[^>]*>(.*?)</\1\s*>", _FLAGS)
_ITALIC_RE = re.compile(r"<(em|i)\b[^>]*>(.*?)</\1\s*>", _FLAGS)
_ANY_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def strip_script_and_style(text: str) -> str:
    """Pass 1. Post: no ``<script>``/``<style>`` element (tags or body) remains.

    Blocks may span lines.
    """

    return _STYLE_RE.sub("", _SCRIPT_RE.sub("", text))


def rewrite_headings(text: str) -> str:
    """Pass 2. Pre: scripts gone. Post: single-line ``<h1>``-``<h3>`` are ``#`` lines plus a blank line."""

    return _HEADING_RE.sub(lambda m: f"{'#' * int(m.group(1))} {m.group(2)}\n\n", text)


def rewrite_paragraphs(text: str) -> str:
    """Pass 3. Post: single-line ``<p>`` elements are their inner text plus a blank line."""

    return _PARAGRAPH_RE.sub(r"\1\n\n", text)


def rewrite_line_breaks(text: str) -> str:
    """Pass 4. Post: every ``<br>``, ``<br/>`` and ``<br />`` is a newline."""

    return _BREAK_RE.sub("\n", text)


def rewrite_links(text: str) -> str:
    """Pass 5. Post: ``<a href="X">Y</a>`` is ``[Y](X)``; anchors without a quoted href are left for pass 7."""

    return _ANCHOR_RE.sub(r"[\2](\1)", text)


def rewrite_emphasis(text: str) -> str:
    """Pass 6. Post: ``<strong>``/``<b>`` are ``**…**``, ``<em>``/``<i>`` are ``*…*``."""

    text = _BOLD_RE.sub(r"**\2**", text)
    return _ITALIC_RE.sub(r"*\2*", text)


def strip_tags(text: str) -> str:
    """Pass 7. Post: no ``<…>`` markup remains, only text content."""

    return _ANY_TAG_RE.sub("", text)


def normalize_whitespace(text: str) -> str:
    """Pass 8. Post: no run of 3+ newlines; no leading/trailing whitespace."""

    return _BLANK_RUN_RE.sub("\n\n", text).strip()


TRANSFORM_PASSES: tuple[Callable[[str], str], ...] = (
    strip_script_and_style,
    rewrite_headings,
    rewrite_paragraphs,
    rewrite_line_breaks,
    rewrite_links,
    rewrite_emphasis,
    strip_tags,
    normalize_whitespace,
)


def to_markdown(html: str) -> str:
    for transform_pass in TRANSFORM_PASSES:
        html = transform_pass(html)
    return html


@dataclass(frozen=True)
class FetchArguments:
    url: str
    max_length: int = DEFAULT_MAX_LENGTH
    start_index: int = DEFAULT_START_INDEX
    raw: bool = False


@dataclass(frozen=True)
class FetchResult:
    content: str
    length: int
    url: str
    truncated: bool

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_text(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def _coerce_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def coerce_max_length(value: Any) -> int:
    number = _coerce_number(value)
    if number is None or int(number) <= 0:
        return DEFAULT_MAX_LENGTH
    return int(number)


def coerce_start_index(value: Any) -> int:
    number = _coerce_number(value)
    if number is None or number < 0:
        return DEFAULT_START_INDEX
    return int(number)


def coerce_raw(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def coerce_fetch_arguments(url: str, arguments: Mapping[str, Any]) -> FetchArguments:
    return FetchArguments(
        url=url,
        max_length=coerce_max_length(arguments.get("max_length")),
        start_index=coerce_start_index(arguments.get("start_index")),
        raw=coerce_raw(arguments.get("raw")),
    )


def slice_content(content: str, start_index: int, max_length: int) -> tuple[str, bool]:
    total = len(content)
    end = min(start_index + max_length, total)
    return content[start_index:end], end < total


def transform(
    raw: str,
    raw_flag: bool,
    start_index: int = DEFAULT_START_INDEX,
    max_length: int = DEFAULT_MAX_LENGTH,
    *,
    url: str = "",
) -> FetchResult:
    start_index = coerce_start_index(start_index)
    max_length = coerce_max_length(max_length)
    content = raw if raw_flag else to_markdown(raw)
    window, truncated = slice_content(content, start_index, max_length)
    return FetchResult(content=window, length=len(window), url=url, truncated=truncated)
