#!/usr/bin/env python3
"""Run the webfetch MCP server (single-shot /mcp plus SSE sessions).

Settings are read from the environment when ``main`` runs, not at import.
To serve under an external uvicorn use the app factory:
``uvicorn --factory webfetch_lib.http_app:create_app``.
"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from webfetch_lib.http_app import run  # noqa: E402


def main() -> None:
    try:
        run()
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
