import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from tests._fetch_test_helpers import FakeFetcher  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_webfetch_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate config env between tests."""

    for var in list(os.environ):
        if var.startswith("WEBFETCH_"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("PORT", raising=False)


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher({"https://example.com/": "<h1>Hi</h1><p>World</p>"})
