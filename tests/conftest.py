from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tests.fixtures import responses_fake  # noqa: E402


@pytest.fixture(autouse=True)
def patch_responses_stream(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure Responses streaming uses deterministic fake fixtures."""

    monkeypatch.setattr(
        "weir.core.adapters.openai.create_responses_stream",
        responses_fake.create_responses_stream,
    )
