"""
Test conftest — isolate environment variables that the config loader,
producers and sinks read, so a developer's shell or CI secrets never leak
into tests. Also provides an in-memory chat sink.
"""
from __future__ import annotations

import pytest

from scout.config import RunSettings
from scout.sinks import DeliveryError

_ENV_VARS = [
    "SEARCH_CHANNEL_ID",
    "SEARCH_INTERVAL_HOURS",
    "SCOUT_CONFIG",
    "SLACK_BOT_TOKEN",
    "TELEGRAM_BOT_TOKEN",
    "ANTHROPIC_API_KEY",
]


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class RecordingSink:
    """Collects posted messages; optionally fails on chosen call numbers."""

    def __init__(self, fail_on: set[int] | None = None, fail_always: bool = False):
        self.posts: list[tuple[str, str, bool]] = []
        self.fail_on = fail_on or set()
        self.fail_always = fail_always
        self.calls = 0

    async def post(self, destination: str, text: str, *, link_preview: bool = False) -> None:
        self.calls += 1
        if self.fail_always or self.calls in self.fail_on:
            raise DeliveryError(f"channel_not_found (call {self.calls})")
        self.posts.append((destination, text, link_preview))

    @property
    def texts(self) -> list[str]:
        return [text for _, text, _ in self.posts]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def settings() -> RunSettings:
    return RunSettings(
        timeout_s=5,
        max_chunk_length=3900,
        starting_notice="starting",
        results_header="HEADER\n\n",
        empty_notice="nothing found",
        failure_prefix="FAILED:",
    )


@pytest.fixture
def make_sink():
    """Factory for sinks that fail on selected calls."""
    return RecordingSink
