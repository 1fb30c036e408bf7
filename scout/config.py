"""Configuration loader — reads config.yaml, validates with Pydantic.

The YAML holds the prompt, run behaviour, and which producer and sink to use.
Secrets (API keys, bot tokens) are read from the environment by the producers
and sinks themselves. The schedule's channel and interval can be overridden
with SEARCH_CHANNEL_ID / SEARCH_INTERVAL_HOURS.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)

PLACEHOLDER_CHANNEL_ID = "your-channel-id"
PROMPT_SEPARATOR = "\n\n---\n\n"


class PromptConfig(BaseModel):
    """Static instruction text sent on every run."""

    system: str
    task: str

    def render(self) -> str:
        """System prompt followed by the task-specific instructions."""
        return f"{self.system}{PROMPT_SEPARATOR}{self.task}"


class ScheduleConfig(BaseModel):
    """Where and how often the scheduled search runs."""

    channel_id: str | None = None
    interval_hours: float = 6

    @field_validator("interval_hours")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"interval_hours must be positive, got {v}")
        return v

    @property
    def enabled(self) -> bool:
        """A missing or placeholder channel turns the schedule off."""
        return bool(self.channel_id) and self.channel_id != PLACEHOLDER_CHANNEL_ID


class RunSettings(BaseModel):
    """Per-run behaviour of the executor. Shared read-only by every run."""

    model_config = ConfigDict(frozen=True)

    timeout_s: float = 180
    max_chunk_length: int = 3900
    cwd: str = "/tmp"
    permission_mode: str = "bypassPermissions"
    output_format: str = "stream-json"
    starting_notice: str = "🔍 *Running scheduled search...*"
    results_header: str = "🏢 *Search Results*\n\n"
    empty_notice: str = "📭 No new compelling results found in this search."
    failure_prefix: str = "❌ *Search failed:*"

    @field_validator("timeout_s", "max_chunk_length")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"value must be positive, got {v}")
        return v


class ProducerConfig(BaseModel):
    """Which query producer streams the answer."""

    kind: str = "claude_code"  # must exist in the producer registry
    model: str | None = None
    max_tokens: int = 8192     # langchain producer only


class SinkConfig(BaseModel):
    """Which chat platform receives notices and result chunks."""

    kind: str = "slack"        # must exist in the sink registry
    token_env: str | None = None  # overrides the sink's default env var


class ScoutConfig(BaseModel):
    """Top-level configuration."""

    prompt: PromptConfig
    schedule: ScheduleConfig = ScheduleConfig()
    run: RunSettings = RunSettings()
    producer: ProducerConfig = ProducerConfig()
    sink: SinkConfig = SinkConfig()

    # Auth for the on-demand endpoints
    api_key: str | None = None


def apply_env_overrides(raw: dict) -> dict:
    """Overlay SEARCH_CHANNEL_ID / SEARCH_INTERVAL_HOURS onto the raw config."""
    schedule = dict(raw.get("schedule") or {})

    channel_id = os.environ.get("SEARCH_CHANNEL_ID")
    if channel_id:
        schedule["channel_id"] = channel_id

    interval = os.environ.get("SEARCH_INTERVAL_HOURS")
    if interval:
        schedule["interval_hours"] = interval

    return {**raw, "schedule": schedule}


# ---------------------------------------------------------------------------
# Module-level config cache
# ---------------------------------------------------------------------------

_config: ScoutConfig | None = None
_config_path: str = "config.yaml"


def read_config(path: str) -> ScoutConfig:
    """Read a config file, apply env overrides, and validate. Does not cache."""
    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    raw = yaml.safe_load(config_file.read_text()) or {}
    return ScoutConfig(**apply_env_overrides(raw))


def load_config(path: str | None = None) -> ScoutConfig:
    """Read config.yaml from disk, validate, and cache."""
    global _config_path
    _config_path = path or os.environ.get("SCOUT_CONFIG", "config.yaml")
    return activate_config(read_config(_config_path))


def activate_config(config: ScoutConfig) -> ScoutConfig:
    """Make ``config`` the cached config returned by get_config()."""
    global _config
    _config = config
    logger.info(
        f"Loaded config: producer={config.producer.kind}, sink={config.sink.kind}, "
        f"schedule={'enabled' if config.schedule.enabled else 'disabled'}"
    )
    return config


def get_config() -> ScoutConfig:
    """Return cached config. Raises if not yet loaded."""
    if _config is None:
        raise RuntimeError("Config not loaded — call load_config() first")
    return _config


def reload_config() -> ScoutConfig:
    """Re-read config from disk without touching the cache.

    Called by the /reload endpoint, which activates the result only once
    the new scheduler has been built from it.
    """
    logger.info(f"Reloading config from {_config_path}")
    return read_config(_config_path)
