"""Sink registry — name-based lookup for chat delivery sinks.

A sink posts one pre-split message to a destination::

    await sink.post(channel_id, text, link_preview=True)

and raises ``DeliveryError`` when the transport or the platform refuses it.
Sinks register a factory with ``@register("name")`` and are selected by
``sink.kind`` in ``config.yaml``.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from scout.config import SinkConfig


class DeliveryError(Exception):
    """A chat message could not be delivered."""


class ChatSink(Protocol):
    async def post(
        self, destination: str, text: str, *, link_preview: bool = False
    ) -> None: ...


SinkFactory = Callable[["SinkConfig"], ChatSink]

_registry: dict[str, SinkFactory] = {}


def register(name: str) -> Callable[[SinkFactory], SinkFactory]:
    def decorator(factory: SinkFactory) -> SinkFactory:
        _registry[name] = factory
        return factory

    return decorator


def resolve_sink(config: SinkConfig) -> ChatSink:
    """Build the sink named by ``config.kind``.

    Raises ``ValueError`` if the name is not registered.
    """
    if config.kind not in _registry:
        raise ValueError(
            f"Unknown sink '{config.kind}'. Available: {list_sinks()}"
        )
    return _registry[config.kind](config)


def list_sinks() -> list[str]:
    """Return all registered sink names."""
    return sorted(_registry.keys())


def read_token(config: SinkConfig, default_env: str) -> str:
    """Read the sink's bot token from the environment."""
    env_var = config.token_env or default_env
    token = os.environ.get(env_var, "")
    if not token:
        raise RuntimeError(f"{env_var} environment variable is not set")
    return token


# Auto-import implementations so the registry is populated on first access.
import scout.sinks.slack as _slack  # noqa: E402, F401
import scout.sinks.telegram as _telegram  # noqa: E402, F401
