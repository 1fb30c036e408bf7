"""Producer registry — name-based lookup for query producers.

A producer is an async generator function taking a ``QueryRequest`` and a
``CancellationToken`` and yielding ``StreamMessage`` values. Producers are
registered with ``@register("name")`` and selected by ``producer.kind`` in
``config.yaml``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from scout.cancellation import CancellationToken
    from scout.config import ProducerConfig
    from scout.messages import QueryRequest, StreamMessage

Producer = Callable[["QueryRequest", "CancellationToken"], AsyncIterator["StreamMessage"]]
ProducerFactory = Callable[["ProducerConfig"], Producer]

_registry: dict[str, ProducerFactory] = {}


def register(name: str) -> Callable[[ProducerFactory], ProducerFactory]:
    """Add a producer factory to the registry under ``name``::

        @register("claude_code")
        def make_producer(config: ProducerConfig) -> Producer:
            ...
    """

    def decorator(factory: ProducerFactory) -> ProducerFactory:
        _registry[name] = factory
        return factory

    return decorator


def resolve_producer(config: ProducerConfig) -> Producer:
    """Build the producer named by ``config.kind``.

    Raises ``ValueError`` if the name is not registered.
    """
    if config.kind not in _registry:
        raise ValueError(
            f"Unknown producer '{config.kind}'. Available: {list_producers()}"
        )
    return _registry[config.kind](config)


def list_producers() -> list[str]:
    """Return all registered producer names."""
    return sorted(_registry.keys())


# Auto-import implementations so the registry is populated on first access.
import scout.producers.claude_code as _claude_code  # noqa: E402, F401
import scout.producers.langchain_chat as _langchain_chat  # noqa: E402, F401
