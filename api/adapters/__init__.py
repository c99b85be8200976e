"""
Upstream export adapters.

This module provides adapters that turn exports copied or downloaded from
the upstream platforms into snapshot batches for article histories.

Supported adapters:
- NoteStatsAdapter: Text pasted from the publishing platform's stats page
- XAnalyticsAdapter: Post analytics CSV exported from X

Usage:
    from api.adapters import get_adapter

    adapter = get_adapter("x_analytics")
    batches, report = adapter.ingest(csv_text, articles)
"""

from typing import Type

from .base_adapter import BaseAdapter, IngestionError
from .note_stats_adapter import NoteStatsAdapter
from .x_analytics_adapter import XAnalyticsAdapter

# Adapter registry mapping source names to adapter classes
ADAPTER_REGISTRY: dict[str, Type[BaseAdapter]] = {
    "note_stats": NoteStatsAdapter,
    "x_analytics": XAnalyticsAdapter,
}


def get_adapter(source: str) -> BaseAdapter:
    """
    Get adapter instance by source name.

    Args:
        source: Source identifier (e.g., "note_stats", "x_analytics")

    Returns:
        Initialized adapter instance

    Raises:
        ValueError: If source is not found in registry
    """
    adapter_class = ADAPTER_REGISTRY.get(source)
    if not adapter_class:
        available = ", ".join(ADAPTER_REGISTRY.keys())
        raise ValueError(
            f"Unknown adapter source: '{source}'. Available adapters: {available}"
        )
    return adapter_class()


def list_adapters() -> list[str]:
    """List all available adapter source names."""
    return list(ADAPTER_REGISTRY.keys())


__all__ = [
    "BaseAdapter",
    "IngestionError",
    "NoteStatsAdapter",
    "XAnalyticsAdapter",
    "ADAPTER_REGISTRY",
    "get_adapter",
    "list_adapters",
]
