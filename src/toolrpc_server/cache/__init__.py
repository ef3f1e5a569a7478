"""Tool description cache providers.

Providers remember descriptions produced by an external generator so they
are not regenerated on every start.
"""

from toolrpc_server.cache.provider import (
    InMemoryCacheProvider,
    NoOpCacheProvider,
    ToolDescriptionCacheProvider,
)
from toolrpc_server.cache.sqlite import SQLiteCacheProvider
from toolrpc_server.cache.types import CacheStatistics, ToolDescription

__all__ = [
    "CacheStatistics",
    "InMemoryCacheProvider",
    "NoOpCacheProvider",
    "SQLiteCacheProvider",
    "ToolDescription",
    "ToolDescriptionCacheProvider",
    "create_cache_provider",
]


def create_cache_provider(backend: str, db_file: str = ":memory:") -> ToolDescriptionCacheProvider:
    """Create a provider for the configured backend name.

    Raises:
        ValueError: If the backend name is unknown.
    """
    if backend == "none":
        return NoOpCacheProvider()
    if backend == "memory":
        return InMemoryCacheProvider()
    if backend == "sqlite":
        return SQLiteCacheProvider(db_file)
    raise ValueError(f"Unknown cache backend: {backend}")
