"""Description cache contract and in-process implementations.

Providers map (provider model, tool name) to a previously generated
description. They never generate descriptions themselves. Lookups and stores
are synchronous; usage recording is queued on a single background worker so
callers never wait on it. Storage failures are logged and count as misses.
"""

import dataclasses
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor

from toolrpc_server.cache.types import CacheStatistics, ToolDescription, utcnow

logger = logging.getLogger(__name__)


class ToolDescriptionCacheProvider(ABC):
    """Abstract description cache.

    Subclasses implement the underscore-prefixed storage hooks; the public
    methods add statistics, error isolation and asynchronous usage updates.
    """

    backend = "abstract"

    def __init__(self) -> None:
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._errors = 0
        self._usage_executor: ThreadPoolExecutor | None = None
        self._usage_lock = threading.Lock()
        self._closed = False

    # --- storage hooks ---

    @abstractmethod
    def _lookup(self, provider_model: str, tool_name: str) -> ToolDescription | None:
        ...

    @abstractmethod
    def _store(self, record: ToolDescription) -> None:
        ...

    @abstractmethod
    def _increment_usage(self, provider_model: str, tool_name: str) -> None:
        ...

    @abstractmethod
    def _count(self) -> int:
        ...

    @abstractmethod
    def _clear(self, provider_model: str) -> int:
        ...

    # --- public contract ---

    def lookup(self, provider_model: str, tool_name: str) -> str | None:
        """Return the cached description, or None on a miss or error."""
        record = self.get(provider_model, tool_name)
        return record.description if record is not None else None

    def get(self, provider_model: str, tool_name: str) -> ToolDescription | None:
        """Return the full cached record, or None on a miss or error."""
        try:
            record = self._lookup(provider_model, tool_name)
        except Exception as e:
            logger.warning(
                f"Cache lookup failed for {provider_model}/{tool_name}: {e}"
            )
            self._bump(errors=1, misses=1)
            return None

        if record is None:
            logger.debug(f"Cache miss: {provider_model}/{tool_name}")
            self._bump(misses=1)
        else:
            logger.debug(f"Cache hit: {provider_model}/{tool_name}")
            self._bump(hits=1)
        return record

    def store(
        self,
        provider_model: str,
        tool_name: str,
        description: str,
        generation_time_ms: int,
        parameters_info: str = "",
        tool_properties: str = "",
    ) -> bool:
        """Insert or replace the description for (model, tool).

        Returns:
            bool: True if the record was written.
        """
        record = ToolDescription(
            provider_model=provider_model,
            tool_name=tool_name,
            description=description,
            parameters_info=parameters_info,
            tool_properties=tool_properties,
            generation_time_ms=generation_time_ms,
        )
        try:
            self._store(record)
        except Exception as e:
            logger.error(f"Cache store failed for {provider_model}/{tool_name}: {e}")
            self._bump(errors=1)
            return False
        logger.debug(
            f"Cached description for {provider_model}/{tool_name} "
            f"({generation_time_ms}ms to generate)"
        )
        return True

    def record_usage(self, provider_model: str, tool_name: str) -> None:
        """Queue a usage increment. Returns immediately and never raises."""
        try:
            self._executor().submit(self._safe_increment, provider_model, tool_name)
        except RuntimeError as e:
            logger.debug(f"Usage update dropped for {provider_model}/{tool_name}: {e}")

    def statistics(self) -> CacheStatistics:
        try:
            entries = self._count()
        except Exception as e:
            logger.warning(f"Cache count failed: {e}")
            entries = 0
        with self._stats_lock:
            return CacheStatistics(
                backend=self.backend,
                hits=self._hits,
                misses=self._misses,
                entries=entries,
                errors=self._errors,
            )

    def clear(self, provider_model: str) -> int:
        """Delete all records of one provider model.

        Returns:
            int: Number of deleted records.
        """
        try:
            removed = self._clear(provider_model)
        except Exception as e:
            logger.error(f"Cache clear failed for {provider_model}: {e}")
            self._bump(errors=1)
            return 0
        logger.info(f"Cleared {removed} cached descriptions for {provider_model}")
        return removed

    def flush(self) -> None:
        """Block until every queued usage update has been applied."""
        with self._usage_lock:
            executor = self._usage_executor
        if executor is None:
            return
        marker: Future[None] = executor.submit(lambda: None)
        marker.result()

    def close(self) -> None:
        with self._usage_lock:
            self._closed = True
            executor, self._usage_executor = self._usage_executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    # --- internals ---

    def _executor(self) -> ThreadPoolExecutor:
        with self._usage_lock:
            if self._closed:
                raise RuntimeError("cache provider is closed")
            if self._usage_executor is None:
                self._usage_executor = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="toolrpc-cache-usage"
                )
            return self._usage_executor

    def _safe_increment(self, provider_model: str, tool_name: str) -> None:
        try:
            self._increment_usage(provider_model, tool_name)
        except Exception as e:
            logger.warning(f"Usage update failed for {provider_model}/{tool_name}: {e}")
            self._bump(errors=1)

    def _bump(self, hits: int = 0, misses: int = 0, errors: int = 0) -> None:
        with self._stats_lock:
            self._hits += hits
            self._misses += misses
            self._errors += errors


class NoOpCacheProvider(ToolDescriptionCacheProvider):
    """Provider used when caching is disabled; every lookup misses."""

    backend = "none"

    def _lookup(self, provider_model: str, tool_name: str) -> ToolDescription | None:
        return None

    def _store(self, record: ToolDescription) -> None:
        logger.debug(f"Caching disabled, not storing {record.tool_name}")

    def _increment_usage(self, provider_model: str, tool_name: str) -> None:
        pass

    def record_usage(self, provider_model: str, tool_name: str) -> None:
        pass

    def _count(self) -> int:
        return 0

    def _clear(self, provider_model: str) -> int:
        return 0


class InMemoryCacheProvider(ToolDescriptionCacheProvider):
    """Process-local provider backed by a dict."""

    backend = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._records: dict[tuple[str, str], ToolDescription] = {}
        self._lock = threading.Lock()

    def _lookup(self, provider_model: str, tool_name: str) -> ToolDescription | None:
        with self._lock:
            record = self._records.get((provider_model, tool_name))
            return dataclasses.replace(record) if record is not None else None

    def _store(self, record: ToolDescription) -> None:
        with self._lock:
            existing = self._records.get(record.key)
            if existing is not None:
                record.usage_count = existing.usage_count
                record.created_at = existing.created_at
                record.last_used_at = existing.last_used_at
            self._records[record.key] = record

    def _increment_usage(self, provider_model: str, tool_name: str) -> None:
        with self._lock:
            record = self._records.get((provider_model, tool_name))
            if record is None:
                logger.debug(f"No cached record to count usage for {provider_model}/{tool_name}")
                return
            record.usage_count += 1
            record.last_used_at = utcnow()

    def _count(self) -> int:
        with self._lock:
            return len(self._records)

    def _clear(self, provider_model: str) -> int:
        with self._lock:
            keys = [key for key in self._records if key[0] == provider_model]
            for key in keys:
                del self._records[key]
            return len(keys)
