"""Background replacement of fallback tool descriptions.

Discovery never waits for a model. After startup this service walks the
registry once: tools that only have the humanized fallback description get
their cached description if one exists, otherwise (when a generator is
configured) a freshly generated one that is stored for the next start.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from toolrpc_server.cache.provider import ToolDescriptionCacheProvider
from toolrpc_server.tools.builder import DescriptionSource, MethodToolBuilder, ToolMethod
from toolrpc_server.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


class DescriptionGenerator(Protocol):
    """External text generator producing tool descriptions."""

    async def generate_description(
        self, model: str, tool_name: str, input_schema: dict[str, Any]
    ) -> tuple[str, int]:
        ...


@dataclass
class BackfillReport:
    examined: int = 0
    from_cache: int = 0
    generated: int = 0
    unresolved: int = 0
    failed: int = 0


class DescriptionBackfillService:
    """Resolves cached or generated descriptions for fallback-described tools.

    Args:
        registry: Registry whose entries are refreshed in place.
        builder: Builder providing the description precedence rules.
        cache: Cache provider to read from and store into.
        provider_model: Model key for cache records and generation.
        generator: Optional generator used on cache misses.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        builder: MethodToolBuilder,
        cache: ToolDescriptionCacheProvider,
        provider_model: str,
        generator: DescriptionGenerator | None = None,
    ) -> None:
        self.registry = registry
        self.builder = builder
        self.cache = cache
        self.provider_model = provider_model
        self.generator = generator

    def start(self) -> "asyncio.Task[BackfillReport]":
        """Schedule ``run`` on the running event loop."""
        return asyncio.create_task(self.run(), name="toolrpc-description-backfill")

    async def run(self) -> BackfillReport:
        report = BackfillReport()
        for tool_method in self.registry:
            if tool_method.description_source is not DescriptionSource.FALLBACK:
                continue
            report.examined += 1
            await self._backfill(tool_method, report)

        logger.info(
            f"Description backfill finished: {report.from_cache} from cache, "
            f"{report.generated} generated, {report.unresolved} unresolved, "
            f"{report.failed} failed"
        )
        return report

    async def _backfill(self, tool_method: ToolMethod, report: BackfillReport) -> None:
        name = tool_method.name
        description, source = await asyncio.to_thread(
            self.builder.resolve_description, tool_method, self.cache, self.provider_model
        )
        if source is DescriptionSource.CACHE:
            self.registry.refresh_description(name, description, source)
            self.cache.record_usage(self.provider_model, name)
            report.from_cache += 1
            return

        if self.generator is None:
            report.unresolved += 1
            return

        schema = tool_method.tool.input_schema.model_dump(by_alias=True, exclude_none=True)
        try:
            description, generation_ms = await self.generator.generate_description(
                self.provider_model, name, schema
            )
        except Exception as e:
            logger.warning(f"Could not generate description for '{name}': {e}")
            report.failed += 1
            return

        annotations = tool_method.tool.annotations.model_dump(by_alias=True, exclude_none=True)
        await asyncio.to_thread(
            self.cache.store,
            self.provider_model,
            name,
            description,
            generation_ms,
            json.dumps(schema.get("properties", {}), sort_keys=True),
            json.dumps(annotations, sort_keys=True),
        )
        self.registry.refresh_description(name, description, DescriptionSource.GENERATED)
        report.generated += 1
