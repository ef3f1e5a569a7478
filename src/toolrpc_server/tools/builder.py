"""Turns ``@action`` callables into published tools.

The builder never calls a model. Descriptions come from the decorator, a
static table passed in from configuration, or a humanized fallback; cached
descriptions are only consulted on demand through ``resolve_description``.
"""

import dataclasses
import inspect
import logging
import re
import time
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Mapping

from toolrpc_server.cache.provider import ToolDescriptionCacheProvider
from toolrpc_server.models.tools import Tool, ToolAnnotations
from toolrpc_server.tools.actions import (
    ActionMetadata,
    AgentMetadata,
    get_action_metadata,
)
from toolrpc_server.tools.errors import DiscoveryError
from toolrpc_server.tools.schema import SchemaGenerator, ToolSignature

logger = logging.getLogger(__name__)

DEFAULT_STATIC_DESCRIPTIONS: Mapping[str, str] = MappingProxyType(
    {
        "browse_web_and_return_text": (
            "Automates web browsing tasks and returns text content from the web pages"
        ),
        "browse_web_and_return_image": (
            "Automates web browsing tasks and returns screenshot images of web pages"
        ),
        "take_current_page_screenshot": (
            "Captures a screenshot of the current web page and returns it as a base64 encoded image"
        ),
        "search_web": "Performs web searches and returns relevant results",
        "extract_text": (
            "Extracts and processes text content from sources such as web pages and documents"
        ),
        "analyze_image": (
            "Analyzes images and provides descriptions or extracts information from visual content"
        ),
    }
)


class DescriptionSource(str, Enum):
    """Where a tool's description came from."""

    EXPLICIT = "explicit"
    STATIC = "static"
    CACHE = "cache"
    GENERATED = "generated"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ToolMethod:
    """A published tool together with everything needed to call it."""

    tool: Tool
    handler: Callable[..., Any]
    signature: ToolSignature
    description_source: DescriptionSource

    @property
    def name(self) -> str:
        return self.tool.name

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.handler)

    @property
    def timeout_ms(self) -> int | None:
        return self.tool.annotations.timeout_ms

    def with_description(
        self, description: str, source: DescriptionSource
    ) -> "ToolMethod":
        """Return a copy with a new description; name and schema are kept."""
        return dataclasses.replace(
            self,
            tool=self.tool.model_copy(update={"description": description}),
            description_source=source,
        )


def humanize(name: str) -> str:
    """Turn ``browseWeb`` or ``browse_web`` into ``browse web``."""
    spaced = re.sub(r"([A-Z])", r" \1", name).replace("_", " ")
    return " ".join(spaced.lower().split())


def fallback_description(name: str) -> str:
    return f"Tool for {humanize(name)}"


class MethodToolBuilder:
    """Builds ``ToolMethod`` records from decorated callables.

    Args:
        schema_generator: Generator used for input schemas.
        static_descriptions: Curated descriptions keyed by tool name. The
            mapping is copied into a read-only view.
    """

    def __init__(
        self,
        schema_generator: SchemaGenerator | None = None,
        static_descriptions: Mapping[str, str] | None = None,
    ) -> None:
        self.schema_generator = schema_generator or SchemaGenerator()
        merged = dict(DEFAULT_STATIC_DESCRIPTIONS)
        merged.update(static_descriptions or {})
        self.static_descriptions: Mapping[str, str] = MappingProxyType(merged)

    def build(
        self,
        func: Callable[..., Any],
        metadata: ActionMetadata | None = None,
        agent_metadata: AgentMetadata | None = None,
    ) -> ToolMethod:
        """Build a tool from a decorated function or bound method.

        Args:
            func: The callable to publish.
            metadata: Action metadata; read from the decorator when omitted.
            agent_metadata: Optional group metadata of the owning class.

        Returns:
            ToolMethod: The tool, its handler and parameter descriptors.

        Raises:
            DiscoveryError: If the callable is not decorated or its signature
                cannot be expressed as a tool.
        """
        start = time.perf_counter()
        func_name = getattr(func, "__name__", repr(func))

        if metadata is None:
            metadata = get_action_metadata(func)
        if metadata is None:
            raise DiscoveryError(func_name, "missing @action decorator")

        name = metadata.name or func_name
        if not name.strip():
            raise DiscoveryError(func_name, "tool name must not be empty")

        description, source = self._static_description(name, metadata)
        signature = self.schema_generator.describe(func, name)

        tool = Tool(
            name=name,
            description=description,
            input_schema=signature.schema,
            annotations=self._annotations(metadata, agent_metadata),
        )

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Built tool '{name}' in {elapsed_ms:.2f}ms ({source.value})")
        return ToolMethod(
            tool=tool,
            handler=func,
            signature=signature,
            description_source=source,
        )

    def resolve_description(
        self,
        tool_method: ToolMethod,
        cache: ToolDescriptionCacheProvider,
        provider_model: str,
    ) -> tuple[str, DescriptionSource]:
        """Resolve a description, consulting the cache for fallback ones.

        Explicit and static descriptions always win. Otherwise the cache is
        looked up by (provider model, tool name); on a miss the humanized
        fallback is returned.
        """
        if tool_method.description_source in (
            DescriptionSource.EXPLICIT,
            DescriptionSource.STATIC,
        ):
            return tool_method.tool.description, tool_method.description_source

        cached = cache.lookup(provider_model, tool_method.name)
        if cached:
            return cached, DescriptionSource.CACHE
        return fallback_description(tool_method.name), DescriptionSource.FALLBACK

    def _static_description(
        self, name: str, metadata: ActionMetadata
    ) -> tuple[str, DescriptionSource]:
        if metadata.description:
            return metadata.description, DescriptionSource.EXPLICIT
        static = self.static_descriptions.get(name)
        if static:
            return static, DescriptionSource.STATIC
        return fallback_description(name), DescriptionSource.FALLBACK

    @staticmethod
    def _annotations(
        metadata: ActionMetadata, agent_metadata: AgentMetadata | None
    ) -> ToolAnnotations:
        tags = list(metadata.tags)
        if agent_metadata is not None:
            tags.extend(t for t in agent_metadata.tags if t not in tags)
        return ToolAnnotations(
            group=agent_metadata.group if agent_metadata else None,
            version=agent_metadata.version if agent_metadata else None,
            priority=agent_metadata.priority if agent_metadata else 0,
            examples=list(metadata.examples),
            timeout_ms=metadata.timeout_ms,
            enabled=metadata.enabled,
            tags=tags,
        )
