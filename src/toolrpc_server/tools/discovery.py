"""Tool discovery over explicitly registered action sources.

Sources are objects, classes, modules or plain functions handed to the
service at startup (or named by import path in the settings). Each
``@action`` callable found on them is built into a ``ToolMethod`` and added
to a ``ToolRegistry``. A failing action only removes itself from the result.
"""

import importlib
import inspect
import logging
import time
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Iterable, Iterator

from toolrpc_server.tools.actions import (
    ActionMetadata,
    AgentMetadata,
    get_action_metadata,
    get_agent_metadata,
)
from toolrpc_server.tools.builder import MethodToolBuilder
from toolrpc_server.tools.errors import DiscoveryError
from toolrpc_server.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class DiscoveryResult:
    """Outcome of a discovery run.

    Attributes:
        registry: Registry holding every successfully built tool.
        failures: Errors for actions that were omitted.
        skipped: Names of disabled actions.
        elapsed_ms: Wall-clock time of the run.
    """

    registry: ToolRegistry = field(default_factory=ToolRegistry)
    failures: list[DiscoveryError] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def tool_count(self) -> int:
        return len(self.registry)


def import_source(path: str) -> Any:
    """Import an action source from a ``"package.module:attribute"`` path.

    Without an attribute part the module itself is returned. Classes are
    instantiated with no arguments.

    Raises:
        DiscoveryError: If the module or attribute cannot be loaded.
    """
    module_name, _, attribute = path.partition(":")
    try:
        source: Any = importlib.import_module(module_name)
        for part in filter(None, attribute.split(".")):
            source = getattr(source, part)
        if inspect.isclass(source):
            source = source()
    except Exception as e:
        raise DiscoveryError(path, f"cannot load action source: {e}") from e
    return source


class ToolDiscoveryService:
    """Enumerates ``@action`` callables and builds the tool registry.

    Args:
        builder: Builder used to turn callables into tools.
        max_initialization_time_ms: Discovery time target; exceeding it
            only produces a warning.
    """

    def __init__(
        self,
        builder: MethodToolBuilder | None = None,
        max_initialization_time_ms: int = 5000,
    ) -> None:
        self.builder = builder or MethodToolBuilder()
        self.max_initialization_time_ms = max_initialization_time_ms

    def discover(self, sources: Iterable[Any]) -> DiscoveryResult:
        """Build a registry from the given action sources.

        Args:
            sources: Instances, classes, modules or decorated functions.

        Returns:
            DiscoveryResult: The populated registry and per-action failures.
        """
        start = time.perf_counter()
        result = DiscoveryResult()
        source_count = 0

        for source in sources:
            source_count += 1
            try:
                candidates = list(self._candidates(source))
            except Exception as e:
                logger.error(f"Error scanning action source {source!r}: {e}")
                result.failures.append(DiscoveryError(repr(source), str(e)))
                continue

            agent_metadata = get_agent_metadata(source)
            for attr_name, func, metadata in candidates:
                self._register(result, attr_name, func, metadata, agent_metadata)

        result.elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"Discovered {result.tool_count} tools in {result.elapsed_ms:.1f}ms "
            f"from {source_count} sources ({len(result.failures)} failed, "
            f"{len(result.skipped)} disabled)"
        )
        if result.elapsed_ms > self.max_initialization_time_ms:
            logger.warning(
                f"Tool discovery took {result.elapsed_ms:.0f}ms, exceeding target "
                f"of {self.max_initialization_time_ms}ms"
            )
        return result

    def _register(
        self,
        result: DiscoveryResult,
        attr_name: str,
        func: Any,
        metadata: ActionMetadata,
        agent_metadata: AgentMetadata | None,
    ) -> None:
        if not metadata.enabled:
            logger.debug(f"Skipping disabled action: {attr_name}")
            result.skipped.append(metadata.name or attr_name)
            return

        try:
            tool_method = self.builder.build(func, metadata, agent_metadata)
            result.registry.register(tool_method)
        except DiscoveryError as e:
            logger.error(f"Omitting action '{attr_name}': {e}")
            result.failures.append(e)
            return
        except Exception as e:
            logger.error(f"Failed to build tool for '{attr_name}': {e}", exc_info=True)
            result.failures.append(DiscoveryError(attr_name, str(e)))
            return

        logger.debug(f"Discovered tool '{tool_method.name}' from {attr_name}")

    def _candidates(self, source: Any) -> Iterator[tuple[str, Any, ActionMetadata]]:
        """Yield ``(qualified name, callable, metadata)`` for each action."""
        if inspect.isclass(source):
            source = source()

        if inspect.isfunction(source) or inspect.ismethod(source):
            metadata = get_action_metadata(source)
            if metadata is not None:
                yield source.__qualname__, source, metadata
            return

        if isinstance(source, ModuleType):
            for attr_name, member in vars(source).items():
                if not inspect.isfunction(member):
                    continue
                # Skip actions imported from other modules
                if member.__module__ != source.__name__:
                    continue
                metadata = get_action_metadata(member)
                if metadata is not None:
                    yield f"{source.__name__}.{attr_name}", member, metadata
            return

        owner = type(source)
        for attr_name in dir(owner):
            raw = inspect.getattr_static(owner, attr_name, None)
            if isinstance(raw, (staticmethod, classmethod)):
                raw = raw.__func__
            if not callable(raw):
                continue
            metadata = get_action_metadata(raw)
            if metadata is not None:
                yield f"{owner.__name__}.{attr_name}", getattr(source, attr_name), metadata
