"""Name-indexed table of published tools."""

import logging
import threading
from collections import Counter
from typing import Iterator

from toolrpc_server.models.tools import Tool
from toolrpc_server.tools.builder import DescriptionSource, ToolMethod
from toolrpc_server.tools.errors import DuplicateToolError, ToolNotFoundError

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registration table mapping tool names to ``ToolMethod`` records.

    Tools are registered once during discovery and then only read. The one
    permitted mutation is swapping in a copy of a tool with a refreshed
    description; readers always see either the old or the new record.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolMethod] = {}
        self._lock = threading.Lock()

    def register(self, tool_method: ToolMethod) -> None:
        """Add a tool.

        Raises:
            DuplicateToolError: If a tool with the same name already exists.
                The existing registration is left untouched.
        """
        with self._lock:
            if tool_method.name in self._tools:
                raise DuplicateToolError(tool_method.name)
            self._tools[tool_method.name] = tool_method
        logger.debug(f"Registered tool: {tool_method.name}")

    def get(self, name: str) -> ToolMethod:
        """Look up a tool by name.

        Raises:
            ToolNotFoundError: If no tool with that name is registered.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def find(self, name: str) -> ToolMethod | None:
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        """Return published tools in registration order."""
        return [tool_method.tool for tool_method in self._tools.values()]

    def refresh_description(
        self, name: str, description: str, source: DescriptionSource
    ) -> ToolMethod:
        """Replace the description of a registered tool.

        Returns:
            ToolMethod: The new record.
        """
        with self._lock:
            current = self._tools.get(name)
            if current is None:
                raise ToolNotFoundError(name)
            updated = current.with_description(description, source)
            self._tools[name] = updated
        logger.debug(f"Refreshed description of '{name}' from {source.value}")
        return updated

    def statistics(self) -> dict[str, int]:
        """Count tools per description source."""
        counts = Counter(t.description_source.value for t in self._tools.values())
        stats = {source.value: counts.get(source.value, 0) for source in DescriptionSource}
        stats["total"] = len(self._tools)
        return stats

    def names(self) -> list[str]:
        return list(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolMethod]:
        return iter(list(self._tools.values()))
