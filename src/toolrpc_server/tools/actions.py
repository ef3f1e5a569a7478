"""Decorators and metadata types that mark callables as tools.

Action providers are plain Python objects. A method becomes a tool when it is
decorated with ``@action``; an optional class-level ``@agent`` supplies group
metadata shared by all its actions. Per-parameter metadata is attached with
``typing.Annotated``:

    @agent(group="web", version="1.2.0")
    class WebActions:
        @action(description="Open a page and return its text", timeout_ms=60_000)
        def browse(self, instructions: str) -> str: ...

        @action()
        def search(
            self,
            query: Annotated[str, Param(description="Search terms", min_length=2)],
            limit: Annotated[int, Param(minimum=1, maximum=50)] = 10,
        ) -> list[str]: ...
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

ACTION_ATTRIBUTE = "__toolrpc_action__"
AGENT_ATTRIBUTE = "__toolrpc_agent__"

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)


@dataclass(frozen=True)
class Param:
    """Metadata for one action parameter.

    Attributes:
        description: Human-readable description of the argument.
        default: Default value given as text; parsed into the parameter type.
        pattern: Regular expression string arguments must match.
        minimum: Inclusive lower bound for numeric arguments.
        maximum: Inclusive upper bound for numeric arguments.
        min_length: Minimum length for string arguments.
        max_length: Maximum length for string arguments.
        enum: Allowed values.
        example: Example value shown to clients.
        required: Explicit required flag; None means "infer from signature".
    """

    description: str | None = None
    default: str | None = None
    pattern: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    enum: tuple[Any, ...] | None = None
    example: Any = None
    required: bool | None = None

    @property
    def is_rich(self) -> bool:
        """True when anything beyond a description is set."""
        return any(
            value is not None
            for value in (
                self.default,
                self.pattern,
                self.minimum,
                self.maximum,
                self.min_length,
                self.max_length,
                self.enum,
                self.example,
            )
        ) or self.required is False


@dataclass(frozen=True)
class ActionMetadata:
    """Metadata recorded by the ``@action`` decorator."""

    name: str | None = None
    description: str | None = None
    timeout_ms: int | None = None
    examples: tuple[str, ...] = ()
    enabled: bool = True
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class AgentMetadata:
    """Group metadata recorded by the ``@agent`` class decorator."""

    group: str | None = None
    version: str | None = None
    priority: int = 0
    tags: tuple[str, ...] = field(default_factory=tuple)


def action(
    name: str | None = None,
    description: str | None = None,
    timeout_ms: int | None = None,
    examples: tuple[str, ...] | list[str] = (),
    enabled: bool = True,
    tags: tuple[str, ...] | list[str] = (),
) -> Callable[[F], F]:
    """Mark a function or method as a tool.

    Args:
        name: Tool name; defaults to the function name.
        description: Explicit description; highest precedence when resolving.
        timeout_ms: Per-call timeout; defaults to the server-wide timeout.
        examples: Example invocations shown to clients.
        enabled: Disabled actions are skipped during discovery.
        tags: Free-form labels published in the tool annotations.

    Returns:
        A decorator that returns the function unchanged apart from the marker.
    """
    if timeout_ms is not None and timeout_ms <= 0:
        raise ValueError("timeout_ms must be positive")

    metadata = ActionMetadata(
        name=name.strip() if name and name.strip() else None,
        description=description.strip() if description and description.strip() else None,
        timeout_ms=timeout_ms,
        examples=tuple(examples),
        enabled=enabled,
        tags=tuple(tags),
    )

    def decorator(func: F) -> F:
        setattr(func, ACTION_ATTRIBUTE, metadata)
        return func

    return decorator


def agent(
    group: str | None = None,
    version: str | None = None,
    priority: int = 0,
    tags: tuple[str, ...] | list[str] = (),
) -> Callable[[C], C]:
    """Attach group metadata to every action of a class."""
    metadata = AgentMetadata(
        group=group, version=version, priority=priority, tags=tuple(tags)
    )

    def decorator(cls: C) -> C:
        setattr(cls, AGENT_ATTRIBUTE, metadata)
        return cls

    return decorator


def get_action_metadata(obj: Any) -> ActionMetadata | None:
    return getattr(obj, ACTION_ATTRIBUTE, None)


def get_agent_metadata(obj: Any) -> AgentMetadata | None:
    if not isinstance(obj, type):
        obj = type(obj)
    return getattr(obj, AGENT_ATTRIBUTE, None)


class CancellationToken:
    """Cooperative cancellation signal for blocking tools.

    A tool that declares a parameter annotated with this type receives a
    fresh token per call. The executor sets it when the call times out, so
    long-running loops should check ``cancelled`` and return early.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or until ``timeout`` seconds pass."""
        return self._event.wait(timeout)
