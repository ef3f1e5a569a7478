"""Tool invocation with timeouts and an isolated worker pool."""

import asyncio
import functools
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from toolrpc_server.models.content import ToolCallResult
from toolrpc_server.tools.actions import CancellationToken
from toolrpc_server.tools.builder import ToolMethod
from toolrpc_server.tools.errors import (
    ToolExecutionError,
    ToolInvocationError,
    ToolTimeoutError,
)
from toolrpc_server.tools.mapping import ParameterMapper
from toolrpc_server.tools.registry import ToolRegistry
from toolrpc_server.tools.serializer import ResultSerializer

logger = logging.getLogger(__name__)

SLOW_EXECUTION_WARNING_MS = 5000


@dataclass
class ExecutionStatistics:
    executions: int = 0
    failures: int = 0
    timeouts: int = 0
    total_time_ms: float = 0.0

    @property
    def average_time_ms(self) -> float:
        return self.total_time_ms / self.executions if self.executions else 0.0


class ToolExecutor:
    """Runs registered tools.

    Coroutine tools run on the event loop and are cancelled when they exceed
    their timeout. Blocking tools run on a dedicated thread pool; on timeout
    their ``CancellationToken`` is set and the caller gets an error at once,
    while the worker thread finishes on its own.

    Args:
        registry: Registry to resolve tool names against.
        default_timeout_ms: Timeout for tools without ``timeout_ms``.
        max_concurrent_executions: Size of the blocking-tool thread pool.
        mapper: Argument mapper; a default one is created when omitted.
        serializer: Result serializer; a default one is created when omitted.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        default_timeout_ms: int = 30_000,
        max_concurrent_executions: int = 10,
        mapper: ParameterMapper | None = None,
        serializer: ResultSerializer | None = None,
    ) -> None:
        self.registry = registry
        self.default_timeout_ms = default_timeout_ms
        self.mapper = mapper or ParameterMapper()
        self.serializer = serializer or ResultSerializer()
        self.stats = ExecutionStatistics()
        self._pool = ThreadPoolExecutor(
            max_workers=max_concurrent_executions, thread_name_prefix="toolrpc-tool"
        )

    def timeout_for(self, tool_method: ToolMethod) -> int:
        return tool_method.timeout_ms or self.default_timeout_ms

    async def execute(self, name: str, arguments: dict[str, Any]) -> ToolCallResult:
        """Execute a tool by name.

        Args:
            name: Registered tool name.
            arguments: Decoded ``arguments`` object of the call.

        Returns:
            ToolCallResult: The serialized result.

        Raises:
            ToolNotFoundError: If the tool is not registered.
            ArgumentValidationError: If required arguments are missing or
                have the wrong JSON type.
            ToolExecutionError: For constraint violations, timeouts, tool
                exceptions and serialization failures.
        """
        tool_method = self.registry.get(name)
        self.mapper.validate(name, tool_method.signature, arguments)

        token = CancellationToken()
        timeout_ms = self.timeout_for(tool_method)

        start = time.perf_counter()
        try:
            kwargs = self.mapper.map_arguments(
                name, tool_method.signature, arguments, token
            )
            result = await self._invoke(tool_method, kwargs, token, timeout_ms)
            call_result = self.serializer.serialize(name, result)
        except ToolExecutionError:
            self.stats.failures += 1
            raise
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.stats.executions += 1
            self.stats.total_time_ms += elapsed_ms

        logger.info(f"Executed tool '{name}' in {elapsed_ms:.0f}ms")
        if elapsed_ms > SLOW_EXECUTION_WARNING_MS:
            logger.warning(f"Tool '{name}' took {elapsed_ms:.0f}ms to execute")
        return call_result

    async def _invoke(
        self,
        tool_method: ToolMethod,
        kwargs: dict[str, Any],
        token: CancellationToken,
        timeout_ms: int,
    ) -> Any:
        name = tool_method.name
        if tool_method.is_async:
            awaitable = tool_method.handler(**kwargs)
        else:
            loop = asyncio.get_running_loop()
            awaitable = loop.run_in_executor(
                self._pool, functools.partial(tool_method.handler, **kwargs)
            )

        deadline = asyncio.timeout(timeout_ms / 1000)
        try:
            async with deadline:
                return await awaitable
        except TimeoutError as e:
            # A TimeoutError raised by the tool itself is an ordinary failure
            if not deadline.expired():
                logger.error(f"Tool '{name}' raised an exception: {e}", exc_info=True)
                raise ToolInvocationError(name, e) from e
            token.cancel()
            self.stats.timeouts += 1
            logger.warning(f"Tool '{name}' timed out after {timeout_ms}ms")
            raise ToolTimeoutError(name, timeout_ms) from None
        except ToolExecutionError:
            raise
        except Exception as e:
            logger.error(f"Tool '{name}' raised an exception: {e}", exc_info=True)
            raise ToolInvocationError(name, e) from e

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting work and drop queued blocking calls."""
        self._pool.shutdown(wait=wait, cancel_futures=True)
        logger.debug("Tool executor pool shut down")
