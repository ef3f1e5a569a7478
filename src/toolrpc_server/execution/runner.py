"""Multi-step task loop driven by ``ExecutionParameters``.

A task is a sequence of steps; each step is an async callable receiving the
1-based step number and returning a ``StepOutcome``. The runner enforces the
per-step timeout, the total wall-clock budget and the early-stopping policy,
and honours cancellation requests between steps.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from toolrpc_server.execution.parameters import ExecutionParameters
from toolrpc_server.models.content import ToolCallResult

if TYPE_CHECKING:
    from toolrpc_server.services.jsonrpc import JsonRpcHandler

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    MAX_STEPS = "max_steps"
    EARLY_COMPLETION = "early_completion"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    STEP_TIMEOUT = "step_timeout"
    TOTAL_TIMEOUT = "total_timeout"
    FAILED = "failed"


@dataclass
class StepOutcome:
    """What a single step reports back to the runner.

    Attributes:
        confidence: Caller-supplied certainty in [0, 1] that the task is done.
        done: The step declares the task finished.
        result: Optional payload, e.g. the tool call result.
    """

    confidence: float = 0.0
    done: bool = False
    result: Any = None


@dataclass
class StepRecord:
    step: int
    elapsed_ms: float
    outcome: StepOutcome | None = None
    error: str | None = None


@dataclass
class TaskResult:
    parameters: ExecutionParameters
    stop_reason: StopReason
    steps: list[StepRecord] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def steps_completed(self) -> int:
        return sum(1 for record in self.steps if record.outcome is not None)

    @property
    def last_outcome(self) -> StepOutcome | None:
        for record in reversed(self.steps):
            if record.outcome is not None:
                return record.outcome
        return None


StepFunction = Callable[[int], Awaitable[StepOutcome]]


class StepFailedError(Exception):
    """Raised by a step to abort the task."""


class TaskStepRunner:
    """Runs one task under a validated set of execution parameters.

    Args:
        parameters: Limits for the task.

    Raises:
        ValueError: If the parameters are invalid.
    """

    def __init__(self, parameters: ExecutionParameters) -> None:
        parameters.validate()
        self.parameters = parameters
        self._cancelled = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation; takes effect before the next step starts."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def run(self, step: StepFunction) -> TaskResult:
        """Drive ``step`` until the policy, a timeout or cancellation stops it."""
        params = self.parameters
        start = time.monotonic()
        deadline = start + params.total_timeout_seconds
        records: list[StepRecord] = []
        reason = StopReason.MAX_STEPS

        logger.info(f"Starting task with {params}")

        for step_number in range(1, params.max_steps + 1):
            if self._cancelled.is_set():
                reason = StopReason.CANCELLED
                break

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                reason = StopReason.TOTAL_TIMEOUT
                break
            step_timeout = min(params.step_timeout_seconds, remaining)

            step_start = time.monotonic()
            step_deadline = asyncio.timeout(step_timeout)
            try:
                async with step_deadline:
                    outcome = await step(step_number)
            except TimeoutError as e:
                if not step_deadline.expired():
                    records.append(
                        StepRecord(
                            step=step_number,
                            elapsed_ms=(time.monotonic() - step_start) * 1000,
                            error=str(e) or type(e).__name__,
                        )
                    )
                    reason = StopReason.FAILED
                    logger.error(f"Step {step_number} failed: {e!r}")
                    break
                records.append(
                    StepRecord(
                        step=step_number,
                        elapsed_ms=(time.monotonic() - step_start) * 1000,
                        error=f"Step {step_number} timed out after {step_timeout:g}s",
                    )
                )
                reason = (
                    StopReason.STEP_TIMEOUT
                    if step_timeout >= params.step_timeout_seconds
                    else StopReason.TOTAL_TIMEOUT
                )
                logger.warning(f"Step {step_number} timed out after {step_timeout:g}s")
                break
            except Exception as e:
                records.append(
                    StepRecord(
                        step=step_number,
                        elapsed_ms=(time.monotonic() - step_start) * 1000,
                        error=str(e),
                    )
                )
                reason = StopReason.FAILED
                logger.error(f"Step {step_number} failed: {e}")
                break

            records.append(
                StepRecord(
                    step=step_number,
                    elapsed_ms=(time.monotonic() - step_start) * 1000,
                    outcome=outcome,
                )
            )
            logger.debug(
                f"Step {step_number}/{params.max_steps} finished "
                f"(confidence={outcome.confidence:.2f}, done={outcome.done})"
            )

            if outcome.done and params.allow_early_completion:
                reason = StopReason.COMPLETED
                break
            if params.should_stop_early(step_number, outcome.confidence):
                reason = (
                    StopReason.MAX_STEPS
                    if step_number >= params.max_steps
                    else StopReason.EARLY_COMPLETION
                )
                break

        result = TaskResult(
            parameters=params,
            stop_reason=reason,
            steps=records,
            elapsed_ms=(time.monotonic() - start) * 1000,
        )
        logger.info(
            f"Task stopped after {result.steps_completed} steps: {reason.value}"
        )
        return result


def tool_call_step(
    handler: "JsonRpcHandler",
    tool_name: str,
    arguments: dict[str, Any] | Callable[[int], dict[str, Any]],
    evaluate: Callable[[int, ToolCallResult], StepOutcome] | None = None,
) -> StepFunction:
    """Build a step that issues one ``tools/call`` per step.

    Args:
        handler: JSON-RPC handler the calls are dispatched through.
        tool_name: Tool to call on every step.
        arguments: Fixed arguments, or a function of the step number.
        evaluate: Turns a call result into a ``StepOutcome``; by default
            every step reports zero confidence.

    Returns:
        StepFunction: A step raising ``StepFailedError`` on error responses.
    """

    async def step(step_number: int) -> StepOutcome:
        args = arguments(step_number) if callable(arguments) else arguments
        response = await handler.call_tool(
            tool_name, args, request_id=f"{tool_name}-step-{step_number}"
        )
        if response.error is not None:
            raise StepFailedError(response.error.message)
        result = ToolCallResult.model_validate(response.result)
        if evaluate is not None:
            return evaluate(step_number, result)
        return StepOutcome(result=result)

    return step
