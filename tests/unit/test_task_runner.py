"""Unit tests for the multi-step task runner."""

import asyncio

import pytest
import pytest_asyncio

from toolrpc_server.execution import (
    ExecutionParameters,
    StepOutcome,
    StopReason,
    TaskStepRunner,
    tool_call_step,
)
from toolrpc_server.services import JsonRpcHandler
from toolrpc_server.tools import ToolExecutor


def scripted_step(confidences, done_at=None, calls=None):
    """Build a step returning the given confidence per step number."""

    async def step(step_number: int) -> StepOutcome:
        if calls is not None:
            calls.append(step_number)
        confidence = confidences[min(step_number, len(confidences)) - 1]
        return StepOutcome(confidence=confidence, done=step_number == done_at)

    return step


@pytest.mark.asyncio
async def test_auto_mode_stops_when_confident():
    """Test that AUTO mode stops after the step that reaches the threshold."""
    calls = []
    runner = TaskStepRunner(ExecutionParameters.auto(10, threshold=0.8))

    result = await runner.run(scripted_step([0.2, 0.4, 0.6, 0.85, 0.9], calls=calls))

    assert calls == [1, 2, 3, 4]
    assert result.steps_completed == 4
    assert result.stop_reason is StopReason.EARLY_COMPLETION
    assert result.last_outcome.confidence == 0.85


@pytest.mark.asyncio
async def test_one_shot_runs_single_step():
    """Test that one-shot tasks stop after one step."""
    calls = []
    runner = TaskStepRunner(ExecutionParameters.one_shot())

    result = await runner.run(scripted_step([0.0], calls=calls))

    assert calls == [1]
    assert result.stop_reason is StopReason.MAX_STEPS


@pytest.mark.asyncio
async def test_multi_step_runs_to_the_ceiling():
    """Test that MULTI_STEP ignores confidence and runs every step."""
    runner = TaskStepRunner(ExecutionParameters.multi_step(5))

    result = await runner.run(scripted_step([1.0]))

    assert result.steps_completed == 5
    assert result.stop_reason is StopReason.MAX_STEPS


@pytest.mark.asyncio
async def test_done_flag_completes_task():
    """Test that a step can declare the task finished."""
    runner = TaskStepRunner(ExecutionParameters.multi_step(10))

    result = await runner.run(scripted_step([0.1], done_at=3))

    assert result.steps_completed == 3
    assert result.stop_reason is StopReason.COMPLETED


@pytest.mark.asyncio
async def test_done_flag_ignored_without_early_completion():
    """Test that the done flag cannot stop a task early when disallowed."""
    runner = TaskStepRunner(
        ExecutionParameters(max_steps=4, allow_early_completion=False)
    )

    result = await runner.run(scripted_step([1.0], done_at=1))

    assert result.steps_completed == 4
    assert result.stop_reason is StopReason.MAX_STEPS


@pytest.mark.asyncio
async def test_cancellation_between_steps():
    """Test that cancel() takes effect before the next step."""
    runner = TaskStepRunner(ExecutionParameters.multi_step(10))

    async def step(step_number: int) -> StepOutcome:
        if step_number == 2:
            runner.cancel()
        return StepOutcome()

    result = await runner.run(step)

    assert runner.cancelled is True
    assert result.steps_completed == 2
    assert result.stop_reason is StopReason.CANCELLED


@pytest.mark.asyncio
async def test_step_timeout_stops_task():
    """Test that a step exceeding its timeout ends the task."""
    runner = TaskStepRunner(ExecutionParameters.multi_step(3))
    # Shorter than the validated minimum to keep the test fast
    runner.parameters.step_timeout_seconds = 0.05

    async def step(step_number: int) -> StepOutcome:
        if step_number == 2:
            await asyncio.sleep(5)
        return StepOutcome()

    result = await runner.run(step)

    assert result.stop_reason is StopReason.STEP_TIMEOUT
    assert result.steps_completed == 1
    assert result.steps[-1].error is not None
    assert "timed out" in result.steps[-1].error


@pytest.mark.asyncio
async def test_failing_step_stops_task():
    """Test that an exception in a step aborts the task."""
    runner = TaskStepRunner(ExecutionParameters.multi_step(5))

    async def step(step_number: int) -> StepOutcome:
        raise RuntimeError("browser crashed")

    result = await runner.run(step)

    assert result.stop_reason is StopReason.FAILED
    assert result.steps_completed == 0
    assert result.steps[0].error == "browser crashed"
    assert result.last_outcome is None


@pytest.mark.asyncio
async def test_timeout_error_raised_by_step_fails_task():
    """Test that a step's own TimeoutError is a failure, not a step timeout."""
    runner = TaskStepRunner(ExecutionParameters.multi_step(5))

    async def step(step_number: int) -> StepOutcome:
        raise TimeoutError("connect timed out")

    result = await runner.run(step)

    assert result.stop_reason is StopReason.FAILED
    assert result.steps_completed == 0
    assert result.steps[0].error == "connect timed out"


def test_invalid_parameters_are_rejected():
    """Test that the runner validates its parameters."""
    with pytest.raises(ValueError):
        TaskStepRunner(ExecutionParameters(max_steps=0))


@pytest_asyncio.fixture
async def handler(sample_registry):
    """Create a JsonRpcHandler over the sample registry."""
    executor = ToolExecutor(sample_registry)
    yield JsonRpcHandler(sample_registry, executor)
    executor.shutdown(wait=False)


@pytest.mark.asyncio
async def test_tool_call_step_issues_tools_call(handler):
    """Test steps that call a tool and evaluate the result."""
    texts = []

    def evaluate(step_number, result):
        texts.append(result.content[0].text)
        return StepOutcome(confidence=0.3 * step_number, result=result)

    runner = TaskStepRunner(ExecutionParameters.auto(10, threshold=0.8))
    step = tool_call_step(
        handler,
        "browse_web_and_return_text",
        lambda n: {"instructions": f"page {n}"},
        evaluate,
    )

    result = await runner.run(step)

    assert texts == ["Visited: page 1", "Visited: page 2", "Visited: page 3"]
    assert result.stop_reason is StopReason.EARLY_COMPLETION
    assert handler.stats.total_requests == 3


@pytest.mark.asyncio
async def test_tool_call_step_without_evaluator(handler):
    """Test the default zero-confidence evaluation."""
    runner = TaskStepRunner(ExecutionParameters.multi_step(2))
    step = tool_call_step(handler, "take_current_page_screenshot", {})

    result = await runner.run(step)

    assert result.steps_completed == 2
    assert result.last_outcome.confidence == 0.0
    assert result.last_outcome.result.content[0].type == "image"


@pytest.mark.asyncio
async def test_tool_call_step_error_fails_task(handler):
    """Test that JSON-RPC errors abort the task."""
    runner = TaskStepRunner(ExecutionParameters.multi_step(3))
    step = tool_call_step(handler, "no_such_tool", {})

    result = await runner.run(step)

    assert result.stop_reason is StopReason.FAILED
    assert "no_such_tool" in result.steps[0].error
