"""Execution-control policy for multi-step agent tasks."""

from toolrpc_server.execution.parameters import ExecutionMode, ExecutionParameters
from toolrpc_server.execution.runner import (
    StepFailedError,
    StepOutcome,
    StopReason,
    TaskResult,
    TaskStepRunner,
    tool_call_step,
)

__all__ = [
    "ExecutionMode",
    "ExecutionParameters",
    "StepFailedError",
    "StepOutcome",
    "StopReason",
    "TaskResult",
    "TaskStepRunner",
    "tool_call_step",
]
