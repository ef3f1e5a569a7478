"""Step budget and early-stopping policy for multi-step tasks."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

SETUP_BUFFER_SECONDS = 30
MIN_STEP_TIMEOUT_SECONDS = 5


class ExecutionMode(str, Enum):
    ONE_SHOT = "ONE_SHOT"
    MULTI_STEP = "MULTI_STEP"
    AUTO = "AUTO"


_JSON_FIELDS = {
    "maxSteps": "max_steps",
    "executionMode": "execution_mode",
    "allowEarlyCompletion": "allow_early_completion",
    "stepTimeoutSeconds": "step_timeout_seconds",
    "captureStepScreenshots": "capture_step_screenshots",
    "earlyCompletionThreshold": "early_completion_threshold",
}


@dataclass
class ExecutionParameters:
    """Limits for one agent task.

    Construction does not validate; call ``validate()`` before use so that
    callers can report every rejected field in their own way.

    Attributes:
        max_steps: Hard ceiling on the number of steps.
        execution_mode: ONE_SHOT, MULTI_STEP or AUTO.
        allow_early_completion: Whether the task may stop before the ceiling.
        step_timeout_seconds: Time limit for a single step.
        capture_step_screenshots: Whether steps should capture screenshots.
        early_completion_threshold: Confidence needed to stop early in AUTO.
    """

    max_steps: int = 10
    execution_mode: ExecutionMode = ExecutionMode.MULTI_STEP
    allow_early_completion: bool = True
    step_timeout_seconds: int = 30
    capture_step_screenshots: bool = True
    early_completion_threshold: float = 0.8

    @classmethod
    def one_shot(cls) -> "ExecutionParameters":
        return cls(
            max_steps=1,
            execution_mode=ExecutionMode.ONE_SHOT,
            allow_early_completion=False,
        )

    @classmethod
    def multi_step(cls, max_steps: int) -> "ExecutionParameters":
        return cls(
            max_steps=max_steps,
            execution_mode=ExecutionMode.MULTI_STEP,
            allow_early_completion=True,
        )

    @classmethod
    def auto(cls, max_steps: int, threshold: float = 0.8) -> "ExecutionParameters":
        return cls(
            max_steps=max_steps,
            execution_mode=ExecutionMode.AUTO,
            allow_early_completion=True,
            early_completion_threshold=threshold,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionParameters":
        """Build parameters from camelCase or snake_case keys.

        Unknown keys are ignored; missing keys take their defaults.
        """
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            field_name = _JSON_FIELDS.get(key, key)
            if field_name in _JSON_FIELDS.values() and value is not None:
                kwargs[field_name] = value
        mode = kwargs.get("execution_mode")
        if isinstance(mode, str) and not isinstance(mode, ExecutionMode):
            kwargs["execution_mode"] = ExecutionMode(mode.upper())
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            json_name: getattr(self, field_name).value
            if isinstance(getattr(self, field_name), Enum)
            else getattr(self, field_name)
            for json_name, field_name in _JSON_FIELDS.items()
        }

    def validate(self) -> None:
        """Check the invariants of the parameter set.

        Raises:
            ValueError: If any limit is out of range.
        """
        if self.max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        if self.execution_mode is ExecutionMode.ONE_SHOT and self.max_steps > 1:
            raise ValueError("ONE_SHOT mode requires max_steps = 1")
        if not 0.0 <= self.early_completion_threshold <= 1.0:
            raise ValueError("early_completion_threshold must be between 0.0 and 1.0")
        if self.step_timeout_seconds < MIN_STEP_TIMEOUT_SECONDS:
            raise ValueError(
                f"step_timeout_seconds must be at least {MIN_STEP_TIMEOUT_SECONDS}"
            )

    @property
    def total_timeout_seconds(self) -> int:
        """Wall-clock budget for the whole task, including setup."""
        return self.max_steps * self.step_timeout_seconds + SETUP_BUFFER_SECONDS

    def should_stop_early(self, current_step: int, confidence: float) -> bool:
        """Decide whether the task should stop after ``current_step`` steps.

        The step ceiling always wins, even when early completion is off.
        """
        if current_step >= self.max_steps:
            return True
        if not self.allow_early_completion:
            return False
        return (
            self.execution_mode is ExecutionMode.AUTO
            and confidence >= self.early_completion_threshold
        )

    def __str__(self) -> str:
        return (
            f"ExecutionParameters(mode={self.execution_mode.value}, "
            f"max_steps={self.max_steps}, early_completion={self.allow_early_completion}, "
            f"step_timeout={self.step_timeout_seconds}s)"
        )
