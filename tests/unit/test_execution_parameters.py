"""Unit tests for ExecutionParameters and the early-stopping policy."""

import pytest

from toolrpc_server.execution import ExecutionMode, ExecutionParameters


def test_defaults():
    """Test the default parameter set."""
    params = ExecutionParameters()

    assert params.max_steps == 10
    assert params.execution_mode is ExecutionMode.MULTI_STEP
    assert params.allow_early_completion is True
    assert params.step_timeout_seconds == 30
    assert params.capture_step_screenshots is True
    assert params.early_completion_threshold == 0.8
    params.validate()


def test_one_shot_factory():
    """Test that one-shot tasks run exactly one step."""
    params = ExecutionParameters.one_shot()

    assert params.max_steps == 1
    assert params.allow_early_completion is False
    assert params.execution_mode is ExecutionMode.ONE_SHOT
    params.validate()


def test_multi_step_and_auto_factories():
    """Test the multi-step and auto factories."""
    multi = ExecutionParameters.multi_step(5)
    auto = ExecutionParameters.auto(8, threshold=0.9)

    assert multi.max_steps == 5
    assert multi.execution_mode is ExecutionMode.MULTI_STEP
    assert auto.max_steps == 8
    assert auto.execution_mode is ExecutionMode.AUTO
    assert auto.early_completion_threshold == 0.9
    assert ExecutionParameters.auto(3).early_completion_threshold == 0.8


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"max_steps": 0}, "max_steps"),
        ({"max_steps": 2, "execution_mode": ExecutionMode.ONE_SHOT}, "ONE_SHOT"),
        ({"early_completion_threshold": -0.1}, "threshold"),
        ({"early_completion_threshold": 1.5}, "threshold"),
        ({"step_timeout_seconds": 4}, "step_timeout_seconds"),
    ],
)
def test_validate_rejects_invalid_values(overrides, message):
    """Test that invalid limits are rejected."""
    with pytest.raises(ValueError, match=message):
        ExecutionParameters(**overrides).validate()


def test_validate_accepts_boundaries():
    """Test the inclusive boundaries."""
    ExecutionParameters(early_completion_threshold=0.0).validate()
    ExecutionParameters(early_completion_threshold=1.0).validate()
    ExecutionParameters(step_timeout_seconds=5).validate()
    ExecutionParameters(max_steps=1).validate()


def test_total_timeout_seconds():
    """Test the wall-clock budget including the setup buffer."""
    assert ExecutionParameters(max_steps=10, step_timeout_seconds=30).total_timeout_seconds == 330
    assert ExecutionParameters.one_shot().total_timeout_seconds == 60


@pytest.mark.parametrize(
    "params",
    [
        ExecutionParameters.one_shot(),
        ExecutionParameters.multi_step(4),
        ExecutionParameters.auto(4),
        ExecutionParameters(max_steps=4, allow_early_completion=False),
    ],
)
@pytest.mark.parametrize("confidence", [0.0, 0.5, 1.0])
def test_step_ceiling_always_stops(params, confidence):
    """Test that reaching max_steps stops regardless of anything else."""
    assert params.should_stop_early(params.max_steps, confidence) is True
    assert params.should_stop_early(params.max_steps + 1, confidence) is True


@pytest.mark.parametrize("mode", list(ExecutionMode))
@pytest.mark.parametrize("confidence", [0.0, 0.8, 1.0])
def test_no_early_stop_when_disallowed(mode, confidence):
    """Test that disabling early completion keeps the task running."""
    params = ExecutionParameters(
        max_steps=10, execution_mode=mode, allow_early_completion=False
    )

    for step in range(1, params.max_steps):
        assert params.should_stop_early(step, confidence) is False


def test_auto_mode_stops_at_threshold():
    """Test confidence-based stopping in AUTO mode."""
    params = ExecutionParameters.auto(10, threshold=0.8)

    assert params.should_stop_early(3, 0.79) is False
    assert params.should_stop_early(3, 0.8) is True
    assert params.should_stop_early(4, 0.85) is True


def test_multi_step_ignores_confidence():
    """Test that MULTI_STEP mode only stops at the ceiling."""
    params = ExecutionParameters.multi_step(10)

    assert params.should_stop_early(3, 1.0) is False


def test_from_dict_accepts_camel_case():
    """Test building parameters from the JSON form."""
    params = ExecutionParameters.from_dict(
        {
            "maxSteps": 6,
            "executionMode": "auto",
            "allowEarlyCompletion": True,
            "stepTimeoutSeconds": 45,
            "captureStepScreenshots": False,
            "earlyCompletionThreshold": 0.7,
            "unrelated": "ignored",
        }
    )

    assert params.max_steps == 6
    assert params.execution_mode is ExecutionMode.AUTO
    assert params.step_timeout_seconds == 45
    assert params.capture_step_screenshots is False
    assert params.early_completion_threshold == 0.7


def test_from_dict_accepts_snake_case_and_enum():
    """Test snake_case keys and enum values."""
    params = ExecutionParameters.from_dict(
        {"max_steps": 1, "execution_mode": ExecutionMode.ONE_SHOT, "allow_early_completion": False}
    )

    assert params == ExecutionParameters.one_shot()


def test_from_dict_rejects_unknown_mode():
    """Test that an unknown mode name is an error."""
    with pytest.raises(ValueError):
        ExecutionParameters.from_dict({"executionMode": "SOMETIMES"})


def test_to_dict_uses_camel_case():
    """Test the JSON form of the parameters."""
    assert ExecutionParameters.auto(4).to_dict() == {
        "maxSteps": 4,
        "executionMode": "AUTO",
        "allowEarlyCompletion": True,
        "stepTimeoutSeconds": 30,
        "captureStepScreenshots": True,
        "earlyCompletionThreshold": 0.8,
    }


def test_str():
    """Test the readable representation."""
    text = str(ExecutionParameters.multi_step(3))

    assert "MULTI_STEP" in text
    assert "max_steps=3" in text
