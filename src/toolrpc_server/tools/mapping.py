"""Validation and conversion of JSON arguments into Python call arguments.

Two passes run for every ``tools/call``:

1. ``validate`` checks that required arguments are present and that each
   value has the JSON type published in the schema. Failures are protocol
   level (``ArgumentValidationError``, -32602).
2. ``map_arguments`` converts values to the declared Python types, applies
   defaults and enforces ``Param`` constraints. Failures are tool level
   (``ParameterMappingError``, -32003).
"""

import logging
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from toolrpc_server.tools.actions import CancellationToken
from toolrpc_server.tools.errors import ArgumentValidationError, ParameterMappingError
from toolrpc_server.tools.schema import (
    INSTRUCTIONS_KEY,
    MISSING,
    ParameterSpec,
    ToolSignature,
)

logger = logging.getLogger(__name__)


def matches_json_type(value: Any, json_type: str) -> bool:
    """Check a decoded JSON value against a schema type name."""
    if json_type == "string":
        return isinstance(value, str)
    if json_type == "boolean":
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if json_type == "integer":
        return isinstance(value, int) or (
            isinstance(value, float) and value.is_integer()
        )
    if json_type == "number":
        return isinstance(value, (int, float))
    if json_type == "array":
        return isinstance(value, list)
    if json_type == "object":
        return isinstance(value, dict)
    return True


class ParameterMapper:
    """Maps ``tools/call`` arguments onto a tool's parameters."""

    def validate(
        self, tool_name: str, signature: ToolSignature, arguments: dict[str, Any]
    ) -> None:
        """Check presence and JSON types of the arguments.

        Raises:
            ArgumentValidationError: On a missing required argument or a
                value whose JSON type does not match the schema.
        """
        if signature.simplified:
            visible = signature.visible_parameters
            if not visible:
                return
            value = self._instructions_value(visible[0], arguments)
            if value is None:
                raise ArgumentValidationError(
                    f"Missing required argument '{INSTRUCTIONS_KEY}'", tool_name
                )
            if not isinstance(value, str):
                raise ArgumentValidationError(
                    f"Argument '{INSTRUCTIONS_KEY}' must be of type string", tool_name
                )
            return

        for spec in signature.visible_parameters:
            value = arguments.get(spec.name)
            if value is None:
                if spec.required and spec.default is MISSING:
                    raise ArgumentValidationError(
                        f"Missing required argument '{spec.name}'", tool_name
                    )
                continue
            if not matches_json_type(value, spec.json_type):
                raise ArgumentValidationError(
                    f"Argument '{spec.name}' must be of type {spec.json_type}",
                    tool_name,
                )

    def map_arguments(
        self,
        tool_name: str,
        signature: ToolSignature,
        arguments: dict[str, Any],
        token: CancellationToken | None = None,
    ) -> dict[str, Any]:
        """Build keyword arguments for the tool callable.

        Unknown argument names are ignored. Parameters left out fall back to
        their ``Param`` default, then to the Python default.

        Raises:
            ParameterMappingError: If a value cannot be converted or violates
                a declared constraint.
        """
        kwargs: dict[str, Any] = {}
        visible = signature.visible_parameters

        if signature.simplified and visible:
            spec = visible[0]
            kwargs[spec.name] = self._check_constraints(
                tool_name, spec, self._instructions_value(spec, arguments)
            )
        elif not signature.simplified:
            for spec in visible:
                value = arguments.get(spec.name)
                if value is None:
                    if spec.default is not MISSING:
                        kwargs[spec.name] = spec.default
                    elif not spec.has_python_default:
                        kwargs[spec.name] = None
                    continue
                converted = self._convert(tool_name, spec, value)
                kwargs[spec.name] = self._check_constraints(tool_name, spec, converted)

        token_spec = signature.token_parameter
        if token_spec is not None:
            kwargs[token_spec.name] = token or CancellationToken()

        unknown = set(arguments) - {s.name for s in visible} - {INSTRUCTIONS_KEY}
        if unknown:
            logger.debug(f"Ignoring unknown arguments for '{tool_name}': {sorted(unknown)}")
        return kwargs

    @staticmethod
    def _instructions_value(spec: ParameterSpec, arguments: dict[str, Any]) -> Any:
        value = arguments.get(INSTRUCTIONS_KEY)
        if value is None:
            value = arguments.get(spec.name)
        return value

    @staticmethod
    def _convert(tool_name: str, spec: ParameterSpec, value: Any) -> Any:
        try:
            if spec.adapter is not None:
                return spec.adapter.validate_python(value)
            if spec.json_type == "integer":
                return int(value)
            if spec.json_type == "number":
                return Decimal(str(value)) if spec.annotation is Decimal else float(value)
            return value
        except (ValidationError, ValueError, TypeError) as e:
            raise ParameterMappingError(
                tool_name, f"cannot convert '{spec.name}': {e}"
            ) from e

    @staticmethod
    def _check_constraints(tool_name: str, spec: ParameterSpec, value: Any) -> Any:
        param = spec.param
        if param is None or value is None:
            return value

        if param.enum is not None and value not in param.enum:
            raise ParameterMappingError(
                tool_name,
                f"'{spec.name}' must be one of {list(param.enum)}, got {value!r}",
            )

        if isinstance(value, str):
            pattern = spec.compiled_pattern
            if pattern is not None and not pattern.fullmatch(value):
                raise ParameterMappingError(
                    tool_name,
                    f"'{spec.name}' value {value!r} does not match pattern: {param.pattern}",
                )
            if param.min_length is not None and len(value) < param.min_length:
                raise ParameterMappingError(
                    tool_name,
                    f"'{spec.name}' must be at least {param.min_length} characters",
                )
            if param.max_length is not None and len(value) > param.max_length:
                raise ParameterMappingError(
                    tool_name,
                    f"'{spec.name}' must be at most {param.max_length} characters",
                )

        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            if param.minimum is not None and value < param.minimum:
                raise ParameterMappingError(
                    tool_name, f"'{spec.name}' must be >= {param.minimum}, got {value}"
                )
            if param.maximum is not None and value > param.maximum:
                raise ParameterMappingError(
                    tool_name, f"'{spec.name}' must be <= {param.maximum}, got {value}"
                )
        return value
