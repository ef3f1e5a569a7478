"""JSON-schema generation from Python call signatures.

The generator inspects a callable once, at registration time, and produces
two things: a ``ToolInputSchema`` for ``tools/list`` and a tuple of
``ParameterSpec`` descriptors that ``ParameterMapper`` consumes on every call.
Nothing here performs I/O or talks to a model.
"""

import collections.abc
import dataclasses
import inspect
import json
import logging
import re
import time
import types
import typing
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

from pydantic import BaseModel, TypeAdapter
from pydantic.errors import PydanticSchemaGenerationError

from toolrpc_server.models.tools import JsonType, ToolInputSchema, ToolPropertySchema
from toolrpc_server.tools.actions import CancellationToken, Param
from toolrpc_server.tools.errors import DiscoveryError

logger = logging.getLogger(__name__)

INSTRUCTIONS_KEY = "instructions"
INSTRUCTIONS_DESCRIPTION = "Provide instructions for this tool in plain English"
INSTRUCTIONS_EXAMPLE = "Perform the requested action"
OPTIONAL_INSTRUCTIONS_DESCRIPTION = "Optional instructions for this tool"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


@dataclass(frozen=True)
class ParameterSpec:
    """Descriptor for a single parameter, built once per tool.

    ``json_type`` is the tag the mapper dispatches on. ``annotation`` is the
    parameter type with ``Annotated`` and ``Optional`` stripped.

    Attributes:
        name: Python parameter name.
        json_type: JSON type published in the schema.
        annotation: Resolved Python type.
        required: Whether callers must supply the argument.
        param: Metadata from ``Annotated[..., Param(...)]``, if any.
        default: Parsed ``Param.default`` value, or ``MISSING``.
        has_python_default: Whether the signature itself declares a default.
        injected: True for ``CancellationToken`` parameters.
        adapter: Pydantic adapter used to coerce array and object arguments.
    """

    name: str
    json_type: JsonType
    annotation: Any
    required: bool
    param: Param | None = None
    default: Any = MISSING
    has_python_default: bool = False
    injected: bool = False
    adapter: TypeAdapter | None = None

    @property
    def compiled_pattern(self) -> re.Pattern[str] | None:
        if self.param is None or self.param.pattern is None:
            return None
        return re.compile(self.param.pattern)


@dataclass(frozen=True)
class ToolSignature:
    """Schema plus parameter descriptors for one tool.

    When ``simplified`` is true the schema exposes the single conventional
    ``instructions`` key instead of the real parameter names.
    """

    schema: ToolInputSchema
    parameters: tuple[ParameterSpec, ...]
    simplified: bool = False

    @property
    def visible_parameters(self) -> tuple[ParameterSpec, ...]:
        return tuple(p for p in self.parameters if not p.injected)

    @property
    def token_parameter(self) -> ParameterSpec | None:
        for spec in self.parameters:
            if spec.injected:
                return spec
        return None


def _strip_annotated(annotation: Any) -> tuple[Any, Param | None]:
    if typing.get_origin(annotation) is typing.Annotated:
        base, *extras = typing.get_args(annotation)
        param = next((e for e in extras if isinstance(e, Param)), None)
        return base, param
    return annotation, None


def _strip_optional(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def json_type_for(annotation: Any) -> JsonType:
    """Map a Python type to its JSON-schema type name.

    Unknown or missing annotations fall back to ``"string"``.
    """
    annotation = _strip_optional(annotation)
    if annotation is inspect.Parameter.empty or annotation is Any:
        return "string"

    # bool is a subclass of int, so it must be checked first
    if annotation is bool:
        return "boolean"
    if annotation is int:
        return "integer"
    if annotation in (float, Decimal):
        return "number"
    if annotation is str:
        return "string"

    origin = typing.get_origin(annotation) or annotation
    if isinstance(origin, type):
        if issubclass(origin, (str, bytes)):
            return "string"
        if issubclass(origin, collections.abc.Mapping):
            return "object"
        if issubclass(origin, (collections.abc.Sequence, collections.abc.Set)):
            return "array"
        if issubclass(origin, BaseModel) or dataclasses.is_dataclass(origin):
            return "object"
    return "string"


def parse_default(raw: str, json_type: JsonType, annotation: Any) -> Any:
    """Parse a ``Param.default`` string into the parameter's type.

    Returns the raw string and logs a warning when it cannot be parsed.
    """
    try:
        if json_type == "string":
            return raw
        if json_type == "integer":
            return int(raw)
        if json_type == "number":
            return Decimal(raw) if annotation is Decimal else float(raw)
        if json_type == "boolean":
            lowered = raw.strip().lower()
            if lowered in ("true", "false"):
                return lowered == "true"
            raise ValueError(f"not a boolean: {raw!r}")
        value = json.loads(raw)
        expected = list if json_type == "array" else dict
        if not isinstance(value, expected):
            raise ValueError(f"expected JSON {json_type}")
        return value
    except (ValueError, ArithmeticError) as e:
        logger.warning(f"Could not parse default {raw!r} as {json_type}: {e}")
        return raw


class SchemaGenerator:
    """Builds input schemas and parameter descriptors from signatures."""

    def describe(self, func: Callable[..., Any], name: str | None = None) -> ToolSignature:
        """Inspect ``func`` and return its schema and parameter descriptors.

        Args:
            func: Function or bound method to inspect.
            name: Name used in log and error messages; defaults to the
                function's ``__name__``.

        Returns:
            ToolSignature: Schema and descriptors for the callable.

        Raises:
            DiscoveryError: If the signature cannot be expressed as a tool,
                e.g. variadic parameters, unresolvable annotations or an
                invalid regular expression.
        """
        label = name or getattr(func, "__name__", repr(func))
        start = time.perf_counter()

        specs = self.parameter_specs(func, label)
        visible = [s for s in specs if not s.injected]

        if not visible:
            signature = ToolSignature(
                schema=self._minimal_schema(), parameters=specs, simplified=True
            )
        elif len(visible) == 1 and self._is_plain_string(visible[0]):
            signature = ToolSignature(
                schema=self._instructions_schema(visible[0]),
                parameters=specs,
                simplified=True,
            )
        else:
            signature = ToolSignature(
                schema=ToolInputSchema(
                    properties={s.name: self._property_for(s) for s in visible},
                    required=[s.name for s in visible if s.required],
                ),
                parameters=specs,
            )

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"Generated schema for {label} in {elapsed_ms:.3f}ms")
        return signature

    def generate(self, func: Callable[..., Any]) -> ToolInputSchema:
        """Convenience wrapper returning only the schema."""
        return self.describe(func).schema

    def parameter_specs(
        self, func: Callable[..., Any], label: str
    ) -> tuple[ParameterSpec, ...]:
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError) as e:
            raise DiscoveryError(label, f"cannot read signature: {e}") from e

        try:
            hints = typing.get_type_hints(func, include_extras=True)
        except Exception as e:
            raise DiscoveryError(label, f"cannot resolve type hints: {e}") from e

        specs: list[ParameterSpec] = []
        for parameter in signature.parameters.values():
            if parameter.kind in (
                inspect.Parameter.VAR_POSITIONAL,
                inspect.Parameter.VAR_KEYWORD,
            ):
                raise DiscoveryError(label, "variadic parameters are not supported")
            if parameter.kind is inspect.Parameter.POSITIONAL_ONLY:
                raise DiscoveryError(
                    label, f"positional-only parameter '{parameter.name}'"
                )
            annotation = hints.get(parameter.name, parameter.annotation)
            specs.append(self._spec_for(label, parameter, annotation))
        return tuple(specs)

    def _spec_for(
        self, label: str, parameter: inspect.Parameter, annotation: Any
    ) -> ParameterSpec:
        base, param = _strip_annotated(annotation)
        resolved = _strip_optional(base)

        if resolved is CancellationToken:
            return ParameterSpec(
                name=parameter.name,
                json_type="object",
                annotation=resolved,
                required=False,
                injected=True,
            )

        json_type = json_type_for(resolved)
        has_python_default = parameter.default is not inspect.Parameter.empty

        if param is not None and param.pattern is not None:
            try:
                re.compile(param.pattern)
            except re.error as e:
                raise DiscoveryError(
                    label, f"invalid pattern for '{parameter.name}': {e}"
                ) from e

        default = MISSING
        if param is not None and param.default is not None:
            default = parse_default(param.default, json_type, resolved)

        if param is not None and param.required is not None:
            required = param.required
        else:
            required = not has_python_default and default is MISSING

        adapter = None
        if json_type in ("array", "object"):
            try:
                adapter = TypeAdapter(resolved)
            except PydanticSchemaGenerationError as e:
                raise DiscoveryError(
                    label, f"unsupported type for '{parameter.name}': {e}"
                ) from e

        return ParameterSpec(
            name=parameter.name,
            json_type=json_type,
            annotation=resolved,
            required=required,
            param=param,
            default=default,
            has_python_default=has_python_default,
            adapter=adapter,
        )

    @staticmethod
    def _is_plain_string(spec: ParameterSpec) -> bool:
        return (
            spec.annotation is str
            and not spec.has_python_default
            and (spec.param is None or not spec.param.is_rich)
        )

    @staticmethod
    def _minimal_schema() -> ToolInputSchema:
        return ToolInputSchema(
            properties={
                INSTRUCTIONS_KEY: ToolPropertySchema(
                    type="string", description=OPTIONAL_INSTRUCTIONS_DESCRIPTION
                )
            },
            required=[],
        )

    @staticmethod
    def _instructions_schema(spec: ParameterSpec) -> ToolInputSchema:
        description = INSTRUCTIONS_DESCRIPTION
        if spec.param is not None and spec.param.description:
            description = spec.param.description
        return ToolInputSchema(
            properties={
                INSTRUCTIONS_KEY: ToolPropertySchema(
                    type="string",
                    description=description,
                    example=INSTRUCTIONS_EXAMPLE,
                )
            },
            required=[INSTRUCTIONS_KEY],
        )

    @staticmethod
    def _property_for(spec: ParameterSpec) -> ToolPropertySchema:
        param = spec.param or Param()
        type_name = getattr(spec.annotation, "__name__", None) or str(spec.annotation)
        default = None if spec.default is MISSING else spec.default
        if isinstance(default, Decimal):
            default = float(default)
        return ToolPropertySchema(
            type=spec.json_type,
            description=param.description or f"Parameter of type {type_name}",
            default=default,
            enum_values=list(param.enum) if param.enum is not None else None,
            pattern=param.pattern,
            minimum=param.minimum,
            maximum=param.maximum,
            min_length=param.min_length,
            max_length=param.max_length,
            example=param.example,
        )
