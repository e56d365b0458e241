"""Declarative tool parameters and the generic argument validator."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from functools import lru_cache
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    create_model,
)


class ParamKind(StrEnum):
    """Primitive kinds accepted for tool parameters."""

    STRING = "string"
    INTEGER = "integer"


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """One named tool parameter with its type, bounds and default."""

    name: str
    kind: ParamKind
    description: str
    required: bool = True
    default: object = None
    minimum: int | None = None
    maximum: int | None = None
    non_empty: bool = False


class ToolValidationError(ValueError):
    """Raised when tool arguments violate the declared parameters."""

    def __init__(self, violations: tuple[str, ...]) -> None:
        super().__init__("Invalid arguments: " + "; ".join(violations))
        self.violations = violations


class _ArgumentsModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


def _reject_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("blank string")
    return value


def _field_definition(spec: ParamSpec) -> tuple[Any, Any]:
    """Translate one parameter into a pydantic field type and ``FieldInfo``."""
    annotation: Any
    if spec.kind is ParamKind.STRING:
        annotation = StrictStr
        if spec.non_empty:
            annotation = Annotated[StrictStr, AfterValidator(_reject_blank)]
    else:
        annotation = StrictInt
    if not spec.required:
        annotation = annotation | None
    default = ... if spec.required else spec.default
    return annotation, Field(
        default=default,
        ge=spec.minimum,
        le=spec.maximum,
        description=spec.description,
    )


@lru_cache(maxsize=None)
def _arguments_model(params: tuple[ParamSpec, ...]) -> type[BaseModel]:
    """Build (once per parameter tuple) the model that checks an argument bag."""
    fields = {spec.name: _field_definition(spec) for spec in params}
    return create_model("ToolArguments", __base__=_ArgumentsModel, **fields)


def _describe_error(error: Mapping[str, Any]) -> str:
    """Render one pydantic error as a message naming the offending field."""
    name = str(error["loc"][0]) if error["loc"] else "arguments"
    kind = error["type"]
    value = error.get("input")
    ctx = error.get("ctx") or {}
    if kind == "missing":
        return f"'{name}' is required."
    if kind == "string_type":
        return f"'{name}' must be a string, got {type(value).__name__}."
    if kind == "int_type":
        return f"'{name}' must be an integer, got {type(value).__name__}."
    if kind in ("value_error", "string_too_short"):
        return f"'{name}' must be a non-empty string."
    if kind == "greater_than_equal":
        return f"'{name}' must be >= {ctx['ge']}, got {value}."
    if kind == "less_than_equal":
        return f"'{name}' must be <= {ctx['le']}, got {value}."
    return f"'{name}': {error['msg']}."


def validate_arguments(
    params: tuple[ParamSpec, ...],
    arguments: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """Validate an argument bag, returning typed values with defaults applied.

    Every violated constraint is collected before raising, so callers can fix
    all fields in one round. Unknown keys are ignored. ``None`` counts as absent.
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ToolValidationError(("Arguments must be a JSON object.",))

    present = {key: value for key, value in arguments.items() if value is not None}
    try:
        model = _arguments_model(params).model_validate(present)
    except ValidationError as error:
        raise ToolValidationError(
            tuple(_describe_error(detail) for detail in error.errors())
        ) from error
    return {spec.name: getattr(model, spec.name) for spec in params}


def build_input_schema(params: tuple[ParamSpec, ...]) -> dict[str, Any]:
    """Render parameters as the JSON Schema advertised to MCP clients."""
    properties: dict[str, Any] = {}
    for spec in params:
        prop: dict[str, Any] = {"type": str(spec.kind), "description": spec.description}
        if spec.non_empty:
            prop["minLength"] = 1
        if spec.minimum is not None:
            prop["minimum"] = spec.minimum
        if spec.maximum is not None:
            prop["maximum"] = spec.maximum
        if spec.default is not None:
            prop["default"] = spec.default
        properties[spec.name] = prop

    return {
        "type": "object",
        "properties": properties,
        "required": [spec.name for spec in params if spec.required],
    }
