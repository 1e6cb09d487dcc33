"""Declarative input schemas and the single validator that interprets them.

A :class:`ToolSchema` describes the arguments a tool accepts. It renders to
JSON Schema for ``tools/list`` and is applied to raw client arguments by
:func:`validate` before the handler runs, so tools never parse their own
input. Validation goes through a pydantic model built from the schema with
``create_model``.

Usage::

    schema = ToolSchema(fields={
        "limit": FieldSpec(type="integer", default=20, minimum=1, maximum=100),
        "participants": FieldSpec(type="string", required=True),
    })
    outcome = validate(schema, {"participants": "+15550100", "limit": "50"})
    outcome.value   # {"participants": "+15550100", "limit": 50}
"""

from __future__ import annotations

import copy
import math
from functools import lru_cache
from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    ValidationError,
    create_model,
)

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

FieldType = Literal["string", "number", "integer", "boolean", "array", "object"]


class FieldSpec(BaseModel):
    """Constraints for a single named argument."""

    type: FieldType = "string"
    description: str = ""
    required: bool = False
    default: Any = None
    enum: list[Any] | None = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    items: FieldSpec | None = None

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        length_keys = ("minItems", "maxItems") if self.type == "array" else ("minLength", "maxLength")
        if self.min_length is not None:
            schema[length_keys[0]] = self.min_length
        if self.max_length is not None:
            schema[length_keys[1]] = self.max_length
        if self.pattern is not None:
            schema["pattern"] = self.pattern
        if self.items is not None:
            schema["items"] = self.items.to_json_schema()
        return schema


class ToolSchema(BaseModel):
    """The full argument shape of a tool."""

    fields: dict[str, FieldSpec] = {}
    additional_properties: bool = True

    def to_json_schema(self) -> dict[str, Any]:
        """Render as a JSON Schema object."""
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {name: spec.to_json_schema() for name, spec in self.fields.items()},
        }
        required = [name for name, spec in self.fields.items() if spec.required]
        if required:
            schema["required"] = required
        if not self.additional_properties:
            schema["additionalProperties"] = False
        return schema


class Violation(BaseModel):
    """One field-level validation failure."""

    field: str
    message: str


class ValidationResult(BaseModel):
    """Normalized arguments, or the violations that prevented normalization."""

    value: dict[str, Any] = Field(default_factory=dict)
    violations: list[Violation] = []

    @property
    def ok(self) -> bool:
        return not self.violations


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class ArgumentsBase(BaseModel):
    """Base for the argument models built from a :class:`ToolSchema`."""

    model_config = ConfigDict(extra="allow")


class ClosedArgumentsBase(ArgumentsBase):
    model_config = ConfigDict(extra="forbid")


def argument_model(schema: ToolSchema) -> type[ArgumentsBase]:
    """Return the pydantic model that enforces *schema*.

    Models are cached by the schema's JSON dump, so equal schemas share one
    model class.
    """
    return _cached_model(schema.model_dump_json())


@lru_cache(maxsize=256)
def _cached_model(dumped: str) -> type[ArgumentsBase]:
    schema = ToolSchema.model_validate_json(dumped)
    params: dict[str, Any] = {}
    for index, (name, spec) in enumerate(schema.fields.items()):
        # Aliases keep client names that would clash with BaseModel attributes.
        if spec.required:
            params[_attr(index)] = (_annotation(spec), Field(alias=name))
        else:
            params[_attr(index)] = (_annotation(spec), Field(default=None, alias=name))
    base = ArgumentsBase if schema.additional_properties else ClosedArgumentsBase
    return create_model("ToolArguments", __base__=base, **params)


def _attr(index: int) -> str:
    return f"arg_{index}"


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        msg = "booleans are not numbers"
        raise ValueError(msg)
    return value


def _annotation(spec: FieldSpec) -> Any:
    """Translate one :class:`FieldSpec` into a constrained pydantic type."""
    if spec.enum is not None:
        return Literal[tuple(spec.enum)]  # type: ignore[valid-type]

    if spec.type == "integer":
        bounds: dict[str, Any] = {}
        if spec.minimum is not None:
            bounds["ge"] = math.ceil(spec.minimum)
        if spec.maximum is not None:
            bounds["le"] = math.floor(spec.maximum)
        return Annotated[int, BeforeValidator(_reject_bool), Field(**bounds)]
    if spec.type == "number":
        return Annotated[
            float,
            BeforeValidator(_reject_bool),
            Field(ge=spec.minimum, le=spec.maximum, allow_inf_nan=False),
        ]
    if spec.type == "boolean":
        return StrictBool
    if spec.type == "object":
        return dict[str, Any]

    lengths = Field(min_length=spec.min_length, max_length=spec.max_length)
    if spec.type == "array":
        item = _annotation(spec.items) if spec.items is not None else Any
        return Annotated[list[item], lengths]  # type: ignore[valid-type]
    return Annotated[StrictStr, lengths, Field(pattern=spec.pattern)]


def validate(schema: ToolSchema, raw_args: Any) -> ValidationResult:
    """Apply *schema* to *raw_args*.

    ``None`` is treated as an empty argument object, and a ``None`` value
    for a declared field counts as absent. Defaults are filled in for absent
    optional fields and numeric strings are converted only where the field
    is declared numeric.
    """
    if raw_args is None:
        raw_args = {}
    if not isinstance(raw_args, dict):
        return ValidationResult(
            violations=[Violation(field="", message="arguments must be an object")]
        )

    present = {
        key: item for key, item in raw_args.items() if item is not None or key not in schema.fields
    }
    try:
        arguments = argument_model(schema).model_validate(present)
    except ValidationError as exc:
        return ValidationResult(
            violations=[_violation(schema, error) for error in exc.errors(include_url=False)]
        )

    value: dict[str, Any] = {}
    for index, (name, spec) in enumerate(schema.fields.items()):
        if _attr(index) in arguments.model_fields_set:
            value[name] = getattr(arguments, _attr(index))
        elif spec.default is not None:
            value[name] = copy.deepcopy(spec.default)
    value.update(arguments.model_extra or {})
    return ValidationResult(value=value)


def _violation(schema: ToolSchema, error: ErrorDetails) -> Violation:
    """Map one pydantic error onto the field path and message clients see."""
    loc = error["loc"]
    spec = schema.fields.get(str(loc[0])) if loc else None
    path = str(loc[0]) if loc else ""
    for part in loc[1:]:
        if isinstance(part, int):
            path += f"[{part}]"
            if spec is not None:
                spec = spec.items
        else:
            path += f".{part}"

    kind = error["type"]
    if kind == "missing":
        return Violation(field=path, message="field required")
    if kind == "extra_forbidden" or spec is None:
        return Violation(field=path, message="unexpected field")
    return Violation(field=path, message=_message(kind, spec))


def _message(kind: str, spec: FieldSpec) -> str:
    if kind == "literal_error":
        return "must be one of " + ", ".join(repr(v) for v in spec.enum or [])
    if kind == "greater_than_equal" and spec.minimum is not None:
        return f"must be >= {spec.minimum:g}"
    if kind == "less_than_equal" and spec.maximum is not None:
        return f"must be <= {spec.maximum:g}"
    if kind in ("string_too_short", "too_short"):
        return f"length must be >= {spec.min_length}"
    if kind in ("string_too_long", "too_long"):
        return f"length must be <= {spec.max_length}"
    if kind == "string_pattern_mismatch":
        return f"must match pattern {spec.pattern!r}"
    return f"expected {spec.type}"
