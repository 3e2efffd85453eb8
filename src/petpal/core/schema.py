"""Schema validation for flow inputs, flow outputs, and tool arguments.

Schemas are pydantic models. A single generic validator runs any schema against a value
and translates pydantic's error records into tagged violations:

- MissingRequiredField: a required field is absent
- TypeMismatch: a field is present with the wrong type (including failed numeric coercion)
- OutOfRange: a numeric, string-length, or list-length bound is violated
- InvalidEnumValue: a value is not one of the declared literals

Every violation is reported, not just the first. Undeclared fields are ignored when the schema
sets extra="ignore" (all petpal wire models do).
"""

from __future__ import annotations

from enum import Enum
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic_core import ErrorDetails

from .exceptions import SchemaValidationError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ViolationKind(str, Enum):
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    TYPE_MISMATCH = "TypeMismatch"
    OUT_OF_RANGE = "OutOfRange"
    INVALID_ENUM_VALUE = "InvalidEnumValue"


_MISSING_TYPES = frozenset({"missing"})
_ENUM_TYPES = frozenset({"literal_error", "enum"})
_RANGE_TYPES = frozenset(
    {
        "greater_than",
        "greater_than_equal",
        "less_than",
        "less_than_equal",
        "multiple_of",
        "too_short",
        "too_long",
        "string_too_short",
        "string_too_long",
    }
)


class Violation(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ViolationKind
    field: str
    message: str
    value: Any = None

    def __str__(self) -> str:
        return f"{self.kind.value} at '{self.field or '<root>'}': {self.message}"


def _field_path(loc: tuple[int | str, ...]) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def _classify(error_type: str) -> ViolationKind:
    if error_type in _MISSING_TYPES:
        return ViolationKind.MISSING_REQUIRED_FIELD
    if error_type in _ENUM_TYPES:
        return ViolationKind.INVALID_ENUM_VALUE
    if error_type in _RANGE_TYPES:
        return ViolationKind.OUT_OF_RANGE
    return ViolationKind.TYPE_MISMATCH


def violation_from_error(error: ErrorDetails) -> Violation:
    """Translate one pydantic error record into a Violation."""
    kind = _classify(error["type"])
    return Violation(
        kind=kind,
        field=_field_path(error["loc"]),
        message=error["msg"],
        # the 'input' of a missing-field error is the enclosing object, not the field
        value=None if kind is ViolationKind.MISSING_REQUIRED_FIELD else error.get("input"),
    )


def _prepare(schema: type[BaseModel], value: Any) -> Any:
    if isinstance(value, BaseModel) and not isinstance(value, schema):
        return value.model_dump(by_alias=True, exclude_none=True)
    return value


def check(schema: type[BaseModel], value: Any) -> list[Violation]:
    """Return every violation of ``schema`` by ``value``; an empty list means the value is valid."""
    if isinstance(value, schema):
        return []
    try:
        schema.model_validate(_prepare(schema, value))
    except ValidationError as e:
        return [violation_from_error(err) for err in e.errors()]
    return []


def validate(schema: type[SchemaT], value: Any) -> SchemaT:
    """Validate ``value`` against ``schema``.

    Parameters
    ----------
    schema : type[BaseModel]
        The pydantic model declaring fields, types, bounds and optionality.
    value : Any
        A mapping (wire or attribute names), a model instance, or anything else (which fails).

    Returns
    -------
    BaseModel
        The typed value. Instances of ``schema`` are returned unchanged.

    Raises
    ------
    SchemaValidationError
        With every violation found.
    """
    if isinstance(value, schema):
        return value
    try:
        return schema.model_validate(_prepare(schema, value))
    except ValidationError as e:
        violations = [violation_from_error(err) for err in e.errors()]
        logger.debug(f"{schema.__name__} rejected value with {len(violations)} violation(s)")
        raise SchemaValidationError(schema.__name__, violations) from e
