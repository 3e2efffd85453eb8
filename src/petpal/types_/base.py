from __future__ import annotations

import logging
from types import UnionType
from typing import Annotated, Any, Union, get_args, get_origin

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    WrapValidator,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError
from typing_extensions import TypeAliasType  # TODO: import from typing when drop support for 3.11

logger = logging.getLogger(__name__)


def json_simple_error_validator(value: Any, handler: ValidatorFunctionWrapHandler, _info: ValidationInfo) -> Any:
    """Simplify the error message to avoid a gross error stemming from exhaustive checking of all union options."""
    try:
        return handler(value)
    except ValidationError as e:
        raise PydanticCustomError("invalid_json", "Input is not valid json") from e


JSONValue = Union[
    str,  # JSON string
    int,  # JSON number (integer)
    float,  # JSON number (float)
    bool,  # JSON boolean
    None,  # JSON null
]
JSON = TypeAliasType(
    "JSON",
    Annotated[
        Union[dict[str, "JSON"], list["JSON"], JSONValue],
        WrapValidator(json_simple_error_validator),
    ],
)


def _scalar_types(annotation: Any) -> set[type]:
    """Return the bool and number types an annotation admits."""
    if get_origin(annotation) in (Union, UnionType):
        return {arg for arg in get_args(annotation) if arg in (bool, int, float)}
    return {annotation} if annotation in (bool, int, float) else set()


class WireModel(BaseModel):
    """Base for flow inputs and outputs.

    Attributes are snake_case in Python and camelCase on the wire.
    Undeclared fields are ignored so that extra commentary from a model does not fail validation.
    """

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def blank_optional_as_none(cls, value: Any, info: ValidationInfo) -> Any:
        """Treat a blank optional field as absent; forms submit "" for fields left empty."""
        field = cls.model_fields[info.field_name]
        if isinstance(value, str) and not value.strip() and not field.is_required():
            return field.get_default(call_default_factory=True)
        return value

    @field_validator("*", mode="before")
    @classmethod
    def no_bool_number_coercion(cls, value: Any, info: ValidationInfo) -> Any:
        """Reject booleans for number fields and non-booleans for boolean fields.

        Numeric strings are still parsed into numbers; blank strings are left to the optional-field handling.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return value
        kinds = _scalar_types(cls.model_fields[info.field_name].annotation)
        if kinds == {bool} and not isinstance(value, bool):
            raise PydanticCustomError(
                "bool_type", "Input should be a valid boolean, not {kind}", {"kind": type(value).__name__}
            )
        if kinds and bool not in kinds and isinstance(value, bool):
            raise PydanticCustomError("number_type", "Input should be a valid number, not a boolean")
        return value

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
