"""Validation of final model completions.

A completion is parsed as JSON (repairing common formatting damage such as code fences,
trailing commas, or unquoted keys) and validated against the output schema.
"""

from __future__ import annotations

import json
import logging
import textwrap
from typing import Type, TypeVar

import json_repair
from pydantic import BaseModel
from typing_extensions import override

from .base import Validator
from .exceptions import FailureReason, InvocationFailure, SchemaValidationError
from .schema import validate

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)


class PydanticValidator(Validator[OutputT]):
    """A validator that uses a pydantic model to parse and verify JSON responses.

    Examples
    --------
    >>> class Names(BaseModel):
    ...     names: list[str]
    >>> validator = PydanticValidator(Names)
    >>> validator.validate('```json\\n{"names": ["Rex"]}\\n```').names
    ['Rex']

    Raises
    ------
    InvocationFailure
        SchemaViolation if the completion is not a JSON object or fails the schema.
    """

    def __init__(self, model: Type[OutputT]):
        self.model = model

    @override
    def validate(self, completion: str) -> OutputT:
        parsed = json_repair.loads(completion)
        if not isinstance(parsed, dict):
            raise InvocationFailure(
                FailureReason.SCHEMA_VIOLATION, f"Expected a JSON object for {self.model.__name__}"
            )
        try:
            return validate(self.model, parsed)
        except SchemaValidationError as e:
            raise InvocationFailure(FailureReason.SCHEMA_VIOLATION, str(e)) from e

    def instructions(self) -> str:
        """Describe the response contract for the system prompt."""
        return textwrap.dedent(
            f"""
            Respond only with a JSON object that conforms to this JSON schema:
            {json.dumps(self.model.model_json_schema(by_alias=True))}
            """
        ).strip()
