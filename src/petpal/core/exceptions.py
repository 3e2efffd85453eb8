"""Exceptions raised by petpal components.

Input errors (SchemaValidationError, InvalidMediaFormat) surface to the caller before any model call.
Invocation errors (InvocationFailure) are mapped by each Flow to a fallback response.
Tool errors (ToolInputInvalid) are caught by the Caller and fed back to the model.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schema import Violation


class PetPalError(Exception):
    """Base class for petpal errors."""


class SchemaValidationError(PetPalError, ValueError):
    """A value does not satisfy its schema.

    Attributes
    ----------
    violations : list[Violation]
        Every violation found; validation does not stop at the first.
    """

    def __init__(self, schema_name: str, violations: list[Violation]):
        self.schema_name = schema_name
        self.violations = violations
        details = "; ".join(str(v) for v in violations)
        super().__init__(f"{len(violations)} violation(s) for {schema_name}: {details}")


class InvalidMediaFormat(PetPalError, ValueError):
    """A media reference is not a base64 image data uri."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Field '{field}' must be an image data uri ('data:image/<type>;base64,<data>')")


class TemplateSyntaxError(PetPalError, ValueError):
    """A prompt template uses an unsupported construct or references an undeclared field."""


class ToolInputInvalid(PetPalError):
    """The model requested a tool that does not exist or supplied invalid arguments."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


class FailureReason(str, Enum):
    NO_OUTPUT = "NoOutput"
    SCHEMA_VIOLATION = "SchemaViolation"
    BACKEND_ERROR = "BackendError"


class InvocationFailure(PetPalError):
    """A model invocation did not produce a schema-valid output."""

    def __init__(self, reason: FailureReason, message: str = ""):
        self.reason = FailureReason(reason)
        self.message = message
        super().__init__(f"{self.reason.value}: {message}" if message else self.reason.value)
