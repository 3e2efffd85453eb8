"""Core components for structured model flows.

This module provides schema validation, prompt templating, tool declaration and execution,
model invocation with tool round trips, and the flow controller base with fallback semantics.
"""

from .backend import AISuiteBackend, OpenAIBackend
from .base import ChatBackend, Validator
from .caller import Caller
from .exceptions import (
    FailureReason,
    InvalidMediaFormat,
    InvocationFailure,
    PetPalError,
    SchemaValidationError,
    TemplateSyntaxError,
    ToolInputInvalid,
)
from .flow import Flow, FlowSpec, FlowTrace, Stage
from .schema import Violation, ViolationKind, check, validate
from .template import MediaAttachment, PromptTemplate, RenderedPrompt
from .tool import Tool, ToolRegistry, tool

__all__ = [
    # Base protocols
    "ChatBackend",
    "Validator",
    # Schema validation
    "Violation",
    "ViolationKind",
    "check",
    "validate",
    # Templates
    "MediaAttachment",
    "PromptTemplate",
    "RenderedPrompt",
    # Tools
    "Tool",
    "ToolRegistry",
    "tool",
    # Invocation
    "AISuiteBackend",
    "OpenAIBackend",
    "Caller",
    # Flows
    "Flow",
    "FlowSpec",
    "FlowTrace",
    "Stage",
    # Exceptions
    "FailureReason",
    "InvalidMediaFormat",
    "InvocationFailure",
    "PetPalError",
    "SchemaValidationError",
    "TemplateSyntaxError",
    "ToolInputInvalid",
]
