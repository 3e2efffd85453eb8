"""Functions and helpers for tool use.

A Tool wraps a typed, documented python function so a model can call it mid-generation.
Its input model is derived from the function signature, its description from the docstring,
and its output model from ``returns`` (or the return annotation).

A ToolRegistry holds the tools made available to one flow. It exports their declarations,
validates tool-call arguments, and executes calls, turning every failure into a tool result
the model can read instead of an exception that aborts the flow.

ref: https://github.com/openai/openai-agents-python/blob/8d906f88f02d30b3cf6068e5de88a5f1e4bafd82/src/agents/function_schema.py
"""

from __future__ import annotations

import contextlib
import inspect
import json
import logging
import re
import textwrap
from typing import Any, Callable, Generic, Iterator, Literal, Type, TypeVar, get_type_hints

import json_repair
from pydantic import BaseModel, Field, TypeAdapter, create_model

from .exceptions import SchemaValidationError, ToolInputInvalid
from .schema import validate
from ..types_.base import JSON
from ..types_.core import ToolResultMessage
from ..types_.openai_compat import ChatCompletionMessageToolCall

logger = logging.getLogger(__name__)

ToolReturnType = TypeVar("ToolReturnType")

DocstringStyle = Literal["google", "numpy", "sphinx"]


def _detect_docstring_style(doc: str) -> DocstringStyle:
    """Detect the style of a docstring.

    As of Feb 2025, the automatic style detection in griffe is an Insiders feature. This code approximates it.

    Ref: https://github.com/openai/openai-agents-python/blob/8d906f88f02d30b3cf6068e5de88a5f1e4bafd82/src/agents/function_schema.py#L87-L129
    """
    scores: dict[DocstringStyle, int] = {"sphinx": 0, "numpy": 0, "google": 0}

    patterns: dict[DocstringStyle, list[str]] = {
        "sphinx": [r"^:param\s", r"^:type\s", r"^:return:", r"^:rtype:"],
        "numpy": [r"^Parameters\s*\n\s*-{3,}", r"^Returns\s*\n\s*-{3,}", r"^Yields\s*\n\s*-{3,}"],
        "google": [r"^(Args|Arguments):", r"^(Returns):", r"^(Raises):"],
    }
    for style, style_patterns in patterns.items():
        scores[style] = sum(1 for pattern in style_patterns if re.search(pattern, doc, re.MULTILINE))

    max_score = max(scores.values())
    if max_score == 0:
        return "google"

    # Priority order: sphinx > numpy > google in case of tie
    for style in ("sphinx", "numpy", "google"):
        if scores[style] == max_score:
            return style
    return "google"


@contextlib.contextmanager
def _suppress_griffe_logging():
    """Suppress griffe warnings about missing annotations for params."""
    griffe_logger = logging.getLogger("griffe")
    previous_level = griffe_logger.getEffectiveLevel()
    griffe_logger.setLevel(logging.ERROR)
    try:
        yield
    finally:
        griffe_logger.setLevel(previous_level)


def _parse_docstring(fn: Callable):
    from griffe import Docstring

    doc = inspect.getdoc(fn)
    if not doc:
        return None

    with _suppress_griffe_logging():
        docstring = Docstring(doc, lineno=1, parser=_detect_docstring_style(doc))
        return docstring.parse()


def extract_function_description(fn: Callable) -> str | None:
    """Extract the description from a function's docstring."""
    from griffe import DocstringSectionKind

    parsed = _parse_docstring(fn)
    if parsed is None:
        return None
    return next((section.value for section in parsed if section.kind == DocstringSectionKind.text), None)


def extract_param_descriptions(fn: Callable) -> dict[str, str]:
    """Extract the parameter descriptions from a function's docstring."""
    from griffe import DocstringSectionKind

    parsed = _parse_docstring(fn)
    if parsed is None:
        return {}
    return {
        param.name: param.description
        for section in parsed
        if section.kind == DocstringSectionKind.parameters
        for param in section.value
    }


def input_model(fn: Callable, name: str | None = None, description: str | None = None) -> Type[BaseModel]:
    """Generate a pydantic model describing a function's parameters.

    Extracts type hints and default values (ignoring 'self' and 'cls').
    Variadic parameters are not supported; tools take named arguments only.
    """
    if inspect.ismethod(fn):
        fn = fn.__func__

    if description is None:
        if inspect.getdoc(fn) is None:
            logger.warning(f"Function {fn.__name__} requires docstrings for viable tool description.")
        description = extract_function_description(fn) or ""

    sig = inspect.signature(fn)
    type_hints = get_type_hints(fn)
    param_descs = extract_param_descriptions(fn)

    fields: dict[str, Any] = {}
    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls"):
            continue
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            raise TypeError(f"Tool '{fn.__name__}' cannot declare variadic parameter '{param_name}'")

        annotation = type_hints.get(param_name, param.annotation)
        if annotation is inspect.Parameter.empty:
            raise TypeError(f"No type annotation provided for param '{param_name}'")

        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param_name] = (annotation, Field(default, description=param_descs.get(param_name)))

    return create_model(
        name or fn.__name__,
        __doc__=description,
        __base__=BaseModel,
        **fields,
    )


def pydantic_to_schema(model: Type[BaseModel], strict: bool = True) -> dict[str, Any]:
    """Convert a pydantic model to an OpenAPI-compatible JSON schema."""
    if strict:
        from openai.lib._pydantic import to_strict_json_schema

        return to_strict_json_schema(model)
    return model.model_json_schema()


class Tool(Generic[ToolReturnType]):
    """A callable side-function a model may invoke.

    Attributes
    ----------
    name : str
        Name shown to the model.
    description : str
        Natural-language description the model uses to decide when to call the tool.
    input_model : Type[BaseModel]
        Schema for call arguments.
    returns : type
        Output schema; results are validated (and coerced) against it.
    """

    def __init__(
        self,
        func: Callable[..., ToolReturnType],
        name: str | None = None,
        description: str | None = None,
        returns: Type[ToolReturnType] | None = None,
    ) -> None:
        self._func = func
        self.name = name or func.__name__
        self.input_model = input_model(func, name=self.name, description=description)
        self.description = self.input_model.__doc__ or ""
        self.returns = returns or get_type_hints(func).get("return", Any)
        self._return_adapter = None if self.returns is Any else TypeAdapter(self.returns)

        self.__name__ = self.name
        self.__doc__ = self.description

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"

    def __call__(self, *args: Any, **kwargs: Any) -> ToolReturnType:
        """Call the implementation directly and validate the result."""
        return self.validate_return(self._func(*args, **kwargs))

    async def acall(self, **kwargs: Any) -> ToolReturnType:
        """Call the implementation, awaiting it if it is a coroutine function."""
        result = self._func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return self.validate_return(result)

    def validate_return(self, value: Any) -> ToolReturnType:
        """Validate (and coerce) a result against the output schema."""
        if self._return_adapter is None:
            return value
        if isinstance(self.returns, type) and issubclass(self.returns, BaseModel):
            return validate(self.returns, value)
        return self._return_adapter.validate_python(value)

    @property
    def json_schema(self) -> dict[str, Any]:
        """Strict JSON schema for the call arguments."""
        return pydantic_to_schema(self.input_model)

    def declaration(self) -> dict[str, JSON]:
        """Function-tool declaration in the chat completions format."""
        from openai import pydantic_function_tool

        return pydantic_function_tool(self.input_model, name=self.name, description=self.description)

    @staticmethod
    def respond_as_tool(tool_call_id: str, response: Any) -> ToolResultMessage:
        """Convert a response into a ToolResultMessage for tool output."""
        if tool_call_id is None:
            raise ValueError("tool_call_id is required")

        if isinstance(response, str):
            responsestr = response
        elif isinstance(response, BaseModel):
            responsestr = response.model_dump_json(by_alias=True)
        else:
            try:
                responsestr = json.dumps(response)
            except (TypeError, ValueError) as e:
                logger.debug(f"Could not serialize result as json string: {e}")
                responsestr = str(response)

        return ToolResultMessage(tool_call_id=tool_call_id, content=responsestr)


def tool(
    func: Callable[..., ToolReturnType] | None = None,
    *,
    name: str | None = None,
    description: str | None = None,
    returns: Type[Any] | None = None,
) -> Any:
    """Decorate a function into a Tool.

    Can be used either as a bare decorator (@tool) or with parameters (@tool(name=..., returns=...)).

    Examples
    --------
    >>> @tool
    ... def add(x: int, y: int) -> int:
    ...     "Add two numbers."
    ...     return x + y
    >>> add(1, 2)
    3

    >>> class Issues(BaseModel):
    ...     issues: list[str]
    >>> @tool(name="getIssues", returns=Issues)
    ... def get_issues(breed: str):
    ...     "Look up issues for a breed."
    ...     return {"issues": [breed]}
    >>> get_issues("pug").issues
    ['pug']
    """

    def decorator(f: Callable[..., Any]) -> Tool:
        return Tool(f, name=name, description=description, returns=returns)

    if func is not None:
        return decorator(func)
    return decorator


class ToolRegistry:
    """The tools available to one model invocation.

    Read-only after construction, so a registry may be shared by concurrent invocations.

    Examples
    --------
    >>> registry = ToolRegistry([add])
    >>> registry.names
    ['add']
    """

    def __init__(self, tools: list[Tool]):
        if not tools:
            logger.warning("ToolRegistry initialized with an empty toolbox")

        toolbox: dict[str, Tool] = {}
        for t in tools:
            if not isinstance(t, Tool):
                raise TypeError(f"ToolRegistry requires Tool objects. Received {t}: {type(t)}")
            if t.name in toolbox:
                raise ValueError(f"Duplicate tool name '{t.name}'")
            if not t.description:
                logger.warning(f"Tool {t.name} should have a description so the model knows when to call it.")
            toolbox[t.name] = t
        self._toolbox = toolbox

    def __contains__(self, name: str) -> bool:
        return name in self._toolbox

    def __getitem__(self, name: str) -> Tool:
        return self._toolbox[name]

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._toolbox.values())

    def __len__(self) -> int:
        return len(self._toolbox)

    @property
    def names(self) -> list[str]:
        return list(self._toolbox)

    def declarations(self) -> list[dict[str, JSON]]:
        """Tool declarations for the chat completions request."""
        return [t.declaration() for t in self]

    def validate(self, tool_call: ChatCompletionMessageToolCall) -> BaseModel:
        """Validate a tool call by matching its name and validating its arguments.

        Raises
        ------
        ToolInputInvalid
            If the tool does not exist, the arguments are not a JSON object, or they violate the input schema.
        """
        name = tool_call.function.name
        if name not in self._toolbox:
            raise ToolInputInvalid(name, f"Tool '{name}' does not exist. Available tools: {', '.join(self.names)}")

        arguments = json_repair.loads(tool_call.function.arguments or "{}")
        if not isinstance(arguments, dict):
            raise ToolInputInvalid(name, f"Arguments for '{name}' must be a JSON object")
        try:
            return validate(self._toolbox[name].input_model, arguments)
        except SchemaValidationError as e:
            raise ToolInputInvalid(name, str(e)) from e

    def repair_instructions(self, tool_call: ChatCompletionMessageToolCall, error: str) -> str:
        """Explain an invalid tool call to the model."""
        function = tool_call.function
        if function.name not in self._toolbox:
            return f"Tool call failed: {error}"
        return textwrap.dedent(
            f"""
            Validation failed: {error}
            Please update your call to conform to the following schema for function '{function.name}':
            {json.dumps(self._toolbox[function.name].json_schema)}
            """
        ).strip()

    async def execute(self, tool_call: ChatCompletionMessageToolCall) -> ToolResultMessage:
        """Run one tool call and package its outcome as a tool result.

        Invalid arguments and exceptions raised by the implementation become error results so the
        model can still produce a final answer.
        """
        try:
            arguments = self.validate(tool_call)
        except ToolInputInvalid as e:
            logger.warning(f"Invalid tool call {tool_call.function.name}: {e}")
            return Tool.respond_as_tool(tool_call.id, {"error": self.repair_instructions(tool_call, str(e))})

        fn = self._toolbox[tool_call.function.name]
        logger.debug(f"Invoking {fn.name} with params: {arguments}")
        try:
            result = await fn.acall(**arguments.model_dump())
        except Exception as e:  # NOQA: BLE001
            logger.exception(f"Tool {fn.name} raised an error")
            return Tool.respond_as_tool(tool_call.id, {"error": f"Tool '{fn.name}' failed: {e}"})

        return Tool.respond_as_tool(tool_call.id, result)
