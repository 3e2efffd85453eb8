"""Flows compose schema validation, prompt rendering, and model invocation into one advisory feature.

Each invocation moves through these stages:

    RECEIVED -> INPUT_VALIDATED -> PROMPT_RENDERED -> MODEL_INVOKED -> OUTPUT_VALIDATED -> RETURNED

and leaves for FALLBACK_RETURNED from any stage after RECEIVED when the flow's policy substitutes a
fallback. Input errors are raised to the caller; invocation failures never are. A flow always returns
a value that satisfies its output schema.

A FlowSpec is the static definition of a flow. Flow subclasses bind a FlowSpec to feature-specific
policy through three hooks: precheck(), postprocess(), and fallback().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, ClassVar, Generic, Type, TypeVar

from pydantic import BaseModel
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from .caller import Caller
from .exceptions import FailureReason, InvocationFailure
from .schema import validate
from .template import PromptTemplate, RenderedPrompt
from .tool import ToolRegistry

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)


@dataclass(frozen=True)
class FlowSpec(Generic[InputT, OutputT]):
    """Static definition of one advisory capability.

    Built once at import time and never mutated; shared by every invocation.
    """

    name: str
    description: str
    input_model: Type[InputT]
    output_model: Type[OutputT]
    prompt: PromptTemplate
    instruction: str | None = None
    tools: ToolRegistry | None = None

    def __post_init__(self):
        if self.prompt.input_model is not self.input_model:
            raise ValueError(
                f"Prompt for flow '{self.name}' is bound to {self.prompt.input_model.__name__}, "
                f"expected {self.input_model.__name__}"
            )


class Stage(str, Enum):
    RECEIVED = "Received"
    INPUT_VALIDATED = "InputValidated"
    PROMPT_RENDERED = "PromptRendered"
    MODEL_INVOKED = "ModelInvoked"
    OUTPUT_VALIDATED = "OutputValidated"
    RETURNED = "Returned"
    FALLBACK_RETURNED = "FallbackReturned"


@dataclass
class FlowTrace:
    """Record of one invocation's path through the stages."""

    flow: str
    stages: list[Stage] = field(default_factory=list)
    attempts: int = 0
    failure: InvocationFailure | None = None

    @property
    def stage(self) -> Stage | None:
        return self.stages[-1] if self.stages else None

    @property
    def used_fallback(self) -> bool:
        return self.stage is Stage.FALLBACK_RETURNED

    def advance(self, stage: Stage) -> None:
        self.stages.append(stage)
        logger.debug(f"{self.flow}: {stage.value}")


def _is_backend_error(e: BaseException) -> bool:
    return isinstance(e, InvocationFailure) and e.reason is FailureReason.BACKEND_ERROR


class Flow(Generic[InputT, OutputT]):
    """Flow controller base.

    Parameters
    ----------
    caller : Caller
        Model invocation client.
    max_attempts : int, optional
        Attempts per invocation; BackendError failures are retried up to this many times, by default 1
    retry_backoff : float, optional
        Exponential backoff multiplier in seconds between attempts, by default 0.5
    """

    spec: ClassVar[FlowSpec]

    def __init__(self, caller: Caller, max_attempts: int = 1, retry_backoff: float = 0.5):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.caller = caller
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(flow={self.spec.name!r}, caller={self.caller!r})"

    @property
    def name(self) -> str:
        return self.spec.name

    async def __call__(self, value: dict[str, Any] | InputT) -> OutputT:
        """Run the flow and return its result (validated output or fallback)."""
        result, _ = await self.run_with_trace(value)
        return result

    async def run_with_trace(self, value: dict[str, Any] | InputT) -> tuple[OutputT, FlowTrace]:
        """Run the flow and also return the trace of stages visited.

        Raises
        ------
        SchemaValidationError
            If the input does not satisfy the input schema.
        InvalidMediaFormat
            If a media field is malformed and the flow's precheck does not handle it.
        """
        spec = self.spec
        trace = FlowTrace(flow=spec.name)
        trace.advance(Stage.RECEIVED)

        data = validate(spec.input_model, value)
        trace.advance(Stage.INPUT_VALIDATED)

        early = self.precheck(data)
        if early is not None:
            logger.info(f"{spec.name}: precheck short-circuited the invocation")
            return self._finish_with_fallback(early, trace), trace

        prompt = spec.prompt.render(data)
        trace.advance(Stage.PROMPT_RENDERED)

        try:
            output = await self._invoke(prompt, trace)
            trace.advance(Stage.OUTPUT_VALIDATED)
        except InvocationFailure as failure:
            logger.warning(f"{spec.name}: invocation failed ({failure}); returning fallback")
            trace.failure = failure
            return self._finish_with_fallback(self.fallback(data, failure), trace), trace

        result = self.postprocess(data, output)
        if result is not output:
            result = validate(spec.output_model, result)

        trace.advance(Stage.RETURNED)
        return result, trace

    async def _invoke(self, prompt: RenderedPrompt, trace: FlowTrace) -> OutputT:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_exception(_is_backend_error),
            wait=wait_exponential(multiplier=self.retry_backoff, max=8),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                trace.attempts += 1
                if trace.stage is not Stage.MODEL_INVOKED:
                    trace.advance(Stage.MODEL_INVOKED)
                return await self.caller.invoke(
                    prompt,
                    self.spec.output_model,
                    tools=self.spec.tools,
                    instruction=self.spec.instruction,
                )
        raise AssertionError("unreachable")  # pragma: no cover

    def _finish_with_fallback(self, value: OutputT | dict[str, Any], trace: FlowTrace) -> OutputT:
        result = validate(self.spec.output_model, value)
        trace.advance(Stage.FALLBACK_RETURNED)
        return result

    # --- policy hooks ---
    def precheck(self, data: InputT) -> OutputT | dict[str, Any] | None:
        """Return a result to short-circuit before rendering, or None to continue."""
        return None

    def postprocess(self, data: InputT, output: OutputT) -> OutputT:
        """Adjust a validated output before it is returned."""
        return output

    def fallback(self, data: InputT, failure: InvocationFailure) -> OutputT | dict[str, Any]:
        """Build the schema-valid response returned when invocation fails."""
        raise NotImplementedError(f"Flow '{self.spec.name}' must define a fallback")
