"""Handlers process model completions.

- ResponseHandler: extracts the final candidate from a completion and validates it.
- ToolHandler: executes the tool calls a completion requests and returns their results as messages.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Generic, Type, TypeVar

from pydantic import BaseModel

from .exceptions import FailureReason, InvocationFailure
from .tool import ToolRegistry
from .validator import PydanticValidator
from ..types_.core import ToolResultMessage
from ..types_.openai_compat import ChatCompletion, ChatCompletionMessage, ChatCompletionMessageToolCall

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)


class ResponseHandler(Generic[OutputT]):
    """Extract and validate the final structured candidate of an invocation.

    Parameters
    ----------
    output_model : Type[BaseModel]
        The output schema.
    proxy_tool_name : str | None
        Name of the function tool standing in for structured output on providers without a JSON mode.
        A call to this tool carries the candidate in its arguments.
    """

    def __init__(self, output_model: Type[OutputT], proxy_tool_name: str | None = None):
        self.validator = PydanticValidator(output_model)
        self.proxy_tool_name = proxy_tool_name

    def candidate_call(self, message: ChatCompletionMessage) -> ChatCompletionMessageToolCall | None:
        """Return the structured-output proxy call in a message, if any."""
        if not (self.proxy_tool_name and message.tool_calls):
            return None
        calls = [c for c in message.tool_calls if c.function.name == self.proxy_tool_name]
        if len(calls) > 1:
            logger.warning("Received multiple structured output candidates, only the first will be processed")
        return calls[0] if calls else None

    def process(self, response: ChatCompletion) -> OutputT:
        """Validate the final candidate of a completion.

        Raises
        ------
        InvocationFailure
            NoOutput when there is no candidate (refusal, content filter, empty completion);
            SchemaViolation when the candidate does not satisfy the output schema.
        """
        if not response.choices:
            raise InvocationFailure(FailureReason.NO_OUTPUT, "Response contained no choices")

        choice = response.choices[0]
        msg = choice.message

        proxy_call = self.candidate_call(msg)
        if proxy_call is not None:
            return self.validator.validate(proxy_call.function.arguments)

        if msg.content and msg.content.strip():
            return self.validator.validate(msg.content)

        if msg.refusal:
            raise InvocationFailure(FailureReason.NO_OUTPUT, f"Model refused: {msg.refusal}")
        if choice.finish_reason == "content_filter":
            raise InvocationFailure(FailureReason.NO_OUTPUT, "Response was blocked by content filtering")
        raise InvocationFailure(FailureReason.NO_OUTPUT, "Expected content response but received none")


class ToolHandler:
    """Execute the tool calls requested in a completion.

    Calls in one message run one after another, in the order requested; the model
    receives all of their results before it continues.
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    @staticmethod
    def requested_calls(response: ChatCompletion) -> list[ChatCompletionMessageToolCall]:
        if not response.choices:
            return []
        return list(response.choices[0].message.tool_calls or [])

    async def process(self, response: ChatCompletion) -> list[ToolResultMessage]:
        """Run every requested tool call and return one result message per call."""
        results = []
        for tool_call in self.requested_calls(response):
            results.append(await self.registry.execute(tool_call))
            # yield between calls so cancellation is observed promptly
            await asyncio.sleep(0)
        return results
