"""Model invocation.

A Caller wraps all logic required for one structured model call: it builds the conversation from a
rendered prompt, asks the backend for a completion, runs any tool round trips the model requests,
and validates the final candidate against an output schema.

A Caller holds configuration only (backend, model, request params). It keeps no per-request state,
so one long-lived Caller may serve any number of concurrent invocations.
It never retries; each invocation surfaces exactly one attempt's outcome.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Type, TypeVar, cast

from pydantic import BaseModel

from .base import ChatBackend
from .exceptions import FailureReason, InvocationFailure
from .handler import ResponseHandler, ToolHandler
from .template import RenderedPrompt
from .tool import ToolRegistry
from ..types_.base import JSON
from ..types_.core import Conversation
from ..types_.openai_compat import ChatCompletion
from ..utilities import to_snake_case

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)

RESERVED_PARAMS = frozenset({"model", "messages", "tools", "tool_choice", "response_format"})


class Caller:
    """Invoke a chat model for structured output, with optional tool use.

    Parameters
    ----------
    backend : ChatBackend
        Sends one request and returns the completion.
    model : str
        Model identifier (e.g. 'openai:gpt-4o-mini')
    request_params : dict[str, JSON] | None, optional
        Additional API parameters used for every request (e.g. temperature), by default None
    max_tool_rounds : int, optional
        Maximum number of tool round trips in a single invocation, by default 5
    timeout : float | None, optional
        Seconds to wait for each backend request, by default None (no limit)
    """

    def __init__(
        self,
        backend: ChatBackend,
        model: str,
        request_params: dict[str, JSON] | None = None,
        max_tool_rounds: int = 5,
        timeout: float | None = None,
    ):
        if max_tool_rounds < 0:
            raise ValueError("max_tool_rounds must be >= 0")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")

        self.backend = backend
        self.model = model
        self.request_params = request_params
        self.max_tool_rounds = max_tool_rounds
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model!r}, backend={type(self.backend).__name__})"

    @property
    def model(self) -> str:
        """Get the model identifier in 'provider:name' format."""
        return self._model

    @model.setter
    def model(self, model: str):
        if not model or not isinstance(model, str):
            raise ValueError("Model must be a non-empty string")
        if ":" not in model:
            raise ValueError(
                "Model must be in format 'provider:identifier' (e.g., 'openai:gpt-4o' or 'anthropic:claude-3-5-haiku-latest')"
            )
        self._model = model

    @property
    def provider(self) -> str:
        return self.model.split(":")[0]

    @property
    def request_params(self) -> dict[str, JSON]:
        """Request parameters used for every execution."""
        return self._request_params

    @request_params.setter
    def request_params(self, request_params: dict[str, JSON] | None):
        params = dict(request_params or {})
        if "model" in params:
            raise ValueError("'model' should be set separately")
        reserved = RESERVED_PARAMS.intersection(params)
        if reserved:
            raise ValueError(f"Request params {sorted(reserved)} are managed by the Caller")
        self._request_params = params
        logger.debug(f"All API requests for {self.__class__.__name__} will use params : {self._request_params}")

    # --- request construction ---
    @staticmethod
    def proxy_tool_name(output_model: Type[BaseModel]) -> str:
        return to_snake_case(output_model.__name__)

    def _uses_proxy_tool(self) -> bool:
        return self.provider == "anthropic"

    def make_request_params(self, output_model: Type[BaseModel], tools: ToolRegistry | None = None) -> dict[str, JSON]:
        """Generate provider-specific structured-output and tool parameters."""
        from openai import pydantic_function_tool as openai_pydantic_function_tool

        declarations = tools.declarations() if tools else []

        if self._uses_proxy_tool():
            # Hack function-calling for models that do not support structured outputs
            proxy = openai_pydantic_function_tool(output_model, name=self.proxy_tool_name(output_model))
            tool_choice = {"type": "auto"} if declarations else {"type": "tool", "name": proxy["function"]["name"]}
            structured = {"tools": cast(JSON, [*declarations, proxy]), "tool_choice": tool_choice}
        else:
            structured = {"response_format": {"type": "json_object"}}
            if declarations:
                structured |= {"tools": cast(JSON, declarations), "tool_choice": "auto"}

        return {**self.request_params, **structured}

    def build_conversation(
        self,
        prompt: RenderedPrompt,
        response_handler: ResponseHandler,
        instruction: str | None = None,
    ) -> Conversation:
        """Combine the instruction, the response contract, and the rendered prompt."""
        contract = response_handler.validator.instructions()
        system = f"{instruction.strip()}\n\n{contract}" if instruction else contract

        return Conversation.builder().add_system(system).add_user(prompt.to_content()).build()

    # --- invocation ---
    async def invoke(
        self,
        prompt: RenderedPrompt,
        output_model: Type[OutputT],
        tools: ToolRegistry | None = None,
        instruction: str | None = None,
    ) -> OutputT:
        """Invoke the model and return a schema-valid output.

        Parameters
        ----------
        prompt : RenderedPrompt
            Rendered prompt text and media attachments.
        output_model : Type[BaseModel]
            Schema the final candidate must satisfy.
        tools : ToolRegistry | None, optional
            Tools the model may call before answering, by default None
        instruction : str | None, optional
            System instruction preceding the response contract, by default None

        Returns
        -------
        BaseModel
            The validated output.

        Raises
        ------
        InvocationFailure
            NoOutput, SchemaViolation, or BackendError. Never a partially-typed value.
        """
        response_handler = ResponseHandler(
            output_model,
            proxy_tool_name=self.proxy_tool_name(output_model) if self._uses_proxy_tool() else None,
        )
        tool_handler = ToolHandler(tools) if tools else None

        conversation = self.build_conversation(prompt, response_handler, instruction=instruction)
        params = self.make_request_params(output_model, tools)

        for tool_round in range(self.max_tool_rounds + 1):
            response = await self._chat_completions_create(conversation, params)

            calls = ToolHandler.requested_calls(response)
            if not calls or tool_handler is None or response_handler.candidate_call(response.choices[0].message):
                return response_handler.process(response)

            if tool_round == self.max_tool_rounds:
                break

            logger.debug(f"Tool round {tool_round + 1}: {[c.function.name for c in calls]}")
            results = await tool_handler.process(response)
            conversation.messages.extend([response.choices[0].message, *results])

        raise InvocationFailure(
            FailureReason.NO_OUTPUT, f"Model did not produce a final answer within {self.max_tool_rounds} tool rounds"
        )

    async def _chat_completions_create(self, conversation: Conversation, params: dict[str, JSON]) -> ChatCompletion:
        """Send the conversation to the backend; any backend error becomes an InvocationFailure.

        asyncio.CancelledError is not an Exception and propagates to the caller untouched.
        """
        try:
            request = self.backend.complete(self.model, conversation.to_messages(), **params)
            if self.timeout is None:
                return await request
            return await asyncio.wait_for(request, timeout=self.timeout)
        except InvocationFailure:
            raise
        except Exception as e:
            logger.exception(f"Backend request to {self.model} failed")
            raise InvocationFailure(FailureReason.BACKEND_ERROR, str(e) or type(e).__name__) from e
