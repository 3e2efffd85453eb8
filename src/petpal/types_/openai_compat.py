from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel

from .core import Message

logger = logging.getLogger(__name__)


# OpenAI compatibility
class ChatCompletionMessageToolCallFunction(BaseModel, extra="ignore"):
    name: str
    arguments: str


class ChatCompletionMessageToolCall(BaseModel, extra="ignore"):
    id: str
    function: ChatCompletionMessageToolCallFunction
    type: Literal["function"] = "function"


class ChatCompletionMessage(Message, extra="ignore"):
    content: str | None = None  # type: ignore[assignment]
    tool_calls: list[ChatCompletionMessageToolCall] | None = None
    refusal: str | None = None


class ChatCompletionChoice(BaseModel, extra="ignore"):
    # providers proxied through aisuite may report their own finish reasons
    finish_reason: Literal["stop", "length", "tool_calls", "content_filter", "function_call"] | str | None = None
    message: ChatCompletionMessage


class ChatCompletion(BaseModel, extra="ignore"):
    id: int | str | None = None
    choices: list[ChatCompletionChoice]


def convert_response(response: Any) -> ChatCompletion:
    """Unify openai, aisuite, and plain-dict response object types."""
    if isinstance(response, ChatCompletion):
        return response
    if isinstance(response, dict):
        return ChatCompletion.model_validate(response)
    if isinstance(response, BaseModel):
        # openai.types.chat.ChatCompletion and compatible pydantic responses
        return ChatCompletion.model_validate(response.model_dump())

    # aisuite.framework.ChatCompletionResponse is a plain object
    choices = []
    for choice in response.choices:
        message = choice.message
        dumped = message.model_dump() if isinstance(message, BaseModel) else vars(message)
        choices.append(
            ChatCompletionChoice(
                message=ChatCompletionMessage.model_validate({"role": "assistant", **_drop_none(dumped)}),
                finish_reason=getattr(choice, "finish_reason", None),
            )
        )

    return ChatCompletion(id=getattr(response, "id", None), choices=choices)


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}
