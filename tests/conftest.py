from __future__ import annotations

import json
from typing import Any

import pytest

from petpal.core.caller import Caller
from petpal.types_.openai_compat import (
    ChatCompletion,
    ChatCompletionChoice,
    ChatCompletionMessage,
    ChatCompletionMessageToolCall,
    ChatCompletionMessageToolCallFunction,
)


class FakeBackend:
    """Chat backend that replays scripted completions (or raises scripted exceptions) in order."""

    def __init__(self, responses: list[ChatCompletion | Exception]):
        self.responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def complete(self, model: str, messages: list[dict[str, Any]], **params: Any) -> ChatCompletion:
        self.requests.append({"model": model, "messages": messages, "params": params})
        if not self.responses:
            raise RuntimeError("FakeBackend has no scripted responses left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def content_reply(content: str | dict | None, finish_reason: str = "stop", refusal: str | None = None) -> ChatCompletion:
    if isinstance(content, dict):
        content = json.dumps(content)
    return ChatCompletion(
        choices=[
            ChatCompletionChoice(
                finish_reason=finish_reason,
                message=ChatCompletionMessage(role="assistant", content=content, refusal=refusal),
            )
        ]
    )


def tool_reply(*calls: tuple[str, dict | str]) -> ChatCompletion:
    return ChatCompletion(
        choices=[
            ChatCompletionChoice(
                finish_reason="tool_calls",
                message=ChatCompletionMessage(
                    role="assistant",
                    tool_calls=[
                        ChatCompletionMessageToolCall(
                            id=f"call_{i}",
                            function=ChatCompletionMessageToolCallFunction(
                                name=name,
                                arguments=args if isinstance(args, str) else json.dumps(args),
                            ),
                        )
                        for i, (name, args) in enumerate(calls)
                    ],
                ),
            )
        ]
    )


@pytest.fixture
def reply():
    """Build a content completion; dict content is dumped to JSON."""
    return content_reply


@pytest.fixture
def tool_calls_reply():
    """Build a completion requesting tool calls given (name, arguments) pairs."""
    return tool_reply


@pytest.fixture
def scripted():
    """Build a Caller over a FakeBackend that replays the given responses."""

    def factory(*responses: ChatCompletion | Exception, model: str = "openai:gpt-4o-mini", **kwargs: Any):
        backend = FakeBackend(list(responses))
        return Caller(backend, model=model, **kwargs), backend

    return factory
