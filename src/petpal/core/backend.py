"""Chat completion backends.

AISuiteBackend wraps a synchronous aisuite Client, which routes 'provider:model' identifiers to
the matching provider SDK. OpenAIBackend wraps an AsyncOpenAI client for OpenAI-compatible endpoints.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from typing_extensions import override

from .base import ChatBackend
from ..types_.base import JSON
from ..types_.openai_compat import ChatCompletion, convert_response

if TYPE_CHECKING:
    from aisuite import Client
    from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class AISuiteBackend(ChatBackend):
    """Run aisuite requests in a worker thread so the event loop is not blocked."""

    def __init__(self, client: Client):
        self.client = client

    @override
    async def complete(self, model: str, messages: list[dict[str, Any]], **params: JSON) -> ChatCompletion:
        response = await asyncio.to_thread(
            self.client.chat.completions.create,
            model=model,
            messages=messages,
            **params,
        )
        return convert_response(response)


class OpenAIBackend(ChatBackend):
    """Send requests through an AsyncOpenAI client.

    The provider prefix of the model identifier is dropped, so 'openai:gpt-4o-mini' requests 'gpt-4o-mini'.
    """

    def __init__(self, client: AsyncOpenAI):
        self.client = client

    @override
    async def complete(self, model: str, messages: list[dict[str, Any]], **params: JSON) -> ChatCompletion:
        _, _, name = model.partition(":")
        response = await self.client.chat.completions.create(model=name, messages=messages, **params)
        return convert_response(response)
