"""Core protocols for model invocation.

Validators turn a model's raw completion into a typed value.
Handlers decide what a completion means: a final candidate to validate, or tool calls to run.
Backends send a conversation to a chat model and return its completion.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Protocol

from typing_extensions import TypeVar, runtime_checkable

from ..types_.base import JSON
from ..types_.openai_compat import ChatCompletion

logger = logging.getLogger(__name__)

ValidatorReturnType = TypeVar("ValidatorReturnType", covariant=True)


@runtime_checkable
class Validator(Generic[ValidatorReturnType], Protocol):
    """Protocol for validators that check model completions."""

    def validate(self, completion: str) -> ValidatorReturnType:
        """Validate a provided completion.

        Parameters
        ----------
        completion : str
            The raw completion text (usually JSON).

        Returns
        -------
        ValidatorReturnType
            The validated (and possibly transformed) response.
        """
        ...


@runtime_checkable
class ChatBackend(Protocol):
    """Protocol for chat completion backends.

    A backend performs exactly one request per call; it neither retries nor keeps session state.
    """

    async def complete(self, model: str, messages: list[dict[str, Any]], **params: JSON) -> ChatCompletion:
        """Send messages to the model and return its completion.

        Parameters
        ----------
        model : str
            Model identifier in 'provider:name' format.
        messages : list[dict[str, Any]]
            Chat completion messages array.
        **params : JSON
            Request parameters (tools, response_format, temperature, ...).

        Returns
        -------
        ChatCompletion
            The completion converted to the petpal representation.
        """
        ...
