"""Runtime settings read from the environment.

Provider credentials are the backend client's concern (aisuite and openai read their own keys).
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Mapping, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .core.backend import AISuiteBackend
from .core.caller import Caller
from .core.flow import Flow

if TYPE_CHECKING:
    from aisuite import Client

logger = logging.getLogger(__name__)

ENV_PREFIX = "PETPAL_"

FlowT = TypeVar("FlowT", bound=Flow)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str = Field("openai:gpt-4o-mini", pattern=r"^[^:]+:.+$")
    max_tool_rounds: int = Field(5, ge=0)
    timeout: float | None = Field(None, gt=0)
    max_attempts: int = Field(1, ge=1)

    def build_caller(self, client: Client) -> Caller:
        """Wire a Caller over an aisuite client."""
        return Caller(
            AISuiteBackend(client),
            model=self.model,
            max_tool_rounds=self.max_tool_rounds,
            timeout=self.timeout,
        )

    def build_flow(self, flow: Type[FlowT], caller: Caller) -> FlowT:
        return flow(caller, max_attempts=self.max_attempts)


def settings_from_env(environ: Mapping[str, str] | None = None) -> Settings:
    """Read PETPAL_* variables; unset or blank variables keep their defaults."""
    environ = os.environ if environ is None else environ
    values = {}
    for name in Settings.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}", "").strip()
        if raw:
            values[name] = raw
    settings = Settings.model_validate(values)
    logger.debug(f"Loaded settings: {settings!r}")
    return settings
