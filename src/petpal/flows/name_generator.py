"""Generate name ideas for a dog or cat."""

import logging
from typing import Any, Literal

from pydantic import Field

from ..core.caller import Caller
from ..core.exceptions import InvocationFailure
from ..core.flow import Flow, FlowSpec
from ..core.template import PromptTemplate
from ..types_.base import WireModel

logger = logging.getLogger(__name__)


class NameGeneratorInput(WireModel):
    pet_type: Literal["dog", "cat"] = Field(description="The type of pet (dog or cat).")
    style: str | None = Field(
        None, description='Optional: A style or theme for the names (e.g., "playful", "elegant", "mythical").'
    )
    count: int = Field(10, ge=1, le=20, description="The number of names to generate.")


class NameGeneratorOutput(WireModel):
    names: list[str] = Field(description="A list of suggested pet names.")


instruction = "You are a creative assistant specializing in generating pet names."

prompt_template = """
You will be given a pet type, an optional style preference, and a count of names to generate.
Generate a list of unique and fitting names based on these inputs.

Pet Type: {{ pet_type }}
{% if style %}
Style Preference: {{ style }}
{% endif %}
Number of Names to Generate: {{ count }}

Please provide exactly {{ count }} names.
Ensure your output strictly adheres to the requested JSON format for the list of names.
"""

RETRY_MESSAGE = "Try again with different criteria."

name_generator_spec = FlowSpec(
    name="petNameGeneratorFlow",
    description="Generate a list of pet names for a dog or cat, optionally in a given style.",
    input_model=NameGeneratorInput,
    output_model=NameGeneratorOutput,
    prompt=PromptTemplate(prompt_template, NameGeneratorInput),
    instruction=instruction,
)


class NameGenerator(Flow[NameGeneratorInput, NameGeneratorOutput]):
    spec = name_generator_spec

    def postprocess(self, data: NameGeneratorInput, output: NameGeneratorOutput) -> NameGeneratorOutput:
        # an empty list renders as a blank screen; ask the user to retry instead
        if not output.names:
            logger.warning("Pet name generator returned no names, substituting retry message.")
            return NameGeneratorOutput(names=[RETRY_MESSAGE])
        if len(output.names) != data.count:
            logger.debug(f"Requested {data.count} names, received {len(output.names)}")
        return output

    def fallback(self, data: NameGeneratorInput, failure: InvocationFailure) -> NameGeneratorOutput:
        logger.warning(f"Pet name generator did not return expected output ({failure}), substituting retry message.")
        return NameGeneratorOutput(names=[RETRY_MESSAGE])


async def generate_names(caller: Caller, value: dict[str, Any] | NameGeneratorInput) -> NameGeneratorOutput:
    """Generate pet names; never returns an empty list."""
    return await NameGenerator(caller)(value)
