"""Answer general pet-care questions for the voice assistant, "Pal"."""

import logging
from typing import Any

from pydantic import Field

from ..core.caller import Caller
from ..core.exceptions import FailureReason, InvocationFailure
from ..core.flow import Flow, FlowSpec
from ..core.template import PromptTemplate
from ..types_.base import WireModel

logger = logging.getLogger(__name__)


class QueryAssistantInput(WireModel):
    query: str = Field(min_length=3, description="The user's question for the PetPal voice assistant.")


class QueryAssistantOutput(WireModel):
    answer: str = Field(description="The assistant's response to the user's query.")
    disclaimer_needed: bool = Field(
        description="True if the answer relates to health or well-being, suggesting a vet consultation disclaimer."
    )


instruction = """
You are "Pal", the friendly and knowledgeable voice assistant for the PetPal app.
Your goal is to answer common pet care questions to the best of your ability, providing helpful and general advice.
""".strip()

# disclaimerNeeded is decided by the model from this policy; the flow passes it through as returned
DISCLAIMER_POLICY = (
    "Set 'disclaimerNeeded' to true if your answer touches upon health, symptoms, feeding changes, "
    "or anything that a pet owner might act upon that could affect their pet's well-being. "
    'Set it to false for general knowledge questions (e.g., "how long do Labradors live?", '
    '"what are good names for a cat?").'
)

prompt_template = (
    """
User's query: {{ query }}

Based on the query, provide a helpful answer.
Also, determine if a disclaimer is needed. """
    + DISCLAIMER_POLICY
    + """

Important considerations for your answer:
- Keep your answers concise and easy to understand.
- If the query sounds like an emergency or a serious health concern, strongly advise the user to contact a veterinarian immediately.
- Do not provide specific medical diagnoses or treatment plans. You can offer general information about conditions or symptoms, but always defer to a vet for diagnosis and treatment.
- You can answer questions about feeding, behavior, grooming, general information about common illnesses, and general pet well-being for dogs and cats.
- If the question is outside the scope of pet care, politely state that you can only help with pet-related queries and set 'disclaimerNeeded' to false.
"""
)

NO_OUTPUT_ANSWER = "I'm sorry, I couldn't process your request at the moment. Please try again."
ERROR_ANSWER = "I encountered an issue while trying to understand your question. Please rephrase or try again later."

query_assistant_spec = FlowSpec(
    name="petQueryAssistantFlow",
    description="Answer common dog and cat care questions, flagging answers that warrant a vet disclaimer.",
    input_model=QueryAssistantInput,
    output_model=QueryAssistantOutput,
    prompt=PromptTemplate(prompt_template, QueryAssistantInput),
    instruction=instruction,
)


class QueryAssistant(Flow[QueryAssistantInput, QueryAssistantOutput]):
    spec = query_assistant_spec

    def fallback(self, data: QueryAssistantInput, failure: InvocationFailure) -> QueryAssistantOutput:
        # fail toward caution
        if failure.reason is FailureReason.NO_OUTPUT:
            return QueryAssistantOutput(answer=NO_OUTPUT_ANSWER, disclaimer_needed=True)
        logger.error(f"Error in petQueryAssistantFlow: {failure}")
        return QueryAssistantOutput(answer=ERROR_ANSWER, disclaimer_needed=True)


async def ask_assistant(caller: Caller, value: dict[str, Any] | QueryAssistantInput) -> QueryAssistantOutput:
    """Answer a pet-care question; always returns a displayable result."""
    return await QueryAssistant(caller)(value)
