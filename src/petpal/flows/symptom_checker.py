"""Check pet symptoms and suggest potential causes and recommendations.

The model may consult the breed health-issue tool when a breed is given.
"""

import logging
from typing import Any, Literal

from pydantic import Field

from ..core.caller import Caller
from ..core.exceptions import InvocationFailure
from ..core.flow import Flow, FlowSpec
from ..core.template import PromptTemplate
from ..core.tool import ToolRegistry
from ..tools.breed_issues import get_breed_specific_issues
from ..types_.base import WireModel

logger = logging.getLogger(__name__)

PetType = Literal["dog", "cat"]


class SymptomCheckerInput(WireModel):
    symptoms: str = Field(description="The symptoms exhibited by the pet.", min_length=3)
    pet_type: PetType = Field(description="The type of pet (dog or cat).")
    breed: str | None = Field(None, description="The breed of the pet, if known.")
    age: float | None = Field(None, description="The age of the pet in years.", gt=0)


class SymptomCheckerOutput(WireModel):
    potential_causes: str = Field(description="Potential causes of the symptoms.")
    recommendations: str = Field(description="Recommendations for addressing the symptoms.")
    warning: str | None = Field(
        None, description="A warning message to consult a veterinarian if symptoms are severe."
    )


instruction = """
You are a veterinary expert for PetCare+, skilled in diagnosing pet symptoms and providing potential causes and recommendations.
You have access to a tool called 'getBreedSpecificIssues' which can provide common health issues for a specific pet breed, fetched from PetCare+'s knowledge base.
""".strip()

prompt_template = """
Given the following information for a {{ pet_type }}{% if breed %}, of breed '{{ breed }}'{% endif %}{% if age %}, age {{ age }} year(s) old{% endif %} pet:
Symptoms: {{ symptoms }}

{% if breed %}
If the breed '{{ breed }}' is known and seems relevant to the symptoms, consider using the 'getBreedSpecificIssues' tool to fetch common health predispositions for this breed. Incorporate any relevant information from the tool into your analysis of potential causes and your recommendations. Clearly state if you used breed-specific information.

{% endif %}
Based on all available information (symptoms, pet details, and any tool outputs), provide:
1. potentialCauses: List possible reasons for the symptoms.
2. recommendations: Suggest actions the pet owner can take.
3. warning: If the symptoms seem serious or life-threatening, include a clear warning to consult a veterinarian immediately. Omit it otherwise.

Ensure your response is empathetic and easy for a pet owner to understand.
"""

FALLBACK_CAUSES = "Could not determine potential causes at this time. The AI model did not provide a response."
FALLBACK_RECOMMENDATIONS = "Please try rephrasing the symptoms or consult a veterinarian directly for advice."
FALLBACK_WARNING = "If your pet's condition is serious, please seek veterinary attention immediately."

symptom_checker_spec = FlowSpec(
    name="petSymptomCheckerFlow",
    description="Check pet symptoms and provide potential causes and recommendations.",
    input_model=SymptomCheckerInput,
    output_model=SymptomCheckerOutput,
    prompt=PromptTemplate(prompt_template, SymptomCheckerInput),
    instruction=instruction,
    tools=ToolRegistry([get_breed_specific_issues]),
)


class SymptomChecker(Flow[SymptomCheckerInput, SymptomCheckerOutput]):
    spec = symptom_checker_spec

    def fallback(self, data: SymptomCheckerInput, failure: InvocationFailure) -> SymptomCheckerOutput:
        logger.error(f"Pet Symptom Checker Flow did not receive a valid output: {failure}")
        return SymptomCheckerOutput(
            potential_causes=FALLBACK_CAUSES,
            recommendations=FALLBACK_RECOMMENDATIONS,
            warning=FALLBACK_WARNING,
        )


async def check_symptoms(caller: Caller, value: dict[str, Any] | SymptomCheckerInput) -> SymptomCheckerOutput:
    """Check a pet's symptoms; always returns a displayable result."""
    return await SymptomChecker(caller)(value)
