"""Identify a pet's breed from a photo."""

import logging
from typing import Any

from pydantic import Field

from ..core.caller import Caller
from ..core.exceptions import FailureReason, InvalidMediaFormat, InvocationFailure
from ..core.flow import Flow, FlowSpec
from ..core.template import PromptTemplate, parse_data_uri
from ..types_.base import WireModel

logger = logging.getLogger(__name__)


class BreedIdentifierInput(WireModel):
    photo_data_uri: str = Field(
        description=(
            "A photo of a pet, as a data URI that must include a MIME type and use Base64 encoding. "
            "Expected format: 'data:<mimetype>;base64,<encoded_data>'."
        )
    )


class BreedIdentifierOutput(WireModel):
    is_pet_detected: bool = Field(description="Whether or not a pet (dog or cat) was detected in the image.")
    breed_name: str | None = Field(
        None, description='The most likely identified breed of the pet. Provide "Unknown" if unsure or not a pet.'
    )
    confidence: float | None = Field(
        None, ge=0, le=1, description="The confidence level of the breed identification (0.0 to 1.0)."
    )
    temperament: str | None = Field(None, description="General temperament traits of the identified breed.")
    common_health_issues: list[str] | None = Field(
        None, description="List of common health issues for the identified breed."
    )
    average_lifespan: str | None = Field(
        None, description='Average lifespan of the identified breed (e.g., "10-12 years").'
    )
    description: str | None = Field(None, description="A brief description or interesting facts about the breed.")
    error: str | None = Field(None, description="Error message if identification failed or no pet was detected.")


instruction = "You are an expert pet breed identifier."

prompt_template = """
Analyze the provided image to identify the breed of the pet (dog or cat).
If no pet is clearly visible or identifiable, set isPetDetected to false and provide an appropriate error message.
If a pet is detected:
1. Set isPetDetected to true.
2. Identify the most likely breed and provide its name in 'breedName'. If you are unsure, state "Mixed Breed" or "Unknown Breed".
3. Provide a confidence score for your identification (0.0 to 1.0).
4. Briefly describe the typical 'temperament' of this breed.
5. List a few 'commonHealthIssues' associated with this breed.
6. State the 'averageLifespan' for this breed.
7. Provide a short, interesting 'description' of the breed.

Image to analyze: {{ media(photo_data_uri) }}

Prioritize accuracy. If the image quality is too poor or the subject is ambiguous, it's better to state "Unknown" with low confidence than to guess wildly.
Focus on common dog and cat breeds.
"""

INVALID_IMAGE_ERROR = "Invalid image data. Please upload a valid image file."
NO_OUTPUT_ERROR = "The AI model did not return a response. Please try again."
UNEXPECTED_ERROR = "An unexpected error occurred during breed identification."

breed_identifier_spec = FlowSpec(
    name="breedIdentifierFlow",
    description="Identify the breed of a dog or cat from a photo.",
    input_model=BreedIdentifierInput,
    output_model=BreedIdentifierOutput,
    prompt=PromptTemplate(prompt_template, BreedIdentifierInput),
    instruction=instruction,
)


class BreedIdentifier(Flow[BreedIdentifierInput, BreedIdentifierOutput]):
    spec = breed_identifier_spec

    def precheck(self, data: BreedIdentifierInput) -> BreedIdentifierOutput | None:
        # malformed images never reach the model
        try:
            parse_data_uri(data.photo_data_uri, "photoDataUri")
        except InvalidMediaFormat as e:
            logger.info(f"Rejected photo before invocation: {e}")
            return BreedIdentifierOutput(is_pet_detected=False, error=INVALID_IMAGE_ERROR)
        return None

    def fallback(self, data: BreedIdentifierInput, failure: InvocationFailure) -> BreedIdentifierOutput:
        if failure.reason is FailureReason.NO_OUTPUT:
            return BreedIdentifierOutput(is_pet_detected=False, error=NO_OUTPUT_ERROR)
        logger.error(f"Error in breedIdentifierFlow: {failure}")
        return BreedIdentifierOutput(is_pet_detected=False, error=UNEXPECTED_ERROR)


async def identify_breed(caller: Caller, value: dict[str, Any] | BreedIdentifierInput) -> BreedIdentifierOutput:
    """Identify the breed in a photo; always returns a displayable result."""
    return await BreedIdentifier(caller)(value)
