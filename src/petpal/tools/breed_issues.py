import logging

from pydantic import Field

from ..core.tool import tool
from ..types_.base import WireModel

logger = logging.getLogger(__name__)


class BreedIssues(WireModel):
    """Common health issues for a breed."""

    issues: list[str] = Field(description="A list of common health issues or predispositions for the specified breed.")


# Matched in order, by case-insensitive substring of the requested breed
BREED_HEALTH_ISSUES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "labrador",
        (
            "Prone to hip and elbow dysplasia",
            "Higher risk of obesity",
            "Potential for certain eye conditions like PRA",
            "Ear infections due to floppy ears",
        ),
    ),
    (
        "siamese",
        (
            "Dental problems are common",
            "May be prone to asthma or other respiratory issues",
            "Progressive retinal atrophy (PRA) risk",
            "Sensitive stomachs reported by some owners",
        ),
    ),
    (
        "german shepherd",
        (
            "Hip and elbow dysplasia",
            "Degenerative myelopathy",
            "Bloat (Gastric Dilatation-Volvulus)",
            "Exocrine pancreatic insufficiency (EPI)",
        ),
    ),
    (
        "poodle",
        (
            "Addison's disease",
            "Bloat (Gastric Dilatation-Volvulus)",
            "Thyroid issues (hypothyroidism)",
            "Progressive retinal atrophy (PRA)",
        ),
    ),
)


def no_match_message(breed: str) -> str:
    return (
        f"No specific common issues pre-loaded in the simplified knowledge base for '{breed}'. "
        "General advice will be provided."
    )


@tool(name="getBreedSpecificIssues", returns=BreedIssues)
def get_breed_specific_issues(breed: str) -> BreedIssues:
    """Fetch common health issues or predispositions for a specific pet breed from the PetCare+ knowledge base.

    Use this if a breed is provided to get more targeted information.

    Args:
        breed: The breed of the pet to fetch common issues for.
    """
    needle = breed.lower()
    for key, issues in BREED_HEALTH_ISSUES:
        if key in needle:
            logger.debug(f"Matched breed '{breed}' to '{key}'")
            return BreedIssues(issues=list(issues))

    return BreedIssues(issues=[no_match_message(breed)])
