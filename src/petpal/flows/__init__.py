"""Advisory flows.

FLOWS maps each flow name to its controller class, so applications can discover every flow.
"""

from .breed_identifier import (
    BreedIdentifier,
    BreedIdentifierInput,
    BreedIdentifierOutput,
    breed_identifier_spec,
    identify_breed,
)
from .name_generator import (
    NameGenerator,
    NameGeneratorInput,
    NameGeneratorOutput,
    generate_names,
    name_generator_spec,
)
from .query_assistant import (
    QueryAssistant,
    QueryAssistantInput,
    QueryAssistantOutput,
    ask_assistant,
    query_assistant_spec,
)
from .symptom_checker import (
    SymptomChecker,
    SymptomCheckerInput,
    SymptomCheckerOutput,
    check_symptoms,
    symptom_checker_spec,
)

FLOWS = {
    flow.spec.name: flow
    for flow in (SymptomChecker, BreedIdentifier, NameGenerator, QueryAssistant)
}

__all__ = [
    "FLOWS",
    # Symptom checker
    "SymptomChecker",
    "SymptomCheckerInput",
    "SymptomCheckerOutput",
    "check_symptoms",
    "symptom_checker_spec",
    # Breed identifier
    "BreedIdentifier",
    "BreedIdentifierInput",
    "BreedIdentifierOutput",
    "identify_breed",
    "breed_identifier_spec",
    # Name generator
    "NameGenerator",
    "NameGeneratorInput",
    "NameGeneratorOutput",
    "generate_names",
    "name_generator_spec",
    # Query assistant
    "QueryAssistant",
    "QueryAssistantInput",
    "QueryAssistantOutput",
    "ask_assistant",
    "query_assistant_spec",
]
