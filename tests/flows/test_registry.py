import pytest

from petpal.core.exceptions import FailureReason, InvocationFailure
from petpal.core.schema import check
from petpal.flows import FLOWS

EXAMPLE_INPUTS = {
    "petSymptomCheckerFlow": {"symptoms": "itchy skin", "petType": "dog"},
    "breedIdentifierFlow": {"photoDataUri": "data:image/png;base64,iVBORw0KGgo="},
    "petNameGeneratorFlow": {"petType": "cat"},
    "petQueryAssistantFlow": {"query": "What should kittens eat?"},
}


def test_all_flows_registered():
    assert set(FLOWS) == set(EXAMPLE_INPUTS)
    for name, flow in FLOWS.items():
        assert flow.spec.name == name
        assert flow.spec.description


@pytest.mark.parametrize("name", sorted(EXAMPLE_INPUTS))
@pytest.mark.parametrize("reason", list(FailureReason))
def test_fallbacks_satisfy_output_schema(scripted, name, reason):
    flow = FLOWS[name]
    caller, _ = scripted()
    data = flow.spec.input_model.model_validate(EXAMPLE_INPUTS[name])

    result = flow(caller).fallback(data, InvocationFailure(reason, "test"))

    assert check(flow.spec.output_model, result.model_dump(by_alias=True)) == []


@pytest.mark.parametrize("name", sorted(EXAMPLE_INPUTS))
def test_prompts_render(name):
    spec = FLOWS[name].spec
    rendered = spec.prompt.render(EXAMPLE_INPUTS[name])
    assert rendered.text
    assert "{{" not in rendered.text
    assert "{%" not in rendered.text
