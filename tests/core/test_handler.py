import json

from pydantic import BaseModel
import pytest

from petpal.core.exceptions import FailureReason, InvocationFailure
from petpal.core.handler import ResponseHandler, ToolHandler
from petpal.core.tool import ToolRegistry, tool
from petpal.core.validator import PydanticValidator
from petpal.types_.openai_compat import ChatCompletion


class Answer(BaseModel):
    answer: str
    confident: bool = False


@tool
def double(x: int) -> int:
    """Double a number."""
    return x * 2


class TestPydanticValidator:
    def test_valid(self):
        assert PydanticValidator(Answer).validate('{"answer": "yes"}') == Answer(answer="yes")

    def test_repairs_fenced_json(self):
        result = PydanticValidator(Answer).validate('```json\n{"answer": "yes", "confident": true}\n```')
        assert result.confident is True

    def test_schema_violation(self):
        with pytest.raises(InvocationFailure) as excinfo:
            PydanticValidator(Answer).validate('{"confident": "maybe"}')
        assert excinfo.value.reason is FailureReason.SCHEMA_VIOLATION

    def test_not_an_object(self):
        with pytest.raises(InvocationFailure) as excinfo:
            PydanticValidator(Answer).validate('["yes"]')
        assert excinfo.value.reason is FailureReason.SCHEMA_VIOLATION

    def test_instructions_include_schema(self):
        instructions = PydanticValidator(Answer).instructions()
        assert instructions.startswith("Respond only with a JSON object")
        assert '"answer"' in instructions


class TestResponseHandler:
    def test_content_candidate(self, reply):
        handler = ResponseHandler(Answer)
        assert handler.process(reply({"answer": "walk daily"})).answer == "walk daily"

    def test_proxy_tool_candidate(self, tool_calls_reply):
        handler = ResponseHandler(Answer, proxy_tool_name="answer")
        response = tool_calls_reply(("answer", {"answer": "feed twice"}))
        assert handler.process(response).answer == "feed twice"

    def test_multiple_proxy_candidates_uses_first(self, tool_calls_reply, caplog):
        handler = ResponseHandler(Answer, proxy_tool_name="answer")
        response = tool_calls_reply(("answer", {"answer": "first"}), ("answer", {"answer": "second"}))
        assert handler.process(response).answer == "first"
        assert "multiple structured output candidates" in caplog.text

    def test_other_tool_calls_are_not_candidates(self, tool_calls_reply):
        handler = ResponseHandler(Answer, proxy_tool_name="answer")
        response = tool_calls_reply(("double", {"x": 1}))
        assert handler.candidate_call(response.choices[0].message) is None

    def test_no_choices(self):
        with pytest.raises(InvocationFailure) as excinfo:
            ResponseHandler(Answer).process(ChatCompletion(choices=[]))
        assert excinfo.value.reason is FailureReason.NO_OUTPUT

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_empty_content(self, reply, content):
        with pytest.raises(InvocationFailure) as excinfo:
            ResponseHandler(Answer).process(reply(content))
        assert excinfo.value.reason is FailureReason.NO_OUTPUT

    def test_refusal(self, reply):
        with pytest.raises(InvocationFailure, match="Model refused") as excinfo:
            ResponseHandler(Answer).process(reply(None, refusal="I can't help with that"))
        assert excinfo.value.reason is FailureReason.NO_OUTPUT

    def test_content_filter(self, reply):
        with pytest.raises(InvocationFailure, match="content filtering") as excinfo:
            ResponseHandler(Answer).process(reply(None, finish_reason="content_filter"))
        assert excinfo.value.reason is FailureReason.NO_OUTPUT

    def test_invalid_candidate(self, reply):
        with pytest.raises(InvocationFailure) as excinfo:
            ResponseHandler(Answer).process(reply({"confident": True}))
        assert excinfo.value.reason is FailureReason.SCHEMA_VIOLATION


@pytest.mark.asyncio(loop_scope="function")
class TestToolHandler:
    async def test_process_in_order(self, tool_calls_reply):
        handler = ToolHandler(ToolRegistry([double]))
        response = tool_calls_reply(("double", {"x": 1}), ("double", {"x": 5}))

        results = await handler.process(response)

        assert [r.tool_call_id for r in results] == ["call_0", "call_1"]
        assert [json.loads(r.content) for r in results] == [2, 10]

    async def test_no_calls(self, reply):
        handler = ToolHandler(ToolRegistry([double]))
        assert ToolHandler.requested_calls(reply("hi")) == []
        assert await handler.process(reply("hi")) == []
