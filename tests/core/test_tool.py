import json

from pydantic import BaseModel
import pytest

from petpal.core.exceptions import SchemaValidationError, ToolInputInvalid
from petpal.core.tool import (
    Tool,
    ToolRegistry,
    extract_function_description,
    extract_param_descriptions,
    input_model,
    tool,
)
from petpal.types_.core import ToolResultMessage
from petpal.types_.openai_compat import ChatCompletionMessageToolCall, ChatCompletionMessageToolCallFunction


class Issues(BaseModel):
    issues: list[str]


@tool(name="getIssues", returns=Issues)
def get_issues(breed: str, limit: int = 2):
    """Look up common issues for a breed.

    Args:
        breed: The breed to look up.
        limit: Maximum number of issues.
    """
    return {"issues": [f"{breed} issue {i}" for i in range(limit)]}


@tool
def explode(reason: str) -> str:
    """Always fails."""
    raise RuntimeError(reason)


def make_call(name: str, arguments: dict | str, id: str = "call_1") -> ChatCompletionMessageToolCall:
    return ChatCompletionMessageToolCall(
        id=id,
        function=ChatCompletionMessageToolCallFunction(
            name=name, arguments=arguments if isinstance(arguments, str) else json.dumps(arguments)
        ),
    )


class TestDocstrings:
    def test_no_docstring(self):
        def no_doc(a: int):
            return a

        assert extract_function_description(no_doc) is None
        assert extract_param_descriptions(no_doc) == {}

    def test_google_style(self):
        def fn(a: int) -> int:
            """
            Add a number.

            Args:
                a: number to be added.
            """
            return a

        assert extract_function_description(fn).strip() == "Add a number."
        assert extract_param_descriptions(fn) == {"a": "number to be added."}

    def test_numpy_style(self):
        def fn(a: int) -> int:
            """
            Multiply a number by two.

            Parameters
            ----------
            a : int
                The number to be multiplied.
            """
            return a

        assert extract_function_description(fn).strip() == "Multiply a number by two."
        assert extract_param_descriptions(fn) == {"a": "The number to be multiplied."}


class TestInputModel:
    def test_fields_from_signature(self):
        model = input_model(get_issues._func, name="getIssues")
        assert model.__name__ == "getIssues"
        assert model.model_fields["breed"].is_required()
        assert model.model_fields["limit"].default == 2
        assert model.model_fields["breed"].description == "The breed to look up."

    def test_variadic_rejected(self):
        def fn(*args: str):
            """Variadic."""

        with pytest.raises(TypeError, match="variadic"):
            input_model(fn)

    def test_annotation_required(self):
        def fn(a):
            """Untyped."""

        with pytest.raises(TypeError, match="No type annotation"):
            input_model(fn)


class TestTool:
    def test_attributes(self):
        assert isinstance(get_issues, Tool)
        assert get_issues.name == "getIssues"
        assert get_issues.description.startswith("Look up common issues for a breed.")
        assert get_issues.returns is Issues

    def test_return_annotation_used(self):
        assert explode.returns is str

    def test_call_validates_return(self):
        result = get_issues("pug", limit=1)
        assert isinstance(result, Issues)
        assert result.issues == ["pug issue 0"]

    def test_invalid_return(self):
        @tool(returns=Issues)
        def broken(breed: str):
            """Return the wrong shape."""
            return {"issue": breed}

        with pytest.raises(SchemaValidationError):
            broken("pug")

    def test_declaration(self):
        declaration = get_issues.declaration()
        assert declaration["type"] == "function"
        function = declaration["function"]
        assert function["name"] == "getIssues"
        assert function["description"].startswith("Look up common issues")
        assert set(function["parameters"]["properties"]) == {"breed", "limit"}

    def test_respond_as_tool(self):
        assert Tool.respond_as_tool("a", "plain").content == "plain"
        assert Tool.respond_as_tool("b", {"x": 1}).content == '{"x": 1}'
        assert Tool.respond_as_tool("c", Issues(issues=["x"])).content == '{"issues":["x"]}'

        message = Tool.respond_as_tool("d", 3)
        assert isinstance(message, ToolResultMessage)
        assert message.tool_call_id == "d"
        assert message.content == "3"


@pytest.mark.asyncio(loop_scope="function")
class TestAsyncTool:
    async def test_acall_sync_function(self):
        result = await get_issues.acall(breed="pug", limit=0)
        assert result == Issues(issues=[])

    async def test_acall_async_function(self):
        @tool
        async def lookup(breed: str) -> Issues:
            """Look up asynchronously."""
            return Issues(issues=[breed])

        result = await lookup.acall(breed="beagle")
        assert result.issues == ["beagle"]


class TestToolRegistry:
    def test_registry(self):
        registry = ToolRegistry([get_issues, explode])
        assert registry.names == ["getIssues", "explode"]
        assert "getIssues" in registry
        assert registry["explode"] is explode
        assert len(registry) == 2
        assert [d["function"]["name"] for d in registry.declarations()] == ["getIssues", "explode"]

    def test_requires_tools(self):
        with pytest.raises(TypeError, match="requires Tool objects"):
            ToolRegistry([lambda x: x])

    def test_duplicate_names(self):
        with pytest.raises(ValueError, match="Duplicate tool name"):
            ToolRegistry([get_issues, get_issues])

    def test_validate(self):
        registry = ToolRegistry([get_issues])
        arguments = registry.validate(make_call("getIssues", {"breed": "pug"}))
        assert arguments.model_dump() == {"breed": "pug", "limit": 2}

    def test_validate_repairs_json(self):
        registry = ToolRegistry([get_issues])
        arguments = registry.validate(make_call("getIssues", "{'breed': 'pug', 'limit': 1,}"))
        assert arguments.model_dump() == {"breed": "pug", "limit": 1}

    def test_validate_unknown_tool(self):
        registry = ToolRegistry([get_issues])
        with pytest.raises(ToolInputInvalid, match="does not exist") as excinfo:
            registry.validate(make_call("getWeather", {}))
        assert excinfo.value.tool_name == "getWeather"

    def test_validate_bad_arguments(self):
        registry = ToolRegistry([get_issues])
        with pytest.raises(ToolInputInvalid, match="MissingRequiredField"):
            registry.validate(make_call("getIssues", {"limit": 3}))

    def test_validate_non_object_arguments(self):
        registry = ToolRegistry([get_issues])
        with pytest.raises(ToolInputInvalid, match="must be a JSON object"):
            registry.validate(make_call("getIssues", "[1, 2]"))


@pytest.mark.asyncio(loop_scope="function")
class TestToolRegistryExecute:
    async def test_execute(self):
        registry = ToolRegistry([get_issues])
        result = await registry.execute(make_call("getIssues", {"breed": "pug", "limit": 1}, id="abc"))

        assert isinstance(result, ToolResultMessage)
        assert result.tool_call_id == "abc"
        assert json.loads(result.content) == {"issues": ["pug issue 0"]}

    async def test_execute_invalid_input(self):
        registry = ToolRegistry([get_issues])
        result = await registry.execute(make_call("getIssues", {"limit": "many"}))

        error = json.loads(result.content)["error"]
        assert error.startswith("Validation failed:")
        assert "getIssues" in error

    async def test_execute_unknown_tool(self):
        registry = ToolRegistry([get_issues])
        result = await registry.execute(make_call("getWeather", {}))
        assert json.loads(result.content)["error"].startswith("Tool call failed:")

    async def test_execute_tool_error(self):
        registry = ToolRegistry([explode])
        result = await registry.execute(make_call("explode", {"reason": "boom"}))
        assert json.loads(result.content) == {"error": "Tool 'explode' failed: boom"}
