"""Tests for tool schemas, results and the registry."""

import json

import pytest

from errors import DuplicateToolError, RegistryFrozenError, ToolValidationError
from tools.base import Tool, ToolResult
from tools.registry import ToolRegistry
from tools.schema import (
    ArrayParam, BooleanParam, EnumParam, NumberParam, ObjectParam, StringParam
)


class NoteTool(Tool):
    name = "add_note"
    description = "Add a note"
    parameters = ObjectParam(
        properties={
            "text": StringParam(description="Note text"),
            "priority": EnumParam(values=["low", "high"], default="low"),
            "tags": ArrayParam(items=StringParam(), max_items=3),
            "pinned": BooleanParam(),
        },
        required=["text"]
    )

    async def execute(self, **kwargs) -> str:
        return json.dumps(kwargs, sort_keys=True)


class OtherNoteTool(NoteTool):
    description = "Same name, different tool"


class TestSchema:
    """Test JSON Schema rendering and argument validation."""

    def setup_method(self):
        self.schema = ObjectParam(
            properties={
                "query": StringParam(description="Search query"),
                "limit": NumberParam(integer=True, minimum=1, maximum=50, default=10),
                "mode": EnumParam(values=["fast", "deep"]),
                "filters": ObjectParam(
                    properties={"lang": StringParam()},
                    required=["lang"]
                ),
            },
            required=["query"]
        )

    def test_json_schema(self):
        schema = self.schema.json_schema()

        assert schema["type"] == "object"
        assert schema["required"] == ["query"]
        assert schema["properties"]["query"] == {"type": "string", "description": "Search query"}
        assert schema["properties"]["limit"] == {"type": "integer", "minimum": 1, "maximum": 50}
        assert schema["properties"]["mode"] == {"type": "string", "enum": ["fast", "deep"]}
        assert schema["properties"]["filters"]["required"] == ["lang"]

    def test_array_schema(self):
        schema = ArrayParam(items=NumberParam(), min_items=1, description="Scores").json_schema()

        assert schema == {
            "type": "array",
            "items": {"type": "number"},
            "minItems": 1,
            "description": "Scores",
        }

    def test_params_parse_from_tagged_dicts(self):
        parsed = ObjectParam.model_validate({
            "properties": {
                "ids": {"kind": "array", "items": {"kind": "number", "integer": True}},
                "flag": {"kind": "boolean"},
            }
        })

        assert isinstance(parsed.properties["ids"], ArrayParam)
        assert isinstance(parsed.properties["ids"].items, NumberParam)
        assert isinstance(parsed.properties["flag"], BooleanParam)

    def test_valid_arguments_get_defaults(self):
        validated = self.schema.validate_arguments("search", {"query": "python"})

        assert validated == {"query": "python", "limit": 10}

    def test_nested_object_is_validated(self):
        validated = self.schema.validate_arguments(
            "search", {"query": "x", "filters": {"lang": "en"}}
        )

        assert validated["filters"] == {"lang": "en"}

    def test_missing_required_field(self):
        with pytest.raises(ToolValidationError) as exc_info:
            self.schema.validate_arguments("search", {})

        assert exc_info.value.tool_name == "search"
        assert [p["field"] for p in exc_info.value.problems] == ["query"]

    def test_out_of_range_number(self):
        with pytest.raises(ToolValidationError) as exc_info:
            self.schema.validate_arguments("search", {"query": "x", "limit": 500})

        assert exc_info.value.problems[0]["field"] == "limit"

    def test_enum_rejects_unknown_value(self):
        with pytest.raises(ToolValidationError) as exc_info:
            self.schema.validate_arguments("search", {"query": "x", "mode": "sideways"})

        assert exc_info.value.problems[0]["field"] == "mode"

    def test_nested_problem_has_dotted_path(self):
        with pytest.raises(ToolValidationError) as exc_info:
            self.schema.validate_arguments("search", {"query": "x", "filters": {}})

        assert exc_info.value.problems[0]["field"] == "filters.lang"

    def test_unknown_field_rejected(self):
        with pytest.raises(ToolValidationError) as exc_info:
            self.schema.validate_arguments("search", {"query": "x", "color": "red"})

        assert exc_info.value.problems[0]["field"] == "color"

    def test_non_object_arguments_rejected(self):
        with pytest.raises(ToolValidationError) as exc_info:
            self.schema.validate_arguments("search", ["python"])

        assert exc_info.value.problems == [{"field": "input", "message": "Input should be an object"}]

    def test_none_arguments_treated_as_empty(self):
        assert ObjectParam().validate_arguments("noop", None) == {}


class TestToolResult:
    """Test tool result rendering."""

    def test_success_content_is_output(self):
        assert ToolResult.ok("t", "42").to_content() == "42"

    def test_failure_content_is_json_error(self):
        result = ToolResult.fail("t", "bad input", details=[{"field": "x", "message": "missing"}])

        assert result.success is False
        assert json.loads(result.to_content()) == {
            "error": "bad input",
            "details": [{"field": "x", "message": "missing"}],
        }


class TestToolInvoke:
    """Test validation and execution through Tool.invoke."""

    def setup_method(self):
        self.tool = NoteTool()

    def test_definition(self):
        definition = self.tool.get_definition()

        assert definition["type"] == "function"
        assert definition["function"]["name"] == "add_note"
        assert definition["function"]["parameters"]["required"] == ["text"]
        assert definition["function"]["parameters"]["properties"]["tags"]["maxItems"] == 3

    async def test_invoke_passes_validated_arguments(self):
        result = await self.tool.invoke({"text": "buy milk", "tags": ["home"]})

        assert result.success is True
        assert json.loads(result.output) == {"priority": "low", "tags": ["home"], "text": "buy milk"}

    async def test_invoke_reports_validation_problems(self):
        result = await self.tool.invoke({"text": "x", "tags": ["a", "b", "c", "d"], "pinned": "maybe"})

        assert result.success is False
        assert {p["field"] for p in result.details} == {"tags", "pinned"}


class TestToolRegistry:
    """Test tool registration and lookup."""

    def setup_method(self):
        self.registry = ToolRegistry()

    def test_register_and_lookup(self):
        tool = NoteTool()
        self.registry.register(tool)

        assert self.registry.lookup("add_note") is tool
        assert "add_note" in self.registry
        assert len(self.registry) == 1

    def test_lookup_missing_returns_none(self):
        assert self.registry.lookup("nothing") is None

    def test_duplicate_name_rejected(self):
        self.registry.register(NoteTool())

        with pytest.raises(DuplicateToolError, match='Tool "add_note" is already registered.'):
            self.registry.register(OtherNoteTool())

        assert self.registry.lookup("add_note").description == "Add a note"

    def test_frozen_registry_rejects_registration(self):
        self.registry.freeze()

        assert self.registry.frozen is True
        with pytest.raises(RegistryFrozenError):
            self.registry.register(NoteTool())

    def test_definitions_in_registration_order(self):
        class First(NoteTool):
            name = "first"

        class Second(NoteTool):
            name = "second"

        self.registry.register(Second())
        self.registry.register(First())

        assert [t.name for t in self.registry.list_all()] == ["second", "first"]
        assert [d["function"]["name"] for d in self.registry.get_definitions()] == ["second", "first"]
