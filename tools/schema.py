"""Declarative tool input schemas.

Each parameter kind renders to JSON Schema for the provider and to a Python
type for validating the arguments the model supplies.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Type, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from errors import ToolValidationError


class StringParam(BaseModel):
    kind: Literal["string"] = "string"
    description: str = ""
    default: Optional[str] = None

    def json_schema(self) -> Dict[str, Any]:
        return _with_description({"type": "string"}, self.description)

    def python_type(self) -> Any:
        return str


class NumberParam(BaseModel):
    kind: Literal["number"] = "number"
    description: str = ""
    integer: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    default: Optional[Union[int, float]] = None

    def json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "integer" if self.integer else "number"}
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        return _with_description(schema, self.description)

    def python_type(self) -> Any:
        base = int if self.integer else float
        if self.minimum is None and self.maximum is None:
            return base
        return Annotated[base, Field(ge=self.minimum, le=self.maximum)]


class BooleanParam(BaseModel):
    kind: Literal["boolean"] = "boolean"
    description: str = ""
    default: Optional[bool] = None

    def json_schema(self) -> Dict[str, Any]:
        return _with_description({"type": "boolean"}, self.description)

    def python_type(self) -> Any:
        return bool


class EnumParam(BaseModel):
    kind: Literal["enum"] = "enum"
    values: List[str]
    description: str = ""
    default: Optional[str] = None

    def json_schema(self) -> Dict[str, Any]:
        return _with_description({"type": "string", "enum": list(self.values)}, self.description)

    def python_type(self) -> Any:
        return Literal[tuple(self.values)]


class ArrayParam(BaseModel):
    kind: Literal["array"] = "array"
    items: "Param"
    description: str = ""
    min_items: Optional[int] = None
    max_items: Optional[int] = None

    def json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "array", "items": self.items.json_schema()}
        if self.min_items is not None:
            schema["minItems"] = self.min_items
        if self.max_items is not None:
            schema["maxItems"] = self.max_items
        return _with_description(schema, self.description)

    def python_type(self) -> Any:
        return Annotated[
            List[self.items.python_type()],
            Field(min_length=self.min_items, max_length=self.max_items)
        ]


class ObjectParam(BaseModel):
    kind: Literal["object"] = "object"
    properties: Dict[str, "Param"] = {}
    required: List[str] = []
    description: str = ""

    def json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {
            "type": "object",
            "properties": {name: param.json_schema() for name, param in self.properties.items()},
            "required": list(self.required),
        }
        return _with_description(schema, self.description)

    def python_type(self) -> Type[BaseModel]:
        return self.build_model("ToolInput")

    def build_model(self, model_name: str) -> Type[BaseModel]:
        """Build a pydantic model that validates this object's fields."""
        fields: Dict[str, Tuple[Any, Any]] = {}
        for name, param in self.properties.items():
            annotation = param.python_type()
            if name in self.required:
                fields[name] = (annotation, ...)
            else:
                fields[name] = (Optional[annotation], getattr(param, "default", None))
        return create_model(
            model_name,
            __config__=ConfigDict(extra="forbid"),
            **fields
        )

    def validate_arguments(self, tool_name: str, arguments: Any) -> Dict[str, Any]:
        """
        Validate a model-supplied argument bag.

        Returns:
            Validated arguments: supplied values plus declared defaults

        Raises:
            ToolValidationError: If the arguments do not match the schema
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ToolValidationError(tool_name, [{"field": "input", "message": "Input should be an object"}])

        model = self.build_model(f"{tool_name}_input")
        try:
            validated = model.model_validate(arguments)
        except ValidationError as e:
            problems = [
                {
                    "field": ".".join(str(part) for part in err["loc"]) or "input",
                    "message": err["msg"],
                }
                for err in e.errors()
            ]
            raise ToolValidationError(tool_name, problems) from None

        return validated.model_dump(exclude_none=True)


Param = Annotated[
    Union[StringParam, NumberParam, BooleanParam, EnumParam, ArrayParam, ObjectParam],
    Field(discriminator="kind")
]

ArrayParam.model_rebuild()
ObjectParam.model_rebuild()


def _with_description(schema: Dict[str, Any], description: str) -> Dict[str, Any]:
    if description:
        schema["description"] = description
    return schema
