"""Tool contract, schemas and registry."""

from .base import Tool, ToolResult
from .registry import ToolRegistry
from .schema import (
    ObjectParam,
    StringParam,
    NumberParam,
    BooleanParam,
    EnumParam,
    ArrayParam,
)

__all__ = [
    "Tool",
    "ToolResult",
    "ToolRegistry",
    "ObjectParam",
    "StringParam",
    "NumberParam",
    "BooleanParam",
    "EnumParam",
    "ArrayParam",
]
