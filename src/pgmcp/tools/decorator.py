"""@tool decorator for defining gateway tools with auto-generated JSON schemas."""

from __future__ import annotations

import inspect
import types
import typing
from typing import Any, Callable, get_args, get_origin, get_type_hints

from pgmcp.core.errors import ArgumentError

# Registry of all decorated tools (populated at import time)
_TOOL_FUNCTIONS: dict[str, ToolFunction] = {}

_JSON_TYPES: dict[Any, dict] = {
    str: {"type": "string"},
    int: {"type": "integer"},
    float: {"type": "number"},
    bool: {"type": "boolean"},
}

_PYTHON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list,),
    "object": (dict,),
}


class ToolFunction:
    """Wraps a decorated function with its metadata and JSON schema."""

    def __init__(self, func: Callable, name: str, description: str):
        self.func = func
        self.name = name
        self.description = description
        self.schema = self._build_schema()

    def _python_type_to_json(self, annotation: Any) -> dict:
        """Convert a Python type annotation to a JSON Schema type."""
        if annotation is inspect.Parameter.empty or annotation is Any:
            return {"type": "string"}

        origin = get_origin(annotation)
        args = get_args(annotation)

        if origin is list:
            items = self._python_type_to_json(args[0]) if args else {"type": "string"}
            return {"type": "array", "items": items}

        if origin is dict:
            return {"type": "object"}

        # Optional[X] / X | None
        if origin is types.UnionType or origin is typing.Union:
            non_none = [a for a in args if a is not type(None)]
            if len(non_none) == 1:
                return self._python_type_to_json(non_none[0])
            return {"type": "string"}

        return dict(_JSON_TYPES.get(annotation, {"type": "string"}))

    def _build_schema(self) -> dict:
        """Build an MCP-style tool descriptor from the function signature."""
        sig = inspect.signature(self.func)
        hints = get_type_hints(self.func)
        doc = inspect.getdoc(self.func) or self.description
        param_docs = self._parse_param_docs(doc)

        properties: dict = {}
        required: list[str] = []

        for param_name, param in sig.parameters.items():
            prop = self._python_type_to_json(hints.get(param_name, param.annotation))
            if param_name in param_docs:
                prop["description"] = param_docs[param_name]
            properties[param_name] = prop

            if param.default is inspect.Parameter.empty:
                required.append(param_name)

        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
        }

    def _parse_param_docs(self, docstring: str) -> dict[str, str]:
        """Extract parameter descriptions from a Google-style docstring Args section."""
        result: dict[str, str] = {}
        in_args = False
        current_param = None

        for line in docstring.split("\n"):
            stripped = line.strip()
            if stripped.lower().startswith("args:"):
                in_args = True
                continue
            if not in_args:
                continue
            if not line.startswith((" ", "\t")) and stripped:
                # Next section header
                break
            if ":" in stripped:
                param_name, desc = stripped.split(":", 1)
                if param_name.isidentifier():
                    current_param = param_name
                    result[current_param] = desc.strip()
                    continue
            if current_param and stripped:
                result[current_param] += " " + stripped

        return result

    def validate(self, arguments: dict[str, Any]) -> None:
        """Raise ArgumentError for missing, unexpected or mistyped arguments."""
        params = self.schema["inputSchema"]
        properties = params["properties"]

        for name in params["required"]:
            if arguments.get(name) is None:
                raise ArgumentError(f"Missing required parameter '{name}'")

        for name, value in arguments.items():
            if name not in properties:
                raise ArgumentError(f"Unexpected parameter '{name}'")
            expected = properties[name]["type"]
            allowed = _PYTHON_TYPES.get(expected, (object,))
            # bool is an int subclass; keep it out of numeric slots
            if not isinstance(value, allowed) or (isinstance(value, bool) and expected != "boolean"):
                raise ArgumentError(f"Parameter '{name}' must be of type {expected}")

    async def execute(self, arguments: dict) -> Any:
        """Execute the tool function with the given arguments."""
        if inspect.iscoroutinefunction(self.func):
            return await self.func(**arguments)
        return self.func(**arguments)


def tool(
    name: str | None = None,
    description: str | None = None,
) -> Callable:
    """Decorator that marks a function as a gateway tool.

    Args:
        name: Tool name (defaults to function name).
        description: Tool description (defaults to first line of docstring).
    """
    def decorator(func: Callable) -> Callable:
        tool_name = name or func.__name__
        doc = inspect.getdoc(func) or ""
        tool_desc = description or doc.split("\n")[0] or tool_name

        tool_func = ToolFunction(func=func, name=tool_name, description=tool_desc)
        _TOOL_FUNCTIONS[tool_name] = tool_func
        return func

    return decorator


def get_registered_tools() -> dict[str, ToolFunction]:
    """Return all registered tool functions."""
    return _TOOL_FUNCTIONS.copy()
