"""Tool registry: auto-discover, validate, and execute @tool functions."""

from __future__ import annotations

import importlib
import logging
import pkgutil
from dataclasses import dataclass
from typing import Any

from pgmcp.core.errors import GatewayError, MarshalError, PolicyRejection
from pgmcp.query.values import to_json
from pgmcp.tools.decorator import ToolFunction, get_registered_tools

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """Serialized outcome of one tool call."""

    content: str
    is_error: bool = False
    kind: str | None = None


class ToolRegistry:
    """Manages discovery and execution of @tool decorated functions."""

    def __init__(self):
        self._tools: dict[str, ToolFunction] = {}

    def discover(self, module_names: list[str]) -> None:
        """Import modules (and their submodules) to trigger @tool registration."""
        for module_name in module_names:
            try:
                mod = importlib.import_module(module_name)
                if hasattr(mod, "__path__"):
                    for _importer, submod_name, _is_pkg in pkgutil.iter_modules(mod.__path__):
                        full_name = f"{module_name}.{submod_name}"
                        try:
                            importlib.import_module(full_name)
                        except ImportError as e:
                            logger.warning("Failed to import tool module %s: %s", full_name, e)
            except ImportError as e:
                logger.warning("Failed to import tool module %s: %s", module_name, e)

        self._tools = get_registered_tools()
        logger.info("Discovered %d tools: %s", len(self._tools), list(self._tools.keys()))

    def get(self, name: str) -> ToolFunction | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        """List all available tool names."""
        return list(self._tools.keys())

    def get_schemas(self, names: list[str] | None = None) -> list[dict]:
        """Return tool descriptors for the given tool names.

        If names is None, return descriptors for all tools.
        """
        if names is None:
            return [t.schema for t in self._tools.values()]
        return [
            self._tools[n].schema
            for n in names
            if n in self._tools
        ]

    async def execute(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Execute a tool and return its JSON result or JSON error payload."""
        tool = self._tools.get(name)
        if tool is None:
            payload = {"error": f"Unknown tool: {name}", "kind": "unknown_tool"}
            return ToolResult(content=to_json(payload), is_error=True, kind="unknown_tool")

        arguments = arguments or {}
        try:
            tool.validate(arguments)
            result = await tool.execute(arguments)
            return ToolResult(content=result if isinstance(result, str) else to_json(result))
        except PolicyRejection as e:
            logger.info("Rejected query in %s: %s", name, e.reason)
            return self._error_result(e)
        except MarshalError as e:
            logger.error("Failed to serialize %s response: %s", name, e)
            return self._error_result(e)
        except GatewayError as e:
            logger.warning("Tool %s failed: %s", name, e)
            return self._error_result(e)
        except Exception as e:
            logger.exception("Tool execution failed: %s", name)
            payload = {"error": str(e), "kind": "internal_error"}
            return ToolResult(content=to_json(payload), is_error=True, kind="internal_error")

    @staticmethod
    def _error_result(error: GatewayError) -> ToolResult:
        return ToolResult(content=to_json(error.to_payload()), is_error=True, kind=error.kind)
