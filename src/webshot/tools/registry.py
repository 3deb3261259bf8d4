"""
Tool registry for webshot.

The registry maps operation names to tool instances. The screenshot tools
are registered in default_registry when webshot.tools is imported; separate
registries can be built for tests.

Usage:
    from webshot.tools.registry import default_registry

    tool = default_registry.get("view_screenshot")
"""

from typing import Any

from webshot.errors import UnknownToolError
from webshot.tools.base import Tool


class ToolRegistry:
    """
    Registry for looking up tools by name.

    Attributes:
        _tools: Internal mapping of tool names to tool instances
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """
        Register a tool, replacing any tool of the same name.

        Raises:
            ValueError: If tool is None or has an empty name
        """
        if tool is None:
            msg = "Cannot register None as a tool"
            raise ValueError(msg)

        name = tool.name
        if not name:
            msg = "Tool must have a non-empty name"
            raise ValueError(msg)

        self._tools[name] = tool

    def get(self, name: str) -> Tool:
        """
        Look up a tool by name.

        Raises:
            UnknownToolError: If no tool with that name is registered
        """
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(tool=name)
        return tool

    def list_tools(self) -> list[str]:
        """List all registered tool names in sorted order."""
        return sorted(self._tools.keys())

    def describe(self) -> list[dict[str, Any]]:
        """Name, description and input schema of every tool, sorted by name."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "inputSchema": tool.input_schema,
            }
            for tool in sorted(self._tools.values(), key=lambda t: t.name)
        ]

    def __repr__(self) -> str:
        """String representation of the registry."""
        tools = ", ".join(self.list_tools())
        return f"<ToolRegistry: [{tools}]>"


# Global default registry instance
default_registry = ToolRegistry()
