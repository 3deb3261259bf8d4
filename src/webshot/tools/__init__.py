"""
Tools module for webshot.

Tools are the remote-callable operations webshot exposes. Importing this
package registers the built-in tools in default_registry.

Built-in tools:
    - take_screenshot: Capture a URL
    - list_screenshots: List stored captures
    - get_screenshot_info: Describe one capture
    - view_screenshot: Return a capture's image

Architecture:
    - Tool: Abstract base class defining the tool interface
    - ToolRegistry: Central registry for looking up tools by name
    - ToolContext: Capture components passed to tools
    - ToolOutput: Standardized result, renderable as protocol content
"""

from webshot.tools.base import ImageContent, Tool, ToolContext, ToolOutput
from webshot.tools.registry import ToolRegistry, default_registry
from webshot.tools.screenshot import (
    GetScreenshotInfoTool,
    ListScreenshotsTool,
    TakeScreenshotTool,
    ViewScreenshotTool,
    register_screenshot_tools,
    screenshot_tools,
)

# Register built-in tools
register_screenshot_tools()

__all__ = [
    "ImageContent",
    "Tool",
    "ToolContext",
    "ToolOutput",
    "ToolRegistry",
    "default_registry",
    "screenshot_tools",
    "TakeScreenshotTool",
    "ListScreenshotsTool",
    "GetScreenshotInfoTool",
    "ViewScreenshotTool",
]
