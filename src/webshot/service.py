"""
Operation facade for webshot.

ScreenshotService owns the long-lived pieces (renderer locator and its
cached binary path, capture invoker, lookup index) and dispatches tool
calls against them. call_tool() is the boundary the protocol layer talks
to: whatever happens inside, it returns a ToolOutput.

Usage:
    service = ScreenshotService(load_config("webshot.yaml"))
    output = service.call_tool("take_screenshot", {"url": "https://example.com"})
    content = output.to_content()
"""

import base64
import logging
import uuid
from typing import Any

from webshot.capture import CaptureInvoker
from webshot.errors import WebshotError
from webshot.lookup import CaptureIndex
from webshot.renderer import Renderer, RendererLocator
from webshot.schema import WebshotConfig
from webshot.tools import ToolContext, ToolOutput, default_registry
from webshot.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

DATABASE_URI = "file://screenshots.db"
DATABASE_MIME_TYPE = "application/x-sqlite3"


class ScreenshotService:
    """
    Long-lived facade over the capture pipeline.

    Attributes:
        config: Active configuration
        locator: Finds the renderer once and caches it for this instance
        renderer: Runs capture and report commands
        invoker: Captures URLs into the storage tree
        index: Looks up and lists stored captures
        registry: Tools available through call_tool
    """

    def __init__(
        self,
        config: WebshotConfig | None = None,
        registry: ToolRegistry | None = None,
        locator: RendererLocator | None = None,
    ) -> None:
        self.config = config or WebshotConfig()
        self.locator = locator or RendererLocator(
            self.config.renderer_candidates,
            liveness_timeout=self.config.liveness_timeout_seconds,
        )
        self.renderer = Renderer.from_config(self.config, self.locator)
        self.invoker = CaptureInvoker(
            self.config.storage_root,
            self.renderer,
            raster_suffixes=self.config.raster_suffixes,
        )
        self.index = CaptureIndex(self.config.storage_root, self.config.raster_suffixes)
        self.registry = registry or default_registry

    def context(self, request_id: str | None = None) -> ToolContext:
        return ToolContext(
            request_id=request_id or uuid.uuid4().hex[:12],
            invoker=self.invoker,
            index=self.index,
            renderer=self.renderer,
            database_path=self.config.resolved_database_path,
        )

    def list_tools(self) -> list[dict[str, Any]]:
        """Name, description and input schema of every available tool."""
        return self.registry.describe()

    def call_tool(self, name: str, args: dict[str, Any] | None = None) -> ToolOutput:
        """
        Run a tool by name.

        Never raises: unknown tools, WebshotErrors and unexpected exceptions
        all come back as failed outputs.
        """
        context = self.context()
        args = args or {}
        logger.debug("[%s] %s %s", context.request_id, name, args)

        try:
            tool = self.registry.get(name)
            output = tool.execute(args, context)
        except WebshotError as e:
            output = ToolOutput.from_error(e)
        except Exception as e:
            logger.exception("[%s] %s failed unexpectedly", context.request_id, name)
            output = ToolOutput.fail(
                str(e) or "Unknown error occurred",
                error_type=type(e).__name__,
            )

        if not output.success:
            # A missing renderer blocks every capture until it is installed
            if output.metadata.get("error_type") == "RendererNotFoundError":
                logger.error("[%s] %s failed: %s", context.request_id, name, output.error)
            else:
                logger.info("[%s] %s failed: %s", context.request_id, name, output.error)
        return output

    # Convenience wrappers, one per operation

    def take_screenshot(self, url: str, **kwargs: Any) -> ToolOutput:
        return self.call_tool("take_screenshot", {"url": url, **kwargs})

    def list_screenshots(self, limit: int = 50) -> ToolOutput:
        return self.call_tool("list_screenshots", {"limit": limit})

    def get_screenshot_info(self, screenshot_id: str) -> ToolOutput:
        return self.call_tool("get_screenshot_info", {"screenshot_id": screenshot_id})

    def view_screenshot(self, screenshot_id: str, **kwargs: Any) -> ToolOutput:
        return self.call_tool("view_screenshot", {"screenshot_id": screenshot_id, **kwargs})

    def read_database(self) -> dict[str, Any]:
        """
        The renderer's side database as a readable resource.

        Returns a base64 blob when the file exists, otherwise a text
        placeholder.
        """
        db_path = self.config.resolved_database_path
        try:
            blob = db_path.read_bytes()
        except OSError as e:
            logger.info("Side database unavailable at %s: %s", db_path, e)
            return {
                "uri": DATABASE_URI,
                "mimeType": "text/plain",
                "text": "Database not found. Take a screenshot first.",
            }
        return {
            "uri": DATABASE_URI,
            "mimeType": DATABASE_MIME_TYPE,
            "blob": base64.b64encode(blob).decode("ascii"),
        }
