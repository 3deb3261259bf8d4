"""
Screenshot tools for webshot.

This module provides the four public operations:
- take_screenshot: Capture a URL through the renderer
- list_screenshots: List stored captures, newest first
- get_screenshot_info: Describe one capture by id
- view_screenshot: Return a capture's image, optionally re-encoded

Side-database enrichment (the renderer's `report list` output) is best-effort:
any failure there degrades to a placeholder string and never fails the
operation.
"""

import logging
import subprocess
from pathlib import Path

from webshot.errors import WebshotError
from webshot.imaging import optimization_ratio, reencode
from webshot.lookup import created_at, modified_at
from webshot.schema import (
    ImageFormat,
    ListScreenshotsArgs,
    ReencodeOptions,
    ScreenshotInfoArgs,
    TakeScreenshotArgs,
    ViewScreenshotArgs,
)
from webshot.tools.base import ImageContent, Tool, ToolContext, ToolOutput

logger = logging.getLogger(__name__)

RAW_MIME_TYPE = "image/png"
REPORT_UNAVAILABLE = "Database report unavailable"
NO_DATABASE = "No screenshot database found. Take a screenshot first."
DB_LOOKUP_FAILED = "Could not retrieve from database"
NOT_IN_DATABASE = "Not found in database"


def _image_for(path: Path, fmt: ImageFormat | None, quality: int) -> tuple[ImageContent, dict]:
    """Load a stored image, re-encoded to fmt unless fmt is None, plus its size/ratio fields."""
    file_size = path.stat().st_size
    optimize = fmt is not None
    if optimize:
        encoded = reencode(path, ReencodeOptions(format=fmt, quality=quality))
        image = ImageContent(data=encoded.data, mime_type=encoded.mime_type)
    else:
        image = ImageContent(data=path.read_bytes(), mime_type=RAW_MIME_TYPE)

    fields = {
        "optimized_size": image.size if optimize else file_size,
        "optimization_ratio": optimization_ratio(image.size, file_size) if optimize else "100%",
        "format": fmt.value if optimize else "png",
        "quality": quality if optimize else 100,
    }
    return image, fields


class TakeScreenshotTool(Tool):
    """
    Capture a web page.

    Arguments:
        url (str): The URL to capture (required)
        width, height (int): Viewport size, default 1200x800
        delay (number): Seconds to wait before capturing, default 3
        timeout (number): Renderer timeout in seconds, default 10
        include_image (bool): Return the image inline, default False
        optimize, quality, format: Re-encoding of the inline image

    Returns:
        Payload with the new screenshot_id, stored path, name and size
    """

    args_model = TakeScreenshotArgs

    @property
    def name(self) -> str:
        return "take_screenshot"

    @property
    def description(self) -> str:
        return "Take a screenshot of a website using gowitness"

    def run(self, args: TakeScreenshotArgs, context: ToolContext) -> ToolOutput:
        # Reject a bad format before spending a capture on it
        fmt = ImageFormat.parse(args.format) if args.include_image and args.optimize else None
        result = context.invoker.capture(args.to_request())

        data = {
            "screenshot_id": result.screenshot_id,
            "url": result.url,
            "timestamp": result.timestamp.isoformat(),
            "file_path": str(result.file_path),
            "file_name": result.file_name,
            "file_size": result.file_size,
        }
        request_fields = {
            "width": args.width,
            "height": args.height,
            "delay": args.delay,
            "timeout": args.timeout,
        }

        if not args.include_image:
            return ToolOutput.ok({
                **data,
                **request_fields,
                "message": f"Screenshot taken successfully for {args.url}",
            })

        image, image_fields = _image_for(result.file_path, fmt, args.quality)
        optimized = "optimized " if args.optimize else ""
        return ToolOutput.ok(
            {
                **data,
                "optimized_size": image_fields["optimized_size"],
                "optimization_ratio": image_fields["optimization_ratio"],
                **request_fields,
                "format": image_fields["format"],
                "quality": image_fields["quality"],
                "message": (
                    f"Screenshot taken successfully for {args.url} and "
                    f"{optimized}image included for viewing"
                ),
            },
            image=image,
        )


class ListScreenshotsTool(Tool):
    """
    List stored captures, newest first.

    Arguments:
        limit (int): Maximum number of captures to return, default 50

    Returns:
        Payload with count (all captures found), screenshots (truncated to
        limit) and the renderer's own report text
    """

    args_model = ListScreenshotsArgs

    @property
    def name(self) -> str:
        return "list_screenshots"

    @property
    def description(self) -> str:
        return "List all screenshots taken with their metadata"

    def run(self, args: ListScreenshotsArgs, context: ToolContext) -> ToolOutput:
        summaries = context.index.list_all()
        database_output = self._database_output(args.limit, context)

        return ToolOutput.ok({
            "count": len(summaries),
            "screenshots": [s.model_dump(mode="json") for s in summaries[: args.limit]],
            "database_output": database_output,
        })

    def _database_output(self, limit: int, context: ToolContext) -> str:
        if not context.database_path.exists():
            return NO_DATABASE
        try:
            return context.renderer.report(limit)
        except (WebshotError, subprocess.SubprocessError, OSError) as e:
            logger.warning("Failed to get database report: %s", e)
            return REPORT_UNAVAILABLE


class GetScreenshotInfoTool(Tool):
    """
    Describe one stored capture.

    Arguments:
        screenshot_id (str): Id returned by take_screenshot (required)

    Returns:
        Payload with file name, path, size, timestamps and any report lines
        from the side database that mention the id
    """

    args_model = ScreenshotInfoArgs

    @property
    def name(self) -> str:
        return "get_screenshot_info"

    @property
    def description(self) -> str:
        return "Get detailed information about a specific screenshot"

    def run(self, args: ScreenshotInfoArgs, context: ToolContext) -> ToolOutput:
        path = context.index.find_by_id(args.screenshot_id)
        stat = path.stat()

        return ToolOutput.ok({
            "screenshot_id": args.screenshot_id,
            "file_name": path.name,
            "file_path": str(path),
            "file_size": stat.st_size,
            "created": created_at(stat).isoformat(),
            "modified": modified_at(stat).isoformat(),
            "database_info": self._database_info(args.screenshot_id, context),
        })

    def _database_info(self, screenshot_id: str, context: ToolContext) -> str | None:
        if not context.database_path.exists():
            return None
        try:
            report = context.renderer.report()
        except (WebshotError, subprocess.SubprocessError, OSError) as e:
            logger.warning("Could not cross-reference %s in database: %s", screenshot_id, e)
            return DB_LOOKUP_FAILED
        needle = screenshot_id.lower()
        lines = [line for line in report.splitlines() if needle in line.lower()]
        return "\n".join(lines).strip() or NOT_IN_DATABASE


class ViewScreenshotTool(Tool):
    """
    Return a stored capture's image.

    Arguments:
        screenshot_id (str): Id returned by take_screenshot (required)
        optimize (bool): Re-encode for viewing, default True
        quality (int): 1-100, default 80
        format (str): jpeg, png or webp, default jpeg

    Returns:
        The image plus a payload with original and encoded sizes
    """

    args_model = ViewScreenshotArgs

    @property
    def name(self) -> str:
        return "view_screenshot"

    @property
    def description(self) -> str:
        return "View a screenshot image by its ID - returns the image for analysis"

    def run(self, args: ViewScreenshotArgs, context: ToolContext) -> ToolOutput:
        fmt = ImageFormat.parse(args.format) if args.optimize else None
        path = context.index.find_by_id(args.screenshot_id)
        file_size = path.stat().st_size

        image, image_fields = _image_for(path, fmt, args.quality)
        optimized = " and optimized" if args.optimize else ""
        return ToolOutput.ok(
            {
                "screenshot_id": args.screenshot_id,
                "file_name": path.name,
                "file_path": str(path),
                "file_size": file_size,
                **image_fields,
                "message": f"Screenshot {args.screenshot_id} loaded successfully{optimized}",
            },
            image=image,
        )


def screenshot_tools() -> list[Tool]:
    return [
        TakeScreenshotTool(),
        ListScreenshotsTool(),
        GetScreenshotInfoTool(),
        ViewScreenshotTool(),
    ]


# Register tools in the default registry
def register_screenshot_tools() -> None:
    """Register all screenshot tools in the default registry."""
    from webshot.tools.registry import default_registry

    for tool in screenshot_tools():
        default_registry.register(tool)
