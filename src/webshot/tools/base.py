"""
Base classes for the tool interface.

This module defines the core abstractions for webshot's operations:
- Tool: Abstract base class that every operation implements
- ToolContext: The capture components a tool runs against
- ToolOutput: Standardized result, renderable as protocol content

Design Principles:
    - Tools are stateless - all state comes from ToolContext
    - Tools validate their arguments against a pydantic model, whose JSON
      schema doubles as the tool's published input schema
    - Tools return ToolOutput - WebshotErrors become failed outputs; only
      programming errors escape, and the dispatcher catches those
"""

import base64
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ValidationError

from webshot.errors import InvalidInputError, WebshotError
from webshot.schema import format_validation_errors

if TYPE_CHECKING:
    from webshot.capture import CaptureInvoker
    from webshot.lookup import CaptureIndex
    from webshot.renderer import Renderer


@dataclass(frozen=True)
class ImageContent:
    """Image bytes returned alongside a payload."""

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class ToolOutput:
    """
    Standardized output from tool execution.

    Attributes:
        success: Whether the tool executed successfully
        data: JSON-serializable payload fields
        error: Error message if success is False
        image: Optional image returned with the payload
        metadata: Extra fields for failures (error_type, code, suggestion)
    """

    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    image: ImageContent | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: dict[str, Any], image: ImageContent | None = None) -> "ToolOutput":
        """Create a successful output."""
        return cls(success=True, data=data, image=image)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> "ToolOutput":
        """Create a failed output."""
        return cls(success=False, error=error, metadata=metadata)

    @classmethod
    def from_error(cls, error: WebshotError) -> "ToolOutput":
        """Create a failed output describing a WebshotError."""
        metadata: dict[str, Any] = {
            "error_type": type(error).__name__,
            "code": error.code,
        }
        if error.suggestion:
            metadata["suggestion"] = error.suggestion
        return cls.fail(error.message, **metadata)

    @property
    def payload(self) -> dict[str, Any]:
        """The JSON object a caller sees."""
        if self.success:
            return {"success": True, **self.data}
        return {"success": False, "error": self.error or "Unknown error occurred", **self.metadata}

    def to_content(self) -> list[dict[str, Any]]:
        """
        Render as protocol content items.

        An image item (base64 data and mime type) comes first when present,
        followed by a text item holding the indented JSON payload.
        """
        content: list[dict[str, Any]] = []
        if self.image is not None:
            content.append({
                "type": "image",
                "data": self.image.to_base64(),
                "mimeType": self.image.mime_type,
            })
        content.append({
            "type": "text",
            "text": json.dumps(self.payload, indent=2, default=str),
        })
        return content


@dataclass
class ToolContext:
    """
    Runtime context passed to tools during execution.

    Attributes:
        request_id: Identifier for this call, used in logs
        invoker: Captures URLs into the storage tree
        index: Looks up and lists stored captures
        renderer: Runs the renderer's report command for best-effort enrichment
        database_path: The renderer's side database
    """

    request_id: str
    invoker: "CaptureInvoker"
    index: "CaptureIndex"
    renderer: "Renderer"
    database_path: Path


class Tool(ABC):
    """
    Abstract base class for all webshot tools.

    Subclasses set args_model and implement:
    - name property: Returns the tool's unique identifier
    - run(): Performs the operation on parsed arguments

    execute() parses arguments and turns WebshotErrors into failed outputs,
    so run() can simply raise.
    """

    args_model: ClassVar[type[BaseModel]]

    @property
    @abstractmethod
    def name(self) -> str:
        """The unique identifier for this tool (e.g. "take_screenshot")."""
        ...

    @property
    def description(self) -> str:
        """Human-readable description of what the tool does."""
        return f"Tool: {self.name}"

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the accepted arguments."""
        return self.args_model.model_json_schema()

    def parse_args(self, args: dict[str, Any]) -> Any:
        """
        Validate and convert arguments to the tool's args model.

        Raises:
            InvalidInputError: If the arguments are missing or invalid
        """
        try:
            return self.args_model.model_validate(args)
        except ValidationError as e:
            raise InvalidInputError(tool=self.name, errors=format_validation_errors(e)) from e

    def execute(self, args: dict[str, Any], context: ToolContext) -> ToolOutput:
        """
        Execute the tool with the given arguments.

        Returns:
            ToolOutput indicating success or failure with data/error
        """
        try:
            return self.run(self.parse_args(args), context)
        except WebshotError as e:
            return ToolOutput.from_error(e)

    @abstractmethod
    def run(self, args: Any, context: ToolContext) -> ToolOutput:
        """Perform the operation on validated arguments."""
        ...

    def __repr__(self) -> str:
        """String representation of the tool."""
        return f"<Tool: {self.name}>"
