"""
Exception hierarchy for webshot.

All webshot exceptions inherit from WebshotError, so the operation facade can
turn any of them into a structured failure payload with a single except clause.

Exception Categories:
    - Renderer errors (1xxx): the external renderer is missing or failed
    - Capture errors (2xxx): the renderer ran but its output could not be claimed
    - Image errors (3xxx): a stored image could not be re-encoded
    - Request errors (4xxx): unknown ids and invalid arguments
    - Config errors (5xxx): the configuration file is unusable

Every error carries a numeric code, a message, an optional suggestion and a
context dict, and serializes with to_dict().
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Renderer errors: 1xxx
ERROR_RENDERER_NOT_FOUND = 1001
ERROR_RENDERER_EXECUTION_FAILED = 1002

# Capture errors: 2xxx
ERROR_NO_OUTPUT_PRODUCED = 2001
ERROR_RENAME_FAILED = 2002

# Image errors: 3xxx
ERROR_UNREADABLE_IMAGE = 3001
ERROR_UNSUPPORTED_FORMAT = 3002

# Request errors: 4xxx
ERROR_NOT_FOUND = 4001
ERROR_INVALID_INPUT = 4002
ERROR_UNKNOWN_TOOL = 4003

# Config errors: 5xxx
ERROR_CONFIG_INVALID = 5001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class WebshotError(Exception):
    """
    Base exception for all webshot errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Renderer Errors
# =============================================================================


@dataclass
class RendererNotFoundError(WebshotError):
    """
    Raised when no renderer candidate passes the liveness check.

    This is a configuration-level fault: every capture fails with it until
    the renderer is installed or the candidate list is fixed.

    Attributes:
        searched: Candidate paths/names that were tried, in order
    """

    searched: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            locations = "\n".join(f"  - {c}" for c in self.searched)
            self.message = (
                "gowitness is not installed or not found in common locations.\n"
                f"Searched in:\n{locations}"
            )
        if self.code == 0:
            self.code = ERROR_RENDERER_NOT_FOUND
        if not self.suggestion:
            self.suggestion = (
                "Install gowitness with: GOTOOLCHAIN=go1.24.0 go install "
                "github.com/sensepost/gowitness@latest, or add it to your PATH"
            )
        self.context["searched"] = self.searched


@dataclass
class RendererExecutionError(WebshotError):
    """
    Raised when the renderer exits non-zero or cannot be spawned.

    Attributes:
        command: The argument list that was executed
        return_code: Exit status, or None if the process never started
        stderr: Captured standard error, already bounded in size
    """

    command: list[str] = field(default_factory=list)
    return_code: int | None = None
    stderr: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.return_code is None:
                self.message = "Renderer could not be executed"
            else:
                self.message = f"Renderer exited with status {self.return_code}"
            if self.stderr.strip():
                self.message += f": {self.stderr.strip()}"
        if self.code == 0:
            self.code = ERROR_RENDERER_EXECUTION_FAILED
        self.context.update({
            "command": self.command,
            "return_code": self.return_code,
            "stderr": self.stderr,
        })


# =============================================================================
# Capture Errors
# =============================================================================


@dataclass
class CaptureError(WebshotError):
    """
    Base class for failures reconciling the renderer's output.

    Attributes:
        screenshot_id: The id allocated for the failed capture
        url: The requested target
    """

    screenshot_id: str = ""
    url: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "screenshot_id": self.screenshot_id,
            "url": self.url,
        })


@dataclass
class NoOutputProducedError(CaptureError):
    """Raised when the renderer produced no raster file, including on timeout."""

    output_dir: str = ""
    timed_out: bool = False

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Screenshot was not generated successfully"
        if self.code == 0:
            self.code = ERROR_NO_OUTPUT_PRODUCED
        if not self.suggestion and self.timed_out:
            self.suggestion = "Increase the timeout or check that the URL is reachable"
        super().__post_init__()
        self.context.update({
            "output_dir": self.output_dir,
            "timed_out": self.timed_out,
        })


@dataclass
class RenameFailedError(CaptureError):
    """Raised when a produced raster file could not be claimed under its id."""

    source: str = ""
    target: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Could not claim {self.source} as {self.target}"
            if self.underlying_error:
                self.message += f": {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_RENAME_FAILED
        super().__post_init__()
        self.context.update({
            "source": self.source,
            "target": self.target,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Image Errors
# =============================================================================


@dataclass
class UnreadableImageError(WebshotError):
    """Raised when a source file is missing, empty or not a decodable raster."""

    path: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unreadable image {self.path}"
            if self.reason:
                self.message += f": {self.reason}"
        if self.code == 0:
            self.code = ERROR_UNREADABLE_IMAGE
        self.context.update({
            "path": self.path,
            "reason": self.reason,
        })


@dataclass
class UnsupportedFormatError(WebshotError):
    """Raised when an output format is outside the supported set."""

    format: str = ""
    supported: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unsupported format: {self.format}"
        if self.code == 0:
            self.code = ERROR_UNSUPPORTED_FORMAT
        if not self.suggestion and self.supported:
            self.suggestion = f"Use one of: {', '.join(self.supported)}"
        self.context.update({
            "format": self.format,
            "supported": self.supported,
        })


# =============================================================================
# Request Errors
# =============================================================================


@dataclass
class CaptureNotFoundError(WebshotError):
    """Raised when no stored file carries the requested id."""

    screenshot_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Screenshot with ID {self.screenshot_id} not found"
        if self.code == 0:
            self.code = ERROR_NOT_FOUND
        self.context["screenshot_id"] = self.screenshot_id


@dataclass
class InvalidInputError(WebshotError):
    """Raised when operation arguments are missing or invalid."""

    tool: str = ""
    errors: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            detail = "; ".join(self.errors) or "invalid input"
            self.message = f"Invalid arguments for {self.tool}: {detail}" if self.tool else detail
        if self.code == 0:
            self.code = ERROR_INVALID_INPUT
        self.context.update({
            "tool": self.tool,
            "errors": self.errors,
        })


@dataclass
class UnknownToolError(WebshotError):
    """Raised when dispatch is asked for a tool that is not registered."""

    tool: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unknown tool: {self.tool}"
        if self.code == 0:
            self.code = ERROR_UNKNOWN_TOOL
        if not self.suggestion:
            self.suggestion = "Run 'webshot tools' to see the registered tools"
        self.context["tool"] = self.tool


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(WebshotError):
    """Raised when a configuration file cannot be loaded or validated."""

    path: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            where = f" {self.path}" if self.path else ""
            self.message = f"Invalid configuration{where}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context.update({
            "path": self.path,
            "underlying_error": self.underlying_error,
        })
