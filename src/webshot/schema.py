"""
Schema definitions for webshot.

This module defines the Pydantic models used throughout webshot:
- WebshotConfig: Where captures live and how the renderer is found
- CaptureRequest/ReencodeOptions: Validated operation inputs
- CaptureResult/CaptureSummary: Records reconstructed from the filesystem
- *Args: Tool argument models, whose JSON schema is each tool's input schema

Design Decisions:
    - Records are immutable (frozen=True); nothing mutates a capture in place
    - Tool argument models forbid unknown keys so typos surface as errors
    - Image format stays a plain string in argument models; it is checked
      against ImageFormat separately so it fails as UnsupportedFormat, not
      as a generic validation error
"""

import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from webshot.errors import ConfigError, UnsupportedFormatError


# =============================================================================
# Enums
# =============================================================================


class ImageFormat(str, Enum):
    """Output encodings the re-encoder can produce."""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @classmethod
    def values(cls) -> list[str]:
        return [f.value for f in cls]

    @classmethod
    def parse(cls, value: "str | ImageFormat") -> "ImageFormat":
        """
        Resolve a format name, rejecting anything outside the supported set.

        Raises:
            UnsupportedFormatError: If value is not jpeg, png or webp
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise UnsupportedFormatError(format=str(value), supported=cls.values()) from None


# =============================================================================
# Configuration
# =============================================================================


def default_renderer_candidates() -> list[str]:
    """Common install locations for gowitness, PATH lookup first."""
    home = Path.home()
    gopath = Path(os.environ.get("GOPATH") or home / "go")
    candidates = [
        "gowitness",
        str(home / "go" / "bin" / "gowitness"),
        str(gopath / "bin" / "gowitness"),
        "/usr/local/bin/gowitness",
        "/opt/homebrew/bin/gowitness",
    ]
    # GOPATH usually equals ~/go
    return list(dict.fromkeys(candidates))


class WebshotConfig(BaseModel):
    """
    Runtime configuration.

    Attributes:
        storage_root: Root of the date-partitioned capture tree
        database_path: Side database the renderer writes (default: inside storage_root)
        renderer_candidates: Ordered renderer paths/names to probe
        liveness_timeout_seconds: Bound on each `--help` probe
        process_grace_seconds: Added to delay + timeout to bound a capture process
        report_timeout_seconds: Bound on the renderer's report command
        max_stderr_bytes: How much renderer stderr to keep in errors
        screenshot_format: Raster format requested from the renderer
        raster_suffixes: File suffixes treated as captures when scanning
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    storage_root: Path = Field(
        default=Path("screenshots"),
        description="Root of the date-partitioned capture tree",
    )
    database_path: Path | None = Field(
        default=None,
        description="Renderer side database (default: <storage_root>/screenshots.db)",
    )
    renderer_candidates: list[str] = Field(
        default_factory=default_renderer_candidates,
        description="Ordered renderer paths/names to probe",
        min_length=1,
    )
    liveness_timeout_seconds: float = Field(default=10, gt=0)
    process_grace_seconds: float = Field(default=30, ge=0)
    report_timeout_seconds: float = Field(default=30, gt=0)
    max_stderr_bytes: int = Field(default=4096, gt=0)
    screenshot_format: str = Field(default="png", min_length=1)
    raster_suffixes: list[str] = Field(
        default_factory=lambda: [".png", ".jpg", ".jpeg", ".webp"],
        min_length=1,
    )

    @property
    def resolved_database_path(self) -> Path:
        return self.database_path or self.storage_root / "screenshots.db"


# =============================================================================
# Operation Inputs
# =============================================================================


class CaptureRequest(BaseModel):
    """What to capture and how to render it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(..., min_length=1, description="The URL to take a screenshot of")
    width: int = Field(default=1200, gt=0, description="Screenshot width in pixels")
    height: int = Field(default=800, gt=0, description="Screenshot height in pixels")
    delay: float = Field(default=3, ge=0, description="Delay in seconds before taking screenshot")
    timeout: float = Field(default=10, ge=0, description="Timeout in seconds")


class ReencodeOptions(BaseModel):
    """Target encoding for a stored image."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    quality: int = Field(default=80, ge=1, le=100)
    format: ImageFormat = Field(default=ImageFormat.JPEG)
    max_width: int = Field(default=1200, gt=0)
    max_height: int = Field(default=800, gt=0)


# =============================================================================
# Records
# =============================================================================


class CaptureResult(BaseModel):
    """A freshly claimed capture."""

    model_config = ConfigDict(frozen=True)

    screenshot_id: str
    url: str
    timestamp: datetime
    partition: str
    file_path: Path
    file_name: str
    file_size: int = Field(ge=0)
    request: CaptureRequest


class CaptureSummary(BaseModel):
    """One stored capture as observed on disk."""

    model_config = ConfigDict(frozen=True)

    screenshot_id: str
    file_name: str
    file_path: Path
    date: str
    size: int = Field(ge=0)
    created: datetime
    modified: datetime


# =============================================================================
# Tool Arguments
# =============================================================================


class TakeScreenshotArgs(BaseModel):
    """Arguments for take_screenshot."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., min_length=1, description="The URL to take a screenshot of")
    width: int = Field(default=1200, gt=0, description="Screenshot width in pixels")
    height: int = Field(default=800, gt=0, description="Screenshot height in pixels")
    delay: float = Field(default=3, ge=0, description="Delay in seconds before taking screenshot")
    timeout: float = Field(default=10, ge=0, description="Timeout in seconds")
    include_image: bool = Field(
        default=False,
        description="Whether to include the image data in the response for immediate viewing",
    )
    optimize: bool = Field(
        default=True,
        description="Whether to optimize the image for viewing (reduces file size)",
    )
    quality: int = Field(default=80, ge=1, le=100, description="Image quality for optimization (1-100)")
    format: str = Field(
        default="jpeg",
        description="Output format for optimized images (jpeg, png, webp)",
        json_schema_extra={"enum": ImageFormat.values()},
    )

    def to_request(self) -> CaptureRequest:
        return CaptureRequest(
            url=self.url,
            width=self.width,
            height=self.height,
            delay=self.delay,
            timeout=self.timeout,
        )


class ListScreenshotsArgs(BaseModel):
    """Arguments for list_screenshots."""

    model_config = ConfigDict(extra="forbid")

    limit: int = Field(default=50, ge=0, description="Maximum number of screenshots to return")


class ScreenshotInfoArgs(BaseModel):
    """Arguments for get_screenshot_info."""

    model_config = ConfigDict(extra="forbid")

    screenshot_id: str = Field(..., min_length=1, description="The unique ID of the screenshot")


class ViewScreenshotArgs(BaseModel):
    """Arguments for view_screenshot."""

    model_config = ConfigDict(extra="forbid")

    screenshot_id: str = Field(..., min_length=1, description="The unique ID of the screenshot to view")
    optimize: bool = Field(
        default=True,
        description="Whether to optimize the image for viewing (reduces file size)",
    )
    quality: int = Field(default=80, ge=1, le=100, description="Image quality for optimization (1-100)")
    format: str = Field(
        default="jpeg",
        description="Output format for optimized images (jpeg, png, webp)",
        json_schema_extra={"enum": ImageFormat.values()},
    )


def format_validation_errors(error: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into 'field: message' strings."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        if item["type"] == "missing":
            messages.append(f"'{location}' is required")
        else:
            messages.append(f"'{location}': {item['msg']}")
    return messages


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def _config_from_data(data: Any, source: str = "") -> WebshotConfig:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(path=source, underlying_error="top level must be a mapping")
    try:
        return WebshotConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(path=source, underlying_error="; ".join(format_validation_errors(e))) from e


def load_config(path: Path | str) -> WebshotConfig:
    """
    Load configuration from a YAML file.

    Relative storage_root and database_path values are resolved against the
    directory holding the file.

    Raises:
        ConfigError: If the file is unreadable, not YAML, or fails validation
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(path=str(path), underlying_error=str(e)) from e

    config = _config_from_data(data, str(path))
    base = path.parent.resolve()
    updates: dict[str, Path] = {}
    if not config.storage_root.is_absolute():
        updates["storage_root"] = base / config.storage_root
    if config.database_path is not None and not config.database_path.is_absolute():
        updates["database_path"] = base / config.database_path
    return config.model_copy(update=updates) if updates else config


def load_config_from_string(content: str) -> WebshotConfig:
    """Load configuration from a YAML string."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(underlying_error=str(e)) from e
    return _config_from_data(data)
