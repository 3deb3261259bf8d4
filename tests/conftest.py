"""
Pytest configuration and fixtures for webshot tests.

This module provides shared fixtures used across unit and integration
tests: temporary storage roots, generated raster images, an in-process fake
renderer, and a shell-script stand-in for the gowitness binary.
"""

import stat
import sys
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest
from PIL import Image

from webshot.schema import CaptureRequest, WebshotConfig
from webshot.service import ScreenshotService


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_root(temp_dir: Path) -> Path:
    """Storage root for captures (not created; capture creates it)."""
    return temp_dir / "screenshots"


def write_png(
    path: Path,
    size: tuple[int, int] = (1600, 1000),
    mode: str = "RGB",
    color: tuple[int, ...] = (30, 120, 200),
) -> Path:
    """Write a solid-color image to path (format taken from the suffix)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path)
    return path


@pytest.fixture
def make_png() -> Callable[..., Path]:
    """Factory writing generated images to a given path."""
    return write_png


@pytest.fixture
def sample_png(temp_dir: Path) -> Path:
    """A 1600x1000 PNG, larger than the default 1200x800 box."""
    return write_png(temp_dir / "fixtures" / "sample.png")


class FakeRenderer:
    """
    In-process renderer that writes files into the output directory.

    Attributes:
        outputs: File names to write on each call
        error: Exception to raise instead of producing output
        calls: (request, output_dir) pairs seen so far
    """

    def __init__(
        self,
        outputs: list[str] | None = None,
        error: Exception | None = None,
        size: tuple[int, int] = (640, 480),
    ) -> None:
        self.outputs = ["https---example.com.png"] if outputs is None else outputs
        self.error = error
        self.size = size
        self.calls: list[tuple[CaptureRequest, Path]] = []

    def screenshot(self, request: CaptureRequest, output_dir: Path) -> None:
        self.calls.append((request, output_dir))
        for name in self.outputs:
            write_png(output_dir / name, size=self.size)
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    """Fake renderer that produces one PNG per capture."""
    return FakeRenderer()


@pytest.fixture
def renderer_factory() -> type[FakeRenderer]:
    """The FakeRenderer class, for tests that need custom outputs or errors."""
    return FakeRenderer


STUB_RENDERER = """#!/bin/sh
# Stand-in for gowitness: answers --help, copies a fixture PNG on
# `scan single` and prints a log of past scans on `report list`.
# URLs containing hang.invalid block on a background child.
LOG="{log}"
case "$1" in
  --help)
    echo "gowitness stub"
    exit 0
    ;;
  scan)
    url=""
    out=""
    db=""
    while [ $# -gt 0 ]; do
      case "$1" in
        -u) url="$2"; shift ;;
        --screenshot-path) out="$2"; shift ;;
        --write-db-uri) db="${{2#sqlite://}}"; shift ;;
      esac
      shift
    done
    case "$url" in
      *fail.invalid*) echo "navigation failed for $url" >&2; exit 3 ;;
      *empty.invalid*) exit 0 ;;
      *hang.invalid*) sleep 30 & echo $! > "{child_pid}"; wait; exit 0 ;;
    esac
    cp "{fixture}" "$out/capture.png"
    touch "$db"
    echo "$url $out" >> "$LOG"
    exit 0
    ;;
  report)
    [ -f "$LOG" ] && cat "$LOG"
    exit 0
    ;;
esac
echo "unknown command: $1" >&2
exit 2
"""


@pytest.fixture
def stub_renderer(temp_dir: Path, sample_png: Path) -> Path:
    """Executable script behaving like the parts of gowitness webshot uses."""
    if sys.platform == "win32":
        pytest.skip("stub renderer is a POSIX shell script")
    script = temp_dir / "bin" / "gowitness"
    script.parent.mkdir(parents=True, exist_ok=True)
    content = STUB_RENDERER.format(
        log=temp_dir / "scans.log",
        fixture=sample_png,
        child_pid=temp_dir / "child.pid",
    )
    script.write_text(content)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def config(storage_root: Path, stub_renderer: Path) -> WebshotConfig:
    """Configuration pointing at the temp storage root and the stub renderer."""
    return WebshotConfig(
        storage_root=storage_root,
        renderer_candidates=[str(stub_renderer)],
        process_grace_seconds=5,
    )


@pytest.fixture
def service(config: WebshotConfig) -> ScreenshotService:
    """Service wired to the stub renderer."""
    return ScreenshotService(config)


@pytest.fixture
def missing_renderer_config(storage_root: Path, temp_dir: Path) -> WebshotConfig:
    """Configuration whose only renderer candidate does not exist."""
    return WebshotConfig(
        storage_root=storage_root,
        renderer_candidates=[str(temp_dir / "nowhere" / "gowitness")],
    )
