"""
Unit tests for renderer resolution and invocation.

Tests cover:
- Locator liveness checks, caching and not-found errors
- Capture command construction
- Running the stub renderer (success, non-zero exit, timeout)
- Report output
"""

import os
import subprocess
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from webshot.errors import (
    NoOutputProducedError,
    RendererExecutionError,
    RendererNotFoundError,
)
from webshot.renderer import Renderer, RendererLocator, _bounded
from webshot.schema import CaptureRequest, WebshotConfig


def _alive(pid: int) -> bool:
    """Whether pid is a running (not zombie) process."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    stat = Path(f"/proc/{pid}/stat")
    try:
        return ") Z " not in stat.read_text()
    except OSError:
        return True


class TestRendererLocator:
    """Tests for RendererLocator."""

    def test_first_live_candidate_wins(self, temp_dir: Path, stub_renderer: Path) -> None:
        locator = RendererLocator([str(temp_dir / "missing"), str(stub_renderer)])
        assert locator.resolve() == str(stub_renderer)
        assert locator.cached == str(stub_renderer)

    def test_success_is_cached(self, stub_renderer: Path) -> None:
        locator = RendererLocator([str(stub_renderer)])
        locator.resolve()

        with patch("webshot.renderer.subprocess.run") as run:
            assert locator.resolve() == str(stub_renderer)
        run.assert_not_called()

    def test_not_found(self, temp_dir: Path) -> None:
        candidates = [str(temp_dir / "a" / "gowitness"), str(temp_dir / "b" / "gowitness")]
        locator = RendererLocator(candidates)

        with pytest.raises(RendererNotFoundError) as exc_info:
            locator.resolve()
        assert exc_info.value.searched == candidates
        assert locator.cached is None

    def test_failure_not_cached(self, temp_dir: Path, stub_renderer: Path) -> None:
        target = temp_dir / "later" / "gowitness"
        locator = RendererLocator([str(target)])
        with pytest.raises(RendererNotFoundError):
            locator.resolve()

        target.parent.mkdir()
        target.symlink_to(stub_renderer)
        assert locator.resolve() == str(target)

    def test_nonzero_help_is_not_alive(self, temp_dir: Path) -> None:
        script = temp_dir / "broken"
        script.write_text("#!/bin/sh\nexit 1\n")
        script.chmod(0o755)

        with pytest.raises(RendererNotFoundError):
            RendererLocator([str(script)]).resolve()

    def test_hung_help_check_is_not_alive(self) -> None:
        with patch(
            "webshot.renderer.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="gowitness", timeout=1),
        ):
            with pytest.raises(RendererNotFoundError):
                RendererLocator(["gowitness"], liveness_timeout=1).resolve()


class TestCaptureCommand:
    """Tests for command construction."""

    def test_arguments(self, temp_dir: Path) -> None:
        renderer = Renderer(RendererLocator(["gowitness"]), db_path=temp_dir / "screenshots.db")
        request = CaptureRequest(url="https://example.com/a b;rm -rf", width=640, height=480, delay=2, timeout=7.5)
        command = renderer.capture_command("gowitness", request, temp_dir / "out")

        assert command[:3] == ["gowitness", "scan", "single"]
        assert command[command.index("-u") + 1] == "https://example.com/a b;rm -rf"
        assert command[command.index("--write-db-uri") + 1] == f"sqlite://{temp_dir / 'screenshots.db'}"
        assert command[command.index("--screenshot-path") + 1] == str(temp_dir / "out")
        assert command[command.index("--screenshot-format") + 1] == "png"
        assert command[command.index("--chrome-window-x") + 1] == "640"
        assert command[command.index("--chrome-window-y") + 1] == "480"
        assert command[command.index("--delay") + 1] == "2"
        assert command[command.index("--timeout") + 1] == "7.5"
        assert "--write-db" in command
        assert command[-1] == "--quiet"

    def test_from_config(self, temp_dir: Path) -> None:
        config = WebshotConfig(storage_root=temp_dir, report_timeout_seconds=3)
        renderer = Renderer.from_config(config)
        assert renderer.db_path == temp_dir / "screenshots.db"
        assert renderer.report_timeout == 3
        assert renderer.locator.candidates == config.renderer_candidates


class TestRendererRun:
    """Tests for running the stub renderer."""

    def test_screenshot_writes_into_output_dir(self, temp_dir: Path, stub_renderer: Path) -> None:
        out = temp_dir / "out"
        out.mkdir()
        renderer = Renderer(RendererLocator([str(stub_renderer)]), db_path=temp_dir / "gw.db")

        run = renderer.screenshot(CaptureRequest(url="https://example.com", delay=0), out)
        assert (out / "capture.png").is_file()
        assert (temp_dir / "gw.db").exists()
        assert run.command[0] == str(stub_renderer)

    def test_nonzero_exit(self, temp_dir: Path, stub_renderer: Path) -> None:
        out = temp_dir / "out"
        out.mkdir()
        renderer = Renderer(RendererLocator([str(stub_renderer)]), db_path=temp_dir / "gw.db")

        with pytest.raises(RendererExecutionError) as exc_info:
            renderer.screenshot(CaptureRequest(url="https://fail.invalid", delay=0), out)
        assert exc_info.value.return_code == 3
        assert "navigation failed" in exc_info.value.stderr

    def test_timeout_becomes_no_output(self, temp_dir: Path, stub_renderer: Path) -> None:
        renderer = Renderer(RendererLocator([str(stub_renderer)]), db_path=temp_dir / "gw.db", grace_seconds=1)
        request = CaptureRequest(url="https://hang.invalid", delay=0, timeout=0)

        started = time.monotonic()
        with pytest.raises(NoOutputProducedError) as exc_info:
            renderer.screenshot(request, temp_dir)
        assert exc_info.value.timed_out is True
        assert "timed out after 1 seconds" in exc_info.value.message
        assert time.monotonic() - started < 10

    def test_timeout_kills_renderer_children(self, temp_dir: Path, stub_renderer: Path) -> None:
        """A browser started by the renderer must not outlive the timeout."""
        renderer = Renderer(RendererLocator([str(stub_renderer)]), db_path=temp_dir / "gw.db", grace_seconds=1)
        request = CaptureRequest(url="https://hang.invalid", delay=0, timeout=0)

        with pytest.raises(NoOutputProducedError):
            renderer.screenshot(request, temp_dir)

        child = int((temp_dir / "child.pid").read_text())
        deadline = time.monotonic() + 5
        while _alive(child) and time.monotonic() < deadline:
            time.sleep(0.05)
        assert not _alive(child)

    def test_spawn_failure(self, temp_dir: Path) -> None:
        locator = RendererLocator(["gowitness"])
        locator._binary = str(temp_dir / "vanished")
        renderer = Renderer(locator, db_path=temp_dir / "gw.db")

        with pytest.raises(RendererExecutionError) as exc_info:
            renderer.report()
        assert exc_info.value.return_code is None

    def test_report(self, temp_dir: Path, stub_renderer: Path) -> None:
        out = temp_dir / "out"
        out.mkdir()
        renderer = Renderer(RendererLocator([str(stub_renderer)]), db_path=temp_dir / "gw.db")
        renderer.screenshot(CaptureRequest(url="https://example.com", delay=0), out)

        assert f"https://example.com {out}" in renderer.report(limit=5)


class TestBoundedOutput:
    """Tests for stderr bounding."""

    def test_short_output_untouched(self) -> None:
        assert _bounded(b"short", 100) == "short"

    def test_long_output_keeps_tail(self) -> None:
        text = _bounded(b"x" * 50 + b"the real error", 14)
        assert text.endswith("the real error")
        assert "truncated" in text

    def test_invalid_utf8_replaced(self) -> None:
        assert "�" in _bounded(b"bad \xff byte", 100)
