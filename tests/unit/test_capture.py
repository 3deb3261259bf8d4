"""
Unit tests for the capture invoker.

Tests cover:
- Successful capture layout and result fields
- Concurrent-style captures claiming only their own output
- No output, renderer failures and timeouts
- Rename collisions and staging directory cleanup
"""

from datetime import datetime
from pathlib import Path

import pytest

from webshot.capture import STAGING_PREFIX, CaptureInvoker
from webshot.errors import (
    NoOutputProducedError,
    RenameFailedError,
    RendererExecutionError,
)
from webshot.lookup import CaptureIndex
from webshot.schema import CaptureRequest

FIXED_TIME = datetime(2024, 1, 31, 23, 59, 59).astimezone()
FIXED_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"


def staging_dirs(root: Path) -> list[Path]:
    return [p for p in root.rglob(f"{STAGING_PREFIX}*") if p.is_dir()]


class TestCapture:
    """Tests for successful captures."""

    def test_stores_under_partition_with_id_prefix(self, storage_root: Path, fake_renderer) -> None:
        invoker = CaptureInvoker(
            storage_root,
            fake_renderer,
            clock=lambda: FIXED_TIME,
            id_factory=lambda: FIXED_ID,
        )
        result = invoker.capture(CaptureRequest(url="https://example.com"))

        expected = storage_root / "2024-01-31" / f"{FIXED_ID}_https---example.com.png"
        assert result.file_path == expected
        assert expected.is_file()
        assert result.screenshot_id == FIXED_ID
        assert result.partition == "2024-01-31"
        assert result.file_name == expected.name
        assert result.file_size == expected.stat().st_size
        assert result.timestamp == FIXED_TIME
        assert staging_dirs(storage_root) == []

    def test_renderer_gets_request_and_staging_dir(self, storage_root: Path, fake_renderer) -> None:
        invoker = CaptureInvoker(storage_root, fake_renderer, id_factory=lambda: FIXED_ID)
        request = CaptureRequest(url="https://example.com", width=640, height=480)
        invoker.capture(request)

        [(seen, output_dir)] = fake_renderer.calls
        assert seen == request
        assert output_dir.name == f"{STAGING_PREFIX}{FIXED_ID}"

    def test_captured_file_is_findable(self, storage_root: Path, fake_renderer) -> None:
        invoker = CaptureInvoker(storage_root, fake_renderer)
        result = invoker.capture(CaptureRequest(url="https://example.com"))
        assert CaptureIndex(storage_root).find_by_id(result.screenshot_id) == result.file_path

    def test_same_url_twice_gives_distinct_files(self, storage_root: Path, fake_renderer) -> None:
        invoker = CaptureInvoker(storage_root, fake_renderer)
        first = invoker.capture(CaptureRequest(url="https://example.com"))
        second = invoker.capture(CaptureRequest(url="https://example.com"))

        assert first.screenshot_id != second.screenshot_id
        assert first.file_path != second.file_path
        assert first.file_path.exists() and second.file_path.exists()

    def test_newest_of_multiple_outputs_is_claimed(self, storage_root: Path, renderer_factory) -> None:
        renderer = renderer_factory(outputs=["a.png", "b.png"])
        invoker = CaptureInvoker(storage_root, renderer, id_factory=lambda: FIXED_ID)
        result = invoker.capture(CaptureRequest(url="https://example.com"))

        # One claimed, the other left as an orphan in staging
        assert result.file_name in {f"{FIXED_ID}_a.png", f"{FIXED_ID}_b.png"}
        assert len(staging_dirs(storage_root)) == 1

    def test_non_raster_output_ignored(self, storage_root: Path, renderer_factory) -> None:
        renderer = renderer_factory(outputs=[])

        def write_log(request: CaptureRequest, output_dir: Path) -> None:
            (output_dir / "gowitness.log").write_text("done")

        renderer.screenshot = write_log
        invoker = CaptureInvoker(storage_root, renderer)
        with pytest.raises(NoOutputProducedError):
            invoker.capture(CaptureRequest(url="https://example.com"))


class TestCaptureFailures:
    """Tests for capture failures."""

    def test_no_output(self, storage_root: Path, renderer_factory) -> None:
        invoker = CaptureInvoker(storage_root, renderer_factory(outputs=[]), id_factory=lambda: FIXED_ID)

        with pytest.raises(NoOutputProducedError) as exc_info:
            invoker.capture(CaptureRequest(url="https://example.com"))
        assert exc_info.value.screenshot_id == FIXED_ID
        assert exc_info.value.url == "https://example.com"
        assert staging_dirs(storage_root) == []

    def test_renderer_error_propagates(self, storage_root: Path, renderer_factory) -> None:
        error = RendererExecutionError(command=["gowitness"], return_code=1, stderr="net::ERR")
        invoker = CaptureInvoker(storage_root, renderer_factory(outputs=[], error=error))

        with pytest.raises(RendererExecutionError):
            invoker.capture(CaptureRequest(url="https://example.com"))
        assert staging_dirs(storage_root) == []

    def test_timeout_carries_screenshot_id(self, storage_root: Path, renderer_factory) -> None:
        error = NoOutputProducedError(url="https://example.com", timed_out=True)
        invoker = CaptureInvoker(
            storage_root,
            renderer_factory(outputs=[], error=error),
            id_factory=lambda: FIXED_ID,
        )

        with pytest.raises(NoOutputProducedError) as exc_info:
            invoker.capture(CaptureRequest(url="https://example.com"))
        assert exc_info.value.timed_out is True
        assert exc_info.value.context["screenshot_id"] == FIXED_ID

    def test_rename_refuses_to_clobber(self, storage_root: Path, fake_renderer, make_png) -> None:
        existing = storage_root / "2024-01-31" / f"{FIXED_ID}_https---example.com.png"
        make_png(existing, size=(5, 5))
        before = existing.read_bytes()
        invoker = CaptureInvoker(
            storage_root,
            fake_renderer,
            clock=lambda: FIXED_TIME,
            id_factory=lambda: FIXED_ID,
        )

        with pytest.raises(RenameFailedError) as exc_info:
            invoker.capture(CaptureRequest(url="https://example.com"))
        assert exc_info.value.target == str(existing)
        assert existing.read_bytes() == before
        # The produced file stays behind as an orphan
        assert len(staging_dirs(storage_root)) == 1

    def test_orphan_listed_as_unknown(self, storage_root: Path, fake_renderer, make_png) -> None:
        make_png(storage_root / "2024-01-31" / f"{FIXED_ID}_https---example.com.png", size=(5, 5))
        invoker = CaptureInvoker(
            storage_root,
            fake_renderer,
            clock=lambda: FIXED_TIME,
            id_factory=lambda: FIXED_ID,
        )
        with pytest.raises(RenameFailedError):
            invoker.capture(CaptureRequest(url="https://example.com"))

        ids = sorted(s.screenshot_id for s in CaptureIndex(storage_root).list_all())
        assert ids == sorted([FIXED_ID, "unknown"])
