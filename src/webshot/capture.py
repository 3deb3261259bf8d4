"""
Capture invoker: run the renderer for one URL and claim what it produced.

The renderer names its output however it likes, so each capture gets its
own staging directory inside the partition directory. Whatever raster file
appears there belongs to this capture and nothing else; it is then renamed
into the partition directory as "<id>_<original-name>".

Capture Flow:
    1. Allocate id and timestamp (logged before the renderer runs)
    2. Ensure <storage-root>/<YYYY-MM-DD>/ exists
    3. Run the renderer into <partition>/.staging-<id>/
    4. Pick the newest raster file in the staging directory
    5. Rename it to <partition>/<id>_<name> without clobbering
    6. Remove the empty staging directory, stat the file, return the result

A file left in a staging directory after a failed claim is an orphan. It is
not deleted; list_screenshots reports it with id "unknown".
"""

import logging
import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Protocol

from webshot.errors import NoOutputProducedError, RenameFailedError
from webshot.naming import compose_file_name, local_now, new_id, partition_for
from webshot.schema import CaptureRequest, CaptureResult

logger = logging.getLogger(__name__)

STAGING_PREFIX = ".staging-"


class ScreenshotRenderer(Protocol):
    """Anything that can render a request into a directory."""

    def screenshot(self, request: CaptureRequest, output_dir: Path) -> object: ...


class CaptureInvoker:
    """
    Drives one renderer invocation per capture and reconciles its output.

    Attributes:
        storage_root: Root of the date-partitioned tree
        renderer: Renderer used to produce raster files
        raster_suffixes: Suffixes accepted as renderer output
        clock: Returns the capture start time (local, aware)
        id_factory: Returns fresh capture ids
    """

    def __init__(
        self,
        storage_root: Path,
        renderer: ScreenshotRenderer,
        raster_suffixes: list[str] | None = None,
        clock: Callable[[], datetime] = local_now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.storage_root = Path(storage_root)
        self.renderer = renderer
        self.raster_suffixes = {s.lower() for s in (raster_suffixes or [".png"])}
        self.clock = clock
        self.id_factory = id_factory

    def capture(self, request: CaptureRequest) -> CaptureResult:
        """
        Capture request.url and store it under a fresh id.

        Raises:
            RendererNotFoundError: If the renderer cannot be located
            RendererExecutionError: If the renderer fails
            NoOutputProducedError: If no raster file was produced in time
            RenameFailedError: If the produced file cannot be claimed
        """
        screenshot_id = self.id_factory()
        timestamp = self.clock()
        partition = partition_for(timestamp)
        logger.info("Capturing %s as %s at %s", request.url, screenshot_id, timestamp.isoformat())

        partition_dir = self.storage_root / partition
        partition_dir.mkdir(parents=True, exist_ok=True)
        staging_dir = partition_dir / f"{STAGING_PREFIX}{screenshot_id}"
        staging_dir.mkdir()

        try:
            self.renderer.screenshot(request, staging_dir)
        except NoOutputProducedError as e:
            e.screenshot_id = screenshot_id
            e.context["screenshot_id"] = screenshot_id
            self._discard_if_empty(staging_dir)
            raise
        except Exception:
            self._discard_if_empty(staging_dir)
            raise

        produced = self._newest_raster(staging_dir)
        if produced is None:
            self._discard_if_empty(staging_dir)
            raise NoOutputProducedError(
                screenshot_id=screenshot_id,
                url=request.url,
                output_dir=str(staging_dir),
            )

        file_name = compose_file_name(screenshot_id, produced.name)
        target = partition_dir / file_name
        self._claim(produced, target, screenshot_id, request.url)
        self._discard_if_empty(staging_dir)

        file_size = target.stat().st_size
        logger.info("Stored %s (%d bytes)", target, file_size)
        return CaptureResult(
            screenshot_id=screenshot_id,
            url=request.url,
            timestamp=timestamp,
            partition=partition,
            file_path=target,
            file_name=file_name,
            file_size=file_size,
            request=request,
        )

    def _newest_raster(self, directory: Path) -> Path | None:
        rasters = [
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in self.raster_suffixes
        ]
        if not rasters:
            return None
        if len(rasters) > 1:
            logger.warning(
                "Renderer wrote %d raster files into %s; claiming the newest",
                len(rasters),
                directory,
            )
        return max(rasters, key=lambda p: (p.stat().st_mtime_ns, p.name))

    def _claim(self, source: Path, target: Path, screenshot_id: str, url: str) -> None:
        if target.exists():
            raise RenameFailedError(
                screenshot_id=screenshot_id,
                url=url,
                source=str(source),
                target=str(target),
                underlying_error="target already exists",
            )
        try:
            os.rename(source, target)
        except OSError as e:
            logger.warning("Orphaned %s: %s", source, e)
            raise RenameFailedError(
                screenshot_id=screenshot_id,
                url=url,
                source=str(source),
                target=str(target),
                underlying_error=str(e),
            ) from e

    def _discard_if_empty(self, staging_dir: Path) -> None:
        try:
            staging_dir.rmdir()
        except FileNotFoundError:
            pass
        except OSError:
            leftovers = sorted(p.name for p in staging_dir.iterdir())
            logger.warning("Leaving orphaned files in %s: %s", staging_dir, ", ".join(leftovers))
