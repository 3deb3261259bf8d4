"""
External renderer resolution and invocation.

The renderer (gowitness by default) is a black box that writes one raster
file into a directory we name. This module:
- RendererLocator: finds a working renderer binary and caches it
- Renderer: builds and runs the capture and report commands

Commands are always passed as argument lists (never shell=True), so URLs and
paths are single arguments no matter what characters they contain. Every
invocation has a timeout. Capture and report commands run in their own
session, so on expiry the whole process group is killed, including any
browser the renderer started.
"""

import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path

from webshot.errors import (
    NoOutputProducedError,
    RendererExecutionError,
    RendererNotFoundError,
)
from webshot.schema import CaptureRequest, WebshotConfig

logger = logging.getLogger(__name__)


def _decode(output: bytes) -> str:
    """Decode process output (best effort)."""
    try:
        return output.decode("utf-8")
    except UnicodeDecodeError:
        return output.decode("utf-8", errors="replace")


def _bounded(output: bytes, max_bytes: int) -> str:
    """Decode output keeping only its last max_bytes, where the error usually is."""
    if len(output) > max_bytes:
        marker = f"... [truncated, kept last {max_bytes} bytes]\n".encode()
        output = marker + output[-max_bytes:]
    return _decode(output)


class RendererLocator:
    """
    Finds the renderer binary by probing an ordered candidate list.

    The first candidate that answers `--help` with status 0 is cached on the
    instance for its lifetime. A failed search is not cached, so installing
    the renderer takes effect on the next call.
    """

    def __init__(self, candidates: list[str], liveness_timeout: float = 10) -> None:
        self.candidates = list(candidates)
        self.liveness_timeout = liveness_timeout
        self._binary: str | None = None

    @property
    def cached(self) -> str | None:
        return self._binary

    def resolve(self) -> str:
        """
        Return the renderer binary, probing candidates on first use.

        Raises:
            RendererNotFoundError: If no candidate passes the liveness check
        """
        if self._binary is not None:
            return self._binary

        for candidate in self.candidates:
            if self._is_alive(candidate):
                self._binary = candidate
                logger.info("Found renderer at: %s", candidate)
                return candidate

        error = RendererNotFoundError(searched=self.candidates)
        logger.error("%s", error.message)
        raise error

    def _is_alive(self, candidate: str) -> bool:
        try:
            result = subprocess.run(
                [candidate, "--help"],
                capture_output=True,
                timeout=self.liveness_timeout,
                shell=False,
            )
        except subprocess.TimeoutExpired:
            logger.debug("Renderer candidate %s timed out on --help", candidate)
            return False
        except OSError as e:
            logger.debug("Renderer candidate %s unavailable: %s", candidate, e)
            return False
        if result.returncode != 0:
            logger.debug("Renderer candidate %s exited %d on --help", candidate, result.returncode)
        return result.returncode == 0


@dataclass(frozen=True)
class RendererRun:
    """Outcome of a successful renderer invocation."""

    command: list[str]
    stdout: str
    stderr: str


class Renderer:
    """
    Runs gowitness commands against a side database.

    Attributes:
        locator: Supplies (and caches) the binary path
        db_path: SQLite database gowitness records its own metadata into
        screenshot_format: Raster format requested from gowitness
        grace_seconds: Added to delay + timeout to bound a capture process
        report_timeout: Bound on the report command
        max_stderr_bytes: How much stderr to keep in errors
    """

    def __init__(
        self,
        locator: RendererLocator,
        db_path: Path,
        screenshot_format: str = "png",
        grace_seconds: float = 30,
        report_timeout: float = 30,
        max_stderr_bytes: int = 4096,
    ) -> None:
        self.locator = locator
        self.db_path = Path(db_path)
        self.screenshot_format = screenshot_format
        self.grace_seconds = grace_seconds
        self.report_timeout = report_timeout
        self.max_stderr_bytes = max_stderr_bytes

    @classmethod
    def from_config(cls, config: WebshotConfig, locator: RendererLocator | None = None) -> "Renderer":
        locator = locator or RendererLocator(
            config.renderer_candidates,
            liveness_timeout=config.liveness_timeout_seconds,
        )
        return cls(
            locator=locator,
            db_path=config.resolved_database_path,
            screenshot_format=config.screenshot_format,
            grace_seconds=config.process_grace_seconds,
            report_timeout=config.report_timeout_seconds,
            max_stderr_bytes=config.max_stderr_bytes,
        )

    @property
    def db_uri(self) -> str:
        return f"sqlite://{self.db_path}"

    def capture_command(self, binary: str, request: CaptureRequest, output_dir: Path) -> list[str]:
        return [
            binary,
            "scan", "single",
            "-u", request.url,
            "--write-db",
            "--write-db-uri", self.db_uri,
            "--screenshot-path", str(output_dir),
            "--screenshot-format", self.screenshot_format,
            "--chrome-window-x", str(request.width),
            "--chrome-window-y", str(request.height),
            "--delay", _seconds(request.delay),
            "--timeout", _seconds(request.timeout),
            "--quiet",
        ]

    def screenshot(self, request: CaptureRequest, output_dir: Path) -> RendererRun:
        """
        Capture request.url into output_dir.

        Raises:
            RendererNotFoundError: If no renderer binary can be located
            RendererExecutionError: On spawn failure or non-zero exit
            NoOutputProducedError: If the process outlives its time bound
        """
        binary = self.locator.resolve()
        command = self.capture_command(binary, request, output_dir)
        limit = request.delay + request.timeout + self.grace_seconds

        logger.debug("Executing: %s", " ".join(command))
        try:
            return self._run(command, limit)
        except subprocess.TimeoutExpired:
            raise NoOutputProducedError(
                message=f"Renderer timed out after {limit:g} seconds",
                url=request.url,
                output_dir=str(output_dir),
                timed_out=True,
            ) from None

    def report(self, limit: int | None = None) -> str:
        """
        Return the text of `gowitness report list` for the side database.

        Raises:
            RendererNotFoundError, RendererExecutionError, subprocess.TimeoutExpired
        """
        binary = self.locator.resolve()
        command = [binary, "report", "list", "--write-db-uri", self.db_uri]
        if limit is not None:
            command += ["--limit", str(limit)]
        return self._run(command, self.report_timeout).stdout

    def _run(self, command: list[str], timeout: float) -> RendererRun:
        try:
            proc = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                shell=False,
                start_new_session=os.name != "nt",
            )
        except OSError as e:
            raise RendererExecutionError(
                message=f"Renderer could not be executed: {e}",
                command=command,
                stderr=str(e),
            ) from e

        with proc:
            try:
                stdout, stderr_bytes = proc.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                _kill_process_group(proc)
                raise

        stderr = _bounded(stderr_bytes, self.max_stderr_bytes)
        if proc.returncode != 0:
            raise RendererExecutionError(
                command=command,
                return_code=proc.returncode,
                stderr=stderr,
            )
        return RendererRun(command=command, stdout=_decode(stdout), stderr=stderr)


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Kill the renderer and everything it spawned, then reap it."""
    logger.warning("Renderer %d timed out; killing its process group", proc.pid)
    try:
        if os.name != "nt":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass
    # Leftover grandchildren may still hold the pipes, so wait instead of communicate
    proc.wait()


def _seconds(value: float) -> str:
    """Render whole seconds without a trailing .0 (gowitness takes integers)."""
    return str(int(value)) if float(value).is_integer() else str(value)
