"""Base class for ffmpeg-based executors.

Provides lazy ffmpeg path resolution and a subprocess runner that reads
stderr on a separate thread so that progress can be reported and a
deadline enforced without blocking on the pipe.
"""

import logging
import queue
import subprocess  # nosec B404 - subprocess is required for ffmpeg invocation
import threading
import time
from abc import ABC
from collections.abc import Callable
from pathlib import Path

from hlspack.config.models import ToolPathsConfig
from hlspack.tools.ffmpeg_progress import FFmpegProgress, parse_stderr_progress
from hlspack.tools.paths import require_tool

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20


def stderr_tail(lines: list[str], count: int = STDERR_TAIL_LINES) -> str:
    """Return the last count non-empty stderr lines joined by newlines."""
    stripped = [line.rstrip() for line in lines if line.strip()]
    return "\n".join(stripped[-count:])


class FFmpegExecutorBase(ABC):
    """Base class for executors that use ffmpeg.

    Args:
        ffmpeg_path: Explicit ffmpeg path. Resolved from tools or PATH on
            first use when omitted.
        timeout: Deadline in seconds for one ffmpeg run. None = no limit.
        tools: Configured tool paths.
    """

    STDERR_DRAIN_TIMEOUT: float = 5.0  # Timeout for draining stderr after exit

    def __init__(
        self,
        ffmpeg_path: Path | None = None,
        timeout: float | None = None,
        tools: ToolPathsConfig | None = None,
    ) -> None:
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive or None")
        self._tool_path = ffmpeg_path
        self._tools = tools
        self._timeout = timeout

    @property
    def tool_path(self) -> Path:
        """Get path to ffmpeg, verifying availability.

        Raises:
            ToolNotFoundError: If ffmpeg is not available.
        """
        if self._tool_path is None:
            self._tool_path = require_tool("ffmpeg", self._tools)
        return self._tool_path

    @property
    def timeout(self) -> float | None:
        return self._timeout

    def _run_ffmpeg_with_timeout(
        self,
        cmd: list[str],
        description: str,
        timeout: float | None = None,
        progress_callback: Callable[[FFmpegProgress], None] | None = None,
    ) -> tuple[bool, int, list[str]]:
        """Run an ffmpeg command with timeout and threaded stderr reading.

        Args:
            cmd: ffmpeg command arguments.
            description: Description for logging (e.g., "variant 720p").
            timeout: Maximum time in seconds. None = no limit.
            progress_callback: Optional callback for parsed progress lines.

        Returns:
            Tuple of (success, return_code, stderr_lines). return_code is -1
            on timeout, otherwise the process return code.
        """
        logger.debug("Running %s: %s", description, " ".join(cmd))
        process = subprocess.Popen(  # nosec B603 - ffmpeg path is resolved
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )

        stderr_output: list[str] = []
        stderr_queue: queue.Queue[str | None] = queue.Queue()
        stop_event = threading.Event()

        def read_stderr() -> None:
            """Read stderr lines and put them in the queue."""
            try:
                assert process.stderr is not None
                # Universal newlines split ffmpeg's \r-terminated status lines
                for line in process.stderr:
                    if stop_event.is_set():
                        break
                    stderr_queue.put(line)
            except (ValueError, OSError) as e:
                # Pipe closed or process terminated
                logger.debug("Stderr reader stopped: %s", e)
            finally:
                stderr_queue.put(None)

        reader_thread = threading.Thread(target=read_stderr, daemon=True)
        reader_thread.start()

        timeout_expired = False
        start_time = time.monotonic()

        while True:
            if timeout is not None and time.monotonic() - start_time >= timeout:
                timeout_expired = True
                break

            try:
                line = stderr_queue.get(timeout=1.0)
            except queue.Empty:
                if process.poll() is not None and not reader_thread.is_alive():
                    break
                continue
            if line is None:
                break
            stderr_output.append(line)
            progress = parse_stderr_progress(line)
            if progress and progress_callback:
                try:
                    progress_callback(progress)
                except Exception as e:
                    logger.warning("Progress callback error: %s", e)

        if timeout_expired:
            logger.warning("%s timed out after %s seconds", description, timeout)
            stop_event.set()
            process.kill()
            if process.stderr:
                try:
                    process.stderr.close()
                except OSError:  # nosec B110 - closing a dead pipe
                    pass
            process.wait()
            reader_thread.join(timeout=2.0)
            if reader_thread.is_alive():
                logger.error(
                    "Stderr reader thread failed to terminate after timeout"
                )
            return (False, -1, stderr_output)

        stop_event.set()
        reader_thread.join(timeout=self.STDERR_DRAIN_TIMEOUT)
        while True:
            try:
                line = stderr_queue.get_nowait()
            except queue.Empty:
                break
            if line is None:
                break
            stderr_output.append(line)

        process.wait()
        return (process.returncode == 0, process.returncode, stderr_output)
