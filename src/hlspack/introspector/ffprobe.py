"""FFprobe-based implementation of the MetadataProvider protocol."""

import json
import logging
import subprocess  # nosec B404 - subprocess is required for ffprobe invocation
from pathlib import Path

from hlspack.config.models import ToolPathsConfig
from hlspack.domain.models import MediaMetadata
from hlspack.exceptions import MediaFileNotFoundError, MediaIntrospectionError
from hlspack.introspector.parsers import parse_ffprobe_output
from hlspack.tools.paths import require_tool

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 60


class FFprobeIntrospector:
    """ffprobe-based implementation of the MetadataProvider protocol.

    Probes a source file once per job and returns container and stream
    metadata. A hung ffprobe is killed after the timeout.
    """

    def __init__(
        self,
        ffprobe_path: Path | None = None,
        timeout: int = DEFAULT_PROBE_TIMEOUT,
        tools: ToolPathsConfig | None = None,
    ) -> None:
        """Initialize the introspector.

        Args:
            ffprobe_path: Optional explicit path to ffprobe. If not provided,
                the configured path or system PATH is used.
            timeout: Seconds before an ffprobe run is abandoned.
            tools: Configured tool paths used when ffprobe_path is None.

        Raises:
            ToolNotFoundError: If ffprobe is not available.
            ValueError: If timeout is not positive.
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._ffprobe_path = ffprobe_path or require_tool("ffprobe", tools)
        self._timeout = timeout

    @property
    def ffprobe_path(self) -> Path:
        return self._ffprobe_path

    def get_metadata(self, path: Path) -> MediaMetadata:
        """Extract metadata from a media file.

        Args:
            path: Path to the media file.

        Returns:
            MediaMetadata for the file.

        Raises:
            MediaFileNotFoundError: If the path does not exist.
            MediaIntrospectionError: If the file cannot be probed.
        """
        if not path.exists():
            raise MediaFileNotFoundError(path)

        try:
            ffprobe_output = self._run_ffprobe(path)
        except subprocess.TimeoutExpired as e:
            raise MediaIntrospectionError(
                f"ffprobe timed out for {path} after {e.timeout}s"
            ) from e
        except subprocess.CalledProcessError as e:
            raise MediaIntrospectionError(
                f"ffprobe failed for {path}: {e.stderr or e}"
            ) from e
        except json.JSONDecodeError as e:
            raise MediaIntrospectionError(
                f"Invalid ffprobe output for {path}: {e}"
            ) from e

        try:
            size_bytes = path.stat().st_size
        except OSError:
            size_bytes = None

        metadata = parse_ffprobe_output(path, ffprobe_output, size_bytes)
        logger.debug(
            "Probed %s: type=%s duration=%.3fs streams=%d",
            path,
            metadata.media_type.value,
            metadata.duration_seconds,
            len(metadata.streams),
        )
        return metadata

    def _run_ffprobe(self, path: Path) -> dict:
        """Run ffprobe and return parsed JSON output.

        Raises:
            subprocess.CalledProcessError: If ffprobe returns non-zero.
            subprocess.TimeoutExpired: If ffprobe exceeds the timeout.
            json.JSONDecodeError: If output is not valid JSON.
            MediaIntrospectionError: If output is missing required keys.
        """
        result = subprocess.run(  # nosec B603 - ffprobe path is resolved
            [
                str(self._ffprobe_path),
                "-v",
                "error",
                "-print_format",
                "json",
                "-show_streams",
                "-show_format",
                str(path),
            ],
            capture_output=True,
            text=True,
            errors="replace",
            check=True,
            timeout=self._timeout,
        )
        data = json.loads(result.stdout)

        if not isinstance(data, dict) or "streams" not in data:
            raise MediaIntrospectionError(
                f"Missing 'streams' in ffprobe output for {path}. "
                "File may be corrupted or not a valid media file."
            )
        if "format" not in data:
            raise MediaIntrospectionError(
                f"Missing 'format' in ffprobe output for {path}. "
                "File may be corrupted or not a valid media file."
            )
        return data
