"""MetadataProvider interface for source media probing."""

from pathlib import Path
from typing import Protocol

from hlspack.domain.models import MediaMetadata


class MetadataProvider(Protocol):
    """Protocol for media probing implementations.

    Implementations return the media type classification, duration, size,
    primary video/audio summaries and per-stream lists for a file.
    """

    def get_metadata(self, path: Path) -> MediaMetadata:
        """Probe a media file.

        Args:
            path: Path to the media file.

        Returns:
            MediaMetadata describing the file.

        Raises:
            MediaFileNotFoundError: If the path does not exist.
            MediaIntrospectionError: If the file cannot be probed.
        """
        ...
