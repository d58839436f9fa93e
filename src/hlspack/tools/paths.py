"""External tool path resolution.

A configured path (config file, HLSPACK_<TOOL>_PATH or CLI option) wins
when it points at a file; otherwise the tool is looked up on PATH.
"""

import logging
import shutil
from pathlib import Path

from hlspack.config.models import ToolPathsConfig
from hlspack.exceptions import ToolNotFoundError

logger = logging.getLogger(__name__)

SUPPORTED_TOOLS = ("ffmpeg", "ffprobe")


def find_tool(name: str, configured_path: Path | None = None) -> Path | None:
    """Find a tool executable.

    Args:
        name: Tool name (e.g., "ffmpeg").
        configured_path: Optional configured path override.

    Returns:
        Path to tool executable, or None if not found.
    """
    if configured_path:
        if configured_path.is_file():
            return configured_path
        logger.warning(
            "Configured path for %s is not a file: %s", name, configured_path
        )

    which_result = shutil.which(name)
    if which_result:
        return Path(which_result)

    return None


def require_tool(name: str, tools: ToolPathsConfig | None = None) -> Path:
    """Get path to a required tool, raising an error if not available.

    Args:
        name: "ffmpeg" or "ffprobe".
        tools: Configured tool paths, if any.

    Returns:
        Path to the tool executable.

    Raises:
        ValueError: If name is not a supported tool.
        ToolNotFoundError: If the tool cannot be found.
    """
    if name not in SUPPORTED_TOOLS:
        raise ValueError(f"Unsupported tool: {name}")
    configured = getattr(tools, name) if tools is not None else None
    path = find_tool(name, configured)
    if path is None:
        raise ToolNotFoundError(name)
    logger.debug("Using %s at %s", name, path)
    return path
