"""Exit codes shared by all hlspack commands.

    0: Success
    1: Partial failure (some tasks failed) or an invalid playlist
    2: Fatal error (bad input, bad configuration, missing tools)
  130: Interrupted
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for hlspack CLI commands."""

    SUCCESS = 0
    FAILURE = 1
    FATAL_ERROR = 2
    INTERRUPTED = 130
