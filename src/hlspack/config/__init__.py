"""Configuration management for hlspack.

Two layers of configuration:
- ProcessingConfig: immutable per-job options (pydantic model)
- HLSPackSettings: application settings (tool paths, logging, timeouts)
  loaded with precedence CLI > environment (HLSPACK_*) > config file > defaults
"""

from hlspack.config.env import EnvReader
from hlspack.config.loader import (
    build_logging_config,
    clear_config_cache,
    get_default_config_path,
    get_processing_table,
    get_settings,
    load_config_file,
)
from hlspack.config.models import (
    EncodingConfig,
    HLSPackSettings,
    LoggingConfig,
    ToolPathsConfig,
)
from hlspack.config.processing import (
    AUDIO_BITRATES,
    AUDIO_GROUP_ID,
    AUDIO_SAMPLE_RATES,
    DEFAULT_SEGMENT_DURATION,
    SUBTITLE_GROUP_ID,
    MinResolution,
    ProcessingConfig,
    load_processing_config,
)

__all__ = [
    # Per-job configuration
    "AUDIO_BITRATES",
    "AUDIO_GROUP_ID",
    "AUDIO_SAMPLE_RATES",
    "DEFAULT_SEGMENT_DURATION",
    "SUBTITLE_GROUP_ID",
    "MinResolution",
    "ProcessingConfig",
    "load_processing_config",
    # Application settings
    "EncodingConfig",
    "HLSPackSettings",
    "LoggingConfig",
    "ToolPathsConfig",
    # Loader
    "EnvReader",
    "build_logging_config",
    "clear_config_cache",
    "get_default_config_path",
    "get_processing_table",
    "get_settings",
    "load_config_file",
]
