"""Per-job processing configuration.

ProcessingConfig is the immutable input to one packaging job. The constants
in this module are the process-wide defaults the orchestrator derives its
encode settings from; they are read-only and never mutated.
"""

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

QualityPreset = Literal["low", "medium", "high"]
VideoPreset = Literal["ultrafast", "superfast", "veryfast", "faster", "fast", "medium"]
AudioQuality = Literal["low", "medium", "high"]

DEFAULT_SEGMENT_DURATION = 6.0

# Audio bitrate per quality tier
AUDIO_BITRATES: Mapping[str, str] = MappingProxyType(
    {
        "low": "64k",
        "medium": "128k",
        "high": "192k",
    }
)

# Audio sample rate per quality tier
AUDIO_SAMPLE_RATES: Mapping[str, int] = MappingProxyType(
    {
        "low": 44100,
        "medium": 48000,
        "high": 48000,
    }
)

# Group IDs used to link variants to alternate renditions
AUDIO_GROUP_ID = "audio"
SUBTITLE_GROUP_ID = "subs"

# Accepted camelCase aliases for field names
_CAMEL_CASE_KEYS: Mapping[str, str] = MappingProxyType(
    {
        "outputBaseDir": "output_base_dir",
        "tempDir": "temp_dir",
        "qualityPreset": "quality_preset",
        "targetResolutions": "target_resolutions",
        "minResolution": "min_resolution",
        "videoPreset": "video_preset",
        "audioQuality": "audio_quality",
        "segmentDuration": "segment_duration",
        "extractAudioTracks": "extract_audio_tracks",
        "extractSubtitles": "extract_subtitles",
        "cleanupTemp": "cleanup_temp",
        "keepOriginal": "keep_original",
    }
)


class MinResolution(BaseModel):
    """Lower bound for generated ladder rungs."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    width: int = Field(ge=1)
    height: int = Field(ge=1)


class ProcessingConfig(BaseModel):
    """Options for one packaging job."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    output_base_dir: Path
    temp_dir: Path | None = None
    quality_preset: QualityPreset = "medium"
    target_resolutions: list[str] | None = None
    min_resolution: MinResolution | None = None
    video_preset: VideoPreset = "fast"
    audio_quality: AudioQuality = "medium"
    segment_duration: float = Field(default=DEFAULT_SEGMENT_DURATION, gt=0)
    parallel: bool = False
    extract_audio_tracks: bool = True
    extract_subtitles: bool = True
    cleanup_temp: bool = True
    keep_original: bool = False

    @field_validator("target_resolutions", mode="before")
    @classmethod
    def drop_empty_resolutions(cls, v: list[str] | None) -> list[str] | None:
        """Strip names and drop empty entries, preserving order."""
        if v is None:
            return None
        seen: list[str] = []
        for name in v:
            if not isinstance(name, str):
                continue
            name = name.strip()
            if name and name not in seen:
                seen.append(name)
        return seen

    @property
    def audio_bitrate(self) -> str:
        """Return the audio bitrate for the configured quality tier."""
        return AUDIO_BITRATES[self.audio_quality]

    @property
    def audio_sample_rate(self) -> int:
        """Return the audio sample rate for the configured quality tier."""
        return AUDIO_SAMPLE_RATES[self.audio_quality]


def load_processing_config(
    data: Mapping[str, Any],
    **overrides: Any,
) -> ProcessingConfig:
    """Build a ProcessingConfig from a mapping (e.g. a [processing] TOML table).

    camelCase aliases such as outputBaseDir are accepted and translated to
    their snake_case field names.

    Args:
        data: Raw configuration mapping.
        **overrides: Field values that take precedence over data.

    Returns:
        Validated ProcessingConfig.

    Raises:
        pydantic.ValidationError: If a value is invalid or a key is unknown.
    """
    normalized = {_CAMEL_CASE_KEYS.get(key, key): value for key, value in data.items()}
    normalized.update({k: v for k, v in overrides.items() if v is not None})
    return ProcessingConfig.model_validate(normalized)
