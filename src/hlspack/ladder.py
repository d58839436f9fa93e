"""Resolution ladder generation.

Given a source resolution, produce the ordered list of variant resolutions
to encode, highest quality first. Every rung fits inside the source frame,
keeps the source aspect ratio and has even dimensions (required by H.264).

Two modes are supported:
- explicit: every rung of a fixed set (1080p, 720p, 480p, 360p) strictly
  below the source, down to an optional floor
- adaptive: the top N rungs of the standard height table that fit the
  source, N chosen by quality preset
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal

from hlspack.domain.models import Resolution

logger = logging.getLogger(__name__)

LadderMode = Literal["explicit", "adaptive"]

# Standard rung heights, used for both naming and adaptive selection
REFERENCE_HEIGHTS: tuple[int, ...] = (2160, 1440, 1080, 720, 480, 360, 240, 144)

# Fixed rung set for explicit mode
EXPLICIT_HEIGHTS: tuple[int, ...] = (1080, 720, 480, 360)

# Number of adaptive rungs per quality preset
PRESET_RUNG_COUNTS: Mapping[str, int] = MappingProxyType(
    {
        "low": 3,
        "medium": 4,
        "high": 6,
    }
)

DEFAULT_MIN_WIDTH = 240
DEFAULT_MIN_HEIGHT = 144

# Minimum dimensions accepted by is_valid_resolution
_MIN_VALID_WIDTH = 160
_MIN_VALID_HEIGHT = 120

# (minimum pixel count, bitrate) pairs, checked in order
_BITRATE_TABLE: tuple[tuple[int, str], ...] = (
    (3840 * 2160, "15000k"),
    (2560 * 1440, "10000k"),
    (1920 * 1080, "5000k"),
    (1280 * 720, "2800k"),
    (854 * 480, "1400k"),
    (640 * 360, "800k"),
    (426 * 240, "400k"),
)

# Names within this fraction of a reference height use the "<h>p" form
_NAME_TOLERANCE = 0.15


@dataclass(frozen=True)
class LadderConstraints:
    """Inputs that shape a generated ladder besides the source size.

    Attributes:
        mode: "adaptive" (preset-sized subset) or "explicit" (fixed set).
        quality_preset: low, medium or high; sizes the adaptive ladder.
        min_width: Rungs narrower than this are dropped.
        min_height: Rungs shorter than this are dropped.
        target_count: Overrides the preset rung count in adaptive mode.
    """

    mode: LadderMode = "adaptive"
    quality_preset: str = "medium"
    min_width: int = DEFAULT_MIN_WIDTH
    min_height: int = DEFAULT_MIN_HEIGHT
    target_count: int | None = None

    def __post_init__(self) -> None:
        """Validate constraints."""
        if self.mode not in ("explicit", "adaptive"):
            raise ValueError(f"mode must be 'explicit' or 'adaptive', got {self.mode}")
        if self.quality_preset not in PRESET_RUNG_COUNTS:
            raise ValueError(
                f"quality_preset must be one of {sorted(PRESET_RUNG_COUNTS)}, "
                f"got {self.quality_preset}"
            )
        if self.min_width < 1 or self.min_height < 1:
            raise ValueError("min_width and min_height must be positive")
        if self.target_count is not None and self.target_count < 1:
            raise ValueError("target_count must be at least 1")

    @property
    def rung_count(self) -> int:
        """Return the number of rungs requested in adaptive mode."""
        if self.target_count is not None:
            return self.target_count
        return PRESET_RUNG_COUNTS[self.quality_preset]


def detect_aspect_ratio(width: int, height: int) -> tuple[int, int]:
    """Reduce a frame size to its aspect ratio.

    Examples:
        >>> detect_aspect_ratio(1920, 1080)
        (16, 9)
        >>> detect_aspect_ratio(1080, 1920)
        (9, 16)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid dimensions: {width}x{height}")
    divisor = math.gcd(width, height)
    return width // divisor, height // divisor


def estimate_bitrate(width: int, height: int) -> str:
    """Estimate a video bitrate for a frame size.

    Standard sizes map to fixed bitrates. Anything smaller than 240p gets
    roughly 0.1 bits per pixel at 30 fps, with a 300k floor.

    Returns:
        ffmpeg-style bitrate string such as "2800k".
    """
    pixels = width * height
    for min_pixels, bitrate in _BITRATE_TABLE:
        if pixels >= min_pixels:
            return bitrate
    base_kbps = round(pixels * 30 * 0.1 / 1000)
    return f"{max(base_kbps, 300)}k"


def resolution_name(width: int, height: int) -> str:
    """Name a frame size after the closest reference height.

    The short side is compared against REFERENCE_HEIGHTS so portrait and
    landscape frames of the same class share a name. Sizes further than
    15% from every reference height are named "<w>x<h>".
    """
    short_side = min(width, height)
    closest = min(REFERENCE_HEIGHTS, key=lambda ref: abs(short_side - ref))
    if abs(short_side - closest) > closest * _NAME_TOLERANCE:
        return f"{width}x{height}"
    return f"{closest}p"


def _even(value: float) -> int:
    rounded = int(round(value))
    return rounded - rounded % 2


def _scale_to_rung(
    source_width: int,
    source_height: int,
    rung: int,
) -> tuple[int, int]:
    """Derive the frame size whose short side is `rung`.

    The long side follows the reduced aspect ratio. Both sides are rounded
    to even values and clamped to the (even-adjusted) source size.
    """
    ratio_w, ratio_h = detect_aspect_ratio(source_width, source_height)
    if source_width >= source_height:
        width = _even(rung * ratio_w / ratio_h)
        height = _even(rung)
    else:
        width = _even(rung)
        height = _even(rung * ratio_h / ratio_w)
    max_width = source_width - source_width % 2
    max_height = source_height - source_height % 2
    return min(width, max_width), min(height, max_height)


def _build_rungs(
    source_width: int,
    source_height: int,
    heights: Sequence[int],
    constraints: LadderConstraints,
) -> list[Resolution]:
    rungs: list[Resolution] = []
    seen_names: set[str] = set()
    for rung in heights:
        width, height = _scale_to_rung(source_width, source_height, rung)
        if width < constraints.min_width or height < constraints.min_height:
            logger.debug(
                "Skipping %dp rung (%dx%d below floor %dx%d)",
                rung,
                width,
                height,
                constraints.min_width,
                constraints.min_height,
            )
            continue
        name = f"{rung}p"
        if name in seen_names:
            continue
        seen_names.add(name)
        rungs.append(
            Resolution(
                name=name,
                width=width,
                height=height,
                bitrate=estimate_bitrate(width, height),
            )
        )
    rungs.sort(key=lambda r: r.pixels, reverse=True)
    return rungs


def _native_rung(source_width: int, source_height: int) -> Resolution:
    width = source_width - source_width % 2
    height = source_height - source_height % 2
    return Resolution(
        name=resolution_name(width, height),
        width=width,
        height=height,
        bitrate=estimate_bitrate(width, height),
    )


def generate_lower_resolutions(
    source_width: int,
    source_height: int,
    constraints: LadderConstraints | None = None,
) -> list[Resolution]:
    """Generate every fixed-set rung strictly below the source.

    Args:
        source_width: Source frame width in pixels.
        source_height: Source frame height in pixels.
        constraints: Floor settings; mode and preset are ignored.

    Returns:
        Resolutions sorted by pixel count, highest first. May be empty when
        the source is already at or below the smallest rung.
    """
    constraints = constraints or LadderConstraints(mode="explicit")
    short_side = min(source_width, source_height)
    heights = [h for h in EXPLICIT_HEIGHTS if h < short_side]
    return _build_rungs(source_width, source_height, heights, constraints)


def generate_adaptive_resolutions(
    source_width: int,
    source_height: int,
    constraints: LadderConstraints | None = None,
) -> list[Resolution]:
    """Generate a preset-sized ladder topped by the largest fitting rung.

    Rungs are taken from REFERENCE_HEIGHTS, highest first, skipping any
    taller than the source's short side. When no rung fits (tiny source, or
    every rung below the floor) a single rung at the source size is used.

    Args:
        source_width: Source frame width in pixels.
        source_height: Source frame height in pixels.
        constraints: Preset, floor and optional explicit rung count.

    Returns:
        Between 1 and constraints.rung_count resolutions, highest first.
    """
    constraints = constraints or LadderConstraints()
    short_side = min(source_width, source_height)
    heights = [h for h in REFERENCE_HEIGHTS if h <= short_side]
    rungs = _build_rungs(source_width, source_height, heights, constraints)
    if not rungs:
        native = _native_rung(source_width, source_height)
        logger.info(
            "Source %dx%d is below every ladder rung, using native %s",
            source_width,
            source_height,
            native.name,
        )
        return [native]
    return rungs[: constraints.rung_count]


def generate_ladder(
    source_width: int,
    source_height: int,
    constraints: LadderConstraints | None = None,
) -> list[Resolution]:
    """Generate the resolution ladder for a source frame size.

    Deterministic: the same inputs always produce the same ordered list.
    No rung exceeds the source in either dimension.

    Args:
        source_width: Source frame width in pixels.
        source_height: Source frame height in pixels.
        constraints: Ladder constraints (defaults to adaptive, medium).

    Returns:
        Resolutions sorted descending by pixel count.

    Raises:
        ValueError: If the source dimensions are not positive, or either is
            below 2 so no even-sized rung fits inside the source.
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Invalid source dimensions: {source_width}x{source_height}")
    if source_width < 2 or source_height < 2:
        raise ValueError(
            f"Source {source_width}x{source_height} is too small for an "
            "even-sized rung"
        )
    constraints = constraints or LadderConstraints()
    if constraints.mode == "explicit":
        ladder = generate_lower_resolutions(source_width, source_height, constraints)
    else:
        ladder = generate_adaptive_resolutions(source_width, source_height, constraints)
    logger.debug(
        "Ladder for %dx%d (%s, %s): %s",
        source_width,
        source_height,
        constraints.mode,
        constraints.quality_preset,
        ", ".join(r.name for r in ladder) or "<empty>",
    )
    return ladder


def find_closest_resolution(
    target_width: int,
    resolutions: Sequence[Resolution],
) -> Resolution | None:
    """Return the resolution whose width is closest to target_width.

    Ties go to the earliest entry. Returns None for an empty sequence.
    """
    if not resolutions:
        return None
    return min(resolutions, key=lambda r: abs(r.width - target_width))


def is_valid_resolution(width: int, height: int) -> bool:
    """Check that a frame size is encodable: positive, even, at least 160x120."""
    if width <= 0 or height <= 0:
        return False
    if width % 2 or height % 2:
        return False
    return width >= _MIN_VALID_WIDTH and height >= _MIN_VALID_HEIGHT


def format_for_ffmpeg(resolution: Resolution) -> str:
    """Format a resolution as ffmpeg's WxH size string."""
    return f"{resolution.width}x{resolution.height}"
