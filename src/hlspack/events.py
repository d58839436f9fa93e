"""Event bus for packaging job notifications.

Every notification is a frozen dataclass whose class-level ``kind`` names
the event. Subscribers are plain callables registered for one kind or for
all kinds; publish() calls them synchronously in registration order. The
bus does no I/O other than logging subscriber failures.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

from hlspack.domain.enums import ProcessingPhase

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Names of all events published during a job."""

    JOB_STARTED = "job.started"
    JOB_COMPLETED = "job.completed"
    JOB_FAILED = "job.failed"
    PHASE_STARTED = "phase.started"
    PHASE_PROGRESS = "phase.progress"
    PHASE_COMPLETED = "phase.completed"
    PHASE_FAILED = "phase.failed"
    VARIANT_STARTED = "variant.started"
    VARIANT_PROGRESS = "variant.progress"
    VARIANT_COMPLETED = "variant.completed"
    VARIANT_FAILED = "variant.failed"
    AUDIO_STARTED = "audio.started"
    AUDIO_PROGRESS = "audio.progress"
    AUDIO_COMPLETED = "audio.completed"
    AUDIO_FAILED = "audio.failed"
    SUBTITLE_STARTED = "subtitle.started"
    SUBTITLE_PROGRESS = "subtitle.progress"
    SUBTITLE_COMPLETED = "subtitle.completed"
    SUBTITLE_FAILED = "subtitle.failed"
    PLAYLIST_GENERATING = "playlist.generating"
    PLAYLIST_COMPLETED = "playlist.completed"
    CLEANUP_STARTED = "cleanup.started"
    CLEANUP_COMPLETED = "cleanup.completed"
    WARNING = "warning"
    INFO = "info"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Event:
    """Fields common to every event."""

    kind: ClassVar[EventKind]

    job_id: str
    timestamp: datetime = field(default_factory=_utcnow, init=False)


# =============================================================================
# Job lifecycle
# =============================================================================


@dataclass(frozen=True)
class JobStartedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.JOB_STARTED

    source_path: Path
    parallel: bool = False


@dataclass(frozen=True)
class JobCompletedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.JOB_COMPLETED

    success: bool
    master_playlist: Path | None
    variants_processed: int
    audio_tracks_processed: int
    subtitles_processed: int
    error_count: int
    total_size: int
    processing_time: float


@dataclass(frozen=True)
class JobFailedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.JOB_FAILED

    stage: str
    error: str


# =============================================================================
# Phases
# =============================================================================


@dataclass(frozen=True)
class PhaseStartedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.PHASE_STARTED

    phase: ProcessingPhase


@dataclass(frozen=True)
class PhaseProgressEvent(Event):
    kind: ClassVar[EventKind] = EventKind.PHASE_PROGRESS

    phase: ProcessingPhase
    percent: float
    message: str = ""


@dataclass(frozen=True)
class PhaseCompletedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.PHASE_COMPLETED

    phase: ProcessingPhase


@dataclass(frozen=True)
class PhaseFailedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.PHASE_FAILED

    phase: ProcessingPhase
    error: str


# =============================================================================
# Video variants
# =============================================================================


@dataclass(frozen=True)
class VariantStartedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.VARIANT_STARTED

    variant: str
    resolution: str  # "1280x720"
    index: int
    total: int


@dataclass(frozen=True)
class VariantProgressEvent(Event):
    kind: ClassVar[EventKind] = EventKind.VARIANT_PROGRESS

    variant: str
    percent: float
    fps: float | None = None
    speed: str | None = None
    bitrate: str | None = None
    eta: str | None = None


@dataclass(frozen=True)
class VariantCompletedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.VARIANT_COMPLETED

    variant: str
    resolution: str
    playlist_path: Path
    segment_count: int
    file_size: int
    duration: float


@dataclass(frozen=True)
class VariantFailedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.VARIANT_FAILED

    variant: str
    error: str


# =============================================================================
# Audio tracks
# =============================================================================


@dataclass(frozen=True)
class AudioStartedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.AUDIO_STARTED

    language: str
    track_index: int


@dataclass(frozen=True)
class AudioProgressEvent(Event):
    kind: ClassVar[EventKind] = EventKind.AUDIO_PROGRESS

    language: str
    track_index: int
    percent: float


@dataclass(frozen=True)
class AudioCompletedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.AUDIO_COMPLETED

    language: str
    track_index: int
    playlist_path: Path


@dataclass(frozen=True)
class AudioFailedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.AUDIO_FAILED

    language: str
    track_index: int
    error: str


# =============================================================================
# Subtitle tracks
# =============================================================================


@dataclass(frozen=True)
class SubtitleStartedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.SUBTITLE_STARTED

    language: str
    track_index: int


@dataclass(frozen=True)
class SubtitleProgressEvent(Event):
    kind: ClassVar[EventKind] = EventKind.SUBTITLE_PROGRESS

    language: str
    action: str  # "extracting", "converting", "generating-playlist"
    percent: float | None = None


@dataclass(frozen=True)
class SubtitleCompletedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.SUBTITLE_COMPLETED

    language: str
    format: str
    path: Path


@dataclass(frozen=True)
class SubtitleFailedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.SUBTITLE_FAILED

    language: str
    error: str


# =============================================================================
# Playlists, cleanup, generic messages
# =============================================================================


@dataclass(frozen=True)
class PlaylistGeneratingEvent(Event):
    kind: ClassVar[EventKind] = EventKind.PLAYLIST_GENERATING

    playlist_kind: str  # "master", "variant", "audio", "subtitle"


@dataclass(frozen=True)
class PlaylistCompletedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.PLAYLIST_COMPLETED

    playlist_kind: str
    path: Path


@dataclass(frozen=True)
class CleanupStartedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.CLEANUP_STARTED

    path: Path


@dataclass(frozen=True)
class CleanupCompletedEvent(Event):
    kind: ClassVar[EventKind] = EventKind.CLEANUP_COMPLETED

    path: Path


@dataclass(frozen=True)
class WarningEvent(Event):
    kind: ClassVar[EventKind] = EventKind.WARNING

    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InfoEvent(Event):
    kind: ClassVar[EventKind] = EventKind.INFO

    message: str
    details: dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[Event], None]


class EventBus:
    """Synchronous publish/subscribe channel for job events.

    Subscribers are called in the order they were registered, whether they
    subscribed to one kind or to all kinds. Publishing holds a re-entrant
    lock, so events published from concurrent variant threads are
    delivered one at a time and never reordered, while a subscriber may
    itself publish.
    """

    def __init__(self) -> None:
        # (kind, callback); kind None means every kind
        self._subscribers: list[tuple[EventKind | None, Subscriber]] = []
        self._lock = threading.RLock()

    def subscribe(self, kind: EventKind, callback: Subscriber) -> Callable[[], None]:
        """Register callback for one event kind.

        Returns:
            A function that removes this subscription when called.
        """
        return self._add(kind, callback)

    def subscribe_all(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback for every event kind.

        Returns:
            A function that removes this subscription when called.
        """
        return self._add(None, callback)

    def _add(self, kind: EventKind | None, callback: Subscriber) -> Callable[[], None]:
        entry = (kind, callback)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def subscriber_count(self, kind: EventKind | None = None) -> int:
        """Return the number of subscribers that would receive kind.

        With kind None, return the total number of subscriptions.
        """
        with self._lock:
            if kind is None:
                return len(self._subscribers)
            return sum(1 for k, _ in self._subscribers if k is None or k == kind)

    def publish(self, event: Event) -> None:
        """Deliver event to every matching subscriber.

        A subscriber that raises is logged and skipped; delivery continues
        with the next subscriber and the exception is not propagated.
        """
        with self._lock:
            targets = [
                callback
                for kind, callback in self._subscribers
                if kind is None or kind == event.kind
            ]
            for callback in targets:
                try:
                    callback(event)
                except Exception:
                    logger.exception(
                        "Event subscriber %r failed for %s",
                        callback,
                        event.kind.value,
                    )


class EventLogger:
    """Mirror job events to the module logger.

    Progress events are logged at DEBUG, failures and warnings at WARNING,
    everything else at INFO.
    """

    _FAILURE_KINDS = frozenset(
        {
            EventKind.JOB_FAILED,
            EventKind.PHASE_FAILED,
            EventKind.VARIANT_FAILED,
            EventKind.AUDIO_FAILED,
            EventKind.SUBTITLE_FAILED,
            EventKind.WARNING,
        }
    )
    _PROGRESS_KINDS = frozenset(
        {
            EventKind.PHASE_PROGRESS,
            EventKind.VARIANT_PROGRESS,
            EventKind.AUDIO_PROGRESS,
            EventKind.SUBTITLE_PROGRESS,
        }
    )

    def __init__(self, bus: EventBus, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self._unsubscribe = bus.subscribe_all(self)

    def close(self) -> None:
        """Stop receiving events."""
        self._unsubscribe()

    def __call__(self, event: Event) -> None:
        if event.kind in self._PROGRESS_KINDS:
            level = logging.DEBUG
        elif event.kind in self._FAILURE_KINDS:
            level = logging.WARNING
        else:
            level = logging.INFO
        if self._log.isEnabledFor(level):
            self._log.log(level, "[%s] %s", event.kind.value, describe_event(event))


def describe_event(event: Event) -> str:
    """Return a short human-readable summary of an event."""
    if isinstance(event, JobStartedEvent):
        return f"Packaging {event.source_path}"
    if isinstance(event, JobCompletedEvent):
        if event.success:
            status = "succeeded"
        else:
            status = f"finished with {event.error_count} error(s)"
        return (
            f"Job {status}: {event.variants_processed} variant(s), "
            f"{event.audio_tracks_processed} audio, "
            f"{event.subtitles_processed} subtitle(s) in {event.processing_time:.1f}s"
        )
    if isinstance(event, JobFailedEvent):
        return f"Job failed during {event.stage}: {event.error}"
    if isinstance(event, PhaseProgressEvent):
        suffix = f" ({event.message})" if event.message else ""
        return f"{event.phase.value} {event.percent:.1f}%{suffix}"
    if isinstance(event, PhaseFailedEvent):
        return f"{event.phase.value}: {event.error}"
    if isinstance(event, (PhaseStartedEvent, PhaseCompletedEvent)):
        return event.phase.value
    if isinstance(event, VariantStartedEvent):
        return f"{event.variant} ({event.resolution}) [{event.index + 1}/{event.total}]"
    if isinstance(event, VariantProgressEvent):
        return f"{event.variant} {event.percent:.1f}%"
    if isinstance(event, VariantCompletedEvent):
        return (
            f"{event.variant}: {event.segment_count} segment(s), "
            f"{event.file_size} bytes"
        )
    if isinstance(event, VariantFailedEvent):
        return f"{event.variant}: {event.error}"
    if isinstance(event, AudioProgressEvent):
        return f"audio track {event.language} {event.percent:.1f}%"
    if isinstance(event, AudioFailedEvent):
        return f"audio track {event.language}: {event.error}"
    if isinstance(event, (AudioStartedEvent, AudioCompletedEvent)):
        return f"audio track {event.language}"
    if isinstance(event, SubtitleProgressEvent):
        return f"subtitle {event.language}: {event.action}"
    if isinstance(event, SubtitleCompletedEvent):
        return f"subtitle {event.language} ({event.format})"
    if isinstance(event, SubtitleFailedEvent):
        return f"subtitle {event.language}: {event.error}"
    if isinstance(event, SubtitleStartedEvent):
        return f"subtitle {event.language}"
    if isinstance(event, PlaylistCompletedEvent):
        return f"{event.playlist_kind} playlist written to {event.path}"
    if isinstance(event, PlaylistGeneratingEvent):
        return f"{event.playlist_kind} playlist"
    if isinstance(event, (CleanupStartedEvent, CleanupCompletedEvent)):
        return str(event.path)
    if isinstance(event, (WarningEvent, InfoEvent)):
        return event.message
    return event.kind.value
