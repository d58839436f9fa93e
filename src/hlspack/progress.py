"""Phase-weighted progress tracking for packaging jobs.

Global completion is the weighted sum of per-phase completion. The weights
are a coarse estimate of how long each phase takes and do not follow the
order phases run in: subtitles (10) run before video yet weigh less than
audio (15), which runs after it.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from hlspack.domain.enums import ProcessingPhase
from hlspack.events import Event, EventBus, EventKind

logger = logging.getLogger(__name__)

PHASE_WEIGHTS: Mapping[ProcessingPhase, int] = MappingProxyType(
    {
        ProcessingPhase.ANALYZING: 5,
        ProcessingPhase.PLANNING: 5,
        ProcessingPhase.PROCESSING_VIDEO: 60,
        ProcessingPhase.PROCESSING_AUDIO: 15,
        ProcessingPhase.PROCESSING_SUBTITLES: 10,
        ProcessingPhase.GENERATING_PLAYLISTS: 3,
        ProcessingPhase.CLEANUP: 2,
        ProcessingPhase.COMPLETE: 0,
    }
)


def _clamp(percent: float) -> float:
    return min(100.0, max(0.0, percent))


def variant_phase_percent(
    index: int,
    count: int,
    percent: float,
    phase_base: float = 0.0,
    phase_span: float = 100.0,
) -> float:
    """Translate one variant's progress into progress of the whole phase.

    Each of `count` variants owns an equal share of `phase_span`; variant
    `index` (0-based) starts after the shares of the variants before it.

    Example:
        >>> variant_phase_percent(1, 4, 50.0)
        37.5
    """
    if count <= 0:
        raise ValueError("count must be positive")
    share = phase_span / count
    return phase_base + index * share + (_clamp(percent) / 100.0) * share


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of a job's progress."""

    job_id: str
    phase: ProcessingPhase
    global_percent: float
    phase_percent: float
    elapsed_seconds: float
    estimated_remaining_seconds: float
    variant_percent: dict[str, float] = field(default_factory=dict)


class ProgressTracker:
    """Accumulates per-phase and per-variant completion for one job.

    All methods are thread-safe; parallel variant workers may report
    progress concurrently.

    Args:
        job_id: Identifier of the tracked job.
        clock: Monotonic clock returning seconds, injectable for tests.
    """

    def __init__(
        self,
        job_id: str,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.job_id = job_id
        self._clock = clock
        self._started = clock()
        self._lock = threading.Lock()
        self._phase = ProcessingPhase.ANALYZING
        self._phase_percent: dict[ProcessingPhase, float] = {
            phase: 0.0 for phase in ProcessingPhase
        }
        self._variant_percent: dict[str, float] = {}

    @property
    def phase(self) -> ProcessingPhase:
        with self._lock:
            return self._phase

    def set_phase(self, phase: ProcessingPhase, percent: float = 0.0) -> None:
        """Make phase current and record its completion (clamped to 0-100)."""
        with self._lock:
            self._phase = phase
            self._phase_percent[phase] = _clamp(percent)

    def set_variant(self, name: str, percent: float) -> None:
        """Record completion of one variant (clamped to 0-100)."""
        with self._lock:
            self._variant_percent[name] = _clamp(percent)

    def phase_percent(self, phase: ProcessingPhase) -> float:
        with self._lock:
            return self._phase_percent[phase]

    def global_percent(self) -> float:
        """Return the weighted completion of the whole job, 0-100."""
        with self._lock:
            return self._global_percent_locked()

    def _global_percent_locked(self) -> float:
        total = sum(
            PHASE_WEIGHTS[phase] * percent / 100.0
            for phase, percent in self._phase_percent.items()
        )
        return _clamp(total)

    def snapshot(self) -> ProgressSnapshot:
        """Return the current progress with a linear time estimate.

        The remaining time extrapolates elapsed time over global completion.
        It is 0 while global completion is 0 and never negative.
        """
        with self._lock:
            global_percent = self._global_percent_locked()
            elapsed = max(0.0, self._clock() - self._started)
            if global_percent > 0:
                estimated_total = elapsed / global_percent * 100.0
                remaining = max(0.0, estimated_total - elapsed)
            else:
                remaining = 0.0
            return ProgressSnapshot(
                job_id=self.job_id,
                phase=self._phase,
                global_percent=global_percent,
                phase_percent=self._phase_percent[self._phase],
                elapsed_seconds=elapsed,
                estimated_remaining_seconds=remaining,
                variant_percent=dict(self._variant_percent),
            )

    def attach(self, bus: EventBus) -> Callable[[], None]:
        """Feed this tracker from phase and variant events on bus.

        Only events for this tracker's job are applied.

        Returns:
            A function that detaches the tracker.
        """

        def on_event(event: Event) -> None:
            if event.job_id != self.job_id:
                return
            if event.kind == EventKind.PHASE_STARTED:
                self.set_phase(event.phase, 0.0)
            elif event.kind == EventKind.PHASE_PROGRESS:
                self.set_phase(event.phase, event.percent)
            elif event.kind == EventKind.PHASE_COMPLETED:
                self.set_phase(event.phase, 100.0)
            elif event.kind == EventKind.VARIANT_PROGRESS:
                self.set_variant(event.variant, event.percent)
            elif event.kind == EventKind.VARIANT_COMPLETED:
                self.set_variant(event.variant, 100.0)

        unsubscribers = [
            bus.subscribe(kind, on_event)
            for kind in (
                EventKind.PHASE_STARTED,
                EventKind.PHASE_PROGRESS,
                EventKind.PHASE_COMPLETED,
                EventKind.VARIANT_PROGRESS,
                EventKind.VARIANT_COMPLETED,
            )
        ]

        def detach() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return detach
