"""
Segment training state machine.

    idle ──start()──▶ playing ──on_video_time()──▶ waiting ──check_match()──▶ matched
                         ▲                                                   │
                         └──────────────advance() (more segments)────────────┤
                                                                             ▼
                                                                        completed

Analysis (``is_analyzing`` / ``analysis_progress``) is tracked alongside
and must finish before training can start. Every transition is guarded;
an illegal one raises ``SegmentStateError``.
"""

import logging
import time
from typing import Callable, Optional

from src.pose.state import AngleSet

from .analyzer import SegmentMatch, match_segment
from .config import SEGMENT_END_MARGIN, SegmentConfig, load_segment_config
from .state import PoseSegment, SegmentStatus, SegmentTrainingState

logger = logging.getLogger(__name__)


class SegmentStateError(RuntimeError):
    """Raised on a transition that is not allowed from the current state."""


class SegmentTrainer:
    """Owns the single mutable ``SegmentTrainingState`` of a session.

    Args:
        config: Segment tunables (threshold, hold duration, tolerances).
        clock: Monotonic time source in seconds; injectable for tests.
    """

    def __init__(
        self,
        config: Optional[SegmentConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or load_segment_config()
        self._clock = clock
        self._state = SegmentTrainingState()
        self._hold_started: Optional[float] = None

    @property
    def state(self) -> SegmentTrainingState:
        return self._state

    @property
    def status(self) -> SegmentStatus:
        return self._state.segment_status

    @property
    def current_segment(self) -> Optional[PoseSegment]:
        return self._state.current_segment

    def _update(self, **changes) -> None:
        # Rebuild rather than model_copy so the consistency validator runs.
        self._state = SegmentTrainingState(**{**dict(self._state), **changes})

    def _require(self, *allowed: SegmentStatus) -> None:
        if self.status not in allowed:
            names = ", ".join(s.value for s in allowed)
            raise SegmentStateError(
                f"Expected status in ({names}), current status is '{self.status.value}'."
            )

    # -- analysis -----------------------------------------------------------

    def begin_analysis(self) -> None:
        if self._state.is_analyzing:
            raise SegmentStateError("Analysis already in progress.")
        self._hold_started = None
        self._state = SegmentTrainingState(is_analyzing=True)

    def set_analysis_progress(self, fraction: float) -> None:
        """Progress callback target for ``SegmentAnalyzer.analyze``."""
        if not self._state.is_analyzing:
            return
        self._update(analysis_progress=max(0.0, min(100.0, fraction * 100.0)))

    def finish_analysis(self, segments: list[PoseSegment]) -> None:
        if not self._state.is_analyzing:
            raise SegmentStateError("No analysis in progress.")
        self._state = SegmentTrainingState(
            analysis_progress=100.0 if segments else 0.0,
            segments=list(segments),
        )
        if not segments:
            logger.warning("Analysis produced no segments; segment mode unavailable.")

    # -- training -----------------------------------------------------------

    def start(self) -> float:
        """idle → playing. Returns the first segment's start time to seek to."""
        self._require(SegmentStatus.IDLE)
        if self._state.is_analyzing:
            raise SegmentStateError("Wait for segment analysis to complete.")
        if not self._state.segments:
            raise SegmentStateError("No segments to train; analyze a reference video first.")
        self._hold_started = None
        self._update(
            is_active=True,
            current_segment_index=0,
            segment_status=SegmentStatus.PLAYING,
            hold_progress=0.0,
            match_accuracy=0.0,
        )
        logger.info("Segment training started (%d segments).", len(self._state.segments))
        return self._state.segments[0].start_time

    def on_video_time(self, current_time: float) -> bool:
        """playing → waiting once the reference video reaches the segment end.

        Returns True when the caller should pause the reference video.
        """
        if self.status != SegmentStatus.PLAYING:
            return False
        segment = self.current_segment
        if current_time >= segment.end_time - SEGMENT_END_MARGIN:
            self._update(segment_status=SegmentStatus.WAITING)
            return True
        return False

    def check_match(self, trainee_angles: AngleSet, now: Optional[float] = None) -> Optional[SegmentMatch]:
        """Score the trainee against the active segment while waiting.

        The hold timer runs only while the accuracy stays at or above the
        threshold; any frame below it (or ``reset_hold``) resets progress
        to zero. Reaching
        ``hold_duration`` moves to ``matched``.
        """
        if self.status != SegmentStatus.WAITING:
            return None
        now = self._clock() if now is None else now

        result = match_segment(trainee_angles, self.current_segment, self.config)
        accuracy = max(0.0, min(100.0, result.accuracy))

        if not result.matched:
            self._hold_started = None
            self._update(match_accuracy=accuracy, hold_progress=0.0)
            return result

        if self._hold_started is None:
            self._hold_started = now
        held = now - self._hold_started
        progress = min(100.0, (held / self.config.hold_duration) * 100.0)

        if held >= self.config.hold_duration:
            segments = list(self._state.segments)
            idx = self._state.current_segment_index
            segments[idx] = segments[idx].model_copy(update={"matched": True})
            self._update(
                segments=segments,
                match_accuracy=accuracy,
                hold_progress=100.0,
                segment_status=SegmentStatus.MATCHED,
            )
            logger.info("Segment %d matched (%.0f%%).", idx + 1, accuracy)
        else:
            self._update(match_accuracy=accuracy, hold_progress=progress)
        return result

    def reset_hold(self) -> None:
        """Count a cycle without a usable pose as a miss while waiting."""
        if self.status != SegmentStatus.WAITING:
            return
        self._hold_started = None
        self._update(match_accuracy=0.0, hold_progress=0.0)

    def advance(self) -> Optional[float]:
        """matched → playing (next segment) or completed.

        Returns the next segment's start time to seek to, or None when the
        final segment has been matched.
        """
        self._require(SegmentStatus.MATCHED)
        self._hold_started = None
        next_index = self._state.current_segment_index + 1

        if next_index >= len(self._state.segments):
            self._update(segment_status=SegmentStatus.COMPLETED, hold_progress=0.0)
            logger.info("All %d segments completed.", len(self._state.segments))
            return None

        self._update(
            current_segment_index=next_index,
            segment_status=SegmentStatus.PLAYING,
            hold_progress=0.0,
            match_accuracy=0.0,
        )
        return self._state.segments[next_index].start_time

    def exit(self) -> None:
        """Leave segment mode, keeping nothing."""
        self._hold_started = None
        self._state = SegmentTrainingState()
