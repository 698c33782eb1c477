"""
Live training loop.

One detection cycle per available camera frame:

    frame → pose → angles → accuracy (vs. reference) → headline score
          → feedback → { debounced UI update, voice scheduler, segment trainer }

Only one cycle runs at a time. A failing frame is logged and skipped; it
never stops the session. UI updates are buffered and flushed at most every
``ui_update_interval`` seconds, always with the most recent cycle.
"""

import logging
import threading
import time
from typing import Callable, Iterable, Optional

import numpy as np
from pydantic import BaseModel, Field

from src.pose.config import BACK_JOINT, DEFAULT_IDEAL_ANGLES, JOINTS
from src.pose.estimator import PoseEstimator
from src.pose.feedback import NO_CAMERA_TEXT, NO_PERSON_TEXT, generate_feedback
from src.pose.framing import spine_straightness
from src.pose.geometry import compute_angle_set
from src.pose.scoring import compute_accuracy, compute_overall_accuracy, min_accuracy
from src.pose.state import AccuracySet, AngleSet, FeedbackItem, Pose
from src.segments.state import SegmentStatus
from src.segments.trainer import SegmentTrainer
from src.utils.io_utils import get_config_section
from src.voice.scheduler import VoiceFeedbackScheduler

logger = logging.getLogger(__name__)

_session_cfg = get_config_section("session")
UI_UPDATE_INTERVAL: float = float(_session_cfg.get("ui_update_interval", 0.5))
REFERENCE_OFFSET: float = float(_session_cfg.get("reference_offset", 3.0))


class CycleResult(BaseModel):
    """Everything one detection cycle produces for presentation."""
    timestamp: float
    angles: AngleSet = Field(default_factory=dict)
    accuracy: AccuracySet = Field(default_factory=dict)
    headline_accuracy: float = Field(default=0.0, description="Weakest tracked joint (0-100)")
    overall_accuracy: float = Field(default=0.0, description="Weighted overall score (0-100)")
    feedback: list[FeedbackItem] = Field(default_factory=list)
    person_detected: bool = False

    @property
    def improvements(self) -> list[FeedbackItem]:
        return [item for item in self.feedback if item.status != "good"]


def _empty_result(timestamp: float, message: str) -> CycleResult:
    zeros = {joint: 0.0 for joint in JOINTS}
    return CycleResult(
        timestamp=timestamp,
        angles=dict(zeros),
        accuracy=dict(zeros),
        feedback=[FeedbackItem(text=message, status="error", type="visibility")],
    )


class LatestResultBuffer:
    """Last-write-wins buffer flushed at a fixed interval.

    ``offer`` overwrites any pending value; ``flush`` returns the pending
    value only if ``interval`` seconds have passed since the last flush.
    """

    def __init__(self, interval: float = UI_UPDATE_INTERVAL):
        self.interval = interval
        self._pending: Optional[CycleResult] = None
        self._last_flush: Optional[float] = None

    @property
    def pending(self) -> Optional[CycleResult]:
        return self._pending

    def offer(self, result: CycleResult) -> None:
        self._pending = result

    def flush(self, now: float) -> Optional[CycleResult]:
        if self._pending is None:
            return None
        if self._last_flush is not None and now - self._last_flush < self.interval:
            return None
        result, self._pending = self._pending, None
        self._last_flush = now
        return result


class TrainingSession:
    """Per-session orchestration of pose comparison and feedback.

    Args:
        estimator: Pose-estimation handle (owned by the caller).
        voice: Optional voice scheduler fed with every cycle's feedback.
        segment_trainer: Optional segment state machine checked while waiting.
        on_update: Called with the debounced ``CycleResult``.
        on_segment_change: Called with the next segment start time after a
            segment is matched (None once all segments are completed).
        clock: Time source in seconds.
    """

    def __init__(
        self,
        estimator: PoseEstimator,
        voice: Optional[VoiceFeedbackScheduler] = None,
        segment_trainer: Optional[SegmentTrainer] = None,
        on_update: Optional[Callable[[CycleResult], None]] = None,
        on_segment_change: Optional[Callable[[Optional[float]], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        ui_update_interval: float = UI_UPDATE_INTERVAL,
    ):
        self.estimator = estimator
        self.voice = voice
        self.segment_trainer = segment_trainer
        self.on_update = on_update
        self.on_segment_change = on_segment_change
        self._clock = clock
        self._buffer = LatestResultBuffer(ui_update_interval)
        self._reference_angles: Optional[AngleSet] = None
        self._reference_pose: Optional[Pose] = None
        self._stop = threading.Event()
        self.frames_processed = 0
        self.frames_failed = 0

    # ------------------------------------------------------------------
    # Reference pose
    # ------------------------------------------------------------------

    @property
    def reference_angles(self) -> AngleSet:
        """Trainer angles once extracted, otherwise the default posture."""
        return {**DEFAULT_IDEAL_ANGLES, **(self._reference_angles or {})}

    def set_reference(self, angles: AngleSet, pose: Optional[Pose] = None) -> None:
        """Use ``angles`` as the ideal posture; joints it lacks keep their defaults."""
        self._reference_angles = {**DEFAULT_IDEAL_ANGLES, **angles}
        self._reference_pose = pose
        logger.info("Reference angles set: %s", {j: self._reference_angles[j] for j in JOINTS})

    def clear_reference(self) -> None:
        self._reference_angles = None
        self._reference_pose = None

    # ------------------------------------------------------------------
    # Detection cycle
    # ------------------------------------------------------------------

    def evaluate_pose(self, pose: Pose, timestamp: float) -> CycleResult:
        """Pure comparison of one detected pose against the reference."""
        ideal = self.reference_angles
        angles = compute_angle_set(pose.keypoints, include_back=True)
        accuracy = compute_accuracy(angles, ideal)
        feedback = generate_feedback(angles, ideal, accuracy, pose.keypoints)

        overall_input = {**accuracy, BACK_JOINT: spine_straightness(pose.keypoints)}
        return CycleResult(
            timestamp=timestamp,
            angles=angles,
            accuracy=accuracy,
            headline_accuracy=min_accuracy(accuracy),
            overall_accuracy=compute_overall_accuracy(overall_input),
            feedback=feedback,
            person_detected=True,
        )

    def process_frame(self, frame: Optional[np.ndarray], now: Optional[float] = None) -> Optional[CycleResult]:
        """Run one detection cycle.

        Returns the cycle's result, or None if pose estimation or scoring
        failed on this frame (the failure is logged and the session
        continues). A cycle without a usable pose breaks any segment hold.
        """
        now = self._clock() if now is None else now

        if frame is None:
            result = _empty_result(now, NO_CAMERA_TEXT)
            self._miss_segment()
        else:
            try:
                poses = self.estimator.estimate(frame)
            except Exception:
                self.frames_failed += 1
                logger.exception("Error in pose detection")
                self._miss_segment()
                return None

            if not poses:
                result = _empty_result(now, NO_PERSON_TEXT)
                self._miss_segment()
            else:
                try:
                    result = self.evaluate_pose(poses[0], now)
                except Exception:
                    self.frames_failed += 1
                    logger.exception("Error evaluating pose")
                    self._miss_segment()
                    return None
                self._check_segment(result.angles, now)

        self.frames_processed += 1
        self._buffer.offer(result)
        if self.voice is not None:
            self.voice.add_feedback(result.improvements, now=now)
        self.flush(now)
        return result

    def flush(self, now: Optional[float] = None) -> Optional[CycleResult]:
        """Deliver the buffered result if the UI interval has elapsed."""
        now = self._clock() if now is None else now
        result = self._buffer.flush(now)
        if result is not None and self.on_update is not None:
            self.on_update(result)
        return result

    def _check_segment(self, angles: AngleSet, now: float) -> None:
        trainer = self.segment_trainer
        if trainer is None or not trainer.state.is_active:
            return
        if trainer.status != SegmentStatus.WAITING:
            return
        trainer.check_match(angles, now=now)
        if trainer.status == SegmentStatus.MATCHED:
            next_start = trainer.advance()
            if self.on_segment_change is not None:
                self.on_segment_change(next_start)

    def _miss_segment(self) -> None:
        if self.segment_trainer is not None:
            self.segment_trainer.reset_hold()

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def stop(self) -> None:
        self._stop.set()

    def run(self, frames: Iterable[Optional[np.ndarray]]) -> int:
        """Process frames until the iterable ends or ``stop()`` is called.

        Returns the number of frames processed.
        """
        self._stop.clear()
        logger.info("Training session started.")
        for frame in frames:
            if self._stop.is_set():
                break
            self.process_frame(frame)
        logger.info(
            "Training session stopped: %d frames processed, %d failed.",
            self.frames_processed, self.frames_failed,
        )
        return self.frames_processed
