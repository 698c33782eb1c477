"""
Reference-video segmentation and live segment matching.

An offline pass samples the reference video every ``sample_interval``
seconds, estimates the pose, and opens a new ``PoseSegment`` whenever any
primary joint angle moves by at least ``angle_threshold`` degrees and at
least ``min_segment_duration`` has passed since the last segment started.

The pass is a coroutine: every sample awaits the video seek, so the host
event loop keeps running, and an ``asyncio.Event`` can abort it between
samples. The video is paused for the whole pass and its position and
play state are restored afterwards, also on abort or error.
"""

import asyncio
import logging
import math
from typing import Callable, NamedTuple, Optional

from src.pose.config import JOINTS
from src.pose.estimator import PoseEstimator
from src.pose.geometry import compute_angle_set
from src.pose.state import AngleSet, Pose

from .config import SEGMENT_JOINTS, SegmentConfig, load_segment_config
from .state import PoseSegment
from .video import VideoSource

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class SegmentMatch(NamedTuple):
    accuracy: float
    matched: bool


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def is_significant_change(old: AngleSet, new: AngleSet, threshold: float) -> bool:
    """True if any primary joint moved by ``threshold`` degrees or more."""
    return any(abs(old.get(j, 0.0) - new.get(j, 0.0)) >= threshold for j in JOINTS)


def describe_pose(angles: AngleSet, segment_index: int) -> str:
    """Short human-readable label for a target pose."""
    parts: list[str] = []

    knee = angles.get("Knee", 180.0)
    if knee < 100:
        parts.append("Deep squat")
    elif knee < 140:
        parts.append("Squat position")
    else:
        parts.append("Standing")

    if angles.get("Elbow", 180.0) < 90:
        parts.append("arms bent")
    elif angles.get("Shoulder", 0.0) > 150:
        parts.append("arms extended")

    if angles.get("BackStraightness", 180.0) < 160:
        parts.append("forward lean")

    return ", ".join(parts) if parts else f"Pose {segment_index + 1}"


def match_segment(
    trainee_angles: AngleSet,
    segment: PoseSegment,
    config: Optional[SegmentConfig] = None,
) -> SegmentMatch:
    """Score how well the trainee matches a segment's target pose.

    Per joint: ``max(0, 100 - |target - actual| / tolerance * 50)``, so a
    joint reaches 0 at twice its tolerance. This falloff is intentionally
    looser than ``compute_accuracy``. The overall accuracy is the mean over
    joints present in both angle sets.
    """
    cfg = config or SegmentConfig()
    total = 0.0
    count = 0
    for joint, tolerance in cfg.tolerances.items():
        target = segment.target_angles.get(joint)
        actual = trainee_angles.get(joint)
        if target is None or actual is None:
            continue
        total += max(0.0, 100.0 - (abs(target - actual) / tolerance) * 50.0)
        count += 1

    accuracy = total / count if count else 0.0
    return SegmentMatch(accuracy=accuracy, matched=accuracy >= cfg.match_accuracy_threshold)


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------

class SegmentAnalyzer:
    """Extracts target poses from a reference video.

    Args:
        estimator: Pose-estimation handle owned by the caller.
        config: Segment tunables; defaults come from ``config/coaching.yaml``.
    """

    def __init__(self, estimator: PoseEstimator, config: Optional[SegmentConfig] = None):
        self.estimator = estimator
        self.config = config or load_segment_config()

    def _detect(self, source: VideoSource) -> Optional[Pose]:
        frame = source.current_frame()
        if frame is None:
            return None
        poses = self.estimator.estimate(frame)
        return poses[0] if poses else None

    async def _seek(self, source: VideoSource, time: float) -> None:
        await source.seek(time)
        if self.config.seek_settle_delay > 0:
            await asyncio.sleep(self.config.seek_settle_delay)

    async def analyze(
        self,
        source: VideoSource,
        on_progress: Optional[ProgressCallback] = None,
        abort: Optional[asyncio.Event] = None,
    ) -> list[PoseSegment]:
        """Run the segmentation pass over ``source``.

        Args:
            source: Seekable reference video.
            on_progress: Called with the completed fraction (0-1) after each sample.
            abort: When set, sampling stops after the current step and an
                empty list is returned.

        Returns:
            Contiguous segments ordered by start time; the last one ends at
            the video duration. Empty if the duration is unknown, the pass
            was aborted, or no pose could be detected at all.
        """
        cfg = self.config
        duration = source.duration
        if not duration or not math.isfinite(duration) or duration <= 0:
            logger.warning("Video duration not available (%s); skipping analysis.", duration)
            return []

        was_playing = not source.paused
        source.pause()
        original_time = source.current_time

        starts: list[tuple[float, Pose, AngleSet]] = []
        synthesized = False
        last_angles: Optional[AngleSet] = None
        n_samples = int(math.ceil(duration / cfg.sample_interval))

        try:
            for i in range(n_samples):
                time = i * cfg.sample_interval
                if time >= duration:
                    break
                if abort is not None and abort.is_set():
                    logger.info("Segment analysis aborted at %.2fs.", time)
                    return []

                await self._seek(source, time)

                try:
                    pose = self._detect(source)
                    if pose is not None:
                        angles = compute_angle_set(pose.keypoints, include_back=True)
                        if last_angles is None or is_significant_change(
                            last_angles, angles, cfg.angle_threshold
                        ):
                            if not starts or time - starts[-1][0] >= cfg.min_segment_duration:
                                starts.append((time, pose, angles))
                                last_angles = angles
                except Exception:
                    logger.exception("Error analyzing frame at %.2fs", time)

                if on_progress is not None:
                    on_progress(time / duration)

            if not starts:
                # Static or very short video: one segment from the first frame.
                await self._seek(source, 0.0)
                try:
                    pose = self._detect(source)
                except Exception:
                    logger.exception("Error analyzing first frame")
                    pose = None
                if pose is not None:
                    angles = compute_angle_set(pose.keypoints, include_back=True)
                    starts.append((0.0, pose, angles))
                    synthesized = True
        finally:
            await source.seek(original_time)
            if was_playing:
                source.play()

        segments = self._build_segments(starts, duration, synthesized)
        if on_progress is not None:
            on_progress(1.0)
        logger.info("Video analysis complete: found %d segments", len(segments))
        return segments

    def _build_segments(
        self,
        starts: list[tuple[float, Pose, AngleSet]],
        duration: float,
        synthesized: bool = False,
    ) -> list[PoseSegment]:
        segments = []
        for idx, (start, pose, angles) in enumerate(starts):
            end = starts[idx + 1][0] if idx + 1 < len(starts) else duration
            segments.append(
                PoseSegment(
                    id=idx,
                    start_time=start,
                    end_time=end,
                    target_pose=pose,
                    target_angles={j: angles[j] for j in SEGMENT_JOINTS if j in angles},
                    description="Starting Position" if synthesized else describe_pose(angles, idx),
                )
            )
        return segments

    async def extract_reference_pose(
        self,
        source: VideoSource,
        offset: float = 3.0,
    ) -> Optional[tuple[Pose, AngleSet]]:
        """Quick single-frame reference pose at ``offset`` seconds.

        Cheaper than a full segmentation pass; the video position is left at
        the sampled frame. Returns None when no person is detected.
        """
        duration = source.duration or 0.0
        time = min(offset, duration) if duration > 0 else 0.0
        await self._seek(source, time)
        try:
            pose = self._detect(source)
        except Exception:
            logger.exception("Error extracting reference pose at %.2fs", time)
            return None
        if pose is None:
            logger.warning("No person detected in reference frame at %.2fs", time)
            return None
        return pose, compute_angle_set(pose.keypoints, include_back=True)
