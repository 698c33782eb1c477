"""
Subject framing checks: visibility, camera distance and spine straightness.

Only keypoint confidences and positions are used; no model access.
"""

import logging
from typing import Iterable

import numpy as np

from .config import (
    MAX_SHOULDER_WIDTH,
    MIN_SHOULDER_WIDTH,
    MIN_VISIBLE_KEYPOINTS,
    SPINE_DEVIATION_BAND,
    STRICT_VISIBILITY_SCORE,
)
from .state import DistanceStatus, Keypoint

logger = logging.getLogger(__name__)


def count_visible_keypoints(
    keypoints: Iterable[Keypoint],
    min_score: float = STRICT_VISIBILITY_SCORE,
) -> int:
    return sum(1 for kp in keypoints if kp.score > min_score)


def is_properly_visible(
    keypoints: Iterable[Keypoint],
    min_visible: int = MIN_VISIBLE_KEYPOINTS,
    min_score: float = STRICT_VISIBILITY_SCORE,
) -> bool:
    """True when enough keypoints are confidently tracked to coach at all."""
    return count_visible_keypoints(keypoints, min_score) >= min_visible


def check_distance(
    keypoints: Iterable[Keypoint],
    min_width: float = MIN_SHOULDER_WIDTH,
    max_width: float = MAX_SHOULDER_WIDTH,
    min_score: float = STRICT_VISIBILITY_SCORE,
) -> DistanceStatus:
    """Classify camera distance from the pixel shoulder width.

    Returns ``"ok"`` when either shoulder is not confidently visible, since
    scale cannot be judged. ``min_width``/``max_width`` depend on the camera
    resolution and should be calibrated per setup.
    """
    kps = {kp.name: kp for kp in keypoints}
    left = kps.get("left_shoulder")
    right = kps.get("right_shoulder")
    if left is None or right is None or left.score <= min_score or right.score <= min_score:
        return "ok"

    width = float(np.hypot(left.x - right.x, left.y - right.y))
    if width < min_width:
        return "too_far"
    if width > max_width:
        return "too_close"
    return "ok"


def spine_straightness(
    keypoints: Iterable[Keypoint],
    band: float = SPINE_DEVIATION_BAND,
    min_score: float = STRICT_VISIBILITY_SCORE,
) -> float:
    """Straightness score (0-100) from shoulder/hip midpoint alignment.

    The horizontal offset between the shoulder and hip midpoints is
    compared against an allowed band of ``band`` × the torso height
    (vertical shoulder-to-hip distance). No offset scores 100; an offset
    equal to the band or larger scores 0. When the torso cannot be
    measured the spine is treated as straight.
    """
    kps = {kp.name: kp for kp in keypoints}
    torso = [kps.get(n) for n in ("left_shoulder", "right_shoulder", "left_hip", "right_hip")]
    if any(kp is None or kp.score <= min_score for kp in torso):
        return 100.0

    left_shoulder, right_shoulder, left_hip, right_hip = torso
    shoulder_mid_x = (left_shoulder.x + right_shoulder.x) / 2.0
    shoulder_mid_y = (left_shoulder.y + right_shoulder.y) / 2.0
    hip_mid_x = (left_hip.x + right_hip.x) / 2.0
    hip_mid_y = (left_hip.y + right_hip.y) / 2.0

    torso_height = abs(hip_mid_y - shoulder_mid_y)
    allowed = torso_height * band
    if allowed <= 1e-6:
        logger.debug("Degenerate torso height %.3f, skipping spine check.", torso_height)
        return 100.0

    deviation = abs(shoulder_mid_x - hip_mid_x)
    return float(max(0.0, min(100.0, 100.0 * (1.0 - deviation / allowed))))
