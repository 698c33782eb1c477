"""
Joint-angle geometry from 2D keypoints.

All functions are pure and never raise on missing or low-confidence
keypoints: joints that cannot be measured fall back to ``DEFAULT_ANGLE``.
"""

import logging
from typing import Iterable, Optional

import numpy as np

from .config import (
    BACK_JOINT,
    DEFAULT_ANGLE,
    JOINTS,
    JOINT_TRIPLES,
    JOINT_VISIBILITY_SCORE,
    STRICT_VISIBILITY_SCORE,
)
from .state import AngleSet, Keypoint

logger = logging.getLogger(__name__)


def calculate_angle(a, b, c) -> float:
    """Calculate the interior angle at vertex b formed by points a-b-c.

    Uses the difference of the two vector headings:
    ``|atan2(c - b) - atan2(a - b)|``, reflected into [0, 180].

    Args:
        a, b, c: Objects with ``.x`` and ``.y`` attributes (vertex in the middle).

    Returns:
        float: Angle in degrees (0-180).
    """
    radians = np.arctan2(c.y - b.y, c.x - b.x) - np.arctan2(a.y - b.y, a.x - b.x)
    angle = abs(float(np.degrees(radians)))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def is_visible(keypoint: Optional[Keypoint], min_score: float = JOINT_VISIBILITY_SCORE) -> bool:
    return keypoint is not None and keypoint.score > min_score


def _index(keypoints: Iterable[Keypoint]) -> dict[str, Keypoint]:
    return {kp.name: kp for kp in keypoints}


def _midpoint(p: Keypoint, q: Keypoint) -> Keypoint:
    return Keypoint(name="virtual", x=(p.x + q.x) / 2.0, y=(p.y + q.y) / 2.0, score=1.0)


def _joint_angle(kps: dict[str, Keypoint], joint: str) -> Optional[float]:
    """Angle for one joint, left side first, then right side."""
    first, vertex, last = JOINT_TRIPLES[joint]
    for side in ("left", "right"):
        triple = [kps.get(f"{side}_{stem}") for stem in (first, vertex, last)]
        if all(is_visible(kp) for kp in triple):
            return calculate_angle(*triple)
    return None


def visible_joints(keypoints: Iterable[Keypoint]) -> dict[str, bool]:
    """Which tracked joints can be measured from at least one side."""
    kps = _index(keypoints)
    return {joint: _joint_angle(kps, joint) is not None for joint in JOINTS}


def compute_spine_angles(keypoints: Iterable[Keypoint]) -> dict[str, float]:
    """Upper/mid/lower back angles along a virtual spine.

    The spine runs neck → mid-shoulder → mid-torso → mid-hip → mid-knee.
    Requires both shoulders and both hips at strict confidence; otherwise
    every segment reports a straight 180°.
    """
    kps = _index(keypoints)
    straight = {"UpperBack": DEFAULT_ANGLE, "MidBack": DEFAULT_ANGLE, "LowerBack": DEFAULT_ANGLE}

    torso = [kps.get(n) for n in ("left_shoulder", "right_shoulder", "left_hip", "right_hip")]
    if not all(kp is not None and kp.score >= STRICT_VISIBILITY_SCORE for kp in torso):
        return straight

    left_shoulder, right_shoulder, left_hip, right_hip = torso
    shoulder_mid = _midpoint(left_shoulder, right_shoulder)
    hip_mid = _midpoint(left_hip, right_hip)
    mid_torso = _midpoint(shoulder_mid, hip_mid)

    upper = DEFAULT_ANGLE
    nose = kps.get("nose")
    if nose is not None and nose.score > STRICT_VISIBILITY_SCORE:
        neck = Keypoint(name="virtual", x=shoulder_mid.x, y=min(nose.y, shoulder_mid.y), score=1.0)
        upper = calculate_angle(neck, shoulder_mid, mid_torso)

    mid = calculate_angle(shoulder_mid, mid_torso, hip_mid)

    lower = DEFAULT_ANGLE
    knees = [
        kp for kp in (kps.get("left_knee"), kps.get("right_knee"))
        if kp is not None and kp.score > STRICT_VISIBILITY_SCORE
    ]
    if knees:
        knee_mid = _midpoint(knees[0], knees[-1])
        lower = calculate_angle(mid_torso, hip_mid, knee_mid)

    return {
        "UpperBack": float(round(upper)),
        "MidBack": float(round(mid)),
        "LowerBack": float(round(lower)),
    }


def compute_angle_set(keypoints: Iterable[Keypoint], include_back: bool = False) -> AngleSet:
    """Compute the tracked joint angles for one pose.

    For each joint the left-side triple is used when all three keypoints
    are visible, otherwise the right side, otherwise ``DEFAULT_ANGLE``.
    Angles are rounded to whole degrees to keep detector noise out of the UI.

    Args:
        keypoints: Keypoints of a single pose.
        include_back: Also compute ``BackStraightness`` (mean of the three
            spine segment angles), as used for reference-video segments.

    Returns:
        AngleSet: ``{"Hip", "Knee", "Elbow", "Shoulder"[, "BackStraightness"]}``.
    """
    keypoints = list(keypoints)
    kps = _index(keypoints)
    angles: AngleSet = {}
    for joint in JOINTS:
        angle = _joint_angle(kps, joint)
        angles[joint] = float(round(angle)) if angle is not None else DEFAULT_ANGLE

    if include_back:
        spine = compute_spine_angles(keypoints)
        angles[BACK_JOINT] = float(round(sum(spine.values()) / len(spine)))

    return angles
