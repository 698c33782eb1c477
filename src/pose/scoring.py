"""
Per-joint accuracy against a reference pose, plus aggregate scores.
"""

import logging
from typing import Optional

from .config import (
    ACCURACY_TOLERANCE,
    ALL_GOOD_ACCURACY,
    BOOST_JOINT_ACCURACY,
    BOOST_MIN_RATIO,
    CRITICAL_FAIL_CAP,
    CRITICAL_JOINT_WEIGHTS,
    CRITICAL_MIN_ACCURACY,
    DEFAULT_IDEAL_ANGLES,
    JOINTS,
    SUPPORT_JOINT_WEIGHTS,
)
from .state import AccuracySet, AngleSet

logger = logging.getLogger(__name__)


def joint_accuracy(actual: float, ideal: float, tolerance: float = ACCURACY_TOLERANCE) -> float:
    """Linear falloff: 100% at 0° difference, 0% at ``tolerance`` or beyond."""
    diff = abs(ideal - actual)
    return max(0.0, min(100.0, 100.0 - (diff / tolerance) * 100.0))


def compute_accuracy(
    angles: AngleSet,
    ideal_angles: Optional[AngleSet] = None,
    tolerance: float = ACCURACY_TOLERANCE,
) -> AccuracySet:
    """Score each tracked joint against the reference angles.

    Args:
        angles: Trainee angles from ``compute_angle_set``.
        ideal_angles: Reference angles; ``DEFAULT_IDEAL_ANGLES`` until a
            reference pose has been extracted.
        tolerance: Degrees of difference that score 0%.

    Returns:
        AccuracySet with a percentage in [0, 100] per joint.
    """
    if tolerance <= 0:
        raise ValueError(f"tolerance must be positive, got {tolerance}.")
    ideal_angles = ideal_angles or DEFAULT_IDEAL_ANGLES
    return {
        joint: joint_accuracy(angles[joint], ideal_angles.get(joint, DEFAULT_IDEAL_ANGLES[joint]), tolerance)
        for joint in JOINTS
    }


def min_accuracy(accuracy: AccuracySet) -> float:
    """Headline score: the weakest tracked joint."""
    values = [accuracy[j] for j in JOINTS if j in accuracy]
    return min(values) if values else 0.0


def compute_overall_accuracy(accuracy: AccuracySet) -> float:
    """Weighted overall score that penalizes weak critical joints.

    - Any critical joint (hip, knee, back) below 65% caps the result at
      the weakest critical joint + 5, never above 69.
    - All joints at 75% or better: plain weighted mean.
    - Otherwise a weighted harmonic mean, boosted by up to 4% when most
      joints are at 80% or better.

    Missing joints count as 0%.
    """
    weights = {**CRITICAL_JOINT_WEIGHTS, **SUPPORT_JOINT_WEIGHTS}
    scores = {joint: float(accuracy.get(joint, 0.0)) for joint in weights}

    critical = [scores[j] for j in CRITICAL_JOINT_WEIGHTS]
    if any(s < CRITICAL_MIN_ACCURACY for s in critical):
        return float(min(min(critical) + 5, CRITICAL_FAIL_CAP))

    if all(s >= ALL_GOOD_ACCURACY for s in scores.values()):
        return float(round(sum(scores[j] * w for j, w in weights.items())))

    harmonic_sum = 0.0
    total_weight = 0.0
    for joint, weight in weights.items():
        if scores[joint] > 0:
            harmonic_sum += weight / scores[joint]
            total_weight += weight
    if harmonic_sum == 0:
        return 0.0
    result = total_weight / harmonic_sum

    good_ratio = sum(1 for s in scores.values() if s >= BOOST_JOINT_ACCURACY) / len(scores)
    if good_ratio >= BOOST_MIN_RATIO:
        result *= 1 + (good_ratio - BOOST_MIN_RATIO) * 0.1

    return float(round(min(result, 100.0)))
