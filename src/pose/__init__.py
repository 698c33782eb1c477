"""
Pose comparison core.

Turns detected keypoints into joint angles, scores them against a
reference pose, and produces rule-based coaching feedback. The MediaPipe
estimator lives in ``src.pose.estimator`` and is imported on demand.
"""

from .feedback import generate_feedback, split_feedback
from .framing import check_distance, is_properly_visible, spine_straightness
from .geometry import calculate_angle, compute_angle_set, compute_spine_angles
from .scoring import compute_accuracy, compute_overall_accuracy, min_accuracy
from .state import AccuracySet, AngleSet, FeedbackItem, Keypoint, Pose

__all__ = [
    "AccuracySet",
    "AngleSet",
    "FeedbackItem",
    "Keypoint",
    "Pose",
    "calculate_angle",
    "compute_angle_set",
    "compute_spine_angles",
    "compute_accuracy",
    "compute_overall_accuracy",
    "min_accuracy",
    "check_distance",
    "is_properly_visible",
    "spine_straightness",
    "generate_feedback",
    "split_feedback",
]
