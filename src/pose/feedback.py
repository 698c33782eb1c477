"""
Rule-based per-frame coaching feedback.

Produces a deterministic, ordered list of ``FeedbackItem``s every detection
cycle:

    1. Visibility gate (single error item, nothing else)
    2. Camera distance warning (optional)
    3. Exactly one spine-straightness item
    4. One item per tracked joint (correction or acknowledgement)

Callers split "good" items from corrections for presentation.
"""

import logging
from typing import Iterable, Optional

from .config import (
    DEFAULT_IDEAL_ANGLES,
    ERROR_THRESHOLD,
    GOOD_THRESHOLD,
    JOINTS,
    SPINE_ERROR_THRESHOLD,
    SPINE_GOOD_THRESHOLD,
)
from .framing import check_distance, is_properly_visible, spine_straightness
from .state import AccuracySet, AngleSet, FeedbackItem, Keypoint

logger = logging.getLogger(__name__)

NOT_VISIBLE_TEXT = "Position yourself in front of the camera"
NO_PERSON_TEXT = "No person detected. Position yourself in front of the camera."
NO_CAMERA_TEXT = "Camera not available. Please allow camera access."

# Joint → (verb, body part) used in correction phrasing
_JOINT_PHRASES: dict[str, tuple[str, str]] = {
    "Hip": ("Adjust", "hip"),
    "Knee": ("Bend", "knee"),
    "Elbow": ("Bend", "elbow"),
    "Shoulder": ("Adjust", "shoulder"),
}


def severity_for(accuracy: float) -> str:
    """Map a 0-100 accuracy to a feedback status using the shared break points."""
    if accuracy >= GOOD_THRESHOLD:
        return "good"
    if accuracy < ERROR_THRESHOLD:
        return "error"
    return "warning"


def distance_feedback(keypoints: Iterable[Keypoint]) -> Optional[FeedbackItem]:
    status = check_distance(keypoints)
    if status == "too_close":
        return FeedbackItem(text="Move back from the camera", status="warning", type="distance_close")
    if status == "too_far":
        return FeedbackItem(text="Move closer to the camera", status="warning", type="distance_far")
    return None


def spine_feedback(keypoints: Iterable[Keypoint]) -> FeedbackItem:
    score = spine_straightness(keypoints)
    if score < SPINE_ERROR_THRESHOLD:
        return FeedbackItem(text="Keep your back straight", status="error", type="back")
    if score < SPINE_GOOD_THRESHOLD:
        return FeedbackItem(text="Straighten your back slightly", status="warning", type="back")
    return FeedbackItem(text="Back alignment is correct", status="good", type="back")


def joint_feedback(joint: str, actual: float, ideal: float, accuracy: float) -> FeedbackItem:
    """Directional correction for one joint, or an acknowledgement."""
    if accuracy >= GOOD_THRESHOLD:
        return FeedbackItem(text=f"{joint} angle is correct", status="good", type=joint.lower())

    verb, part = _JOINT_PHRASES[joint]
    diff = ideal - actual
    direction = "more" if diff > 0 else "less"
    return FeedbackItem(
        text=f"{verb} your {part} {direction} ({abs(round(diff))}°)",
        status=severity_for(accuracy),
        type=f"{part}_{direction}",
    )


def generate_feedback(
    angles: AngleSet,
    ideal_angles: AngleSet,
    accuracy: AccuracySet,
    keypoints: Iterable[Keypoint],
) -> list[FeedbackItem]:
    """Build the ordered feedback list for one detection cycle.

    Args:
        angles: Trainee joint angles.
        ideal_angles: Reference joint angles.
        accuracy: Output of ``compute_accuracy(angles, ideal_angles)``.
        keypoints: Trainee keypoints (for framing checks).

    Returns:
        List of FeedbackItem. When the subject is not properly visible the
        list holds a single error item and no other check runs.
    """
    keypoints = list(keypoints)

    if not is_properly_visible(keypoints):
        return [FeedbackItem(text=NOT_VISIBLE_TEXT, status="error", type="visibility")]

    feedback: list[FeedbackItem] = []

    distance = distance_feedback(keypoints)
    if distance is not None:
        feedback.append(distance)

    feedback.append(spine_feedback(keypoints))

    for joint in JOINTS:
        ideal = ideal_angles.get(joint, DEFAULT_IDEAL_ANGLES[joint])
        feedback.append(joint_feedback(joint, angles[joint], ideal, accuracy[joint]))

    return feedback


def split_feedback(feedback: list[FeedbackItem]) -> tuple[list[FeedbackItem], list[FeedbackItem]]:
    """Split into (good, needs_improvement) preserving order."""
    good = [item for item in feedback if item.status == "good"]
    improve = [item for item in feedback if item.status != "good"]
    return good, improve
