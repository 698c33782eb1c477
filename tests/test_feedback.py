"""Tests for framing checks and rule-based feedback generation.

Covers:
  - Visibility gate (single error item)
  - Distance classification and warnings
  - Spine straightness scoring
  - Joint correction phrasing, direction and severity
  - Feedback ordering
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.pose.config import DEFAULT_IDEAL_ANGLES, KEYPOINT_NAMES
from src.pose.feedback import (
    NOT_VISIBLE_TEXT,
    generate_feedback,
    joint_feedback,
    severity_for,
    split_feedback,
)
from src.pose.framing import (
    check_distance,
    count_visible_keypoints,
    is_properly_visible,
    spine_straightness,
)
from src.pose.scoring import compute_accuracy
from src.pose.state import Keypoint


# ============================================================================
# Fixtures
# ============================================================================

def _make_keypoints(shoulder_width: float = 100.0, lean: float = 0.0, score: float = 0.9) -> list[Keypoint]:
    """Front-facing subject with all 17 keypoints; ``lean`` shifts the shoulders sideways."""
    half = shoulder_width / 2.0
    coords = {
        "nose": (200 + lean, 60),
        "left_eye": (210 + lean, 50), "right_eye": (190 + lean, 50),
        "left_ear": (220 + lean, 55), "right_ear": (180 + lean, 55),
        "left_shoulder": (200 + half + lean, 120), "right_shoulder": (200 - half + lean, 120),
        "left_elbow": (200 + half, 200), "right_elbow": (200 - half, 200),
        "left_wrist": (200 + half, 280), "right_wrist": (200 - half, 280),
        "left_hip": (230, 300), "right_hip": (170, 300),
        "left_knee": (230, 400), "right_knee": (170, 400),
        "left_ankle": (230, 500), "right_ankle": (170, 500),
    }
    return [Keypoint(name=name, x=coords[name][0], y=coords[name][1], score=score) for name in KEYPOINT_NAMES]


def _hide(keypoints: list[Keypoint], count: int) -> list[Keypoint]:
    """Drop the confidence of the first ``count`` keypoints below the strict threshold."""
    return [
        kp.model_copy(update={"score": 0.2}) if i < count else kp
        for i, kp in enumerate(keypoints)
    ]


# ============================================================================
# Test: Framing
# ============================================================================

class TestVisibility:

    def test_all_visible(self):
        keypoints = _make_keypoints()
        assert count_visible_keypoints(keypoints) == 17
        assert is_properly_visible(keypoints)

    def test_twelve_is_enough(self):
        assert is_properly_visible(_hide(_make_keypoints(), 5))

    def test_eleven_is_not(self):
        assert not is_properly_visible(_hide(_make_keypoints(), 6))

    def test_score_at_threshold_not_counted(self):
        assert count_visible_keypoints(_make_keypoints(score=0.5)) == 0


class TestDistance:

    def test_ok(self):
        assert check_distance(_make_keypoints(shoulder_width=100)) == "ok"

    def test_too_close(self):
        assert check_distance(_make_keypoints(shoulder_width=250)) == "too_close"

    def test_too_far(self):
        assert check_distance(_make_keypoints(shoulder_width=30)) == "too_far"

    def test_unknown_when_shoulder_hidden(self):
        keypoints = [
            kp.model_copy(update={"score": 0.1}) if kp.name == "left_shoulder" else kp
            for kp in _make_keypoints(shoulder_width=250)
        ]
        assert check_distance(keypoints) == "ok"


class TestSpineStraightness:

    def test_aligned_torso(self):
        assert spine_straightness(_make_keypoints()) == pytest.approx(100.0)

    def test_slight_lean(self):
        # deviation 10 px, allowed band 0.3 * 180 = 54 px
        assert spine_straightness(_make_keypoints(lean=10)) == pytest.approx(100.0 * (1 - 10 / 54))

    def test_strong_lean_clamped(self):
        assert spine_straightness(_make_keypoints(lean=120)) == 0.0

    def test_unmeasurable_torso_is_straight(self):
        keypoints = [kp for kp in _make_keypoints(lean=40) if kp.name != "right_hip"]
        assert spine_straightness(keypoints) == 100.0


# ============================================================================
# Test: Feedback
# ============================================================================

class TestJointFeedback:

    def test_good(self):
        item = joint_feedback("Hip", 120, 120, 100)
        assert item.status == "good"
        assert item.text == "Hip angle is correct"

    def test_bend_more(self):
        item = joint_feedback("Knee", 100, 145, 0.0)
        assert item.status == "error"
        assert item.text == "Bend your knee more (45°)"
        assert item.type == "knee_more"

    def test_bend_less(self):
        item = joint_feedback("Elbow", 120, 90, 33.3)
        assert item.text == "Bend your elbow less (30°)"
        assert item.type == "elbow_less"

    def test_warning_band(self):
        item = joint_feedback("Shoulder", 165, 180, 66.7)
        assert item.status == "warning"
        assert item.text == "Adjust your shoulder more (15°)"

    @pytest.mark.parametrize("accuracy, expected", [
        (100, "good"), (85, "good"), (84.9, "warning"), (50, "warning"), (49.9, "error"), (0, "error"),
    ])
    def test_severity_break_points(self, accuracy, expected):
        assert severity_for(accuracy) == expected


class TestGenerateFeedback:

    def _feedback(self, angles, keypoints):
        ideal = dict(DEFAULT_IDEAL_ANGLES)
        return generate_feedback(angles, ideal, compute_accuracy(angles, ideal), keypoints)

    def test_not_visible_is_single_item(self):
        feedback = self._feedback(dict(DEFAULT_IDEAL_ANGLES), _hide(_make_keypoints(), 6))
        assert len(feedback) == 1
        assert feedback[0].status == "error"
        assert feedback[0].text == NOT_VISIBLE_TEXT

    def test_order_spine_then_joints(self):
        feedback = self._feedback(dict(DEFAULT_IDEAL_ANGLES), _make_keypoints())
        assert len(feedback) == 5
        assert feedback[0].type == "back"
        assert [f.text for f in feedback[1:]] == [
            "Hip angle is correct",
            "Knee angle is correct",
            "Elbow angle is correct",
            "Shoulder angle is correct",
        ]

    def test_distance_warning_comes_first(self):
        feedback = self._feedback(dict(DEFAULT_IDEAL_ANGLES), _make_keypoints(shoulder_width=250))
        assert feedback[0].text == "Move back from the camera"
        assert feedback[0].status == "warning"
        assert feedback[1].type == "back"
        assert len(feedback) == 6

    def test_far_warning(self):
        feedback = self._feedback(dict(DEFAULT_IDEAL_ANGLES), _make_keypoints(shoulder_width=30))
        assert feedback[0].text == "Move closer to the camera"

    @pytest.mark.parametrize("lean, status", [(0, "good"), (10, "warning"), (30, "error")])
    def test_exactly_one_spine_item(self, lean, status):
        feedback = self._feedback(dict(DEFAULT_IDEAL_ANGLES), _make_keypoints(lean=lean))
        spine = [f for f in feedback if f.type == "back"]
        assert len(spine) == 1
        assert spine[0].status == status

    def test_corrections_and_split(self):
        angles = {**DEFAULT_IDEAL_ANGLES, "Knee": 100.0}
        good, improve = split_feedback(self._feedback(angles, _make_keypoints()))
        assert [f.text for f in improve] == ["Bend your knee more (45°)"]
        assert len(good) == 4
