"""Tests for the MediaPipe pose-estimation wrapper and the CLI surface.

The landmarker itself is replaced by a stub, so no model file is needed.
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.pose.config import KEYPOINT_NAMES
from src.pose.estimator import MediaPipePoseEstimator, landmarks_to_pose


# ============================================================================
# Fixtures
# ============================================================================

def _landmarks(visibility: float = 0.9) -> list[SimpleNamespace]:
    """33 MediaPipe-style normalized landmarks; landmark i sits at (i/33, i/66)."""
    return [SimpleNamespace(x=i / 33.0, y=i / 66.0, visibility=visibility) for i in range(33)]


class StubLandmarker:
    def __init__(self, poses):
        self.poses = poses
        self.closed = False

    def detect(self, image):
        return SimpleNamespace(pose_landmarks=self.poses)

    def close(self):
        self.closed = True


# ============================================================================
# Test: Landmark conversion
# ============================================================================

class TestLandmarksToPose:

    def test_coco_names_and_order(self):
        pose = landmarks_to_pose(_landmarks(), width=640, height=480)
        assert [kp.name for kp in pose.keypoints] == KEYPOINT_NAMES

    def test_pixel_coordinates(self):
        pose = landmarks_to_pose(_landmarks(), width=660, height=660)
        kps = pose.keypoint_map()
        # MediaPipe index 25 is the left knee.
        assert kps["left_knee"].x == pytest.approx(25 / 33.0 * 660)
        assert kps["left_knee"].y == pytest.approx(25 / 66.0 * 660)

    def test_visibility_clipped_into_score(self):
        pose = landmarks_to_pose(_landmarks(visibility=1.3), width=10, height=10)
        assert all(kp.score == 1.0 for kp in pose.keypoints)
        assert pose.score == pytest.approx(1.0)


# ============================================================================
# Test: Estimator lifecycle
# ============================================================================

class TestMediaPipePoseEstimator:

    def test_estimate_converts_detections(self):
        estimator = MediaPipePoseEstimator(StubLandmarker([_landmarks()]))
        poses = estimator.estimate(np.zeros((120, 160, 3), dtype=np.uint8))
        assert len(poses) == 1
        assert len(poses[0].keypoints) == 17

    def test_no_detection(self):
        estimator = MediaPipePoseEstimator(StubLandmarker([]))
        assert estimator.estimate(np.zeros((120, 160, 3), dtype=np.uint8)) == []

    def test_closed_estimator_raises(self):
        landmarker = StubLandmarker([])
        with MediaPipePoseEstimator(landmarker) as estimator:
            pass
        assert landmarker.closed
        with pytest.raises(RuntimeError, match="closed"):
            estimator.estimate(np.zeros((8, 8, 3), dtype=np.uint8))

    def test_missing_model_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="POSE_MODEL_PATH"):
            MediaPipePoseEstimator.create(tmp_path / "missing.task")


# ============================================================================
# Test: CLI
# ============================================================================

class TestCommandLine:

    def test_command_required(self):
        from src.coaching.main import main

        with pytest.raises(SystemExit):
            main([])

    def test_analyze_requires_video(self):
        from src.coaching.main import main

        with pytest.raises(SystemExit):
            main(["analyze"])


class FakeReference:
    def __init__(self):
        self.paused = False
        self.seeks: list[float] = []

    def pause(self):
        self.paused = True

    def play(self):
        self.paused = False

    async def seek(self, time):
        self.seeks.append(time)


class TestSegmentChangeHandler:

    def test_next_segment_seeks_and_plays(self):
        from src.coaching.main import _segment_change_handler

        reference = FakeReference()
        reference.pause()
        _segment_change_handler(reference)(5.0)
        assert reference.seeks == [5.0]
        assert not reference.paused

    def test_completion_pauses_reference(self):
        from src.coaching.main import _segment_change_handler

        reference = FakeReference()
        _segment_change_handler(reference)(None)
        assert reference.paused
        assert reference.seeks == []
