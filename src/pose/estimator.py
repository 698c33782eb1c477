"""
Pose-estimation capability.

The engine only depends on the ``PoseEstimator`` protocol:
``estimate(frame) -> list[Pose]``. ``MediaPipePoseEstimator`` is the
bundled implementation, an explicitly owned handle with a
create → warm up → close lifecycle, passed into the training loop and the
segment analyzer rather than kept as process-wide state.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Protocol

# Suppress TensorFlow/MediaPipe C++ logs before imports
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "3")
os.environ.setdefault("GLOG_minloglevel", "3")

import cv2
import mediapipe as mp
import numpy as np
from mediapipe.tasks import python as mp_python
from mediapipe.tasks.python import vision

from .config import KEYPOINT_NAMES, POSE_MODEL_PATH
from .state import Keypoint, Pose

logger = logging.getLogger(__name__)

# MediaPipe's 33-landmark topology → the 17 COCO keypoints, in KEYPOINT_NAMES order.
_MEDIAPIPE_TO_COCO: list[int] = [0, 2, 5, 7, 8, 11, 12, 13, 14, 15, 16, 23, 24, 25, 26, 27, 28]


class PoseEstimator(Protocol):
    """Anything that maps an image frame to detected poses."""

    def estimate(self, frame: np.ndarray) -> list[Pose]:
        ...


def landmarks_to_pose(landmarks, width: int, height: int) -> Pose:
    """Convert one MediaPipe landmark list to a COCO-named pixel-space Pose."""
    keypoints = []
    for name, idx in zip(KEYPOINT_NAMES, _MEDIAPIPE_TO_COCO):
        lm = landmarks[idx]
        visibility = getattr(lm, "visibility", None)
        score = float(np.clip(visibility if visibility is not None else 0.0, 0.0, 1.0))
        keypoints.append(
            Keypoint(name=name, x=float(lm.x) * width, y=float(lm.y) * height, score=score)
        )
    return Pose(keypoints=keypoints, score=float(np.mean([kp.score for kp in keypoints])))


class MediaPipePoseEstimator:
    """Single-subject pose estimation with the MediaPipe PoseLandmarker Tasks API.

    Frames are BGR ``np.ndarray`` images as produced by OpenCV.

    Usage::

        with MediaPipePoseEstimator.create() as estimator:
            poses = estimator.estimate(frame)
    """

    def __init__(self, landmarker):
        self._landmarker = landmarker

    @classmethod
    def create(
        cls,
        model_path: Optional[Path] = None,
        min_detection_confidence: float = 0.3,
        min_tracking_confidence: float = 0.3,
        warm_up: bool = True,
    ) -> "MediaPipePoseEstimator":
        """Load the landmarker model and optionally warm it up.

        Raises:
            FileNotFoundError: If the ``.task`` model file is missing.
        """
        path = Path(model_path or POSE_MODEL_PATH)
        if not path.exists():
            raise FileNotFoundError(
                f"PoseLandmarker model not found at {path}. "
                "Download from: https://storage.googleapis.com/mediapipe-models/"
                "pose_landmarker/pose_landmarker_full/float16/latest/pose_landmarker_full.task "
                "or set POSE_MODEL_PATH."
            )

        base_options = mp_python.BaseOptions(model_asset_path=str(path))
        options = vision.PoseLandmarkerOptions(
            base_options=base_options,
            running_mode=vision.RunningMode.IMAGE,
            num_poses=1,
            min_pose_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
            output_segmentation_masks=False,
        )
        logger.info("Loading pose landmarker: %s", path)
        estimator = cls(vision.PoseLandmarker.create_from_options(options))
        if warm_up:
            estimator.warm_up()
        return estimator

    def warm_up(self) -> None:
        """Run one inference on a blank frame so the first real frame is fast."""
        self.estimate(np.zeros((256, 256, 3), dtype=np.uint8))
        logger.info("Pose landmarker warmed up.")

    def estimate(self, frame: np.ndarray) -> list[Pose]:
        if self._landmarker is None:
            raise RuntimeError("Pose estimator has been closed.")
        height, width = frame.shape[:2]
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        result = self._landmarker.detect(mp_image)
        if not result.pose_landmarks:
            return []
        return [landmarks_to_pose(lms, width, height) for lms in result.pose_landmarks]

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("Pose landmarker released.")

    def __enter__(self) -> "MediaPipePoseEstimator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
