"""
Configuration constants for live pose comparison.

Centralizes keypoint names, joint definitions, scoring/framing thresholds,
and environment variable loading. Thresholds can be recalibrated per
exercise or camera in ``config/coaching.yaml``.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from src.utils.io_utils import get_config_section

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_PATH = PROJECT_ROOT / ".env"
load_dotenv(_ENV_PATH)

# Download from: https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_full/float16/latest/pose_landmarker_full.task
POSE_MODEL_PATH = Path(
    os.environ.get("POSE_MODEL_PATH", str(PROJECT_ROOT / "models" / "pose_landmarker_full.task"))
)

# Webcam used by the live training loop
CAMERA_INDEX: int = int(os.environ.get("CAMERA_INDEX", "0"))

# ---------------------------------------------------------------------------
# Keypoints & joints
# ---------------------------------------------------------------------------
# 17 COCO keypoint names, in detector output order.
KEYPOINT_NAMES: list[str] = [
    "nose",
    "left_eye", "right_eye",
    "left_ear", "right_ear",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
]

JOINTS: list[str] = ["Hip", "Knee", "Elbow", "Shoulder"]
BACK_JOINT = "BackStraightness"

# Joint → (first, vertex, last) keypoint stems; prefixed with "left_"/"right_".
JOINT_TRIPLES: dict[str, tuple[str, str, str]] = {
    "Hip": ("shoulder", "hip", "knee"),
    "Knee": ("hip", "knee", "ankle"),
    "Elbow": ("shoulder", "elbow", "wrist"),
    "Shoulder": ("hip", "shoulder", "elbow"),
}

DEFAULT_ANGLE: float = 180.0

# ---------------------------------------------------------------------------
# Accuracy scoring
# ---------------------------------------------------------------------------
_scoring = get_config_section("scoring")

ACCURACY_TOLERANCE: float = float(_scoring.get("accuracy_tolerance", 45.0))
GOOD_THRESHOLD: float = float(_scoring.get("good_threshold", 85))
ERROR_THRESHOLD: float = float(_scoring.get("error_threshold", 50))

DEFAULT_IDEAL_ANGLES: dict[str, float] = {
    joint: float(value)
    for joint, value in (
        _scoring.get("default_ideal_angles")
        or {"Hip": 120, "Knee": 145, "Elbow": 90, "Shoulder": 180}
    ).items()
}

# Overall-accuracy weighting
CRITICAL_JOINT_WEIGHTS: dict[str, float] = {"Hip": 0.20, "Knee": 0.20, BACK_JOINT: 0.40}
SUPPORT_JOINT_WEIGHTS: dict[str, float] = {"Elbow": 0.10, "Shoulder": 0.10}
CRITICAL_MIN_ACCURACY: float = 65
CRITICAL_FAIL_CAP: float = 69
ALL_GOOD_ACCURACY: float = 75
BOOST_JOINT_ACCURACY: float = 80
BOOST_MIN_RATIO: float = 0.6

# ---------------------------------------------------------------------------
# Framing (visibility, distance, spine)
# ---------------------------------------------------------------------------
_framing = get_config_section("framing")

JOINT_VISIBILITY_SCORE: float = float(_framing.get("joint_visibility_score", 0.3))
STRICT_VISIBILITY_SCORE: float = float(_framing.get("strict_visibility_score", 0.5))
MIN_VISIBLE_KEYPOINTS: int = int(_framing.get("min_visible_keypoints", 12))

MIN_SHOULDER_WIDTH: float = float(_framing.get("min_shoulder_width", 50))
MAX_SHOULDER_WIDTH: float = float(_framing.get("max_shoulder_width", 200))

SPINE_DEVIATION_BAND: float = float(_framing.get("spine_deviation_band", 0.3))
SPINE_ERROR_THRESHOLD: float = float(_framing.get("spine_error_threshold", 70))
SPINE_GOOD_THRESHOLD: float = float(_framing.get("spine_good_threshold", 85))
