"""
Pydantic models for keypoints, poses and per-frame feedback.

Keypoints and poses come from an external detector and are never mutated
by the engine, so both models are frozen.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Joint name → degrees in [0, 180]
AngleSet = dict[str, float]
# Joint name → percentage in [0, 100]
AccuracySet = dict[str, float]

FeedbackStatus = Literal["good", "warning", "error"]
DistanceStatus = Literal["ok", "too_close", "too_far"]


class Keypoint(BaseModel):
    """A named, confidence-scored 2D skeletal landmark (pixel coordinates)."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="COCO keypoint name, e.g. 'left_knee'")
    x: float
    y: float
    score: float = Field(default=0.0, ge=0.0, le=1.0, description="Detector confidence")


class Pose(BaseModel):
    """All keypoints detected for one subject in one frame."""
    model_config = ConfigDict(frozen=True)

    keypoints: list[Keypoint] = Field(default_factory=list)
    score: Optional[float] = Field(default=None, description="Overall pose confidence")

    def keypoint_map(self) -> dict[str, Keypoint]:
        return {kp.name: kp for kp in self.keypoints}


class FeedbackItem(BaseModel):
    """One human-readable coaching statement, regenerated every frame."""
    text: str
    status: FeedbackStatus
    type: Optional[str] = Field(
        default=None,
        description="Dialogue category used for voice paraphrasing, e.g. 'knee_more'",
    )
    priority: Optional[int] = Field(
        default=None,
        description="Explicit voice priority (higher = more urgent); defaults from status",
    )
