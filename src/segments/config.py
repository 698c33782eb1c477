"""
Configuration for reference-video segmentation and segment training.
"""

from pydantic import BaseModel, Field, field_validator

from src.pose.config import BACK_JOINT, JOINTS
from src.utils.io_utils import get_config_section

# Joints stored as a segment's target angles
SEGMENT_JOINTS: list[str] = [*JOINTS, BACK_JOINT]

# Playback stops this many seconds before a segment's end to wait for the trainee.
SEGMENT_END_MARGIN: float = 0.1

_DEFAULT_TOLERANCES: dict[str, float] = {
    "Hip": 20.0,
    "Knee": 20.0,
    "Elbow": 25.0,
    "Shoulder": 20.0,
    BACK_JOINT: 15.0,
}


class SegmentConfig(BaseModel):
    """Tunables for segment detection and live matching (all overridable)."""
    angle_threshold: float = Field(
        default=15.0, gt=0, description="Minimum angle change (degrees) on any joint to open a segment"
    )
    min_segment_duration: float = Field(
        default=1.0, ge=0, description="Minimum seconds between segment starts"
    )
    sample_interval: float = Field(
        default=0.5, gt=0, description="Seconds between analyzed frames"
    )
    match_accuracy_threshold: float = Field(
        default=75.0, ge=0, le=100, description="Accuracy (0-100) required to match a segment"
    )
    hold_duration: float = Field(
        default=1.5, gt=0, description="Seconds the trainee must hold a matching pose"
    )
    seek_settle_delay: float = Field(
        default=0.05, ge=0, description="Extra wait after a seek so the frame is ready"
    )
    tolerances: dict[str, float] = Field(
        default_factory=lambda: dict(_DEFAULT_TOLERANCES),
        description="Per-joint tolerance (degrees); a score reaches 0 at twice the tolerance",
    )

    @field_validator("tolerances")
    @classmethod
    def _positive_tolerances(cls, value: dict[str, float]) -> dict[str, float]:
        for joint, tol in value.items():
            if tol <= 0:
                raise ValueError(f"Tolerance for '{joint}' must be positive, got {tol}.")
        return value


def load_segment_config(**overrides) -> SegmentConfig:
    """Build a SegmentConfig from ``config/coaching.yaml`` plus keyword overrides."""
    values = get_config_section("segments")
    if "tolerances" in values:
        values["tolerances"] = {**_DEFAULT_TOLERANCES, **values["tolerances"]}
    values.update(overrides)
    return SegmentConfig(**values)
