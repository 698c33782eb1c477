"""
State definitions for segmented training.

Segments are produced once by the analyzer and never modified afterwards;
marking a segment as matched replaces it with an updated copy.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.pose.state import AngleSet, Pose


class PoseSegment(BaseModel):
    """One distinct phase of a reference exercise video."""
    model_config = ConfigDict(frozen=True)

    id: int
    start_time: float = Field(ge=0, description="Segment start (seconds)")
    end_time: float = Field(ge=0, description="Segment end (seconds); next segment's start")
    target_pose: Pose
    target_angles: AngleSet
    description: str
    matched: bool = False

    @model_validator(mode="after")
    def _ordered(self) -> "PoseSegment":
        if self.end_time < self.start_time:
            raise ValueError(
                f"Segment {self.id} ends ({self.end_time}) before it starts ({self.start_time})."
            )
        return self


class SegmentStatus(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    WAITING = "waiting"
    MATCHED = "matched"
    COMPLETED = "completed"


class SegmentTrainingState(BaseModel):
    """Snapshot of segmented training, updated once per detection cycle."""
    is_active: bool = False
    is_analyzing: bool = False
    analysis_progress: float = Field(default=0.0, ge=0, le=100, description="Percent analyzed")
    segments: list[PoseSegment] = Field(default_factory=list)
    current_segment_index: int = Field(default=0, ge=0)
    segment_status: SegmentStatus = SegmentStatus.IDLE
    hold_progress: float = Field(default=0.0, ge=0, le=100, description="Percent of hold duration reached")
    match_accuracy: float = Field(default=0.0, ge=0, le=100)

    @model_validator(mode="after")
    def _consistent(self) -> "SegmentTrainingState":
        if self.segment_status != SegmentStatus.IDLE:
            if not self.segments:
                raise ValueError(f"Status '{self.segment_status.value}' requires analyzed segments.")
            if self.current_segment_index >= len(self.segments):
                raise ValueError(
                    f"Segment index {self.current_segment_index} out of range "
                    f"({len(self.segments)} segments)."
                )
            if not self.is_active:
                raise ValueError(f"Status '{self.segment_status.value}' requires an active session.")
        if self.is_active and self.is_analyzing:
            raise ValueError("Training cannot be active while analysis is running.")
        return self

    @property
    def current_segment(self):
        if 0 <= self.current_segment_index < len(self.segments):
            return self.segments[self.current_segment_index]
        return None
