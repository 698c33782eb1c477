"""
Segmented training against a reference video.

The analyzer splits the video into target poses offline; the trainer
walks the trainee through them one at a time.
"""

from .analyzer import SegmentAnalyzer, SegmentMatch, match_segment
from .config import SegmentConfig, load_segment_config
from .state import PoseSegment, SegmentStatus, SegmentTrainingState
from .trainer import SegmentStateError, SegmentTrainer

__all__ = [
    "SegmentAnalyzer",
    "SegmentMatch",
    "match_segment",
    "SegmentConfig",
    "load_segment_config",
    "PoseSegment",
    "SegmentStatus",
    "SegmentTrainingState",
    "SegmentStateError",
    "SegmentTrainer",
]
