"""Tests for the segment training state machine.

Covers:
  - Analysis bookkeeping
  - playing → waiting → matched → playing/completed transitions
  - Hold timer reset on a missed frame
  - Illegal transitions and unrepresentable states
"""

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.pose.config import BACK_JOINT
from src.pose.state import Pose
from src.segments.config import SegmentConfig
from src.segments.state import PoseSegment, SegmentStatus, SegmentTrainingState
from src.segments.trainer import SegmentStateError, SegmentTrainer


# ============================================================================
# Fixtures
# ============================================================================

STANDING = {"Hip": 175.0, "Knee": 175.0, "Elbow": 170.0, "Shoulder": 20.0, BACK_JOINT: 178.0}
SQUAT = {"Hip": 90.0, "Knee": 95.0, "Elbow": 170.0, "Shoulder": 80.0, BACK_JOINT: 160.0}


def _segments() -> list[PoseSegment]:
    return [
        PoseSegment(id=0, start_time=0.0, end_time=5.0, target_pose=Pose(),
                    target_angles=STANDING, description="Standing"),
        PoseSegment(id=1, start_time=5.0, end_time=10.0, target_pose=Pose(),
                    target_angles=SQUAT, description="Deep squat"),
    ]


def _ready_trainer(hold_duration: float = 1.5) -> SegmentTrainer:
    trainer = SegmentTrainer(SegmentConfig(hold_duration=hold_duration), clock=lambda: 0.0)
    trainer.begin_analysis()
    trainer.finish_analysis(_segments())
    return trainer


def _waiting_trainer() -> SegmentTrainer:
    trainer = _ready_trainer()
    trainer.start()
    assert trainer.on_video_time(4.95)
    return trainer


# ============================================================================
# Test: Analysis
# ============================================================================

class TestAnalysisState:

    def test_progress_tracked_as_percent(self):
        trainer = SegmentTrainer(SegmentConfig(), clock=lambda: 0.0)
        trainer.begin_analysis()
        trainer.set_analysis_progress(0.42)
        assert trainer.state.is_analyzing
        assert trainer.state.analysis_progress == pytest.approx(42.0)

    def test_finish_stores_segments(self):
        trainer = _ready_trainer()
        state = trainer.state
        assert not state.is_analyzing
        assert state.analysis_progress == 100.0
        assert len(state.segments) == 2
        assert trainer.status == SegmentStatus.IDLE

    def test_cannot_start_while_analyzing(self):
        trainer = SegmentTrainer(SegmentConfig(), clock=lambda: 0.0)
        trainer.begin_analysis()
        with pytest.raises(SegmentStateError):
            trainer.start()

    def test_cannot_start_without_segments(self):
        trainer = SegmentTrainer(SegmentConfig(), clock=lambda: 0.0)
        trainer.begin_analysis()
        trainer.finish_analysis([])
        with pytest.raises(SegmentStateError, match="No segments"):
            trainer.start()

    def test_finish_without_begin(self):
        with pytest.raises(SegmentStateError):
            SegmentTrainer(SegmentConfig()).finish_analysis(_segments())


# ============================================================================
# Test: Transitions
# ============================================================================

class TestTransitions:

    def test_start_returns_first_segment_start(self):
        trainer = _ready_trainer()
        assert trainer.start() == 0.0
        assert trainer.status == SegmentStatus.PLAYING
        assert trainer.state.is_active

    def test_waits_just_before_segment_end(self):
        trainer = _ready_trainer()
        trainer.start()
        assert not trainer.on_video_time(4.0)
        assert trainer.status == SegmentStatus.PLAYING
        assert trainer.on_video_time(4.95)
        assert trainer.status == SegmentStatus.WAITING

    def test_check_match_ignored_unless_waiting(self):
        trainer = _ready_trainer()
        trainer.start()
        assert trainer.check_match(STANDING, now=1.0) is None

    def test_hold_until_matched(self):
        trainer = _waiting_trainer()
        trainer.check_match(STANDING, now=10.0)
        assert trainer.status == SegmentStatus.WAITING
        assert trainer.state.hold_progress == 0.0

        trainer.check_match(STANDING, now=11.0)
        assert trainer.state.hold_progress == pytest.approx(100.0 / 1.5)
        assert trainer.state.match_accuracy == pytest.approx(100.0)

        trainer.check_match(STANDING, now=11.5)
        assert trainer.status == SegmentStatus.MATCHED
        assert trainer.state.hold_progress == 100.0
        assert trainer.state.segments[0].matched
        assert not trainer.state.segments[1].matched

    def test_miss_resets_hold(self):
        trainer = _waiting_trainer()
        trainer.check_match(STANDING, now=10.0)
        trainer.check_match(STANDING, now=11.2)
        result = trainer.check_match(SQUAT, now=11.3)
        assert not result.matched
        assert trainer.state.hold_progress == 0.0

        trainer.check_match(STANDING, now=11.4)
        trainer.check_match(STANDING, now=12.5)
        assert trainer.status == SegmentStatus.WAITING
        trainer.check_match(STANDING, now=13.0)
        assert trainer.status == SegmentStatus.MATCHED

    def test_reset_hold_restarts_timer(self):
        trainer = _waiting_trainer()
        trainer.check_match(STANDING, now=10.0)
        trainer.check_match(STANDING, now=11.0)
        trainer.reset_hold()
        assert trainer.state.hold_progress == 0.0
        assert trainer.state.match_accuracy == 0.0

        trainer.check_match(STANDING, now=11.6)
        assert trainer.status == SegmentStatus.WAITING
        assert trainer.state.hold_progress == 0.0

    def test_reset_hold_ignored_unless_waiting(self):
        trainer = _ready_trainer()
        trainer.reset_hold()
        assert trainer.status == SegmentStatus.IDLE
        trainer.start()
        trainer.reset_hold()
        assert trainer.status == SegmentStatus.PLAYING

    def test_advance_then_complete(self):
        trainer = _waiting_trainer()
        trainer.check_match(STANDING, now=0.0)
        trainer.check_match(STANDING, now=2.0)

        assert trainer.advance() == 5.0
        assert trainer.status == SegmentStatus.PLAYING
        assert trainer.state.current_segment_index == 1
        assert trainer.state.hold_progress == 0.0

        assert trainer.on_video_time(9.95)
        trainer.check_match(SQUAT, now=20.0)
        trainer.check_match(SQUAT, now=21.5)
        assert trainer.status == SegmentStatus.MATCHED

        assert trainer.advance() is None
        assert trainer.status == SegmentStatus.COMPLETED
        assert all(s.matched for s in trainer.state.segments)

    def test_hold_uses_injected_clock(self):
        now = [0.0]
        trainer = SegmentTrainer(SegmentConfig(hold_duration=1.0), clock=lambda: now[0])
        trainer.begin_analysis()
        trainer.finish_analysis(_segments())
        trainer.start()
        trainer.on_video_time(5.0)
        trainer.check_match(STANDING)
        now[0] = 1.0
        trainer.check_match(STANDING)
        assert trainer.status == SegmentStatus.MATCHED

    def test_exit_resets(self):
        trainer = _waiting_trainer()
        trainer.exit()
        assert trainer.status == SegmentStatus.IDLE
        assert not trainer.state.is_active
        assert trainer.state.segments == []


# ============================================================================
# Test: Illegal transitions
# ============================================================================

class TestIllegalTransitions:

    def test_advance_while_playing(self):
        trainer = _ready_trainer()
        trainer.start()
        with pytest.raises(SegmentStateError):
            trainer.advance()

    def test_start_twice(self):
        trainer = _ready_trainer()
        trainer.start()
        with pytest.raises(SegmentStateError):
            trainer.start()

    def test_begin_analysis_twice(self):
        trainer = SegmentTrainer(SegmentConfig())
        trainer.begin_analysis()
        with pytest.raises(SegmentStateError):
            trainer.begin_analysis()

    def test_status_without_segments_is_invalid(self):
        with pytest.raises(ValidationError):
            SegmentTrainingState(is_active=True, segment_status=SegmentStatus.WAITING)

    def test_index_out_of_range_is_invalid(self):
        with pytest.raises(ValidationError):
            SegmentTrainingState(
                is_active=True,
                segments=_segments(),
                current_segment_index=2,
                segment_status=SegmentStatus.PLAYING,
            )

    def test_active_while_analyzing_is_invalid(self):
        with pytest.raises(ValidationError):
            SegmentTrainingState(is_active=True, is_analyzing=True)
