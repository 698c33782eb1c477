"""
Command-line entry point for the pose coach.

Commands:
    analyze   Segment a reference exercise video into target poses.
    train     Live coaching from the webcam against a reference video.

Run:
    cd <project_root>
    python -m src.coaching.main analyze --video trainer.mp4 --out segments.json
    python -m src.coaching.main train --video trainer.mp4 --camera 0 --segments
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Iterator, Optional

import cv2
import numpy as np
from tqdm import tqdm

# Ensure project root is on sys.path so ``src.*`` imports work when run as a script.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from src.coaching.session import REFERENCE_OFFSET, CycleResult, TrainingSession
from src.pose.config import CAMERA_INDEX
from src.pose.estimator import MediaPipePoseEstimator
from src.segments.analyzer import SegmentAnalyzer
from src.segments.config import load_segment_config
from src.segments.state import PoseSegment
from src.segments.trainer import SegmentTrainer
from src.segments.video import OpenCVVideoSource
from src.utils.io_utils import setup_logging
from src.voice.config import VOICE_ENABLED
from src.voice.scheduler import VoiceFeedbackScheduler
from src.voice.speech import LoggingSpeech, Pyttsx3Speech

logger = logging.getLogger("pose_coach")


# ============================================================================
# Helpers
# ============================================================================

async def _analyze_with_progress(
    analyzer: SegmentAnalyzer,
    source: OpenCVVideoSource,
    trainer: Optional[SegmentTrainer] = None,
) -> list[PoseSegment]:
    with tqdm(total=100, desc="Analyzing segments", unit="%") as pbar:
        def on_progress(fraction: float) -> None:
            pbar.update(max(0, int(round(fraction * 100)) - pbar.n))
            if trainer is not None:
                trainer.set_analysis_progress(fraction)

        return await analyzer.analyze(source, on_progress=on_progress)


def _camera_frames(
    cap: cv2.VideoCapture,
    reference: Optional[OpenCVVideoSource],
    trainer: Optional[SegmentTrainer],
    max_frames: Optional[int],
) -> Iterator[Optional[np.ndarray]]:
    count = 0
    while max_frames is None or count < max_frames:
        ret, frame = cap.read()
        if reference is not None and trainer is not None and trainer.state.is_active:
            reference.read()
            if trainer.on_video_time(reference.current_time):
                reference.pause()
        count += 1
        yield frame if ret else None
        if not cap.isOpened():
            break


def _segment_change_handler(reference: OpenCVVideoSource) -> Callable[[Optional[float]], None]:
    """Seek the reference to the next segment, or pause it once all are matched."""

    def on_segment_change(next_start: Optional[float]) -> None:
        if next_start is None:
            reference.pause()
            logger.info("🎉 All segments completed!")
            return
        asyncio.run(reference.seek(next_start))
        reference.play()

    return on_segment_change


def _log_update(result: CycleResult) -> None:
    improvements = "; ".join(f"[{i.status}] {i.text}" for i in result.improvements) or "all good"
    logger.info(
        "score=%3.0f%% overall=%3.0f%% angles=%s | %s",
        result.headline_accuracy,
        result.overall_accuracy,
        {k: int(v) for k, v in result.angles.items()},
        improvements,
    )


# ============================================================================
# Commands
# ============================================================================

def cmd_analyze(args: argparse.Namespace) -> int:
    config = load_segment_config(**({"sample_interval": args.sample_interval} if args.sample_interval else {}))
    with MediaPipePoseEstimator.create(args.model) as estimator, OpenCVVideoSource(args.video) as source:
        segments = asyncio.run(_analyze_with_progress(SegmentAnalyzer(estimator, config), source))

    payload = [seg.model_dump(mode="json") for seg in segments]
    with open(args.out, "w") as f:
        json.dump(payload, f, indent=2)

    print(f"\n✅ Found {len(segments)} segments → {args.out}")
    for seg in segments:
        print(f"  #{seg.id + 1}  {seg.start_time:6.1f}s – {seg.end_time:6.1f}s  {seg.description}")
    return 0


def cmd_train(args: argparse.Namespace) -> int:
    cap = cv2.VideoCapture(args.camera)
    if not cap.isOpened():
        logger.error("Camera %s not available.", args.camera)
        return 1

    use_voice = args.voice if args.voice is not None else VOICE_ENABLED
    speech = Pyttsx3Speech() if use_voice else LoggingSpeech()
    voice = VoiceFeedbackScheduler(speech)

    reference: Optional[OpenCVVideoSource] = None
    trainer: Optional[SegmentTrainer] = None

    try:
        with MediaPipePoseEstimator.create(args.model) as estimator:
            session = TrainingSession(estimator, voice=voice, on_update=_log_update)

            if args.video:
                reference = OpenCVVideoSource(args.video)
                analyzer = SegmentAnalyzer(estimator)
                extracted = asyncio.run(analyzer.extract_reference_pose(reference, REFERENCE_OFFSET))
                if extracted is not None:
                    pose, angles = extracted
                    session.set_reference(angles, pose)
                else:
                    logger.warning("No trainer pose found; using default posture.")

                if args.segments:
                    trainer = SegmentTrainer(analyzer.config)
                    trainer.begin_analysis()
                    trainer.finish_analysis(asyncio.run(_analyze_with_progress(analyzer, reference, trainer)))
                    if trainer.state.segments:
                        session.segment_trainer = trainer
                        session.on_segment_change = _segment_change_handler(reference)
                        asyncio.run(reference.seek(trainer.start()))
                        reference.play()

            voice.set_enabled(True)
            session.run(_camera_frames(cap, reference, trainer, args.max_frames))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        voice.cleanup()
        if isinstance(speech, Pyttsx3Speech):
            speech.close()
        if reference is not None:
            reference.release()
        cap.release()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        description="Real-time pose comparison and coaching feedback",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Segment a reference video:
  python -m src.coaching.main analyze --video trainer.mp4 --out segments.json

  # Live coaching against the trainer video, with segment mode:
  python -m src.coaching.main train --video trainer.mp4 --camera 0 --segments
""",
    )
    ap.add_argument("--model", default=None, help="Path to pose_landmarker .task file (default: POSE_MODEL_PATH).")
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging.")
    sub = ap.add_subparsers(dest="command", required=True)

    ap_analyze = sub.add_parser("analyze", help="Segment a reference video into target poses.")
    ap_analyze.add_argument("--video", required=True, help="Reference exercise video.")
    ap_analyze.add_argument("--out", default="segments.json", help="Output JSON path.")
    ap_analyze.add_argument("--sample_interval", type=float, default=None, help="Seconds between samples.")
    ap_analyze.set_defaults(func=cmd_analyze)

    ap_train = sub.add_parser("train", help="Live coaching from the webcam.")
    ap_train.add_argument("--video", default=None, help="Reference exercise video (default posture if omitted).")
    ap_train.add_argument("--camera", type=int, default=CAMERA_INDEX, help="Webcam index (default: CAMERA_INDEX).")
    ap_train.add_argument("--segments", action="store_true", help="Enable segmented training.")
    ap_train.add_argument("--voice", dest="voice", action="store_true", default=None, help="Speak corrections.")
    ap_train.add_argument("--no-voice", dest="voice", action="store_false", help="Log corrections only.")
    ap_train.add_argument("--max_frames", type=int, default=None, help="Stop after N frames (debug).")
    ap_train.set_defaults(func=cmd_train)

    args = ap.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
