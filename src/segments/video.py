"""
Seekable reference-video sources.

The analyzer only needs the ``VideoSource`` protocol: playback time,
duration, pause/play, an awaitable ``seek`` that completes once the frame
at the new position is ready, and access to that frame.
"""

import asyncio
import logging
from typing import Optional, Protocol

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class VideoSource(Protocol):
    @property
    def duration(self) -> float:
        ...

    @property
    def current_time(self) -> float:
        ...

    @property
    def paused(self) -> bool:
        ...

    def pause(self) -> None:
        ...

    def play(self) -> None:
        ...

    async def seek(self, time: float) -> None:
        """Move to ``time`` seconds; returns once the seek has settled."""
        ...

    def current_frame(self) -> Optional[np.ndarray]:
        ...


class OpenCVVideoSource:
    """Video file opened with ``cv2.VideoCapture``.

    Seeks are decoded in a worker thread so the event loop stays
    responsive during long analysis passes.
    """

    def __init__(self, video_path: str):
        self.video_path = video_path
        self._cap = cv2.VideoCapture(video_path)
        if not self._cap.isOpened():
            raise FileNotFoundError(f"Could not open video: {video_path}")

        fps = self._cap.get(cv2.CAP_PROP_FPS)
        frame_count = self._cap.get(cv2.CAP_PROP_FRAME_COUNT)
        self.fps: float = float(fps) if fps and fps > 0 else 30.0
        self._duration = float(frame_count) / self.fps if frame_count and frame_count > 0 else 0.0
        self._current_time = 0.0
        self._paused = True
        self._frame: Optional[np.ndarray] = None

        logger.info(
            "Opened %s: %.1fs @ %.1f fps (%d frames)",
            video_path, self._duration, self.fps, int(frame_count or 0),
        )

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def current_time(self) -> float:
        return self._current_time

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def play(self) -> None:
        self._paused = False

    def _seek_and_decode(self, time: float) -> Optional[np.ndarray]:
        self._cap.set(cv2.CAP_PROP_POS_MSEC, max(0.0, time) * 1000.0)
        ret, frame = self._cap.read()
        return frame if ret else None

    async def seek(self, time: float) -> None:
        time = min(max(0.0, time), self._duration)
        self._frame = await asyncio.to_thread(self._seek_and_decode, time)
        self._current_time = time

    def current_frame(self) -> Optional[np.ndarray]:
        return self._frame

    def read(self) -> Optional[np.ndarray]:
        """Advance one frame while playing; returns the current frame when paused."""
        if self._paused:
            return self._frame
        ret, frame = self._cap.read()
        if not ret:
            self._paused = True
            return self._frame
        self._frame = frame
        self._current_time = float(self._cap.get(cv2.CAP_PROP_POS_MSEC)) / 1000.0
        return frame

    def release(self) -> None:
        self._cap.release()

    def __enter__(self) -> "OpenCVVideoSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
