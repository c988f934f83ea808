"""Video capture module - webcam and file input with timestamps"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from rigpose.core import get_logger, Config


DEFAULT_FPS = 30.0


@dataclass
class FrameResult:
    """One RGB frame and where it sits on the capture timeline."""
    frame: np.ndarray
    frame_number: int
    timestamp: float  # seconds since open()

    @property
    def timestamp_ms(self) -> int:
        return int(round(self.timestamp * 1000.0))

    @property
    def height(self) -> int:
        return self.frame.shape[0]

    @property
    def width(self) -> int:
        return self.frame.shape[1]


@dataclass(frozen=True)
class CaptureSource:
    """A resolved video input: a camera index or a file path."""
    target: Union[int, str]
    is_webcam: bool

    @property
    def label(self) -> str:
        return f"webcam:{self.target}" if self.is_webcam else str(self.target)


def resolve_source(value: Optional[Union[str, int]], config: Config) -> CaptureSource:
    """
    Turn a CLI/config source value into a CaptureSource.

    Accepts "webcam" (uses video.camera_id), a camera index as int or digit
    string, or a file path. None falls back to video.source.
    """
    if value is None:
        value = config.get("video.source", "webcam")
    if isinstance(value, str) and value.isdigit():
        value = int(value)
    if isinstance(value, int):
        return CaptureSource(value, True)
    if value == "webcam":
        return CaptureSource(int(config.get("video.camera_id", 0)), True)
    return CaptureSource(str(value), False)


class VideoCapture:
    """
    Pull-style frame source for the engine loop.

    Webcam frames are stamped with wall-clock time; file frames with media
    time (frame number / fps) so replays tick at a steady rate however fast
    they are decoded. close() may be called any number of times.
    """

    def __init__(self, config: Optional[Config] = None):
        self.logger = get_logger("video.capture")
        self.config = config or Config()

        self._cap: Optional[cv2.VideoCapture] = None
        self._source: Optional[CaptureSource] = None
        self._fps = DEFAULT_FPS
        self._total_frames = 0
        self._frame_count = 0
        self._opened_at = 0.0

    def open(self, source: Optional[Union[str, int]] = None) -> bool:
        """
        Open a webcam or video file, closing any previous input first.

        Returns:
            True if the device or file is ready to read
        """
        self.close()
        resolved = resolve_source(source, self.config)

        if not resolved.is_webcam and not Path(resolved.target).exists():
            self.logger.error(f"Video file not found: {resolved.target}")
            return False

        cap = cv2.VideoCapture(resolved.target)
        if not cap.isOpened():
            self.logger.error(f"Failed to open video source: {resolved.label}")
            cap.release()
            return False

        if resolved.is_webcam:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.get("video.width", 1280))
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.get("video.height", 720))
            self._total_frames = 0
        else:
            self._total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))

        self._cap = cap
        self._source = resolved
        self._fps = cap.get(cv2.CAP_PROP_FPS) or DEFAULT_FPS
        self._frame_count = 0
        self._opened_at = time.perf_counter()

        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.logger.info(f"Opened {resolved.label} ({width}x{height} @ {self._fps:.1f} FPS)")
        return True

    def close(self) -> None:
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        self.logger.info(f"Closed {self._source.label}")
        self._source = None

    def read(self) -> Optional[FrameResult]:
        """Next RGB frame, or None when the file ends or the device fails."""
        if not self.is_open:
            return None

        ok, bgr = self._cap.read()
        if not ok or bgr is None:
            if not self._source.is_webcam:
                self.logger.info("End of video file")
            return None

        if self._source.is_webcam:
            timestamp = time.perf_counter() - self._opened_at
        else:
            timestamp = self._frame_count / self._fps

        result = FrameResult(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB), self._frame_count, timestamp)
        self._frame_count += 1
        return result

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    @property
    def source(self) -> Optional[CaptureSource]:
        return self._source

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def total_frames(self) -> int:
        return self._total_frames

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
