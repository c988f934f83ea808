"""Frame timing for the cooperative tick loop"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional


@dataclass
class FrameData:
    """Timing information handed to one tick."""
    frame_number: int
    timestamp: float  # Seconds since the clock started
    timestamp_ms: int  # Detector timestamp, strictly increasing


class FrameTimer:
    """
    Measures how long each tick takes against a fixed budget.

    The engine logs ticks that exceed the budget; the count is kept here so
    a run summary can report it.
    """

    def __init__(self, budget: float = 1.0 / 30.0, window_size: int = 60):
        self.budget = budget
        self.over_budget_count = 0
        self._samples: Deque[float] = deque(maxlen=window_size)
        self._started_at: Optional[float] = None

    def start(self) -> None:
        self._started_at = time.perf_counter()

    def stop(self) -> float:
        """End the current measurement; 0.0 if start() was not called."""
        if self._started_at is None:
            return 0.0
        elapsed = time.perf_counter() - self._started_at
        self._started_at = None
        self._samples.append(elapsed)
        if elapsed > self.budget:
            self.over_budget_count += 1
        return elapsed

    @property
    def average_frame_time(self) -> float:
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)


def next_timestamp_ms(elapsed: float, previous_ms: int) -> int:
    """Millisecond stamp for elapsed seconds, bumped past previous_ms if needed."""
    return max(int(elapsed * 1000), previous_ms + 1)


@dataclass
class FrameClock:
    """
    Paces the tick loop and hands out monotonically increasing timestamps.

    Frames are scheduled at start + n / target_fps, so a slow tick shortens
    the next wait instead of shifting every later frame. The detector treats
    repeated timestamps as "no new frame", so tick() never returns the same
    millisecond twice.
    """
    target_fps: float = 30.0
    _frame_count: int = field(default=0, init=False)
    _start_time: float = field(default=0.0, init=False)
    _last_timestamp_ms: int = field(default=-1, init=False)
    _base_ms: int = field(default=0, init=False)

    def start(self) -> None:
        """Begin a run. Timestamps carry on from the previous run, never restart."""
        self._start_time = time.perf_counter()
        self._frame_count = 0
        self._base_ms = self._last_timestamp_ms + 1

    def tick(self) -> FrameData:
        elapsed = time.perf_counter() - self._start_time
        timestamp_ms = self._base_ms + next_timestamp_ms(elapsed, self._last_timestamp_ms - self._base_ms)
        self._last_timestamp_ms = timestamp_ms

        frame = FrameData(
            frame_number=self._frame_count,
            timestamp=timestamp_ms / 1000.0,
            timestamp_ms=timestamp_ms,
        )
        self._frame_count += 1
        return frame

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def target_frame_duration(self) -> float:
        return 1.0 / self.target_fps

    def wait_for_next_frame(self) -> float:
        """
        Sleep until the next scheduled frame.

        Returns:
            Time actually slept in seconds (0.0 when running late)
        """
        due = self._start_time + self._frame_count * self.target_frame_duration
        wait = due - time.perf_counter()
        if wait <= 0:
            return 0.0
        time.sleep(wait)
        return wait
