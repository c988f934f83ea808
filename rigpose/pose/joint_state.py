"""Per-joint smoothed position and visibility for the 33 landmark slots."""

from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from rigpose.core import JOINT_COUNT, is_valid_index


@dataclass
class Joint:
    """Read-only view of one joint slot."""
    index: int
    position: np.ndarray
    visible: bool


class JointStateStore:
    """
    Fixed array of joint slots.

    Positions are kept even while a joint is invisible; downstream stages
    must check visibility before reading them.
    """

    def __init__(self, count: int = JOINT_COUNT):
        self._positions = np.zeros((count, 3), dtype=np.float64)
        self._visible = np.zeros(count, dtype=bool)

    def __len__(self) -> int:
        return len(self._visible)

    def __iter__(self) -> Iterator[Joint]:
        for i in range(len(self)):
            yield self.joint(i)

    def joint(self, index: int) -> Joint:
        return Joint(index=index, position=self.position(index), visible=self.is_visible(index))

    def position(self, index: int) -> np.ndarray:
        """Copy of the stored position."""
        return self._positions[index].copy()

    def is_visible(self, index: int) -> bool:
        if not is_valid_index(index) or index >= len(self):
            return False
        return bool(self._visible[index])

    def set_position(self, index: int, position) -> None:
        self._positions[index] = position

    def blend_towards(self, index: int, target, alpha: float) -> None:
        """Move the stored position a fraction alpha of the way to target."""
        current = self._positions[index]
        current += (np.asarray(target, dtype=np.float64) - current) * alpha

    def set_visible(self, index: int, visible: bool) -> None:
        self._visible[index] = visible

    def clear_visibility(self) -> None:
        self._visible[:] = False

    def any_visible(self) -> bool:
        return bool(self._visible.any())

    def pair_visible(self, start: int, end: int) -> bool:
        """True when both endpoints of a bone or segment are visible."""
        return self.is_visible(start) and self.is_visible(end)

    def delta(self, start: int, end: int) -> Optional[np.ndarray]:
        """Vector from start to end joint, or None if either is hidden."""
        if not self.pair_visible(start, end):
            return None
        return self._positions[end] - self._positions[start]
