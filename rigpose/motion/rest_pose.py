"""Rest-pose controller: switch between live retargeting and the authored rest pose."""

from enum import Enum, auto
from typing import Callable, List, Optional

from rigpose.core import get_logger, Calibration, TransformSnapshot
from rigpose.pose.joint_state import JointStateStore


class PoseMode(Enum):
    TRACKING = auto()
    RESTING = auto()


class RestPoseController:
    """
    Two-state machine around the calibration offsets.

    Entering rest saves the position/rotation offsets, applies the startup
    defaults and hides every joint. Leaving rest restores the saved offsets.
    Listeners registered with on_enter_rest run right after the transition
    so the owner can force segments to rest in the same frame.
    """

    def __init__(self, calibration: Calibration, defaults: Calibration, joints: JointStateStore):
        self.logger = get_logger("motion.rest")
        self.calibration = calibration
        self.defaults = defaults.copy()
        self.joints = joints
        self._mode = PoseMode.TRACKING
        self._saved: Optional[TransformSnapshot] = None
        self._enter_listeners: List[Callable[[], None]] = []

    @property
    def mode(self) -> PoseMode:
        return self._mode

    @property
    def is_resting(self) -> bool:
        return self._mode == PoseMode.RESTING

    @property
    def has_snapshot(self) -> bool:
        return self._saved is not None

    def on_enter_rest(self, callback: Callable[[], None]) -> None:
        self._enter_listeners.append(callback)

    def save_calibration(self) -> None:
        self._saved = TransformSnapshot.capture(self.calibration)

    def apply_defaults(self) -> None:
        TransformSnapshot.capture(self.defaults).apply_to(self.calibration)

    def restore_calibration(self) -> bool:
        """Restore and drop the saved offsets. No-op without a snapshot."""
        if self._saved is None:
            return False
        self._saved.apply_to(self.calibration)
        self._saved = None
        return True

    def enter_rest(self) -> bool:
        if self.is_resting:
            return False
        self.save_calibration()
        self.apply_defaults()
        self.joints.clear_visibility()
        self._mode = PoseMode.RESTING
        self.logger.info("Pose tracking paused (rest pose)")
        for callback in self._enter_listeners:
            callback()
        return True

    def leave_rest(self) -> bool:
        if not self.is_resting:
            return False
        self.restore_calibration()
        self._mode = PoseMode.TRACKING
        self.logger.info("Tracking pose")
        return True

    def set_resting(self, resting: bool) -> bool:
        """Rest-pose toggle. Returns True if the mode changed."""
        return self.enter_rest() if resting else self.leave_rest()
