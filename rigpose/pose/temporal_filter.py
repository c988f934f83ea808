"""
Temporal smoothing of normalized joint positions.

Each joint is an exponential low-pass filter with blend factor
alpha = 1 - smoothing. A joint that was hidden on the previous frame snaps
to its first new observation instead of sliding in from a stale position.
"""

from typing import Optional, Sequence

from rigpose.core import get_logger, clamp
from rigpose.core.calibration import SMOOTHING_MAX, SMOOTHING_MIN
from .joint_state import JointStateStore
from .landmark_source import LandmarkSample
from .normalizer import LandmarkNormalizer


def blend_factor(smoothing: float) -> float:
    """Alpha for a smoothing value, after clamping to the supported range."""
    return 1.0 - clamp(smoothing, SMOOTHING_MIN, SMOOTHING_MAX)


class PoseSmoother:
    """Applies one detector frame to the joint store."""

    def __init__(self, joints: JointStateStore, normalizer: LandmarkNormalizer):
        self.logger = get_logger("pose.filter")
        self.joints = joints
        self.normalizer = normalizer

    def update_joint(self, index: int, target, alpha: float) -> None:
        """
        Filter one joint towards a rig-space target.

        Snap when the joint was hidden or alpha >= 1, hold when alpha <= 0,
        otherwise blend.
        """
        was_visible = self.joints.is_visible(index)
        self.joints.set_visible(index, True)

        if not was_visible or alpha >= 1.0:
            self.joints.set_position(index, target)
        elif alpha <= 0.0:
            return
        else:
            self.joints.blend_towards(index, target, alpha)

    def apply_frame(
        self,
        samples: Sequence[Optional[LandmarkSample]],
        smoothing: float,
    ) -> int:
        """
        Consume one frame of landmark samples.

        Args:
            samples: One entry per joint slot, None for absent landmarks.
                Slots past the end of the sequence are treated as absent.
            smoothing: Calibration smoothing factor (clamped to [0, 0.95])

        Returns:
            Number of joints visible after the update
        """
        alpha = blend_factor(smoothing)
        visible = 0

        for index in range(len(self.joints)):
            sample = samples[index] if index < len(samples) else None
            if sample is None:
                self.joints.set_visible(index, False)
                continue
            target = self.normalizer.normalize_sample(sample)
            self.update_joint(index, target, alpha)
            visible += 1

        if len(samples) != len(self.joints):
            self.logger.debug(
                f"Frame carried {len(samples)} samples, expected {len(self.joints)}"
            )
        return visible

    def clear(self) -> None:
        """No pose this frame: every joint becomes hidden, positions stay."""
        self.joints.clear_visibility()
