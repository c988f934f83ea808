"""Rig-level calibration transform applied to the whole rig container."""

from dataclasses import dataclass

import numpy as np

from rigpose.core import Calibration
from rigpose.core.math3d import (
    UP_AXIS,
    X_AXIS,
    Z_AXIS,
    quat_from_axis_angle,
    quat_multiply,
    quat_rotate_vector,
)


@dataclass
class RigTransform:
    position: np.ndarray
    quaternion: np.ndarray


def euler_yxz_quaternion(rotation_x: float, rotation_y: float, rotation_z: float) -> np.ndarray:
    """qY * qX * qZ for angles in degrees."""
    qy = quat_from_axis_angle(UP_AXIS, np.radians(rotation_y))
    qx = quat_from_axis_angle(X_AXIS, np.radians(rotation_x))
    qz = quat_from_axis_angle(Z_AXIS, np.radians(rotation_z))
    return quat_multiply(quat_multiply(qy, qx), qz)


class RigTransformCompositor:
    """Turns calibration offsets into the rig container transform."""

    def compose(self, calibration: Calibration) -> RigTransform:
        return RigTransform(
            position=calibration.position,
            quaternion=euler_yxz_quaternion(*calibration.rotation_degrees),
        )

    @staticmethod
    def to_world(rig: RigTransform, local_position: np.ndarray) -> np.ndarray:
        """Rig-local point to world space."""
        return quat_rotate_vector(rig.quaternion, local_position) + rig.position
