"""Synthetic debug skeleton: joint markers and unit bones driven by the solver."""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from rigpose.core import BONE_PAIRS
from rigpose.core.math3d import quat_identity
from rigpose.pose.joint_state import JointStateStore
from .rotation_solver import RotationSolver


@dataclass
class JointMarker:
    index: int
    position: np.ndarray
    visible: bool


@dataclass
class BoneTransform:
    """Centered unit-height bone box: midpoint position, scale (1, length, 1)."""
    start: int
    end: int
    position: np.ndarray
    quaternion: np.ndarray
    scale: np.ndarray
    visible: bool


class SyntheticSkeleton:
    """Joint spheres plus one bone per joint pair."""

    def __init__(self, solver: RotationSolver, bone_pairs: Optional[Sequence[Tuple[int, int]]] = None):
        self.solver = solver
        self.bone_pairs = list(BONE_PAIRS if bone_pairs is None else bone_pairs)

    def joint_markers(self, joints: JointStateStore, overlay: bool = True) -> List[JointMarker]:
        return [
            JointMarker(joint.index, joint.position, overlay and joint.visible)
            for joint in joints
        ]

    def bone(self, start: int, end: int, joints: JointStateStore, overlay: bool = True) -> BoneTransform:
        hidden = BoneTransform(
            start=start,
            end=end,
            position=np.zeros(3),
            quaternion=quat_identity(),
            scale=np.ones(3),
            visible=False,
        )
        delta = joints.delta(start, end)
        if delta is None:
            return hidden

        length = float(np.linalg.norm(delta))
        if length == 0.0:
            return hidden

        direction = delta / length
        return BoneTransform(
            start=start,
            end=end,
            position=joints.position(start) + delta * 0.5,
            quaternion=self.solver.solve(start, end, direction, joints),
            scale=np.array([1.0, length, 1.0]),
            visible=overlay,
        )

    def bones(self, joints: JointStateStore, overlay: bool = True) -> List[BoneTransform]:
        return [self.bone(start, end, joints, overlay) for start, end in self.bone_pairs]
