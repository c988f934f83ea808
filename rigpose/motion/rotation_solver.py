"""
Bone orientation solving.

A bone is a directed segment between two joints. Its orientation always
maps the canonical up axis (0, 1, 0) onto the bone direction; the
strategies differ only in how the twist around that direction is chosen:

- unconstrained: shortest-arc rotation, twist left to the arc
- pole: twist fixed by a live third joint (elbow/knee bend plane)
- anatomical: twist fixed by an authored per-bone reference direction

Constrained strategies fall back to unconstrained whenever their reference
is unavailable or parallel to the bone.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from rigpose.core import get_logger, Landmark, is_valid_index
from rigpose.core.math3d import (
    UP_AXIS,
    basis_matrix,
    normalize,
    quat_from_two_vectors,
    rotation_matrix_to_quaternion,
)

# Squared length below which a projected reference vector is unusable
MIN_REFERENCE_LENGTH_SQ = 1e-6

BonePair = Tuple[int, int]


class RotationStrategy(str, Enum):
    UNCONSTRAINED = "unconstrained"
    POLE = "pole"
    ANATOMICAL = "anatomical"


@dataclass(frozen=True)
class BoneRotationConfig:
    """Twist reference for one ordered joint pair."""
    pole: int
    anatomical: Tuple[float, float, float]

    @property
    def anatomical_vector(self) -> np.ndarray:
        return np.array(self.anatomical, dtype=np.float64)


FORWARD = (0.0, 0.0, 1.0)
BACKWARD = (0.0, 0.0, -1.0)

BONE_ROTATION_CONFIG: Dict[BonePair, BoneRotationConfig] = {
    # Arms bend forward; the next joint down the chain is the pole
    (Landmark.LEFT_SHOULDER, Landmark.LEFT_ELBOW): BoneRotationConfig(Landmark.LEFT_WRIST, FORWARD),
    (Landmark.LEFT_ELBOW, Landmark.LEFT_WRIST): BoneRotationConfig(Landmark.LEFT_INDEX, FORWARD),
    (Landmark.RIGHT_SHOULDER, Landmark.RIGHT_ELBOW): BoneRotationConfig(Landmark.RIGHT_WRIST, FORWARD),
    (Landmark.RIGHT_ELBOW, Landmark.RIGHT_WRIST): BoneRotationConfig(Landmark.RIGHT_INDEX, FORWARD),
    # Legs
    (Landmark.LEFT_HIP, Landmark.LEFT_KNEE): BoneRotationConfig(Landmark.LEFT_ANKLE, BACKWARD),
    (Landmark.LEFT_KNEE, Landmark.LEFT_ANKLE): BoneRotationConfig(Landmark.LEFT_HEEL, BACKWARD),
    (Landmark.RIGHT_HIP, Landmark.RIGHT_KNEE): BoneRotationConfig(Landmark.RIGHT_ANKLE, BACKWARD),
    (Landmark.RIGHT_KNEE, Landmark.RIGHT_ANKLE): BoneRotationConfig(Landmark.RIGHT_HEEL, BACKWARD),
    # Torso sides use the opposite shoulder
    (Landmark.LEFT_SHOULDER, Landmark.LEFT_HIP): BoneRotationConfig(Landmark.RIGHT_SHOULDER, BACKWARD),
    (Landmark.RIGHT_SHOULDER, Landmark.RIGHT_HIP): BoneRotationConfig(Landmark.LEFT_SHOULDER, BACKWARD),
}


def parse_pair_key(key) -> BonePair:
    """Accept "11-13", [11, 13] or (11, 13)."""
    if isinstance(key, str):
        start, _, end = key.partition("-")
        return int(start), int(end)
    start, end = key
    return int(start), int(end)


def load_rotation_config(section: Optional[dict]) -> Dict[BonePair, BoneRotationConfig]:
    """
    Built-in table with overrides from the `rotation.bones` config section.

    Example:
        rotation:
          bones:
            "11-13": {pole: 15, anatomical: [0, 0, 1]}
    """
    table = dict(BONE_ROTATION_CONFIG)
    bones = (section or {}).get("bones") or {}
    for key, entry in bones.items():
        pair = parse_pair_key(key)
        current = table.get(pair)
        pole = int(entry.get("pole", current.pole if current else pair[1]))
        anatomical = entry.get("anatomical", current.anatomical if current else FORWARD)
        if not is_valid_index(pole):
            raise ValueError(f"Pole joint {pole} for bone {key} is out of range")
        if len(anatomical) != 3:
            raise ValueError(f"Anatomical vector for bone {key} needs 3 components")
        table[pair] = BoneRotationConfig(pole, tuple(float(v) for v in anatomical))
    return table


def constrained_basis(direction: np.ndarray, reference: np.ndarray) -> Optional[np.ndarray]:
    """
    Orthonormal frame with Y along the bone and twist set by reference.

    Columns are {right, direction, forward} with right = d x ref and
    forward = right x d. Returns None if the reference has no usable
    component perpendicular to the bone.
    """
    perpendicular = reference - direction * float(np.dot(reference, direction))
    if float(np.dot(perpendicular, perpendicular)) < MIN_REFERENCE_LENGTH_SQ:
        return None
    perpendicular = normalize(perpendicular)

    right = normalize(np.cross(direction, perpendicular))
    forward = normalize(np.cross(right, direction))
    return basis_matrix(right, direction, forward)


class RotationSolver:
    """Solves bone orientations under a single global strategy."""

    def __init__(
        self,
        strategy: RotationStrategy = RotationStrategy.UNCONSTRAINED,
        bone_config: Optional[Dict[BonePair, BoneRotationConfig]] = None,
    ):
        self.logger = get_logger("motion.solver")
        self._strategy = RotationStrategy(strategy)
        self.bone_config = dict(BONE_ROTATION_CONFIG if bone_config is None else bone_config)

    @property
    def strategy(self) -> RotationStrategy:
        return self._strategy

    @strategy.setter
    def strategy(self, value) -> None:
        value = RotationStrategy(value)
        if value != self._strategy:
            self.logger.info(f"Bone rotation strategy changed to: {value.value}")
        self._strategy = value

    def reference_vector(self, start: int, end: int, joints) -> Optional[np.ndarray]:
        """
        Raw twist reference for the pair under the active strategy.

        None means "use the unconstrained rotation".
        """
        if self._strategy == RotationStrategy.UNCONSTRAINED:
            return None
        config = self.bone_config.get((start, end))
        if config is None:
            return None

        if self._strategy == RotationStrategy.POLE:
            if not joints.is_visible(config.pole) or not joints.is_visible(start):
                return None
            return joints.position(config.pole) - joints.position(start)

        return config.anatomical_vector

    def target_basis(self, start: int, end: int, direction: np.ndarray, joints) -> Optional[np.ndarray]:
        """Constrained target frame for the bone, or None for the fallback."""
        reference = self.reference_vector(start, end, joints)
        if reference is None:
            return None
        return constrained_basis(direction, reference)

    def solve(self, start: int, end: int, direction: np.ndarray, joints) -> np.ndarray:
        """
        Orientation quaternion [w, x, y, z] for the bone start -> end.

        Args:
            start, end: Ordered joint indices
            direction: Bone direction in rig space (must be non-zero)
            joints: JointStateStore, read for pole positions

        Raises:
            ValueError: direction has zero length
        """
        direction = np.asarray(direction, dtype=np.float64)
        if float(np.linalg.norm(direction)) < 1e-8:
            raise ValueError(f"Bone {start}-{end} has zero length")
        direction = normalize(direction)

        basis = self.target_basis(start, end, direction, joints)
        if basis is None:
            return quat_from_two_vectors(UP_AXIS, direction)
        return rotation_matrix_to_quaternion(basis)
