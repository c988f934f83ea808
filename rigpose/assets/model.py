"""In-memory description of an authored skeleton asset."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from rigpose.core.math3d import (
    UP_AXIS,
    X_AXIS,
    Z_AXIS,
    quat_from_axis_angle,
    quat_identity,
    quat_multiply,
    quat_normalize,
)

AXES = {"x": X_AXIS, "y": UP_AXIS, "z": Z_AXIS}

# (axis, degrees) rotations applied to geometry in order
CorrectionSteps = List[Tuple[str, float]]

# Authored in Z-up: turn to Y-up, then face the camera
DEFAULT_GEOMETRY_CORRECTION: CorrectionSteps = [("x", 90.0), ("y", 180.0)]


def correction_quaternion(steps: Sequence[Tuple[str, float]]) -> np.ndarray:
    """Compose single-axis rotations, first step applied first."""
    q = quat_identity()
    for axis_name, degrees in steps:
        axis = AXES.get(str(axis_name).lower())
        if axis is None:
            raise ValueError(f"Unknown correction axis '{axis_name}'")
        q = quat_multiply(quat_from_axis_angle(axis, np.radians(float(degrees))), q)
    return quat_normalize(q)


@dataclass
class MeshNode:
    """One named sub-mesh with its local transform and local bounding box."""
    name: str
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    quaternion: np.ndarray = field(default_factory=quat_identity)
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    bbox_min: np.ndarray = field(default_factory=lambda: np.full(3, -0.5))
    bbox_max: np.ndarray = field(default_factory=lambda: np.full(3, 0.5))
    correction: CorrectionSteps = field(default_factory=list)

    @property
    def bbox_size(self) -> np.ndarray:
        return np.abs(self.bbox_max - self.bbox_min)


@dataclass
class AuthoredAsset:
    """A loaded asset: named sub-meshes plus asset-wide authoring facts."""
    asset_id: str
    nodes: Dict[str, MeshNode]
    geometry_correction: CorrectionSteps = field(
        default_factory=lambda: list(DEFAULT_GEOMETRY_CORRECTION)
    )

    def find(self, name: str) -> Optional[MeshNode]:
        return self.nodes.get(name)

    @property
    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Approximate asset bounds from node positions and local boxes."""
        if not self.nodes:
            return np.zeros(3), np.zeros(3)
        mins = [n.position + n.bbox_min * n.scale for n in self.nodes.values()]
        maxs = [n.position + n.bbox_max * n.scale for n in self.nodes.values()]
        return np.min(mins, axis=0), np.max(maxs, axis=0)
