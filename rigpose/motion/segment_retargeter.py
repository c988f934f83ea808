"""
Segment Retargeting - drive rigid mesh segments from joint positions.

Each segment is rotated so that its authored natural axis follows the
limb direction between its two mapped joints, placed at the limb midpoint
and kept at its authored scale. Segments whose joints are not visible
fall back to their exact rest transform.
"""

from typing import Dict, Optional

import numpy as np

from rigpose.core import get_logger
from rigpose.core.math3d import (
    UP_AXIS,
    normalize,
    quat_from_two_vectors,
    quat_multiply,
    quat_rotate_vector,
    rotation_matrix_to_quaternion,
)
from rigpose.pose.joint_state import JointStateStore
from .mapping import EffectiveMapping, MappingOverrides
from .rotation_solver import RotationSolver
from .segments import AssetSlot, Segment, SegmentRestData, SegmentTable, SegmentTransform

# Joints closer than this are treated as one point (skull, shoulder plates)
COINCIDENT_EPSILON = 1e-4


class SegmentRetargeter:
    """Computes per-frame transforms for every bound segment of an asset."""

    def __init__(
        self,
        solver: RotationSolver,
        overrides: Optional[MappingOverrides] = None,
        show_markers: bool = False,
    ):
        self.logger = get_logger("motion.retarget")
        self.solver = solver
        self.overrides = overrides or MappingOverrides()
        self.show_markers = show_markers

    def mapping_for(self, segment: Segment) -> EffectiveMapping:
        return self.overrides.effective(segment)

    @staticmethod
    def natural_axis(rest: SegmentRestData, mapping: EffectiveMapping) -> np.ndarray:
        """Authored (or overridden) segment axis expressed in rig space."""
        axis = rest.axis if mapping.axis is None else mapping.axis
        return normalize(quat_rotate_vector(rest.quaternion, axis))

    def segment_orientation(
        self,
        start: int,
        end: int,
        direction: np.ndarray,
        rest: SegmentRestData,
        mesh_axis: np.ndarray,
        joints: JointStateStore,
    ) -> np.ndarray:
        """
        Rest orientation carried onto the limb direction.

        Unconstrained: align(mesh_axis -> d) * q0.
        Constrained:   target * align(mesh_axis -> up) * q0, where target is
        the solver's basis for the bone.
        """
        basis = self.solver.target_basis(start, end, direction, joints)
        if basis is None:
            align = quat_from_two_vectors(mesh_axis, direction)
            return quat_multiply(align, rest.quaternion)

        target = rotation_matrix_to_quaternion(basis)
        mesh_to_up = quat_from_two_vectors(mesh_axis, UP_AXIS)
        return quat_multiply(target, quat_multiply(mesh_to_up, rest.quaternion))

    def _with_marker(self, transform: SegmentTransform) -> SegmentTransform:
        transform.marker_visible = self.show_markers and transform.visible
        if transform.marker_visible:
            scale = np.where(np.abs(transform.scale) < 1e-8, 1.0, transform.scale)
            transform.marker_scale = 1.0 / scale
        return transform

    def retarget_segment(
        self,
        segment: Segment,
        slot: AssetSlot,
        joints: JointStateStore,
    ) -> Optional[SegmentTransform]:
        """Transform for one segment, or None if it is unbound for the slot."""
        rest = segment.rest_data(slot)
        if rest is None:
            return None

        if not segment.animated:
            return SegmentTransform.rest(rest, visible=True)

        mapping = self.mapping_for(segment)
        start, end = mapping.start, mapping.end

        if not joints.pair_visible(start, end):
            return SegmentTransform.rest(rest, visible=False)

        start_pos = joints.position(start)
        delta = joints.position(end) - start_pos
        length = float(np.linalg.norm(delta))

        if start == end or length < COINCIDENT_EPSILON:
            transform = SegmentTransform(
                position=start_pos,
                quaternion=rest.quaternion.copy(),
                scale=rest.scale.copy(),
                visible=True,
                tracked=True,
            )
            return self._with_marker(transform)

        direction = delta / length
        mesh_axis = self.natural_axis(rest, mapping)
        quaternion = self.segment_orientation(start, end, direction, rest, mesh_axis, joints)

        transform = SegmentTransform(
            position=start_pos + direction * (length / 2.0),
            quaternion=quaternion,
            scale=rest.scale.copy(),
            visible=True,
            tracked=True,
        )
        return self._with_marker(transform)

    def retarget(
        self,
        segments: SegmentTable,
        slot: AssetSlot,
        joints: JointStateStore,
    ) -> Dict[str, SegmentTransform]:
        """Update and return transforms of every segment bound to slot."""
        result = {}
        for segment in segments:
            transform = self.retarget_segment(segment, slot, joints)
            if transform is None:
                continue
            segment.transforms[slot] = transform
            result[segment.name] = transform
        return result

    def apply_rest(self, segments: SegmentTable, slot: AssetSlot) -> Dict[str, SegmentTransform]:
        """Force every bound segment of the slot to its visible rest transform."""
        result = {}
        for segment in segments.bound_segments(slot):
            transform = SegmentTransform.rest(segment.rest_data(slot), visible=True)
            segment.transforms[slot] = transform
            result[segment.name] = transform
        return result
