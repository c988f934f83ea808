"""
Segment binding initialization.

Turns an authored asset into per-segment rest data: the mesh's rest
transform, its natural axis (longest bounding-box dimension once the
authored geometry correction is applied) and its rest length.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from rigpose.core import get_logger
from rigpose.core.math3d import UP_AXIS, X_AXIS, Z_AXIS, quat_multiply, quat_to_matrix
from rigpose.motion.segments import AssetSlot, SegmentRestData, SegmentTable
from .model import AuthoredAsset, MeshNode, correction_quaternion

MIN_REST_LENGTH = 1e-3
# Fraction of the asset height where the rig pivot (hips) sits
HIP_HEIGHT_RATIO = 0.53

logger = get_logger("assets.bindings")


@dataclass
class AssetBinding:
    """Everything published for one asset slot once loading completes."""
    asset_id: str
    slot: AssetSlot
    segments: Dict[str, SegmentRestData]
    missing: list = field(default_factory=list)
    original_height: float = 1.0
    pivot_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))


def detect_axis(size: np.ndarray) -> np.ndarray:
    """Longest box dimension; ties prefer x, then z, then y."""
    x, y, z = (float(v) for v in size)
    if x >= y and x >= z:
        return X_AXIS.copy()
    if z >= x and z >= y:
        return Z_AXIS.copy()
    return UP_AXIS.copy()


def corrected_bbox_size(size: np.ndarray, correction: np.ndarray) -> np.ndarray:
    """Extents of a centered box after rotating it by `correction`."""
    return np.abs(quat_to_matrix(correction)) @ np.asarray(size, dtype=np.float64)


def segment_rest_data(node: MeshNode, asset: AuthoredAsset) -> SegmentRestData:
    base = correction_quaternion(asset.geometry_correction)
    extra = correction_quaternion(node.correction)
    correction = quat_multiply(extra, base)

    size = corrected_bbox_size(node.bbox_size, correction)
    axis = detect_axis(size)
    length = float(size[int(np.argmax(np.abs(axis)))])

    return SegmentRestData(
        position=np.array(node.position, dtype=np.float64),
        quaternion=np.array(node.quaternion, dtype=np.float64),
        scale=np.array(node.scale, dtype=np.float64),
        axis=axis,
        rest_length=max(length, MIN_REST_LENGTH),
        bbox_size=size,
        geometry_correction=correction,
    )


def asset_pivot(asset: AuthoredAsset):
    """(original height, pivot offset) placing the rig origin at hip height."""
    low, high = asset.bounds
    size = high - low
    center = (low + high) / 2.0
    hip_height = low[1] + size[1] * HIP_HEIGHT_RATIO
    return max(float(size[1]), MIN_REST_LENGTH), np.array([center[0], hip_height, center[2]])


def initialize_segment_bindings(
    asset: AuthoredAsset,
    table: SegmentTable,
    slot: AssetSlot,
) -> AssetBinding:
    """
    Build rest data for every segment the asset provides.

    Segment names missing from the asset are warned about once and left
    unbound; the rest of the asset stays usable.
    """
    segments: Dict[str, SegmentRestData] = {}
    missing = []
    for segment in table:
        node: Optional[MeshNode] = asset.find(segment.name)
        if node is None:
            missing.append(segment.name)
            logger.warning(f"Segment mesh '{segment.name}' not found in {slot.value} asset '{asset.asset_id}'")
            continue
        segments[segment.name] = segment_rest_data(node, asset)

    height, pivot = asset_pivot(asset)
    logger.info(
        f"Bound {len(segments)}/{len(table)} segments of '{asset.asset_id}' "
        f"({slot.value}), original height {height:.3f}"
    )
    return AssetBinding(
        asset_id=asset.asset_id,
        slot=slot,
        segments=segments,
        missing=missing,
        original_height=height,
        pivot_offset=pivot,
    )
