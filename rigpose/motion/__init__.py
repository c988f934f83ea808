"""Motion - rotation solving, segment retargeting, rig transform and rest pose"""

from .rotation_solver import (
    RotationStrategy,
    RotationSolver,
    BoneRotationConfig,
    BONE_ROTATION_CONFIG,
    load_rotation_config,
    constrained_basis,
)
from .segments import (
    AssetSlot,
    SegmentDefinition,
    SEGMENT_DEFINITIONS,
    SegmentRestData,
    SegmentTransform,
    Segment,
    SegmentTable,
)
from .mapping import (
    AxisSelection,
    SegmentOverride,
    EffectiveMapping,
    MappingOverrides,
    resolve_mapping,
)
from .segment_retargeter import SegmentRetargeter, COINCIDENT_EPSILON
from .synthetic_skeleton import SyntheticSkeleton, JointMarker, BoneTransform
from .rig_transform import RigTransform, RigTransformCompositor, euler_yxz_quaternion
from .rest_pose import PoseMode, RestPoseController

__all__ = [
    "RotationStrategy", "RotationSolver", "BoneRotationConfig", "BONE_ROTATION_CONFIG",
    "load_rotation_config", "constrained_basis",
    "AssetSlot", "SegmentDefinition", "SEGMENT_DEFINITIONS", "SegmentRestData",
    "SegmentTransform", "Segment", "SegmentTable",
    "AxisSelection", "SegmentOverride", "EffectiveMapping", "MappingOverrides", "resolve_mapping",
    "SegmentRetargeter", "COINCIDENT_EPSILON",
    "SyntheticSkeleton", "JointMarker", "BoneTransform",
    "RigTransform", "RigTransformCompositor", "euler_yxz_quaternion",
    "PoseMode", "RestPoseController",
]
