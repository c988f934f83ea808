"""Pose input: landmark sources, normalization, smoothing and joint state"""

from .joint_state import Joint, JointStateStore
from .landmark_source import (
    LandmarkSample,
    LandmarkFrame,
    LandmarkSource,
    MediaPipeLandmarkSource,
    ReplayLandmarkSource,
)
from .normalizer import LandmarkNormalizer
from .temporal_filter import PoseSmoother, blend_factor

__all__ = [
    "Joint", "JointStateStore",
    "LandmarkSample", "LandmarkFrame", "LandmarkSource",
    "MediaPipeLandmarkSource", "ReplayLandmarkSource",
    "LandmarkNormalizer",
    "PoseSmoother", "blend_factor",
]
