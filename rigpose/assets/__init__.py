"""Authored skeleton assets: manifests, loading and segment bindings"""

from .model import (
    AuthoredAsset,
    MeshNode,
    DEFAULT_GEOMETRY_CORRECTION,
    correction_quaternion,
)
from .bindings import (
    AssetBinding,
    detect_axis,
    corrected_bbox_size,
    initialize_segment_bindings,
)
from .loader import AssetLoader, YamlAssetLoader, AssetManager, AssetState

__all__ = [
    "AuthoredAsset", "MeshNode", "DEFAULT_GEOMETRY_CORRECTION", "correction_quaternion",
    "AssetBinding", "detect_axis", "corrected_bbox_size", "initialize_segment_bindings",
    "AssetLoader", "YamlAssetLoader", "AssetManager", "AssetState",
]
