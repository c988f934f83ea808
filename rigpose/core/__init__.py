"""Core systems - config, logging, timing, landmark schema, math"""

from .config import Config
from .errors import RigPoseError, ConfigError, AssetLoadError
from .logging import setup_logging, get_logger
from .timing import FrameTimer, FrameClock, FrameData
from .calibration import Calibration, TransformSnapshot, clamp
from .landmarks import (
    Landmark,
    JOINT_COUNT,
    LANDMARK_LABELS,
    BONE_PAIRS,
    is_valid_index,
    format_landmark,
)

__all__ = [
    "Config", "RigPoseError", "ConfigError", "AssetLoadError",
    "setup_logging", "get_logger",
    "FrameTimer", "FrameClock", "FrameData",
    "Calibration", "TransformSnapshot", "clamp",
    "Landmark", "JOINT_COUNT", "LANDMARK_LABELS", "BONE_PAIRS",
    "is_valid_index", "format_landmark",
]
