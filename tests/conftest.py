"""Shared fixtures for the rigpose test suite."""

import numpy as np
import pytest
import yaml

from rigpose.core import Calibration, Config
from rigpose.motion import SEGMENT_DEFINITIONS
from rigpose.pose import JointStateStore


def place(joints: JointStateStore, index: int, position) -> None:
    """Make a joint visible at a rig-space position."""
    joints.set_position(index, np.asarray(position, dtype=np.float64))
    joints.set_visible(index, True)


def landmark_frame(points):
    """33-entry detector frame from {index: (x, y, z)}; others absent."""
    frame = [None] * 33
    for index, value in points.items():
        frame[index] = list(value)
    return frame


def manifest(names=None, asset="test-skeleton"):
    """Manifest whose meshes are long along the authored Z axis."""
    names = [d.name for d in SEGMENT_DEFINITIONS] if names is None else names
    meshes = {
        name: {
            "position": [0.0, 1.0, 0.0],
            "quaternion": [1.0, 0.0, 0.0, 0.0],
            "scale": [1.0, 1.0, 1.0],
            "bbox": {"min": [-0.05, -0.05, -0.2], "max": [0.05, 0.05, 0.2]},
        }
        for name in names
    }
    return {"asset": asset, "meshes": meshes}


@pytest.fixture
def joints():
    return JointStateStore()


@pytest.fixture
def calibration():
    return Calibration(scale_x=1.0, scale_y=1.0, scale_z=1.0, mirror=True, smoothing=0.5)


@pytest.fixture
def asset_dir(tmp_path):
    assets = tmp_path / "assets"
    assets.mkdir()
    with open(assets / "primary.yaml", "w") as f:
        yaml.safe_dump(manifest(), f)
    with open(assets / "alternate.yaml", "w") as f:
        yaml.safe_dump(manifest(names=["object_11", "object_12"], asset="partial"), f)
    return assets


@pytest.fixture
def config_data():
    return {
        "app": {"version": "0.1.0", "log_level": "DEBUG", "target_fps": 1000},
        "calibration": {
            "scale_x": 1.0,
            "scale_y": 1.0,
            "scale_z": 1.0,
            "mirror": True,
            "smoothing": 0.0,
        },
        "tracking": {
            "strategy": "unconstrained",
            "render_mode": "asset",
            "show_rig": True,
            "show_debug_markers": False,
        },
        "assets": {
            "primary": "assets/primary.yaml",
            "alternate": "assets/alternate.yaml",
        },
        "rotation": {"bones": {}},
    }


@pytest.fixture
def config(tmp_path, asset_dir, config_data):
    path = tmp_path / "config.yaml"
    with open(path, "w") as f:
        yaml.safe_dump(config_data, f)
    return Config(str(path))
