"""Map detector landmark coordinates into rig-local 3D space."""

import numpy as np

from rigpose.core import Calibration


class LandmarkNormalizer:
    """
    Detector space -> rig space.

    Detector: x, y in [0, 1] with y growing downward, z unbounded relative
    depth (smaller is closer to the camera).
    Rig: right-handed, Y up, Z towards the viewer, centered on the image.
    """

    def __init__(self, calibration: Calibration):
        self.calibration = calibration

    def normalize(self, x: float, y: float, z: float) -> np.ndarray:
        cal = self.calibration
        if cal.mirror:
            rig_x = (0.5 - x) * cal.scale_x
        else:
            rig_x = (x - 0.5) * cal.scale_x
        rig_y = (0.5 - y) * cal.scale_y
        rig_z = -z * cal.scale_z
        return np.array([rig_x, rig_y, rig_z], dtype=np.float64)

    def normalize_sample(self, sample) -> np.ndarray:
        return self.normalize(sample.x, sample.y, sample.z)
