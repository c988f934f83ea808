"""Landmark sources: MediaPipe PoseLandmarker and recorded replays"""

import json
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import yaml

from rigpose.core import get_logger, Config, JOINT_COUNT

LandmarkFrame = List[Optional["LandmarkSample"]]


@dataclass(frozen=True)
class LandmarkSample:
    """One detected landmark: x, y normalized to the image, z relative depth."""
    x: float
    y: float
    z: float
    visibility: float = 1.0

    @classmethod
    def from_value(cls, value) -> Optional["LandmarkSample"]:
        """Parse a recorded entry: null, [x, y, z(, visibility)] or a mapping."""
        if value is None:
            return None
        if isinstance(value, dict):
            return cls(
                x=float(value["x"]),
                y=float(value["y"]),
                z=float(value.get("z", 0.0)),
                visibility=float(value.get("visibility", 1.0)),
            )
        values = [float(v) for v in value]
        if len(values) < 2:
            raise ValueError(f"Landmark needs at least x and y, got {value!r}")
        while len(values) < 3:
            values.append(0.0)
        visibility = values[3] if len(values) > 3 else 1.0
        return cls(x=values[0], y=values[1], z=values[2], visibility=visibility)


class LandmarkSource:
    """
    Pull-style landmark provider.

    detect() returns None when there is no new frame (duplicate timestamp or
    detector not ready) and an empty list when a frame was processed but no
    pose was found. Otherwise it returns JOINT_COUNT entries, each a sample
    or None for an absent landmark.
    """

    def __init__(self):
        self._last_timestamp_ms: Optional[int] = None
        self._closed = False

    @property
    def ready(self) -> bool:
        return not self._closed

    def is_new_timestamp(self, timestamp_ms: int) -> bool:
        if self._last_timestamp_ms is not None and timestamp_ms <= self._last_timestamp_ms:
            return False
        self._last_timestamp_ms = timestamp_ms
        return True

    def detect(self, frame: Optional[np.ndarray], timestamp_ms: int) -> Optional[LandmarkFrame]:
        if not self.ready or not self.is_new_timestamp(timestamp_ms):
            return None
        return self._detect(frame, timestamp_ms)

    def _detect(self, frame: Optional[np.ndarray], timestamp_ms: int) -> Optional[LandmarkFrame]:
        raise NotImplementedError

    def close(self) -> None:
        self._closed = True


POSE_MODELS = {
    "lite": {
        "url": "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_lite/float16/1/pose_landmarker_lite.task",
        "filename": "pose_landmarker_lite.task",
    },
    "full": {
        "url": "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_full/float16/1/pose_landmarker_full.task",
        "filename": "pose_landmarker_full.task",
    },
    "heavy": {
        "url": "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_heavy/float16/1/pose_landmarker_heavy.task",
        "filename": "pose_landmarker_heavy.task",
    },
}
MODEL_DIR = Path(__file__).parent.parent.parent / "models"


def download_model_if_needed(model_type: str, logger) -> Path:
    """Download the pose landmarker model if not present."""
    MODEL_DIR.mkdir(parents=True, exist_ok=True)

    if model_type not in POSE_MODELS:
        logger.warning(f"Unknown pose model '{model_type}', using 'full'")
        model_type = "full"

    model_info = POSE_MODELS[model_type]
    model_path = MODEL_DIR / model_info["filename"]

    if not model_path.exists():
        logger.info(f"Downloading {model_type} pose model to {model_path}...")
        urllib.request.urlretrieve(model_info["url"], model_path)
        logger.info("Download complete.")

    return model_path


class MediaPipeLandmarkSource(LandmarkSource):
    """
    MediaPipe PoseLandmarker (Tasks API) in VIDEO mode, one pose per frame.

    Landmarks whose visibility is below `pose.min_visibility` are reported
    as absent.
    """

    def __init__(self, config: Optional[Config] = None):
        super().__init__()
        self.logger = get_logger("pose.mediapipe")
        self.config = config or Config()

        import mediapipe as mp
        from mediapipe.tasks import python as mp_tasks
        from mediapipe.tasks.python import vision as mp_vision

        self._mp = mp
        pose_config = self.config.pose

        self._min_detection_confidence = pose_config.get("min_detection_confidence", 0.5)
        self._min_tracking_confidence = pose_config.get("min_tracking_confidence", 0.5)
        self._min_visibility = pose_config.get("min_visibility", 0.0)
        model_type = pose_config.get("model_type", "full")

        model_path = download_model_if_needed(model_type, self.logger)

        base_options = mp_tasks.BaseOptions(model_asset_path=str(model_path))
        options = mp_vision.PoseLandmarkerOptions(
            base_options=base_options,
            running_mode=mp_vision.RunningMode.VIDEO,
            num_poses=1,
            min_pose_detection_confidence=self._min_detection_confidence,
            min_pose_presence_confidence=self._min_detection_confidence,
            min_tracking_confidence=self._min_tracking_confidence,
            output_segmentation_masks=False
        )

        self._pose = mp_vision.PoseLandmarker.create_from_options(options)

        self.logger.info(
            f"Initialized MediaPipe PoseLandmarker [{model_type}] "
            f"(detection={self._min_detection_confidence}, "
            f"tracking={self._min_tracking_confidence})"
        )

    def _detect(self, frame: Optional[np.ndarray], timestamp_ms: int) -> Optional[LandmarkFrame]:
        if frame is None:
            return None

        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=frame)
        results = self._pose.detect_for_video(mp_image, timestamp_ms)

        if not results.pose_landmarks:
            return []

        landmarks = results.pose_landmarks[0]
        samples: LandmarkFrame = []
        for idx in range(JOINT_COUNT):
            if idx >= len(landmarks):
                samples.append(None)
                continue
            lm = landmarks[idx]
            visibility = lm.visibility if lm.visibility is not None else 1.0
            if visibility < self._min_visibility:
                samples.append(None)
                continue
            samples.append(LandmarkSample(x=lm.x, y=lm.y, z=lm.z, visibility=visibility))
        return samples

    def close(self) -> None:
        """Release the landmarker. Safe to call more than once."""
        if self._closed:
            return
        super().close()
        if self._pose is not None:
            self._pose.close()
            self._pose = None
        self.logger.info("MediaPipe landmarker closed")


class ReplayLandmarkSource(LandmarkSource):
    """
    Plays back recorded landmark frames, one per new timestamp.

    Recording format (YAML or JSON): either a list of frames or a mapping
    with a `frames` list. Each frame is null (no pose) or a list of up to
    33 entries, each null or [x, y, z].
    """

    def __init__(self, frames: Sequence[Optional[Sequence]], loop: bool = False):
        super().__init__()
        self.logger = get_logger("pose.replay")
        self._frames = [self._parse_frame(frame) for frame in frames]
        self._loop = loop
        self._cursor = 0

    @staticmethod
    def _parse_frame(frame) -> LandmarkFrame:
        if frame is None:
            return []
        samples = [LandmarkSample.from_value(value) for value in frame]
        samples.extend([None] * (JOINT_COUNT - len(samples)))
        return samples[:JOINT_COUNT]

    @classmethod
    def from_file(cls, path: str, loop: bool = False) -> "ReplayLandmarkSource":
        """
        Load a recording.

        Raises:
            OSError: file cannot be read
            ValueError: file is not a valid recording
        """
        file_path = Path(path)
        with open(file_path, "r") as f:
            try:
                if file_path.suffix.lower() == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {file_path}: {e}") from e
        if isinstance(data, dict):
            data = data.get("frames", [])
        try:
            source = cls(data or [], loop=loop)
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed landmark entry in {file_path}: {e}") from e
        source.logger.info(f"Loaded {len(source)} recorded frames from {file_path}")
        return source

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def exhausted(self) -> bool:
        return not self._loop and self._cursor >= len(self._frames)

    def _detect(self, frame: Optional[np.ndarray], timestamp_ms: int) -> Optional[LandmarkFrame]:
        if not self._frames:
            return None
        if self._cursor >= len(self._frames):
            if not self._loop:
                return None
            self._cursor = 0
        samples = self._frames[self._cursor]
        self._cursor += 1
        return list(samples)
