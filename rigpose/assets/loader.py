"""
Asset loading - authored skeleton manifests read off the frame loop.

Loads run on worker threads. A finished load is queued and only published
into the segment table by poll(), which the frame loop calls at the start
of each tick, so segments never see a half-initialized binding.
"""

import threading
from enum import Enum, auto
from pathlib import Path
from queue import Queue, Empty
from typing import Callable, Dict, List, Optional, Union

import numpy as np
import yaml

from rigpose.core import get_logger, AssetLoadError
from rigpose.core.math3d import quat_normalize
from rigpose.motion.segments import AssetSlot, SegmentTable
from .bindings import AssetBinding, initialize_segment_bindings
from .model import AXES, AuthoredAsset, MeshNode, DEFAULT_GEOMETRY_CORRECTION

LoadedCallback = Callable[[AssetBinding], None]
FailedCallback = Callable[[AssetLoadError], None]


class AssetState(Enum):
    EMPTY = auto()
    LOADING = auto()
    READY = auto()
    FAILED = auto()


def _vector(value, size: int, default) -> np.ndarray:
    if value is None:
        return np.array(default, dtype=np.float64)
    array = np.asarray(value, dtype=np.float64)
    if array.shape != (size,):
        raise ValueError(f"expected {size} numbers, got {value!r}")
    return array


def _correction(value) -> list:
    steps = []
    for step in value or []:
        axis, degrees = step
        axis = str(axis).lower()
        if axis not in AXES:
            raise ValueError(f"unknown correction axis '{axis}'")
        steps.append((axis, float(degrees)))
    return steps


def _mapping(value, what: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"{what} must be a mapping, got {value!r}")
    return value


class AssetLoader:
    """Reads an asset by id. Subclasses implement read()."""

    def read(self, asset_id: str) -> AuthoredAsset:
        raise NotImplementedError


class YamlAssetLoader(AssetLoader):
    """
    Reads skeleton manifests written in YAML.

    Manifest layout:
        asset: human-skeleton
        geometry_correction: [[x, 90], [y, 180]]
        meshes:
          object_11:
            position: [x, y, z]
            quaternion: [w, x, y, z]
            scale: [1, 1, 1]
            bbox: {min: [...], max: [...]}
            correction: [[y, 180]]
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        self.logger = get_logger("assets.yaml")
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    def resolve(self, asset_id: str) -> Path:
        path = Path(asset_id)
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def read(self, asset_id: str) -> AuthoredAsset:
        path = self.resolve(asset_id)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise AssetLoadError(asset_id, f"cannot read {path}: {e}") from e
        except yaml.YAMLError as e:
            raise AssetLoadError(asset_id, f"invalid YAML: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("meshes"), dict):
            raise AssetLoadError(asset_id, "manifest must be a mapping with a 'meshes' mapping")

        try:
            return self.parse(asset_id, data)
        except (KeyError, TypeError, ValueError) as e:
            raise AssetLoadError(asset_id, f"malformed manifest: {e}") from e

    def parse(self, asset_id: str, data: dict) -> AuthoredAsset:
        nodes: Dict[str, MeshNode] = {}
        for name, entry in data["meshes"].items():
            entry = _mapping(entry, f"mesh '{name}'")
            bbox = _mapping(entry.get("bbox"), f"bbox of '{name}'")
            nodes[str(name)] = MeshNode(
                name=str(name),
                position=_vector(entry.get("position"), 3, [0.0, 0.0, 0.0]),
                quaternion=quat_normalize(_vector(entry.get("quaternion"), 4, [1.0, 0.0, 0.0, 0.0])),
                scale=_vector(entry.get("scale"), 3, [1.0, 1.0, 1.0]),
                bbox_min=_vector(bbox.get("min"), 3, [-0.5, -0.5, -0.5]),
                bbox_max=_vector(bbox.get("max"), 3, [0.5, 0.5, 0.5]),
                correction=_correction(entry.get("correction")),
            )

        correction = data.get("geometry_correction")
        return AuthoredAsset(
            asset_id=str(data.get("asset", asset_id)),
            nodes=nodes,
            geometry_correction=(
                list(DEFAULT_GEOMETRY_CORRECTION) if correction is None else _correction(correction)
            ),
        )


class AssetManager:
    """
    Owns asset loads for both slots of a segment table.

    Callbacks run on the thread that calls poll(), never on the worker.
    """

    def __init__(self, segments: SegmentTable, loader: Optional[AssetLoader] = None):
        self.logger = get_logger("assets.manager")
        self.segments = segments
        self.loader = loader or YamlAssetLoader()

        self._lock = threading.Lock()
        self._states: Dict[AssetSlot, AssetState] = {slot: AssetState.EMPTY for slot in AssetSlot}
        self._bindings: Dict[AssetSlot, AssetBinding] = {}
        self._errors: Dict[AssetSlot, AssetLoadError] = {}
        self._completed: Queue = Queue()
        self._workers: List[threading.Thread] = []

    def state(self, slot: AssetSlot) -> AssetState:
        with self._lock:
            return self._states[slot]

    def is_ready(self, slot: AssetSlot) -> bool:
        return self.state(slot) == AssetState.READY

    def binding(self, slot: AssetSlot) -> Optional[AssetBinding]:
        with self._lock:
            return self._bindings.get(slot)

    def error(self, slot: AssetSlot) -> Optional[AssetLoadError]:
        with self._lock:
            return self._errors.get(slot)

    def load(
        self,
        asset_id: str,
        slot: AssetSlot,
        on_loaded: Optional[LoadedCallback] = None,
        on_failed: Optional[FailedCallback] = None,
    ) -> threading.Thread:
        """Start loading asset_id into slot on a worker thread."""
        with self._lock:
            self._states[slot] = AssetState.LOADING
            self._errors.pop(slot, None)

        worker = threading.Thread(
            target=self._load_worker,
            args=(asset_id, slot, on_loaded, on_failed),
            name=f"asset-load-{slot.value}",
            daemon=True,
        )
        self._workers.append(worker)
        self.logger.info(f"Loading {slot.value} asset '{asset_id}'")
        worker.start()
        return worker

    def _load_worker(self, asset_id, slot, on_loaded, on_failed) -> None:
        try:
            asset = self.loader.read(asset_id)
            binding = initialize_segment_bindings(asset, self.segments, slot)
        except AssetLoadError as e:
            self._completed.put((slot, None, e, on_loaded, on_failed))
            return
        except Exception as e:
            # Anything else still has to reach poll() or the slot stays LOADING
            self.logger.debug(f"Unexpected error loading '{asset_id}'", exc_info=True)
            error = AssetLoadError(asset_id, f"{type(e).__name__}: {e}")
            self._completed.put((slot, None, error, on_loaded, on_failed))
            return
        self._completed.put((slot, binding, None, on_loaded, on_failed))

    def wait(self, timeout: Optional[float] = None) -> None:
        """Join outstanding workers (results still need poll())."""
        for worker in list(self._workers):
            worker.join(timeout)
        self._workers = [w for w in self._workers if w.is_alive()]

    def poll(self) -> List[AssetSlot]:
        """Publish finished loads. Returns the slots that changed state."""
        changed = []
        while True:
            try:
                slot, binding, error, on_loaded, on_failed = self._completed.get_nowait()
            except Empty:
                break

            if error is not None:
                with self._lock:
                    self._states[slot] = AssetState.FAILED
                    self._errors[slot] = error
                    self._bindings.pop(slot, None)
                self.segments.unbind(slot)
                self.logger.error(str(error))
                if on_failed is not None:
                    on_failed(error)
            else:
                with self._lock:
                    self.segments.publish(slot, binding.segments)
                    self._bindings[slot] = binding
                    self._states[slot] = AssetState.READY
                self.logger.info(f"{slot.value.capitalize()} asset '{binding.asset_id}' ready")
                if on_loaded is not None:
                    on_loaded(binding)
            changed.append(slot)
        return changed
