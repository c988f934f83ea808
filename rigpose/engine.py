"""
Retarget engine - the per-frame loop tying every stage together.

One tick: publish finished asset loads, compose the rig transform, then
either hold the rest pose or pull a landmark frame, filter it into the
joint store and retarget the active asset. Any stage that has nothing new
leaves the previous state in place.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

import numpy as np

from rigpose.core import (
    get_logger,
    Config,
    AssetLoadError,
    Calibration,
    FrameClock,
    FrameTimer,
)
from rigpose.assets import AssetBinding, AssetManager, AssetLoader, YamlAssetLoader
from rigpose.motion import (
    AssetSlot,
    BoneTransform,
    JointMarker,
    MappingOverrides,
    PoseMode,
    RestPoseController,
    RigTransform,
    RigTransformCompositor,
    RotationSolver,
    RotationStrategy,
    SegmentRetargeter,
    SegmentTable,
    SegmentTransform,
    SyntheticSkeleton,
    load_rotation_config,
)
from rigpose.pose import (
    JointStateStore,
    LandmarkNormalizer,
    LandmarkSource,
    PoseSmoother,
)


class RenderMode(str, Enum):
    NONE = "none"
    ASSET = "asset"
    ASSET_ALT = "asset-alt"


RENDER_SLOTS = {
    RenderMode.ASSET: AssetSlot.PRIMARY,
    RenderMode.ASSET_ALT: AssetSlot.ALTERNATE,
}


@dataclass
class FrameOutput:
    """Everything a renderer needs to draw one frame."""
    frame_number: int
    timestamp_ms: int
    rig: RigTransform
    mode: PoseMode
    render_mode: RenderMode
    new_frame: bool = False
    pose_found: bool = False
    visible_joints: int = 0
    joint_markers: List[JointMarker] = field(default_factory=list)
    bones: List[BoneTransform] = field(default_factory=list)
    asset_slot: Optional[AssetSlot] = None
    asset_visible: bool = False
    asset_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    segments: Dict[str, SegmentTransform] = field(default_factory=dict)


FrameCallback = Callable[[FrameOutput], None]


class RetargetEngine:
    """
    Owns the live calibration and the whole retargeting pipeline.

    Calibration fields may be written between ticks; each tick works on a
    copy taken at its start.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        source: Optional[LandmarkSource] = None,
        calibration: Optional[Calibration] = None,
        asset_loader: Optional[AssetLoader] = None,
    ):
        self.logger = get_logger("engine")
        self.config = config or Config()
        tracking = self.config.tracking

        self.defaults = calibration.copy() if calibration is not None else Calibration.from_config(self.config)
        self.calibration = self.defaults.copy()

        self.joints = JointStateStore()
        self.normalizer = LandmarkNormalizer(self.calibration.copy())
        self.smoother = PoseSmoother(self.joints, self.normalizer)

        self.solver = RotationSolver(
            strategy=tracking.get("strategy", RotationStrategy.UNCONSTRAINED.value),
            bone_config=load_rotation_config(self.config.rotation),
        )
        self.segments = SegmentTable()
        self.overrides = MappingOverrides()
        self.retargeter = SegmentRetargeter(
            self.solver,
            self.overrides,
            show_markers=bool(tracking.get("show_debug_markers", False)),
        )
        self.skeleton = SyntheticSkeleton(self.solver)
        self.compositor = RigTransformCompositor()

        self.rest = RestPoseController(self.calibration, self.defaults, self.joints)
        self.rest.on_enter_rest(self._apply_rest)

        if asset_loader is None:
            asset_loader = YamlAssetLoader(self.config.resolve_path("."))
        self.assets = AssetManager(self.segments, asset_loader)

        self.source = source
        self.show_rig = bool(tracking.get("show_rig", True))
        self._render_mode = RenderMode(tracking.get("render_mode", RenderMode.ASSET.value))
        self._asset_visible = False
        self._pose_found = False
        self._visible_joints = 0

        self.clock = FrameClock(target_fps=float(self.config.get("app.target_fps", 30)))
        self.timer = FrameTimer(budget=self.clock.target_frame_duration)
        self._frame_number = 0
        self._running = False
        self._closed = False

        self.logger.info(
            f"Engine ready (strategy={self.solver.strategy.value}, "
            f"render_mode={self._render_mode.value})"
        )

    def load_assets(self) -> None:
        """Start loading the primary and alternate assets named in config."""
        section = self.config.assets
        primary = section.get("primary")
        alternate = section.get("alternate")

        if primary:
            self.assets.load(primary, AssetSlot.PRIMARY, self._on_asset_loaded, self._on_primary_failed)
        else:
            self.logger.warning("No primary asset configured")
            self.render_mode = RenderMode.NONE
        if alternate:
            self.assets.load(alternate, AssetSlot.ALTERNATE, self._on_asset_loaded, self._on_asset_failed)

    def _on_asset_loaded(self, binding: AssetBinding) -> None:
        if binding.slot == self.active_slot and self.rest.is_resting:
            self._apply_rest()

    def _on_primary_failed(self, error: AssetLoadError) -> None:
        self.logger.error("Skeleton asset unavailable, switching render mode to none")
        self.render_mode = RenderMode.NONE

    def _on_asset_failed(self, error: AssetLoadError) -> None:
        self.logger.warning(f"Alternate asset unavailable: {error.reason}")

    @property
    def render_mode(self) -> RenderMode:
        return self._render_mode

    @render_mode.setter
    def render_mode(self, value) -> None:
        value = RenderMode(value)
        if value != self._render_mode:
            self.logger.info(f"Render mode: {value.value}")
        self._render_mode = value

    @property
    def active_slot(self) -> Optional[AssetSlot]:
        """Slot to retarget this frame, None when no asset is shown."""
        slot = RENDER_SLOTS.get(self._render_mode)
        if slot is None or not self.assets.is_ready(slot):
            return None
        return slot

    def set_strategy(self, strategy) -> None:
        self.solver.strategy = strategy

    def set_show_markers(self, enabled: bool) -> None:
        self.retargeter.show_markers = bool(enabled)

    def set_rest_pose(self, resting: bool) -> bool:
        """Pause (True) or resume (False) tracking. Returns True on change."""
        return self.rest.set_resting(resting)

    def _apply_rest(self) -> None:
        slot = self.active_slot
        self._pose_found = False
        self._visible_joints = 0
        if slot is None:
            self._asset_visible = False
            return
        self.retargeter.apply_rest(self.segments, slot)
        self._asset_visible = True

    def _detect(self, frame, timestamp_ms: int):
        if self.source is None:
            return None
        try:
            return self.source.detect(frame, timestamp_ms)
        except Exception as e:
            self.logger.debug(f"Landmark detection failed: {e}")
            return None

    def tick(self, frame: Optional[np.ndarray] = None, timestamp_ms: Optional[int] = None) -> FrameOutput:
        """Advance the pipeline by one frame."""
        if timestamp_ms is None:
            timestamp_ms = self.clock.tick().timestamp_ms
        self._frame_number += 1

        self.assets.poll()

        calibration = self.calibration.copy()
        self.normalizer.calibration = calibration
        rig = self.compositor.compose(calibration)
        slot = self.active_slot
        new_frame = False

        if self.rest.is_resting:
            self._apply_rest()
        else:
            samples = self._detect(frame, timestamp_ms)
            if samples is not None:
                new_frame = True
                if samples:
                    self._visible_joints = self.smoother.apply_frame(samples, calibration.smoothing)
                    self._pose_found = True
                    if slot is not None:
                        self.retargeter.retarget(self.segments, slot, self.joints)
                    self._asset_visible = slot is not None
                else:
                    self.smoother.clear()
                    self._visible_joints = 0
                    self._pose_found = False
                    self._asset_visible = False

        return self._output(timestamp_ms, rig, slot, new_frame)

    def _output(self, timestamp_ms: int, rig: RigTransform, slot: Optional[AssetSlot], new_frame: bool) -> FrameOutput:
        segments = {}
        offset = np.zeros(3)
        if slot is not None:
            segments = {
                segment.name: segment.transforms[slot]
                for segment in self.segments.bound_segments(slot)
                if slot in segment.transforms
            }
            binding = self.assets.binding(slot)
            if binding is not None:
                offset = -binding.pivot_offset

        return FrameOutput(
            frame_number=self._frame_number,
            timestamp_ms=timestamp_ms,
            rig=rig,
            mode=self.rest.mode,
            render_mode=self._render_mode,
            new_frame=new_frame,
            pose_found=self._pose_found,
            visible_joints=self._visible_joints,
            joint_markers=self.skeleton.joint_markers(self.joints, self.show_rig),
            bones=self.skeleton.bones(self.joints, self.show_rig),
            asset_slot=slot,
            asset_visible=self._asset_visible and slot is not None,
            asset_offset=offset,
            segments=segments,
        )

    def run(self, capture=None, max_frames: Optional[int] = None, on_frame: Optional[FrameCallback] = None) -> int:
        """
        Run ticks until stopped, the input ends or max_frames is reached.

        Args:
            capture: Optional VideoCapture; without one the source is
                ticked with no image (replay input).
            max_frames: Stop after this many ticks
            on_frame: Called with every FrameOutput

        Returns:
            Number of ticks run
        """
        self._running = True
        self.clock.start()
        ticks = 0
        self.logger.info("Frame loop started")

        try:
            while self._running:
                if max_frames is not None and ticks >= max_frames:
                    break

                self.timer.start()
                frame_data = self.clock.tick()
                image = None
                timestamp_ms = frame_data.timestamp_ms
                if capture is not None:
                    result = capture.read()
                    if result is None:
                        self.logger.info("Video input ended")
                        break
                    image = result.frame
                    timestamp_ms = max(timestamp_ms, result.timestamp_ms)

                output = self.tick(image, timestamp_ms)
                if on_frame is not None:
                    on_frame(output)
                ticks += 1

                elapsed = self.timer.stop()
                if elapsed > self.timer.budget:
                    self.logger.debug(f"Frame {frame_data.frame_number} over budget: {elapsed * 1000:.1f} ms")

                if capture is None and getattr(self.source, "exhausted", False):
                    self.logger.info("Replay finished")
                    break

                self.clock.wait_for_next_frame()
        finally:
            self._running = False

        self.logger.info(
            f"Frame loop stopped after {ticks} frames "
            f"(avg {self.timer.average_frame_time * 1000:.1f} ms/frame)"
        )
        return ticks

    def stop(self) -> None:
        self._running = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop the loop and release the landmark source. Idempotent."""
        self._running = False
        if self._closed:
            return
        self._closed = True
        if self.source is not None:
            self.source.close()
        self.assets.wait(timeout=1.0)
        self.logger.info("Engine closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
