"""
Rigid mesh segments of the authored skeleton assets.

Every asset exposes the same logical segment list; per-asset rest data is
kept in a binding keyed by AssetSlot, so the primary and alternate assets
never need separate copies of the segment table.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

import numpy as np

from rigpose.core import Landmark
from rigpose.core.math3d import UP_AXIS, quat_identity


class AssetSlot(str, Enum):
    PRIMARY = "primary"
    ALTERNATE = "alternate"


@dataclass(frozen=True)
class SegmentDefinition:
    """Static description of one logical segment."""
    name: str
    label: str
    start: int
    end: int
    animated: bool = True


SEGMENT_DEFINITIONS: List[SegmentDefinition] = [
    # Arms
    SegmentDefinition("object_11", "Left lower arm (torso side)", Landmark.LEFT_SHOULDER, Landmark.LEFT_ELBOW),
    SegmentDefinition("object_12", "Left upper arm", Landmark.LEFT_ELBOW, Landmark.LEFT_WRIST),
    SegmentDefinition("object_13", "Left hand", Landmark.LEFT_WRIST, Landmark.LEFT_INDEX),
    SegmentDefinition("object_18", "Right lower arm (torso side)", Landmark.RIGHT_SHOULDER, Landmark.RIGHT_ELBOW),
    SegmentDefinition("object_19", "Right upper arm", Landmark.RIGHT_ELBOW, Landmark.RIGHT_WRIST),
    SegmentDefinition("object_20", "Right hand", Landmark.RIGHT_WRIST, Landmark.RIGHT_INDEX),
    # Legs
    SegmentDefinition("object_4", "Left thigh", Landmark.LEFT_HIP, Landmark.LEFT_KNEE),
    SegmentDefinition("object_5", "Left shin", Landmark.LEFT_KNEE, Landmark.LEFT_ANKLE),
    SegmentDefinition("object_6", "Left foot", Landmark.LEFT_ANKLE, Landmark.LEFT_FOOT_INDEX),
    SegmentDefinition("object_14", "Right thigh", Landmark.RIGHT_HIP, Landmark.RIGHT_KNEE),
    SegmentDefinition("object_15", "Right shin", Landmark.RIGHT_KNEE, Landmark.RIGHT_ANKLE),
    SegmentDefinition("object_16", "Right foot", Landmark.RIGHT_ANKLE, Landmark.RIGHT_FOOT_INDEX),
    # Head
    SegmentDefinition("object_7", "Neck", Landmark.LEFT_SHOULDER, Landmark.NOSE),
    SegmentDefinition("object_8", "Skull", Landmark.NOSE, Landmark.NOSE),
    SegmentDefinition("object_9", "Jaw", Landmark.NOSE, Landmark.NOSE),
    # Torso
    SegmentDefinition("object_10", "Left shoulder", Landmark.LEFT_SHOULDER, Landmark.LEFT_SHOULDER),
    SegmentDefinition("object_17", "Right shoulder", Landmark.RIGHT_SHOULDER, Landmark.RIGHT_SHOULDER),
    SegmentDefinition("object_3", "Chest", Landmark.LEFT_SHOULDER, Landmark.LEFT_HIP),
    SegmentDefinition("object_2", "Lower spine", Landmark.LEFT_SHOULDER, Landmark.LEFT_HIP),
    SegmentDefinition("object_1", "Pelvis", Landmark.LEFT_HIP, Landmark.RIGHT_HIP),
]


@dataclass
class SegmentRestData:
    """Rest transform and geometry facts captured when an asset loads."""
    position: np.ndarray
    quaternion: np.ndarray
    scale: np.ndarray
    axis: np.ndarray = field(default_factory=lambda: UP_AXIS.copy())
    rest_length: float = 1.0
    bbox_size: np.ndarray = field(default_factory=lambda: np.ones(3))
    geometry_correction: np.ndarray = field(default_factory=quat_identity)


@dataclass
class SegmentTransform:
    """Per-frame output for one segment of one asset."""
    position: np.ndarray
    quaternion: np.ndarray
    scale: np.ndarray
    visible: bool = True
    tracked: bool = False
    marker_visible: bool = False
    marker_scale: Optional[np.ndarray] = None

    @classmethod
    def rest(cls, rest: SegmentRestData, visible: bool = True) -> "SegmentTransform":
        return cls(
            position=rest.position.copy(),
            quaternion=rest.quaternion.copy(),
            scale=rest.scale.copy(),
            visible=visible,
        )


class Segment:
    """One logical segment bound to zero, one or two loaded assets."""

    def __init__(self, definition: SegmentDefinition):
        self.definition = definition
        self.bindings: Dict[AssetSlot, SegmentRestData] = {}
        self.transforms: Dict[AssetSlot, SegmentTransform] = {}

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def label(self) -> str:
        return self.definition.label

    @property
    def animated(self) -> bool:
        return self.definition.animated

    def rest_data(self, slot: AssetSlot) -> Optional[SegmentRestData]:
        return self.bindings.get(slot)

    def is_bound(self, slot: AssetSlot) -> bool:
        return slot in self.bindings

    def __repr__(self) -> str:
        slots = ",".join(slot.value for slot in self.bindings)
        return f"Segment({self.name}, bound=[{slots}])"


class SegmentTable:
    """Ordered segment list with lookup by name."""

    def __init__(self, definitions: Optional[List[SegmentDefinition]] = None):
        definitions = SEGMENT_DEFINITIONS if definitions is None else definitions
        self._segments = [Segment(d) for d in definitions]
        self._by_name = {s.name: s for s in self._segments}

    def __iter__(self) -> Iterator[Segment]:
        return iter(self._segments)

    def __len__(self) -> int:
        return len(self._segments)

    def __getitem__(self, index: int) -> Segment:
        return self._segments[index]

    def get(self, name: str) -> Optional[Segment]:
        return self._by_name.get(name)

    @property
    def names(self) -> List[str]:
        return [s.name for s in self._segments]

    def bound_segments(self, slot: AssetSlot) -> List[Segment]:
        return [s for s in self._segments if s.is_bound(slot)]

    def publish(self, slot: AssetSlot, bindings: Dict[str, SegmentRestData]) -> None:
        """
        Install a complete set of rest data for one asset slot.

        Called once per asset load with fully initialized data; segments
        missing from `bindings` become unbound for the slot.
        """
        for segment in self._segments:
            rest = bindings.get(segment.name)
            segment.transforms.pop(slot, None)
            if rest is None:
                segment.bindings.pop(slot, None)
            else:
                segment.bindings[slot] = rest
                segment.transforms[slot] = SegmentTransform.rest(rest)

    def unbind(self, slot: AssetSlot) -> None:
        for segment in self._segments:
            segment.bindings.pop(slot, None)
            segment.transforms.pop(slot, None)
