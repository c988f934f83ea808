"""
Joint-to-segment mapping overrides for manual inspection.

Overrides never mutate the segment table. The mapping used for a frame is
recomputed from (defaults, overrides, preview flag) each time it is needed.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from rigpose.core import get_logger, is_valid_index, format_landmark
from .segments import Segment, SegmentTable


class AxisSelection(str, Enum):
    AUTO = "auto"
    POS_X = "+x"
    NEG_X = "-x"
    POS_Y = "+y"
    NEG_Y = "-y"
    POS_Z = "+z"
    NEG_Z = "-z"


AXIS_VECTORS = {
    AxisSelection.POS_X: np.array([1.0, 0.0, 0.0]),
    AxisSelection.NEG_X: np.array([-1.0, 0.0, 0.0]),
    AxisSelection.POS_Y: np.array([0.0, 1.0, 0.0]),
    AxisSelection.NEG_Y: np.array([0.0, -1.0, 0.0]),
    AxisSelection.POS_Z: np.array([0.0, 0.0, 1.0]),
    AxisSelection.NEG_Z: np.array([0.0, 0.0, -1.0]),
}


@dataclass
class SegmentOverride:
    """User-chosen mapping for one segment. None means "keep the default"."""
    start: Optional[int] = None
    end: Optional[int] = None
    axis: AxisSelection = AxisSelection.AUTO
    notes: str = ""


@dataclass(frozen=True)
class EffectiveMapping:
    """Joints and axis override actually used for a segment this frame."""
    start: int
    end: int
    axis: Optional[np.ndarray] = None  # None: use the auto-detected axis


def resolve_mapping(
    segment: Segment,
    override: Optional[SegmentOverride],
    preview: bool,
) -> EffectiveMapping:
    """Default mapping unless preview is on and an override exists."""
    definition = segment.definition
    if not preview or override is None:
        return EffectiveMapping(definition.start, definition.end)

    start = override.start if is_valid_index(override.start) else definition.start
    end = override.end if is_valid_index(override.end) else definition.end
    axis = AXIS_VECTORS.get(AxisSelection(override.axis))
    return EffectiveMapping(start, end, None if axis is None else axis.copy())


class MappingOverrides:
    """Override table for the debug/mapping surface."""

    def __init__(self):
        self.logger = get_logger("motion.mapping")
        self._overrides: Dict[str, SegmentOverride] = {}
        self.preview = False

    def get(self, name: str) -> Optional[SegmentOverride]:
        return self._overrides.get(name)

    def _entry(self, name: str) -> SegmentOverride:
        if name not in self._overrides:
            self._overrides[name] = SegmentOverride()
        return self._overrides[name]

    def set_start(self, name: str, index) -> None:
        """Invalid indices reset the override to the segment default."""
        self._entry(name).start = index if is_valid_index(index) else None

    def set_end(self, name: str, index) -> None:
        self._entry(name).end = index if is_valid_index(index) else None

    def set_axis(self, name: str, selection) -> None:
        try:
            self._entry(name).axis = AxisSelection(selection)
        except ValueError:
            self.logger.warning(f"Unknown axis selection '{selection}' for {name}, using auto")
            self._entry(name).axis = AxisSelection.AUTO

    def set_notes(self, name: str, notes: str) -> None:
        self._entry(name).notes = notes

    def clear(self) -> None:
        self._overrides.clear()

    def effective(self, segment: Segment) -> EffectiveMapping:
        return resolve_mapping(segment, self._overrides.get(segment.name), self.preview)

    def export_rows(self, segments: SegmentTable) -> List[dict]:
        """One row per segment: default mapping, selected mapping, axis, notes."""
        rows = []
        for segment in segments:
            override = self._overrides.get(segment.name) or SegmentOverride()
            definition = segment.definition
            rows.append({
                "mesh": segment.name,
                "label": segment.label,
                "default_start": int(definition.start),
                "default_end": int(definition.end),
                "selected_start": int(definition.start if override.start is None else override.start),
                "selected_end": int(definition.end if override.end is None else override.end),
                "axis": AxisSelection(override.axis).value,
                "notes": override.notes,
            })
        return rows

    def export_json(self, segments: SegmentTable, indent: int = 2) -> str:
        return json.dumps(self.export_rows(segments), indent=indent)

    def describe(self, segment: Segment) -> List[str]:
        """Text lines for inspecting one segment's mapping."""
        definition = segment.definition
        override = self._overrides.get(segment.name) or SegmentOverride()
        selected_start = definition.start if override.start is None else override.start
        selected_end = definition.end if override.end is None else override.end
        lines = [
            f"Default mapping: {format_landmark(int(definition.start))} -> {format_landmark(int(definition.end))}",
            f"Selected mapping: {format_landmark(int(selected_start))} -> {format_landmark(int(selected_end))}, "
            f"{'applied' if self.preview else 'not applied'}",
            f"Axis selection: {AxisSelection(override.axis).value}",
        ]
        if override.notes:
            lines.append(f"Notes: {override.notes}")
        return lines
