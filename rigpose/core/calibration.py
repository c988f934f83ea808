"""Rig-level calibration values and their startup defaults."""

from dataclasses import dataclass, fields, replace
from typing import Optional

import numpy as np

from .config import Config
from .errors import ConfigError

SMOOTHING_MIN = 0.0
SMOOTHING_MAX = 0.95


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value between min and max."""
    return max(min_val, min(max_val, value))


TRUE_WORDS = {"true", "yes", "on", "1"}
FALSE_WORDS = {"false", "no", "off", "0"}


def parse_flag(value, key: str) -> bool:
    """YAML booleans, 0/1, or a quoted word such as "false"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in TRUE_WORDS:
            return True
        if word in FALSE_WORDS:
            return False
    raise ConfigError(f"{key} must be true or false, got {value!r}")


def parse_number(value, key: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e


@dataclass
class Calibration:
    """
    Calibration owned by the whole rig.

    Position is in rig units, rotation in degrees. The scale and mirror
    fields feed the landmark normalizer; smoothing feeds the temporal filter.
    """
    position_x: float = 0.0
    position_y: float = 0.0
    position_z: float = 0.0
    rotation_x: float = 0.0
    rotation_y: float = 0.0
    rotation_z: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    scale_z: float = 1.0
    mirror: bool = True
    smoothing: float = 0.5

    @property
    def position(self) -> np.ndarray:
        return np.array([self.position_x, self.position_y, self.position_z], dtype=np.float64)

    @property
    def rotation_degrees(self) -> np.ndarray:
        return np.array([self.rotation_x, self.rotation_y, self.rotation_z], dtype=np.float64)

    @property
    def clamped_smoothing(self) -> float:
        return clamp(self.smoothing, SMOOTHING_MIN, SMOOTHING_MAX)

    def copy(self) -> "Calibration":
        return replace(self)

    def update(self, **values) -> None:
        """Set any subset of fields by name."""
        known = {f.name for f in fields(self)}
        for name, value in values.items():
            if name not in known:
                raise AttributeError(f"Unknown calibration field: {name}")
            setattr(self, name, value)

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "Calibration":
        """Build the startup calibration from the `calibration` config section."""
        section = (config or Config()).calibration
        defaults = cls()
        values = {}
        for f in fields(cls):
            raw = section.get(f.name, getattr(defaults, f.name))
            key = f"calibration.{f.name}"
            values[f.name] = parse_flag(raw, key) if f.name == "mirror" else parse_number(raw, key)
        return cls(**values)


@dataclass(frozen=True)
class TransformSnapshot:
    """Saved position/rotation offsets, restored when leaving rest pose."""
    position_x: float
    position_y: float
    position_z: float
    rotation_x: float
    rotation_y: float
    rotation_z: float

    @classmethod
    def capture(cls, calibration: Calibration) -> "TransformSnapshot":
        return cls(**{f.name: getattr(calibration, f.name) for f in fields(cls)})

    def apply_to(self, calibration: Calibration) -> None:
        for f in fields(self):
            setattr(calibration, f.name, getattr(self, f.name))
