"""Configuration management system"""

from pathlib import Path
from typing import Any, Optional
import yaml

from .errors import ConfigError

CONFIG_FILENAME = "config.yaml"


def find_config_file(max_depth: int = 5) -> Path:
    """Look for config.yaml in the working directory, then above the package."""
    candidates = [Path.cwd() / CONFIG_FILENAME]
    here = Path(__file__).resolve().parent
    for _ in range(max_depth):
        candidates.append(here / CONFIG_FILENAME)
        here = here.parent
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise ConfigError(f"{CONFIG_FILENAME} not found")


def read_yaml_mapping(path: Path) -> dict:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top level of {path} must be a mapping")
    return data


class Config:
    """
    Process-wide YAML configuration with dot-notation access.

    Config() returns the already loaded instance; Config(path) (re)loads it
    from path. Values changed with set() live only in memory until reload().
    """

    _instance: Optional["Config"] = None

    def __new__(cls, config_path: Optional[str] = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._data = {}
            cls._instance._path = None
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._path is not None and config_path is None:
            return
        self._load(Path(config_path) if config_path else find_config_file())

    def _load(self, path: Path) -> None:
        self._data = read_yaml_mapping(path)
        self._path = path

    def reload(self) -> None:
        """Re-read the file, discarding runtime set() calls."""
        self._load(self._path)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get config value using dot notation.

        Example:
            config.get("calibration.smoothing", 0.5)
            config.get("tracking.strategy")
        """
        node = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set config value using dot notation (runtime only, not persisted)."""
        *parents, leaf = key.split(".")
        node = self._data
        for part in parents:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                raise ConfigError(f"Cannot set {key}: {part} is not a section")
            node = child
        node[leaf] = value

    def section(self, name: str) -> dict:
        value = self._data.get(name)
        return value if isinstance(value, dict) else {}

    def resolve_path(self, value: str) -> Path:
        """Paths in the file are relative to the file's own directory."""
        path = Path(value)
        if path.is_absolute():
            return path
        base = self._path.parent if self._path is not None else Path.cwd()
        return base / path

    @property
    def calibration(self) -> dict:
        return self.section("calibration")

    @property
    def tracking(self) -> dict:
        return self.section("tracking")

    @property
    def pose(self) -> dict:
        return self.section("pose")

    @property
    def video(self) -> dict:
        return self.section("video")

    @property
    def assets(self) -> dict:
        return self.section("assets")

    @property
    def rotation(self) -> dict:
        return self.section("rotation")

    @property
    def path(self) -> Optional[str]:
        return str(self._path) if self._path is not None else None

    def __repr__(self) -> str:
        return f"Config({self.path})"
