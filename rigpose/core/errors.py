"""Exception types raised by the retargeting engine."""


class RigPoseError(Exception):
    """Base class for all rigpose errors."""


class ConfigError(RigPoseError):
    """Configuration file is missing, malformed or holds invalid values."""


class AssetLoadError(RigPoseError):
    """An authored asset could not be read or initialized."""

    def __init__(self, asset_id: str, reason: str):
        super().__init__(f"Failed to load asset '{asset_id}': {reason}")
        self.asset_id = asset_id
        self.reason = reason
