"""Video input (requires the `capture` extra: opencv-python)"""

from .capture import VideoCapture, FrameResult, CaptureSource, resolve_source

__all__ = ["VideoCapture", "FrameResult", "CaptureSource", "resolve_source"]
