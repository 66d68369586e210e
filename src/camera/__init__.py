"""Camera frames and device access module."""

from .frame import PixelFrame
from .frame_source import FrameSource, StaticFrameSource, NoFrameAvailable
from .capture import CameraFrameSource
from .permissions import PermissionGate, StaticPermissionGate, PermissionDenied

__all__ = [
    "PixelFrame",
    "FrameSource",
    "StaticFrameSource",
    "NoFrameAvailable",
    "CameraFrameSource",
    "PermissionGate",
    "StaticPermissionGate",
    "PermissionDenied"
]
