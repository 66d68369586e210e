"""
Camera and motion-sensor permission gate.
"""

from abc import ABC, abstractmethod


class PermissionDenied(Exception):
    """Access to a required device was refused."""


class PermissionGate(ABC):
    """Asks the host platform for device access."""

    @abstractmethod
    def request_camera_access(self) -> bool:
        """True if the camera may be used."""

    @abstractmethod
    def request_motion_access(self) -> bool:
        """True if motion/orientation sensors may be read."""


class StaticPermissionGate(PermissionGate):
    """Permission gate with fixed answers (desktop hosts, tests)."""

    def __init__(self, camera: bool = True, motion: bool = True):
        self.camera = camera
        self.motion = motion

    def request_camera_access(self) -> bool:
        return self.camera

    def request_motion_access(self) -> bool:
        return self.motion
