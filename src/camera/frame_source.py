"""
Frame source interface.
Pull-based access to the most recent decoded camera frame.
"""

import threading
from abc import ABC, abstractmethod
from typing import Optional

from camera.frame import PixelFrame


class NoFrameAvailable(Exception):
    """No frame has been decoded yet. Callers skip the tick."""


class FrameSource(ABC):
    """Provides the most recent frame on demand."""

    def open(self) -> bool:
        """Acquire the underlying device. Returns True on success."""
        return True

    def close(self) -> None:
        """Release the underlying device."""

    @abstractmethod
    def get_current_frame(self) -> PixelFrame:
        """
        Return the latest frame.

        Raises:
            NoFrameAvailable: if the source has not produced a frame yet
        """


class StaticFrameSource(FrameSource):
    """
    Frame source holding a single replaceable frame.
    Used for replaying stored images and in tests.
    """

    def __init__(self, frame: Optional[PixelFrame] = None):
        self._frame = frame
        self._lock = threading.Lock()
        self.is_open = False

    def set_frame(self, frame: Optional[PixelFrame]) -> None:
        with self._lock:
            self._frame = frame

    def open(self) -> bool:
        self.is_open = True
        return True

    def close(self) -> None:
        self.is_open = False

    def get_current_frame(self) -> PixelFrame:
        with self._lock:
            if self._frame is None:
                raise NoFrameAvailable("No frame set")
            return self._frame
