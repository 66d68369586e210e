"""
Immutable RGB(A) pixel frame snapshot.
"""

import cv2
import numpy as np
from typing import Tuple


class PixelFrame:
    """
    Read-only snapshot of a rectangular RGB or RGBA buffer.

    The pixel array is copied on construction and marked non-writeable,
    so analyzers can never mutate a frame or observe later changes to
    the source buffer.
    """

    def __init__(self, pixels: np.ndarray, timestamp: float = 0.0):
        """
        Args:
            pixels: HxWx3 (RGB) or HxWx4 (RGBA) array, 0-255 per channel
            timestamp: Capture time in seconds
        """
        pixels = np.asarray(pixels)
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError(
                f"Expected HxWx3 or HxWx4 pixel array, got shape {pixels.shape}"
            )
        self._pixels = np.clip(pixels, 0, 255).astype(np.uint8)
        self._pixels.flags.writeable = False
        self.timestamp = timestamp

    @classmethod
    def from_bgr(cls, frame: np.ndarray, timestamp: float = 0.0) -> "PixelFrame":
        """Build a frame from an OpenCV BGR image."""
        return cls(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB), timestamp)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def channels(self) -> int:
        return self._pixels.shape[2]

    @property
    def size(self) -> int:
        """Number of pixels."""
        return self.width * self.height

    @property
    def rgb(self) -> np.ndarray:
        """HxWx3 read-only view of the colour channels (alpha dropped)."""
        return self._pixels[:, :, :3]

    def pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        """(r, g, b) of the pixel at column x, row y."""
        r, g, b = self._pixels[y, x, :3]
        return int(r), int(g), int(b)

    def red(self, x: int, y: int) -> int:
        return int(self._pixels[y, x, 0])

    def green(self, x: int, y: int) -> int:
        return int(self._pixels[y, x, 1])

    def blue(self, x: int, y: int) -> int:
        return int(self._pixels[y, x, 2])

    def to_bgr(self) -> np.ndarray:
        """Writable BGR copy for OpenCV drawing and encoding."""
        return cv2.cvtColor(np.ascontiguousarray(self.rgb), cv2.COLOR_RGB2BGR)

    def encode(self, ext: str = ".png") -> bytes:
        """Encode the frame to image bytes (PNG by default)."""
        ok, encoded = cv2.imencode(ext, self.to_bgr())
        if not ok:
            raise ValueError(f"Could not encode frame as {ext}")
        return encoded.tobytes()

    def __repr__(self) -> str:
        return f"PixelFrame({self.width}x{self.height}x{self.channels}, t={self.timestamp:.3f})"
