"""
Live camera frame source.
Handles USB camera connection with graceful error handling.
"""

import cv2
import logging
import numpy as np
from typing import Optional, Tuple
import threading
import time

from config import FRAME_WIDTH, FRAME_HEIGHT, TARGET_FPS
from camera.frame import PixelFrame
from camera.frame_source import FrameSource, NoFrameAvailable

logger = logging.getLogger(__name__)


class CameraFrameSource(FrameSource):
    """
    Camera frame source with automatic configuration.
    Reads frames on a background thread and keeps only the latest one.
    """

    def __init__(self, camera_id: int = 0, width: int = FRAME_WIDTH,
                 height: int = FRAME_HEIGHT, fps: int = TARGET_FPS):
        self.camera_id = camera_id
        self.width = width
        self.height = height
        self.fps = fps
        self._cap: Optional[cv2.VideoCapture] = None
        self._is_running = False
        self._capture_thread: Optional[threading.Thread] = None
        self._last_frame: Optional[np.ndarray] = None
        self._last_timestamp = 0.0
        self._frame_lock = threading.Lock()

    def open(self) -> bool:
        """
        Open the camera connection and start background capture.

        Tries V4L2 backend first (better for Raspberry Pi),
        then falls back to default backend.
        """
        if self._is_running:
            return True

        self._cap = cv2.VideoCapture(self.camera_id, cv2.CAP_V4L2)

        if not self._cap.isOpened():
            # Fallback to default backend (GStreamer, etc.)
            self._cap = cv2.VideoCapture(self.camera_id)

        if not self._cap.isOpened():
            for alt_id in [0, 1, 2]:
                if alt_id != self.camera_id:
                    self._cap = cv2.VideoCapture(alt_id, cv2.CAP_V4L2)
                    if self._cap.isOpened():
                        logger.info("Camera found at index %d", alt_id)
                        self.camera_id = alt_id
                        break

        if not self._cap.isOpened():
            logger.error("Could not open any camera")
            self._cap = None
            return False

        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._cap.set(cv2.CAP_PROP_FPS, self.fps)

        if not self._read_frame():
            logger.warning("Camera opened but could not read frame")
            self._cap.release()
            self._cap = None
            return False

        self._is_running = True
        self._capture_thread = threading.Thread(target=self._capture_loop, daemon=True)
        self._capture_thread.start()
        return True

    def close(self) -> None:
        """Stop background capture and release the camera. Safe to call repeatedly."""
        self._is_running = False
        if self._capture_thread is not None:
            self._capture_thread.join(timeout=1.0)
            self._capture_thread = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        with self._frame_lock:
            self._last_frame = None

    def get_current_frame(self) -> PixelFrame:
        with self._frame_lock:
            if self._last_frame is None:
                raise NoFrameAvailable("Camera has not produced a frame yet")
            return PixelFrame.from_bgr(self._last_frame, self._last_timestamp)

    def _read_frame(self) -> bool:
        if self._cap is None or not self._cap.isOpened():
            return False

        ret, frame = self._cap.read()
        if not ret:
            return False

        with self._frame_lock:
            self._last_frame = frame
            self._last_timestamp = time.time()
        return True

    def _capture_loop(self) -> None:
        """Background capture loop."""
        frame_interval = 1.0 / self.fps

        while self._is_running:
            start_time = time.time()
            self._read_frame()

            # Maintain target FPS
            elapsed = time.time() - start_time
            sleep_time = frame_interval - elapsed
            if sleep_time > 0:
                time.sleep(sleep_time)

    @property
    def is_opened(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    @property
    def actual_resolution(self) -> Tuple[int, int]:
        """Actual camera resolution (may differ from requested)."""
        if self._cap is None:
            return (0, 0)
        return (
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        )

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
