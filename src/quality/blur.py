"""
Blur detection via variance of the Laplacian.
A sharp image has many strong local intensity changes; a blurry one has few.
"""

import cv2
import logging
import numpy as np
from dataclasses import dataclass
from typing import Tuple

from config import LUMA_WEIGHTS, BLUR_VARIANCE_THRESHOLD
from camera.frame import PixelFrame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlurResult:
    """Result of blur analysis."""
    is_blurred: bool
    laplacian_mean: float
    laplacian_variance: float
    interior_pixels: int  # Pixels the Laplacian was evaluated on


class BlurAnalyzer:
    """
    Classifies a frame as blurred or sharp.

    Pipeline:
    1. Weighted RGB -> luma grid
    2. 4-neighbour Laplacian on interior pixels (1px border excluded)
    3. Population variance of |Laplacian|
    4. Variance below threshold = blurred
    """

    def __init__(self,
                 blur_threshold: float = BLUR_VARIANCE_THRESHOLD,
                 luma_weights: Tuple[float, float, float] = LUMA_WEIGHTS):
        self.blur_threshold = blur_threshold
        self.luma_weights = np.asarray(luma_weights, dtype=np.float64)

    def to_luma(self, frame: PixelFrame) -> np.ndarray:
        """HxW float64 luma grid."""
        return frame.rgb.astype(np.float64) @ self.luma_weights

    def edge_magnitudes(self, luma: np.ndarray) -> np.ndarray:
        """
        Absolute 4-neighbour Laplacian of every interior pixel.

        Returns:
            (H-2)x(W-2) array, empty if the grid has no interior
        """
        height, width = luma.shape
        if height < 3 or width < 3:
            return np.empty((0, 0), dtype=np.float64)

        # ksize=1 is exactly the [[0,1,0],[1,-4,1],[0,1,0]] kernel
        laplacian = cv2.Laplacian(luma, cv2.CV_64F, ksize=1)
        return np.abs(laplacian[1:-1, 1:-1])

    def analyze(self, frame: PixelFrame) -> BlurResult:
        """
        Analyze the sharpness of a frame.

        Degenerate frames (no interior pixels) are reported as blurred:
        without edges there is nothing usable to capture.
        """
        magnitudes = self.edge_magnitudes(self.to_luma(frame))

        if magnitudes.size == 0:
            logger.debug("Degenerate %dx%d frame, treating as blurred",
                         frame.width, frame.height)
            return BlurResult(
                is_blurred=True, laplacian_mean=0.0,
                laplacian_variance=0.0, interior_pixels=0
            )

        mean = float(magnitudes.mean())
        variance = float(magnitudes.var())
        is_blurred = variance < self.blur_threshold

        logger.debug("Laplacian variance %.2f, blurred=%s", variance, is_blurred)

        return BlurResult(
            is_blurred=is_blurred,
            laplacian_mean=mean,
            laplacian_variance=variance,
            interior_pixels=int(magnitudes.size)
        )
