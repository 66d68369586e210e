"""
Scene darkness detection.
Flags a frame as dark when a meaningful minority of sampled pixels are dark.
"""

import logging
import numpy as np
from dataclasses import dataclass

from config import (
    BRIGHTNESS_SAMPLE_STRIDE, DARK_PIXEL_THRESHOLD,
    DARK_PROPORTION_THRESHOLD
)
from camera.frame import PixelFrame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BrightnessResult:
    """Result of brightness analysis."""
    is_dark: bool
    dark_proportion: float  # 0-1: dark samples / sampled pixels
    dark_count: int
    sampled_count: int


class BrightnessAnalyzer:
    """
    Classifies a frame as dark or not.

    Rather than thresholding the mean brightness, counts individually dark
    pixels. A dark scene with a few bright highlights is still dark.
    """

    def __init__(self,
                 sample_stride: int = BRIGHTNESS_SAMPLE_STRIDE,
                 dark_threshold: float = DARK_PIXEL_THRESHOLD,
                 proportion_threshold: float = DARK_PROPORTION_THRESHOLD):
        """
        Args:
            sample_stride: Analyze every Nth pixel in row-major order
            dark_threshold: Mean RGB value below which a pixel is dark
            proportion_threshold: Fraction of dark samples above which the frame is dark
        """
        if sample_stride < 1:
            raise ValueError("sample_stride must be >= 1")
        self.sample_stride = sample_stride
        self.dark_threshold = dark_threshold
        self.proportion_threshold = proportion_threshold

    def analyze(self, frame: PixelFrame) -> BrightnessResult:
        """
        Analyze the brightness of a frame.

        Args:
            frame: Frame to analyze (not retained)

        Returns:
            BrightnessResult with the darkness verdict
        """
        samples = frame.rgb.reshape(-1, 3)[::self.sample_stride]
        sampled_count = len(samples)

        if sampled_count == 0:
            return BrightnessResult(
                is_dark=False, dark_proportion=0.0,
                dark_count=0, sampled_count=0
            )

        brightness = samples.astype(np.float64).sum(axis=1) / 3.0
        dark_count = int(np.count_nonzero(brightness < self.dark_threshold))
        dark_proportion = dark_count / sampled_count
        is_dark = dark_proportion > self.proportion_threshold

        logger.debug(
            "Dark pixels %d/%d (%.3f), dark=%s",
            dark_count, sampled_count, dark_proportion, is_dark
        )

        return BrightnessResult(
            is_dark=is_dark,
            dark_proportion=dark_proportion,
            dark_count=dark_count,
            sampled_count=sampled_count
        )
