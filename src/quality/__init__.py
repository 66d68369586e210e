"""Frame quality analysis module."""

from .brightness import BrightnessAnalyzer, BrightnessResult
from .blur import BlurAnalyzer, BlurResult
from .gate import QualityGate, QualityVerdict

__all__ = [
    "BrightnessAnalyzer",
    "BrightnessResult",
    "BlurAnalyzer",
    "BlurResult",
    "QualityGate",
    "QualityVerdict"
]
