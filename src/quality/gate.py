"""
Quality gate: combines motion, darkness and blur verdicts.
"""

from dataclasses import dataclass

from config import MOTION_WARNING_MESSAGE


@dataclass(frozen=True)
class QualityVerdict:
    """
    The three per-tick verdicts.
    Always replaced as a whole so fields never mix different ticks.
    """
    is_dark: bool = False
    is_blurred: bool = False
    is_moving: bool = False


class QualityGate:
    """
    Stateless predicate deciding whether a frame is worth capturing.

    Only motion produces a user-facing warning; darkness and blur gate
    the capture silently.
    """

    def __init__(self, motion_warning: str = MOTION_WARNING_MESSAGE):
        self.motion_warning_text = motion_warning

    def evaluate(self, verdict: QualityVerdict) -> bool:
        """True when the device is still and the frame is bright and sharp."""
        return not verdict.is_moving and not verdict.is_dark and not verdict.is_blurred

    def motion_warning(self, verdict: QualityVerdict) -> str:
        """Instruction to show the user, empty unless the device is moving."""
        return self.motion_warning_text if verdict.is_moving else ""
