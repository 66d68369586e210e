"""
Terminal outcomes of a capture attempt.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from camera.frame import PixelFrame


@dataclass(frozen=True)
class CaptureSuccess:
    """A frame passed the quality gate and was captured."""
    attempt_id: int
    image: bytes = field(repr=False)  # Encoded image (PNG by default)
    frame: PixelFrame = field(repr=False)
    elapsed: float = 0.0  # Seconds from attempt start to capture


@dataclass(frozen=True)
class CaptureTimeout:
    """No acceptable frame appeared before the deadline."""
    attempt_id: int
    reason: str
    elapsed: float = 0.0


CaptureOutcome = Union[CaptureSuccess, CaptureTimeout]


@dataclass
class CaptureAttempt:
    """
    One bounded capture attempt.
    outcome is set exactly once, when the attempt finishes.
    """
    attempt_id: int
    start_time: float
    deadline: float
    outcome: Optional[CaptureOutcome] = None
    superseded: bool = False  # Cancelled by a newer attempt or by stop()

    @property
    def finished(self) -> bool:
        return self.outcome is not None or self.superseded
