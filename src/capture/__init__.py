"""Capture orchestration module."""

from .outcome import CaptureAttempt, CaptureOutcome, CaptureSuccess, CaptureTimeout
from .orchestrator import CaptureOrchestrator, CaptureState
from .session import CaptureSession, FrameAnalysis, SessionStatus

__all__ = [
    "CaptureAttempt",
    "CaptureOutcome",
    "CaptureSuccess",
    "CaptureTimeout",
    "CaptureOrchestrator",
    "CaptureState",
    "CaptureSession",
    "FrameAnalysis",
    "SessionStatus"
]
