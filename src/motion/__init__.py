"""Device motion module."""

from .motion_tracker import (
    MotionTracker,
    MotionSample,
    OrientationSample,
    RotationRate,
    MotionState,
    MotionTelemetry
)

__all__ = [
    "MotionTracker",
    "MotionSample",
    "OrientationSample",
    "RotationRate",
    "MotionState",
    "MotionTelemetry"
]
