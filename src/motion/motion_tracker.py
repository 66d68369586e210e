"""
Device motion tracking from inertial sensor samples.
Reports motion instantly, but only trusts stillness after it persists.
"""

import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Tuple

from config import MOTION_THRESHOLD, MOTION_SETTLE_SECONDS
from timing.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

Vector3 = Tuple[float, float, float]


@dataclass(frozen=True)
class RotationRate:
    """Gyroscope rotation rates (deg/s) around z, x and y axes."""
    alpha: float
    beta: float
    gamma: float


@dataclass(frozen=True)
class MotionSample:
    """
    One accelerometer/gyroscope event.

    Either acceleration vector may be None on hosts that cannot
    provide it; such samples are ignored.
    """
    timestamp: float
    acceleration: Optional[Vector3]               # Linear, gravity removed
    acceleration_including_gravity: Optional[Vector3]
    interval: float = 0.0                          # ms between sensor events
    rotation_rate: Optional[RotationRate] = None

    @property
    def magnitude(self) -> float:
        """Euclidean norm of the linear acceleration."""
        x, y, z = self.acceleration
        return math.sqrt(x ** 2 + y ** 2 + z ** 2)


@dataclass(frozen=True)
class OrientationSample:
    """Device orientation angles; any may be missing."""
    timestamp: float
    alpha: Optional[float] = None
    beta: Optional[float] = None
    gamma: Optional[float] = None


@dataclass(frozen=True)
class MotionState:
    """
    Debounced motion state.
    Invariant: is_moving implies pending_still_since is None.
    """
    is_moving: bool = False
    pending_still_since: Optional[float] = None


@dataclass(frozen=True)
class MotionTelemetry:
    """Latest raw sensor readings, kept for status display and debugging."""
    acceleration: Optional[Vector3] = None
    acceleration_including_gravity: Optional[Vector3] = None
    interval: Optional[float] = None
    rotation_rate: Optional[RotationRate] = None
    orientation: Optional[OrientationSample] = None

    def as_dict(self) -> Dict[str, str]:
        """Readings as fixed-precision strings; absent readings are omitted."""
        info = {}
        if self.acceleration_including_gravity is not None:
            gx, gy, gz = self.acceleration_including_gravity
            info["Accelerometer_gx"] = f"{gx:.10f}"
            info["Accelerometer_gy"] = f"{gy:.10f}"
            info["Accelerometer_gz"] = f"{gz:.10f}"
        if self.acceleration is not None:
            x, y, z = self.acceleration
            info["Accelerometer_x"] = f"{x:.10f}"
            info["Accelerometer_y"] = f"{y:.10f}"
            info["Accelerometer_z"] = f"{z:.10f}"
        if self.interval is not None:
            info["Accelerometer_i"] = f"{self.interval:.2f}"
        if self.rotation_rate is not None:
            info["Gyroscope_z"] = f"{self.rotation_rate.alpha:.10f}"
            info["Gyroscope_x"] = f"{self.rotation_rate.beta:.10f}"
            info["Gyroscope_y"] = f"{self.rotation_rate.gamma:.10f}"
        if self.orientation is not None:
            for key, value in (("Orientation_a", self.orientation.alpha),
                               ("Orientation_b", self.orientation.beta),
                               ("Orientation_g", self.orientation.gamma)):
                if value is not None:
                    info[key] = f"{value:.10f}"
        return info


class MotionTracker:
    """
    Maintains a debounced "device is moving" flag.

    Transition rule (asymmetric):
    - moving sample: is_moving becomes True at once, pending settle cancelled
    - still sample, nothing pending: arm a settle timer
    - still sample, settle pending: no change
    - settle timer fires: is_moving becomes False
    """

    def __init__(self,
                 scheduler: Scheduler,
                 threshold: float = MOTION_THRESHOLD,
                 settle_seconds: float = MOTION_SETTLE_SECONDS,
                 on_change: Optional[Callable[[MotionState], None]] = None):
        """
        Args:
            scheduler: Timer facility used for the settle delay
            threshold: Linear acceleration magnitude above which the device is moving
            settle_seconds: How long stillness must last before it is reported
            on_change: Called with the new state whenever is_moving flips
        """
        self.scheduler = scheduler
        self.threshold = threshold
        self.settle_seconds = settle_seconds
        self.on_change = on_change

        self._state = MotionState()
        self._settle_timer: Optional[TimerHandle] = None
        self._telemetry = MotionTelemetry()
        self._event_count = 0
        self._still_since: Optional[float] = None
        self._lock = threading.Lock()

    def on_sample(self, sample: MotionSample) -> MotionState:
        """
        Process one motion sample.

        Returns:
            The motion state after this sample
        """
        if sample.acceleration is None or sample.acceleration_including_gravity is None:
            return self.state

        magnitude = sample.magnitude
        is_currently_moving = magnitude > self.threshold

        with self._lock:
            was_moving = self._state.is_moving
            if is_currently_moving:
                self._cancel_settle()
                self._state = MotionState(is_moving=True)
            elif self._settle_timer is None:
                self._still_since = self.scheduler.now()
                self._settle_timer = self.scheduler.call_later(
                    self.settle_seconds, self._settle
                )
                if not self._state.is_moving:
                    self._state = MotionState(
                        is_moving=False, pending_still_since=self._still_since
                    )

            self._telemetry = replace(
                self._telemetry,
                acceleration=sample.acceleration,
                acceleration_including_gravity=sample.acceleration_including_gravity,
                interval=sample.interval,
                rotation_rate=sample.rotation_rate
            )
            self._event_count += 1
            state = self._state

        logger.debug("Motion magnitude %.3f (moving=%s)", magnitude, is_currently_moving)
        if state.is_moving and not was_moving:
            self._notify(state)
        return state

    def on_orientation(self, sample: OrientationSample) -> None:
        """Record device orientation. Does not affect the moving flag."""
        with self._lock:
            self._telemetry = replace(self._telemetry, orientation=sample)
            self._event_count += 1

    def reset(self) -> None:
        """Cancel any pending settle timer and report the device as still."""
        with self._lock:
            self._cancel_settle()
            self._state = MotionState()

    def _settle(self) -> None:
        with self._lock:
            if self._settle_timer is None:
                return
            if self.scheduler.now() - self._still_since < self.settle_seconds - 1e-9:
                # Stale timer that lost a race with cancellation
                return
            self._settle_timer = None
            self._still_since = None
            was_moving = self._state.is_moving
            self._state = MotionState(is_moving=False)
            state = self._state

        if was_moving:
            logger.debug("Device settled")
            self._notify(state)

    def _cancel_settle(self) -> None:
        if self._settle_timer is not None:
            self._settle_timer.cancel()
            self._settle_timer = None
        self._still_since = None

    def _notify(self, state: MotionState) -> None:
        if self.on_change is None:
            return
        try:
            self.on_change(state)
        except Exception:
            logger.exception("Motion change listener failed")

    @property
    def state(self) -> MotionState:
        with self._lock:
            return self._state

    @property
    def is_moving(self) -> bool:
        return self.state.is_moving

    @property
    def telemetry(self) -> MotionTelemetry:
        with self._lock:
            return self._telemetry

    @property
    def event_count(self) -> int:
        with self._lock:
            return self._event_count

    @property
    def settle_pending(self) -> bool:
        """True while a stillness confirmation timer is armed."""
        with self._lock:
            return self._settle_timer is not None
