"""
Capture session - main entry point.
Wires frame source, sensors, analyzers and the capture state machine together.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from config import (
    ANALYSIS_INTERVAL, CAPTURE_POLL_INTERVAL, CAPTURE_TIMEOUT,
    CAPTURE_SUCCESS_MESSAGE
)
from camera.frame_source import FrameSource, NoFrameAvailable
from camera.permissions import PermissionGate, StaticPermissionGate, PermissionDenied
from motion.motion_tracker import MotionTracker, MotionSample, OrientationSample
from quality.brightness import BrightnessAnalyzer, BrightnessResult
from quality.blur import BlurAnalyzer, BlurResult
from quality.gate import QualityGate, QualityVerdict
from timing.scheduler import Scheduler, TimerHandle
from capture.orchestrator import CaptureOrchestrator, CaptureState
from capture.outcome import CaptureAttempt, CaptureOutcome, CaptureSuccess

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameAnalysis:
    """
    Result of one continuous-analysis tick.
    Replaced as a whole; never mutated field by field.
    """
    timestamp: float = 0.0
    is_dark: bool = False
    is_blurred: bool = False
    brightness: Optional[BrightnessResult] = None
    blur: Optional[BlurResult] = None  # None when darkness skipped blur analysis


@dataclass(frozen=True)
class SessionStatus:
    """Snapshot for a status display."""
    is_dark: bool
    is_blurred: bool
    is_moving: bool
    motion_warning: str
    is_valid: bool
    is_taking_photo: bool
    capture_state: CaptureState
    message: str


class CaptureSession:
    """
    Owns one camera session.

    Three timer families run on the session's scheduler:
    - continuous analysis tick (brightness, then blur unless dark)
    - capture poll tick, only while an attempt is active
    - motion settle timer, at most one pending

    stop() cancels all three and is safe to call repeatedly.

    Usage:
        with ThreadedScheduler() as scheduler:
            session = CaptureSession(CameraFrameSource(0), scheduler)
            session.start()
            session.take_photo()
            ...
            session.stop()
    """

    def __init__(self,
                 frame_source: FrameSource,
                 scheduler: Scheduler,
                 permissions: Optional[PermissionGate] = None,
                 brightness_analyzer: Optional[BrightnessAnalyzer] = None,
                 blur_analyzer: Optional[BlurAnalyzer] = None,
                 gate: Optional[QualityGate] = None,
                 motion_tracker: Optional[MotionTracker] = None,
                 analysis_interval: float = ANALYSIS_INTERVAL,
                 poll_interval: float = CAPTURE_POLL_INTERVAL,
                 capture_timeout: float = CAPTURE_TIMEOUT):
        self.frame_source = frame_source
        self.scheduler = scheduler
        self.permissions = permissions or StaticPermissionGate()
        self.analysis_interval = analysis_interval

        # Components
        self._brightness = brightness_analyzer or BrightnessAnalyzer()
        self._blur = blur_analyzer or BlurAnalyzer()
        self._gate = gate or QualityGate()
        self._tracker = motion_tracker or MotionTracker(scheduler)
        self._orchestrator = CaptureOrchestrator(
            scheduler,
            self.current_verdict,
            frame_source,
            gate=self._gate,
            poll_interval=poll_interval,
            timeout=capture_timeout
        )
        self._orchestrator.set_callback(self._on_outcome)

        # State
        self._is_running = False
        self._motion_enabled = False
        self._analysis = FrameAnalysis()
        self._analysis_timer: Optional[TimerHandle] = None
        self._message = ""
        self._lock = threading.Lock()
        self._callback: Optional[Callable[[CaptureOutcome], Any]] = None

    def start(self) -> bool:
        """
        Ask for device access, open the camera and begin live analysis.

        Returns:
            True if started successfully

        Raises:
            PermissionDenied: if camera access is refused
        """
        if self._is_running:
            return True

        self._motion_enabled = self.permissions.request_motion_access()
        if not self._motion_enabled:
            logger.warning("Motion access not granted; motion will not be tracked")

        if not self.permissions.request_camera_access():
            raise PermissionDenied("Camera access denied")

        if not self.frame_source.open():
            logger.error("Could not open frame source")
            return False

        with self._lock:
            self._is_running = True
            self._analysis = FrameAnalysis()
            self._analysis_timer = self.scheduler.call_every(
                self.analysis_interval, self.analyze_frame
            )

        logger.info("Capture session started")
        return True

    def stop(self) -> None:
        """Cancel every timer and release the camera. Idempotent."""
        with self._lock:
            was_running = self._is_running
            self._is_running = False
            if self._analysis_timer is not None:
                self._analysis_timer.cancel()
                self._analysis_timer = None

        self._orchestrator.cancel()
        self._tracker.reset()

        if was_running:
            self.frame_source.close()
            logger.info("Capture session stopped")

    def set_callback(self, callback: Optional[Callable[[CaptureOutcome], Any]]) -> None:
        """
        Set callback for capture outcomes.

        Args:
            callback: Function called with each CaptureSuccess / CaptureTimeout
        """
        self._callback = callback

    def analyze_frame(self) -> Optional[FrameAnalysis]:
        """
        Run one continuous-analysis tick on the latest frame.

        Returns:
            The new FrameAnalysis, or None if no frame was available
        """
        try:
            frame = self.frame_source.get_current_frame()
        except NoFrameAvailable:
            logger.debug("No frame available, skipping analysis tick")
            return None

        brightness = self._brightness.analyze(frame)
        blur = None
        if not brightness.is_dark:
            blur = self._blur.analyze(frame)

        analysis = FrameAnalysis(
            timestamp=self.scheduler.now(),
            is_dark=brightness.is_dark,
            # Blur is meaningless on a dark frame and reported as not blurred
            is_blurred=blur.is_blurred if blur is not None else False,
            brightness=brightness,
            blur=blur
        )

        with self._lock:
            if not self._is_running:
                return None
            self._analysis = analysis
        return analysis

    def current_verdict(self) -> QualityVerdict:
        """Latest analysis combined with the current motion state."""
        with self._lock:
            analysis = self._analysis
        return QualityVerdict(
            is_dark=analysis.is_dark,
            is_blurred=analysis.is_blurred,
            is_moving=self._tracker.is_moving
        )

    def on_motion_sample(self, sample: MotionSample) -> None:
        """Feed a motion sensor event. Ignored unless the session is running."""
        if self._is_running and self._motion_enabled:
            self._tracker.on_sample(sample)

    def on_orientation_sample(self, sample: OrientationSample) -> None:
        """Feed an orientation sensor event. Ignored unless the session is running."""
        if self._is_running and self._motion_enabled:
            self._tracker.on_orientation(sample)

    def take_photo(self) -> CaptureAttempt:
        """
        Start a capture attempt, superseding any attempt in progress.

        Raises:
            RuntimeError: if the session is not running
        """
        if not self._is_running:
            raise RuntimeError("Capture session is not running")
        with self._lock:
            self._message = ""
        return self._orchestrator.start_capture()

    def acknowledge(self) -> None:
        """Dismiss the last capture result."""
        self._orchestrator.acknowledge()

    def _on_outcome(self, outcome: CaptureOutcome) -> None:
        with self._lock:
            if isinstance(outcome, CaptureSuccess):
                self._message = CAPTURE_SUCCESS_MESSAGE
            else:
                self._message = outcome.reason
        if self._callback is not None:
            try:
                self._callback(outcome)
            except Exception:
                logger.exception("Session outcome callback failed")

    def status(self) -> SessionStatus:
        """Current status for display."""
        verdict = self.current_verdict()
        with self._lock:
            message = self._message
        return SessionStatus(
            is_dark=verdict.is_dark,
            is_blurred=verdict.is_blurred,
            is_moving=verdict.is_moving,
            motion_warning=self._gate.motion_warning(verdict),
            is_valid=self._gate.evaluate(verdict),
            is_taking_photo=self._orchestrator.is_polling,
            capture_state=self._orchestrator.state,
            message=message
        )

    @property
    def analysis(self) -> FrameAnalysis:
        with self._lock:
            return self._analysis

    @property
    def motion_info(self) -> Dict[str, str]:
        """Latest raw sensor readings as display strings."""
        return self._tracker.telemetry.as_dict()

    @property
    def motion_tracker(self) -> MotionTracker:
        return self._tracker

    @property
    def orchestrator(self) -> CaptureOrchestrator:
        return self._orchestrator

    @property
    def is_running(self) -> bool:
        return self._is_running

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
