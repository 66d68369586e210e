"""
Capture orchestration state machine.
Polls the quality gate on a fixed cadence and commits one capture or times out.
"""

import itertools
import logging
import threading
from enum import Enum
from typing import Callable, Optional, Any

from config import (
    CAPTURE_POLL_INTERVAL, CAPTURE_TIMEOUT,
    CAPTURE_IMAGE_FORMAT, CAPTURE_TIMEOUT_MESSAGE
)
from camera.frame_source import FrameSource, NoFrameAvailable
from quality.gate import QualityGate, QualityVerdict
from timing.scheduler import Scheduler, TimerHandle
from capture.outcome import (
    CaptureAttempt, CaptureOutcome, CaptureSuccess, CaptureTimeout
)

logger = logging.getLogger(__name__)


class CaptureState(Enum):
    """Orchestrator state."""
    IDLE = "idle"
    POLLING = "polling"
    CAPTURED = "captured"
    TIMED_OUT = "timed_out"


class CaptureOrchestrator:
    """
    Drives capture attempts.

    State machine:
        IDLE -> POLLING -> {CAPTURED | TIMED_OUT} -> IDLE (acknowledge)

    Each tick while POLLING:
    1. If the gate accepts the current verdict, capture the current frame
       and finish with CaptureSuccess.
    2. Otherwise, once more than `timeout` seconds have elapsed, finish
       with CaptureTimeout.

    Starting a new attempt cancels the previous poll timer before arming
    a new one. Ticks are bound to their attempt, so a stale tick from a
    superseded attempt can never produce an outcome.

    Usage:
        orchestrator = CaptureOrchestrator(scheduler, session.current_verdict, source)
        orchestrator.set_callback(lambda outcome: print(outcome))
        orchestrator.start_capture()
    """

    def __init__(self,
                 scheduler: Scheduler,
                 verdict_provider: Callable[[], QualityVerdict],
                 frame_source: FrameSource,
                 gate: Optional[QualityGate] = None,
                 poll_interval: float = CAPTURE_POLL_INTERVAL,
                 timeout: float = CAPTURE_TIMEOUT,
                 image_format: str = CAPTURE_IMAGE_FORMAT,
                 timeout_message: str = CAPTURE_TIMEOUT_MESSAGE):
        """
        Args:
            scheduler: Timer facility for the poll tick
            verdict_provider: Returns the latest whole QualityVerdict
            frame_source: Supplies the frame to capture on success
            gate: Acceptance predicate
            poll_interval: Seconds between ticks
            timeout: Seconds an attempt may poll before giving up
            image_format: Extension passed to the image encoder
            timeout_message: Reason reported on timeout
        """
        self.scheduler = scheduler
        self.verdict_provider = verdict_provider
        self.frame_source = frame_source
        self.gate = gate or QualityGate()
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.image_format = image_format
        self.timeout_message = timeout_message

        self._state = CaptureState.IDLE
        self._attempt: Optional[CaptureAttempt] = None
        self._poll_timer: Optional[TimerHandle] = None
        self._ids = itertools.count(1)
        self._lock = threading.RLock()
        self._callback: Optional[Callable[[CaptureOutcome], Any]] = None

    def set_callback(self, callback: Optional[Callable[[CaptureOutcome], Any]]) -> None:
        """
        Set callback for terminal outcomes.

        Args:
            callback: Function called once per finished attempt
        """
        self._callback = callback

    def start_capture(self) -> CaptureAttempt:
        """
        Begin a new attempt, superseding any attempt still polling.

        Returns:
            The new CaptureAttempt
        """
        with self._lock:
            self._supersede()

            now = self.scheduler.now()
            attempt = CaptureAttempt(
                attempt_id=next(self._ids),
                start_time=now,
                deadline=now + self.timeout
            )
            self._attempt = attempt
            self._state = CaptureState.POLLING
            self._poll_timer = self.scheduler.call_every(
                self.poll_interval, lambda: self._poll(attempt)
            )

        logger.debug("Capture attempt %d started", attempt.attempt_id)
        return attempt

    def on_tick(self) -> Optional[CaptureOutcome]:
        """
        Run one poll tick against the current attempt.

        Returns:
            The outcome if this tick finished the attempt, else None
        """
        with self._lock:
            attempt = self._attempt
        if attempt is None:
            return None
        return self._poll(attempt)

    def cancel(self) -> None:
        """Abandon the current attempt without an outcome. Idempotent."""
        with self._lock:
            self._supersede()
            if self._state == CaptureState.POLLING:
                self._state = CaptureState.IDLE

    def acknowledge(self) -> None:
        """Clear a finished attempt and return to IDLE."""
        with self._lock:
            if self._state in (CaptureState.CAPTURED, CaptureState.TIMED_OUT):
                self._state = CaptureState.IDLE
                self._attempt = None

    def _poll(self, attempt: CaptureAttempt) -> Optional[CaptureOutcome]:
        with self._lock:
            if attempt is not self._attempt or self._state != CaptureState.POLLING:
                return None

            now = self.scheduler.now()
            elapsed = now - attempt.start_time
            outcome: Optional[CaptureOutcome] = None

            if self.gate.evaluate(self.verdict_provider()):
                outcome = self._capture(attempt, elapsed)

            if outcome is None and elapsed > self.timeout:
                outcome = CaptureTimeout(
                    attempt_id=attempt.attempt_id,
                    reason=self.timeout_message,
                    elapsed=elapsed
                )
                self._finish(attempt, outcome, CaptureState.TIMED_OUT)
                logger.warning("Capture attempt %d timed out after %.2fs",
                               attempt.attempt_id, elapsed)

        if outcome is not None:
            self._notify(outcome)
        return outcome

    def _capture(self, attempt: CaptureAttempt, elapsed: float) -> Optional[CaptureSuccess]:
        try:
            frame = self.frame_source.get_current_frame()
        except NoFrameAvailable:
            logger.debug("No frame to capture yet, skipping tick")
            return None

        outcome = CaptureSuccess(
            attempt_id=attempt.attempt_id,
            image=frame.encode(self.image_format),
            frame=frame,
            elapsed=elapsed
        )
        self._finish(attempt, outcome, CaptureState.CAPTURED)
        logger.info("Capture attempt %d succeeded after %.2fs",
                    attempt.attempt_id, elapsed)
        return outcome

    def _finish(self, attempt: CaptureAttempt, outcome: CaptureOutcome,
                state: CaptureState) -> None:
        attempt.outcome = outcome
        self._state = state
        self._cancel_timer()

    def _supersede(self) -> None:
        self._cancel_timer()
        if self._attempt is not None and self._attempt.outcome is None:
            self._attempt.superseded = True
            logger.debug("Capture attempt %d superseded", self._attempt.attempt_id)

    def _cancel_timer(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None

    def _notify(self, outcome: CaptureOutcome) -> None:
        if self._callback is None:
            return
        try:
            self._callback(outcome)
        except Exception:
            logger.exception("Capture outcome callback failed")

    @property
    def state(self) -> CaptureState:
        with self._lock:
            return self._state

    @property
    def current_attempt(self) -> Optional[CaptureAttempt]:
        with self._lock:
            return self._attempt

    @property
    def last_outcome(self) -> Optional[CaptureOutcome]:
        with self._lock:
            return self._attempt.outcome if self._attempt is not None else None

    @property
    def is_polling(self) -> bool:
        return self.state == CaptureState.POLLING
