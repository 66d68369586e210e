"""
Integration tests for CaptureSession.
Frame source, sensors and timers are all simulated.
"""

import numpy as np
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config import CAPTURE_SUCCESS_MESSAGE, CAPTURE_TIMEOUT_MESSAGE
from camera.frame import PixelFrame
from camera.frame_source import StaticFrameSource
from camera.permissions import StaticPermissionGate, PermissionDenied
from capture.orchestrator import CaptureState
from capture.outcome import CaptureSuccess, CaptureTimeout
from capture.session import CaptureSession
from motion.motion_tracker import MotionSample, OrientationSample
from timing.scheduler import ManualScheduler


def _sharp_frame(width=64, height=48, block=8):
    """Bright checkerboard: not dark, not blurred."""
    ys, xs = np.mgrid[0:height, 0:width]
    mask = ((ys // block) + (xs // block)) % 2 == 0
    gray = np.where(mask, 255, 150).astype(np.uint8)
    return PixelFrame(np.stack([gray, gray, gray], axis=-1))


def _flat_frame(value, width=64, height=48):
    return PixelFrame(np.full((height, width, 3), value, dtype=np.uint8))


def _motion(magnitude):
    return MotionSample(
        timestamp=0.0,
        acceleration=(magnitude, 0.0, 0.0),
        acceleration_including_gravity=(magnitude, 0.0, 9.81)
    )


class TestCaptureSession:
    """Tests for CaptureSession."""

    @pytest.fixture
    def scheduler(self):
        return ManualScheduler()

    @pytest.fixture
    def source(self):
        return StaticFrameSource(_sharp_frame())

    @pytest.fixture
    def outcomes(self):
        return []

    @pytest.fixture
    def session(self, scheduler, source, outcomes):
        session = CaptureSession(source, scheduler)
        session.set_callback(outcomes.append)
        yield session
        session.stop()

    def test_start_opens_source(self, session, source):
        assert session.start()

        assert session.is_running
        assert source.is_open

    def test_analysis_tick_updates_verdict(self, session, scheduler):
        session.start()
        scheduler.advance(0.5)

        analysis = session.analysis
        assert not analysis.is_dark
        assert not analysis.is_blurred
        assert analysis.blur is not None
        assert session.status().is_valid

    def test_blurred_frame(self, session, scheduler, source):
        source.set_frame(_flat_frame(200))
        session.start()
        scheduler.advance(0.5)

        status = session.status()
        assert status.is_blurred
        assert not status.is_dark
        assert not status.is_valid

    def test_dark_frame_skips_blur(self, session, scheduler, source):
        """Darkness short-circuits blur analysis and reports not blurred."""
        source.set_frame(_flat_frame(10))
        session.start()
        scheduler.advance(0.5)

        analysis = session.analysis
        assert analysis.is_dark
        assert not analysis.is_blurred
        assert analysis.blur is None

    def test_missing_frame_skips_tick(self, scheduler):
        source = StaticFrameSource()
        session = CaptureSession(source, scheduler)
        session.start()
        scheduler.advance(1.0)

        assert session.analysis.brightness is None
        session.stop()

    def test_capture_success_flow(self, session, scheduler, outcomes):
        session.start()
        session.on_motion_sample(_motion(0.0))
        scheduler.advance(0.5)

        session.take_photo()
        assert session.status().is_taking_photo

        scheduler.advance(0.1)

        assert len(outcomes) == 1
        assert isinstance(outcomes[0], CaptureSuccess)
        status = session.status()
        assert status.message == CAPTURE_SUCCESS_MESSAGE
        assert not status.is_taking_photo
        assert status.capture_state == CaptureState.CAPTURED

    def test_capture_waits_for_device_to_settle(self, session, scheduler, outcomes):
        session.start()
        scheduler.advance(0.5)
        session.on_motion_sample(_motion(3.0))
        session.take_photo()

        assert session.status().motion_warning

        session.on_motion_sample(_motion(0.1))
        scheduler.advance(0.4)
        assert outcomes == []

        scheduler.advance(0.2)

        assert len(outcomes) == 1
        assert isinstance(outcomes[0], CaptureSuccess)
        assert 0.5 - 1e-9 <= outcomes[0].elapsed <= 0.6 + 1e-9

    def test_capture_timeout_flow(self, session, scheduler, source, outcomes):
        source.set_frame(_flat_frame(10))
        session.start()
        scheduler.advance(0.5)
        session.take_photo()
        scheduler.advance(2.5)

        assert [type(o) for o in outcomes] == [CaptureTimeout]
        assert session.status().message == CAPTURE_TIMEOUT_MESSAGE

    def test_scene_brightening_mid_attempt(self, session, scheduler, source, outcomes):
        """Verdict refreshes on the analysis cadence while polling."""
        source.set_frame(_flat_frame(10))
        session.start()
        scheduler.advance(0.5)
        session.take_photo()

        source.set_frame(_sharp_frame())
        scheduler.advance(0.3)
        assert outcomes == []

        scheduler.advance(0.3)
        assert len(outcomes) == 1
        assert isinstance(outcomes[0], CaptureSuccess)

    def test_take_photo_requires_running(self, session):
        with pytest.raises(RuntimeError):
            session.take_photo()

    def test_stop_cancels_all_timers(self, session, scheduler, source, outcomes):
        session.start()
        session.on_motion_sample(_motion(3.0))
        session.on_motion_sample(_motion(0.0))
        session.take_photo()
        assert scheduler.pending == 3

        session.stop()
        session.stop()

        assert scheduler.pending == 0
        assert not session.is_running
        assert not source.is_open
        scheduler.advance(5.0)
        assert outcomes == []

    def test_samples_ignored_when_stopped(self, session):
        session.on_motion_sample(_motion(3.0))

        assert not session.motion_tracker.is_moving
        assert session.motion_info == {}

    def test_motion_info(self, session):
        session.start()
        session.on_motion_sample(_motion(0.2))
        session.on_orientation_sample(OrientationSample(timestamp=0.0, alpha=1.0, beta=2.0, gamma=3.0))

        info = session.motion_info
        assert info["Accelerometer_x"] == "0.2000000000"
        assert info["Orientation_g"] == "3.0000000000"

    def test_restart_after_stop(self, session, scheduler):
        session.start()
        session.stop()
        assert session.start()

        assert scheduler.pending == 1


class TestSessionPermissions:
    """Tests for permission handling at session start."""

    def test_camera_denied(self):
        scheduler = ManualScheduler()
        source = StaticFrameSource(_sharp_frame())
        session = CaptureSession(
            source, scheduler,
            permissions=StaticPermissionGate(camera=False)
        )

        with pytest.raises(PermissionDenied):
            session.start()

        assert not session.is_running
        assert not source.is_open
        assert scheduler.pending == 0

    def test_motion_denied_still_starts(self):
        scheduler = ManualScheduler()
        session = CaptureSession(
            StaticFrameSource(_sharp_frame()), scheduler,
            permissions=StaticPermissionGate(motion=False)
        )

        assert session.start()
        session.on_motion_sample(_motion(3.0))

        assert not session.status().is_moving
        session.stop()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
