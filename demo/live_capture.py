"""
Demo for steady frame capture.
Shows the live camera feed with darkness/blur/motion status and
captures a photo on demand once all three checks pass.
"""

import sys
from pathlib import Path

# Add src to path BEFORE any local imports
_src_path = str(Path(__file__).parent.parent / "src")
if _src_path not in sys.path:
    sys.path.insert(0, _src_path)

import cv2
import time
import argparse
import logging

import config
from camera.capture import CameraFrameSource
from camera.frame_source import NoFrameAvailable
from capture.outcome import CaptureSuccess
from capture.session import CaptureSession
from motion.motion_tracker import MotionSample
from timing.scheduler import ThreadedScheduler


class LiveCaptureDemo:
    """
    Real-time capture demo.

    Desktop webcams have no accelerometer, so still samples are fed
    every frame and 'm' injects a shake.

    Displays:
    - Camera feed
    - Dark / blurred / moving flags
    - Motion warning and capture message
    """

    def __init__(self, camera_id: int = 0, output_dir: str = "captures"):
        self.camera_id = camera_id
        self.output_dir = Path(output_dir)

        self.scheduler = ThreadedScheduler()
        self.source = CameraFrameSource(camera_id)
        self.session = CaptureSession(self.source, self.scheduler)
        self.session.set_callback(self._on_outcome)

        self.COLORS = {
            'ok': (0, 200, 0),       # Green
            'bad': (0, 0, 255),      # Red
            'text': (255, 255, 255), # White
            'warn': (0, 165, 255),   # Orange
        }

    def run(self):
        """Main demo loop."""
        self.scheduler.start()
        if not self.session.start():
            print("ERROR: Could not open camera")
            self.scheduler.stop()
            return

        print("Steady Capture - Live Demo")
        print("=" * 50)
        print(f"Camera: {self.camera_id}")
        print(f"Resolution: {self.source.actual_resolution}")
        print(f"Timeout: {config.CAPTURE_TIMEOUT:.1f}s")
        print("-" * 50)
        print("Press SPACE to capture, 'm' to shake, 'q' to quit")
        print("=" * 50)

        try:
            while True:
                try:
                    frame = self.source.get_current_frame()
                except NoFrameAvailable:
                    time.sleep(0.01)
                    continue

                self.session.on_motion_sample(self._still_sample())

                vis_frame = self._draw_status_panel(frame.to_bgr())
                cv2.imshow("Steady Capture", vis_frame)

                key = cv2.waitKey(1) & 0xFF
                if key == ord('q'):
                    break
                elif key == ord(' '):
                    self.session.take_photo()
                    print("Capturing...")
                elif key == ord('m'):
                    self.session.on_motion_sample(self._shake_sample())

        finally:
            self.session.stop()
            self.scheduler.stop()
            cv2.destroyAllWindows()

    def _on_outcome(self, outcome):
        if isinstance(outcome, CaptureSuccess):
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"capture_{int(time.time() * 1000)}{config.CAPTURE_IMAGE_FORMAT}"
            path.write_bytes(outcome.image)
            print(f"Captured in {outcome.elapsed:.2f}s -> {path}")
        else:
            print(f"Capture failed: {outcome.reason}")
        self.session.acknowledge()

    def _still_sample(self) -> MotionSample:
        return MotionSample(
            timestamp=time.time(),
            acceleration=(0.0, 0.0, 0.0),
            acceleration_including_gravity=(0.0, 0.0, 9.81),
            interval=16.0
        )

    def _shake_sample(self) -> MotionSample:
        return MotionSample(
            timestamp=time.time(),
            acceleration=(2.0, 0.0, 0.0),
            acceleration_including_gravity=(2.0, 0.0, 9.81),
            interval=16.0
        )

    def _draw_status_panel(self, frame):
        """Draw status panel in corner."""
        status = self.session.status()

        panel_h = 160
        panel_w = 420
        cv2.rectangle(frame, (10, 10), (panel_w + 10, panel_h + 10),
                      (0, 0, 0), -1)
        cv2.rectangle(frame, (10, 10), (panel_w + 10, panel_h + 10),
                      (128, 128, 128), 1)

        x = 20
        y = 35
        line_h = 25

        def draw_text(text, color=self.COLORS['text']):
            nonlocal y
            cv2.putText(frame, text, (x, y),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1)
            y += line_h

        def flag(label, is_bad):
            draw_text(f"{label}: {'YES' if is_bad else 'no'}",
                      self.COLORS['bad'] if is_bad else self.COLORS['ok'])

        flag("Dark", status.is_dark)
        flag("Blurred", status.is_blurred)
        flag("Moving", status.is_moving)
        draw_text(f"State: {status.capture_state.value.upper()}")
        if status.motion_warning:
            draw_text(status.motion_warning, self.COLORS['warn'])
        if status.message:
            draw_text(status.message[:60])

        return frame


def main():
    parser = argparse.ArgumentParser(
        description="Steady Capture - Live Demo"
    )
    parser.add_argument(
        "--camera", "-c", type=int, default=0,
        help="Camera device index (default: 0)"
    )
    parser.add_argument(
        "--output", "-o", type=str, default="captures",
        help="Directory for captured photos (default: captures)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log per-tick analysis values"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    demo = LiveCaptureDemo(camera_id=args.camera, output_dir=args.output)
    demo.run()


if __name__ == "__main__":
    main()
