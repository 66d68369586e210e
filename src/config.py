"""
Configuration constants for steady frame capture.
Thresholds are tuned for handheld phone/webcam frames at full resolution.
"""

# =============================================================================
# Camera Settings
# =============================================================================
FRAME_WIDTH = 1440
FRAME_HEIGHT = 1920
TARGET_FPS = 30
CAPTURE_IMAGE_FORMAT = ".png"  # Encoding used for captured photo bytes

# =============================================================================
# Motion Tracking
# =============================================================================
MOTION_THRESHOLD = 0.6  # Linear acceleration magnitude above this = moving
MOTION_SETTLE_SECONDS = 0.5  # Stillness must persist this long before trusted

# =============================================================================
# Brightness Analysis
# =============================================================================
BRIGHTNESS_SAMPLE_STRIDE = 8  # Sample every Nth pixel (row-major order)
DARK_PIXEL_THRESHOLD = 90  # Mean RGB below this = dark pixel
DARK_PROPORTION_THRESHOLD = 0.08  # >8% dark samples = dark frame

# =============================================================================
# Blur Analysis
# =============================================================================
LUMA_WEIGHTS = (0.2989, 0.587, 0.114)  # R, G, B perceptual weights
BLUR_VARIANCE_THRESHOLD = 30.0  # Laplacian variance below this = blurred

# =============================================================================
# Capture Orchestration
# =============================================================================
CAPTURE_POLL_INTERVAL = 0.1  # Seconds between quality checks during capture
CAPTURE_TIMEOUT = 2.0  # Seconds before an attempt gives up
ANALYSIS_INTERVAL = 0.5  # Seconds between live brightness/blur updates

CAPTURE_SUCCESS_MESSAGE = "Photo captured successfully!"
CAPTURE_TIMEOUT_MESSAGE = (
    "Unable to capture photo. Please ensure the device is steady, "
    "the scene is bright, and the image is clear."
)
MOTION_WARNING_MESSAGE = "Please hold the device steady while taking the photo."
