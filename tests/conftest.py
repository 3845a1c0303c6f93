import cv2
import numpy as np
import pytest

from motion_tracker.calibration import CalibrationParameters
from motion_tracker.trackers.color_cross import CROSS_OBJECT_POINTS

# Pure BGR colors and their hue on the full 0..255 circle.
GREEN = (0, 255, 0)    # hue 85
RED = (0, 0, 255)      # hue 0
BLUE = (255, 0, 0)     # hue 171
YELLOW = (0, 255, 255)  # hue 43
MARKER_COLORS = (GREEN, RED, BLUE, YELLOW)

CROSS_RVEC = np.array([0.5, -0.6, 0.0])
CROSS_TVEC = np.array([0.0, 0.0, 1000.0])


@pytest.fixture
def intrinsic():
    return np.array([[800.0, 0.0, 320.0], [0.0, 800.0, 240.0], [0.0, 0.0, 1.0]])


@pytest.fixture
def cross_calib(intrinsic):
    return CalibrationParameters(
        intrinsic=intrinsic,
        distortion=np.zeros((1, 4)),
        hues=[85, 0, 171, 43],
        hue_deltas=[10, 10, 10, 10],
        satval_low=[120, 120, 120, 120],
        satval_high=[255, 255, 255, 255],
    )


def project_cross(rvec, tvec, intrinsic):
    points, _ = cv2.projectPoints(CROSS_OBJECT_POINTS, rvec, tvec, intrinsic, np.zeros(4))
    return points.reshape(-1, 2)


def render_markers(centers, skip=(), size=(480, 640), radius=5):
    """Black frame with one filled disc per marker; indices in ``skip`` are left out."""
    img = np.zeros((size[0], size[1], 3), dtype=np.uint8)
    for index, (center, color) in enumerate(zip(centers, MARKER_COLORS)):
        if index in skip:
            continue
        cx, cy = int(round(center[0])), int(round(center[1]))
        cv2.circle(img, (cx, cy), radius, color, -1)
    return img


@pytest.fixture
def cross_centers(intrinsic):
    return np.round(project_cross(CROSS_RVEC, CROSS_TVEC, intrinsic))


@pytest.fixture
def cross_frame(cross_centers):
    return render_markers(cross_centers)
