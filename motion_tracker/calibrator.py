"""Interactive tool for picking the marker colors of the reference cross.

Take a picture, click the four markers in the order green, red, blue,
yellow, then tune the hue delta and sat/val bounds of each marker with the
trackbars. The result is written to ``calibration.xml``.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import cv2
import numpy as np

from .calibration import NUM_MARKERS, CalibrationParameters, save_calibration
from .frame_source import DeviceCameraSource
from .segmentation import threshold_hue, to_hsv

logger = logging.getLogger(__name__)

WINDOW = "Calibration"
THRESH_WINDOW = "Thresholded image"


class HueSampler:
    """Collects the hue under each left click on an HSV image, up to ``limit`` samples."""

    def __init__(self, hsv: np.ndarray, limit: int = NUM_MARKERS):
        self.hsv = hsv
        self.limit = limit
        self.hues: list[int] = []

    @property
    def complete(self) -> bool:
        return len(self.hues) >= self.limit

    def sample(self, x: int, y: int) -> Optional[int]:
        if self.complete:
            return None
        hue = int(self.hsv[y, x, 0])
        self.hues.append(hue)
        logger.info("hue %d: %d", len(self.hues), hue)
        return hue

    def on_mouse(self, event: int, x: int, y: int, _flags: int, _param) -> None:
        if event == cv2.EVENT_LBUTTONDOWN:
            self.sample(x, y)


def build_calibration(
    hues: Sequence[int],
    hue_deltas: Sequence[int],
    satval_low: Sequence[int],
    satval_high: Sequence[int],
    intrinsic: Optional[np.ndarray] = None,
    distortion: Optional[np.ndarray] = None,
) -> CalibrationParameters:
    """Color thresholds plus camera parameters (zeros until the camera is calibrated)."""
    return CalibrationParameters(
        intrinsic=np.zeros((3, 3)) if intrinsic is None else intrinsic,
        distortion=np.zeros((1, 4)) if distortion is None else distortion,
        hues=list(hues),
        hue_deltas=list(hue_deltas),
        satval_low=list(satval_low),
        satval_high=list(satval_high),
    )


def _capture_still(device) -> np.ndarray:
    cam = DeviceCameraSource(device, 30, 640, 480)
    cam.start()
    img = None
    try:
        while cv2.waitKey(30) < 0:
            item = cam.read()
            if item is None:
                continue
            img = item[0]
            cv2.imshow(WINDOW, img)
    finally:
        cam.stop()
    if img is None:
        raise RuntimeError("no frame received from camera")
    return img


def _tune_marker(hsv: np.ndarray, hue: int) -> tuple[int, int, int]:
    cv2.namedWindow(THRESH_WINDOW)
    cv2.createTrackbar("Hue delta", THRESH_WINDOW, 10, 50, lambda _v: None)
    cv2.createTrackbar("Sat/Val low", THRESH_WINDOW, 120, 255, lambda _v: None)
    cv2.createTrackbar("Sat/Val high", THRESH_WINDOW, 255, 255, lambda _v: None)
    while True:
        delta = cv2.getTrackbarPos("Hue delta", THRESH_WINDOW)
        low = cv2.getTrackbarPos("Sat/Val low", THRESH_WINDOW)
        high = max(low, cv2.getTrackbarPos("Sat/Val high", THRESH_WINDOW))
        cv2.imshow(THRESH_WINDOW, threshold_hue(hsv, hue, delta, low, high))
        if cv2.waitKey(30) >= 0:
            return delta, low, high


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Calibrate marker colors")
    ap.add_argument("--device", default="0")
    ap.add_argument("--out", default="calibration.xml")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    device = int(args.device) if args.device.isdigit() else args.device
    cv2.namedWindow(WINDOW)
    try:
        img = _capture_still(device)
    except RuntimeError as exc:
        logger.error("could not initialize webcam: %s", exc)
        return 1

    hsv = to_hsv(img)
    sampler = HueSampler(hsv)
    cv2.putText(img, "Click green, red, blue, yellow; then press a key", (10, 20),
                cv2.FONT_HERSHEY_SIMPLEX, 0.5, (255, 255, 255), 1, cv2.LINE_AA)
    cv2.imshow(WINDOW, img)
    cv2.setMouseCallback(WINDOW, sampler.on_mouse)
    cv2.waitKey(0)

    if not sampler.complete:
        logger.error("expected %d hues, got %d", NUM_MARKERS, len(sampler.hues))
        return 1

    deltas, lows, highs = [], [], []
    for hue in sampler.hues:
        delta, low, high = _tune_marker(hsv, hue)
        deltas.append(delta)
        lows.append(low)
        highs.append(high)
    cv2.destroyAllWindows()

    save_calibration(build_calibration(sampler.hues, deltas, lows, highs), args.out)
    logger.info("parameters written to %s", args.out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
