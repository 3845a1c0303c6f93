import cv2
import numpy as np
from typing import Optional, Tuple

HUE_PERIOD = 256


def to_hsv(frame: np.ndarray) -> np.ndarray:
    """BGR frame -> HSV with hue on the full 0..255 circle."""
    return cv2.cvtColor(frame, cv2.COLOR_BGR2HSV_FULL)


def threshold_hue(hsv: np.ndarray, hue: int, delta: int, low: int, high: int) -> np.ndarray:
    """
    Binary mask of pixels within ``hue +/- delta`` and with saturation and
    value inside ``[low, high]``. The hue window wraps around the circle,
    so a red window centred on 0 also catches hues near 255.
    """
    lo = hue - delta
    hi = hue + delta
    if hi - lo >= HUE_PERIOD - 1:
        return cv2.inRange(hsv, (0, low, low), (HUE_PERIOD - 1, high, high))

    mask = cv2.inRange(hsv, (max(lo, 0), low, low), (min(hi, HUE_PERIOD - 1), high, high))
    if lo < 0:
        mask = cv2.bitwise_or(mask, cv2.inRange(hsv, (lo + HUE_PERIOD, low, low), (HUE_PERIOD - 1, high, high)))
    if hi > HUE_PERIOD - 1:
        mask = cv2.bitwise_or(mask, cv2.inRange(hsv, (0, low, low), (hi - HUE_PERIOD, high, high)))
    return mask


def mask_centroid(mask: np.ndarray) -> Optional[Tuple[float, float]]:
    """Centroid (M10/M00, M01/M00) of a binary mask, or None if the mask is empty."""
    m = cv2.moments(mask, binaryImage=True)
    if m["m00"] == 0:
        return None
    x = m["m10"] / m["m00"]
    y = m["m01"] / m["m00"]
    if x < 0 or y < 0:
        return None
    return x, y


def find_color(hsv: np.ndarray, hue: int, delta: int, low: int, high: int) -> Optional[Tuple[float, float]]:
    return mask_centroid(threshold_hue(hsv, hue, delta, low, high))
