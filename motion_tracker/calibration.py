from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import cv2
import numpy as np

MARKER_NAMES = ("origin", "red", "blue", "yellow")
NUM_MARKERS = len(MARKER_NAMES)

HUE_MAX = 255
CHANNEL_MAX = 255

DEFAULT_HUES = (85, 0, 170, 43)
DEFAULT_HUE_DELTA = 10
DEFAULT_SATVAL_LOW = 120
DEFAULT_SATVAL_HIGH = 255


def _frozen(values, dtype, shape) -> np.ndarray:
    arr = np.array(values, dtype=dtype)
    if arr.size != int(np.prod(shape)):
        raise ValueError(f"expected {int(np.prod(shape))} values, got {arr.size}")
    arr = arr.reshape(shape)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class CalibrationParameters:
    """
    Camera intrinsics plus per-marker HSV thresholds.

    Marker arrays are indexed in the fixed order origin (green), red, blue,
    yellow. Hues use the full 8-bit hue circle (0..255).
    """

    intrinsic: np.ndarray
    distortion: np.ndarray
    hues: np.ndarray
    hue_deltas: np.ndarray
    satval_low: np.ndarray
    satval_high: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, "intrinsic", _frozen(self.intrinsic, np.float64, (3, 3)))
        object.__setattr__(self, "distortion", _frozen(self.distortion, np.float64, (1, 4)))
        for name in ("hues", "hue_deltas", "satval_low", "satval_high"):
            values = np.asarray(getattr(self, name)).reshape(-1)
            if values.size != NUM_MARKERS:
                raise ValueError(f"{name} must hold exactly {NUM_MARKERS} values, got {values.size}")
            object.__setattr__(self, name, _frozen(values, np.int32, (1, NUM_MARKERS)))

        if np.any(self.hues < 0) or np.any(self.hues > HUE_MAX):
            raise ValueError(f"hues must lie in [0, {HUE_MAX}]: {self.hues.ravel().tolist()}")
        if np.any(self.hue_deltas < 0) or np.any(self.hue_deltas > HUE_MAX):
            raise ValueError(f"hue_deltas must lie in [0, {HUE_MAX}]: {self.hue_deltas.ravel().tolist()}")
        for name in ("satval_low", "satval_high"):
            values = getattr(self, name)
            if np.any(values < 0) or np.any(values > CHANNEL_MAX):
                raise ValueError(f"{name} must lie in [0, {CHANNEL_MAX}]: {values.ravel().tolist()}")
        if np.any(self.satval_low > self.satval_high):
            raise ValueError("satval_low must not exceed satval_high")

    def marker_threshold(self, index: int) -> tuple[int, int, int, int]:
        """(hue, hue_delta, satval_low, satval_high) for marker ``index``."""
        return (
            int(self.hues[0, index]),
            int(self.hue_deltas[0, index]),
            int(self.satval_low[0, index]),
            int(self.satval_high[0, index]),
        )

    @classmethod
    def with_defaults(
        cls,
        intrinsic: Optional[np.ndarray] = None,
        distortion: Optional[np.ndarray] = None,
    ) -> "CalibrationParameters":
        return cls(
            intrinsic=np.zeros((3, 3)) if intrinsic is None else intrinsic,
            distortion=np.zeros((1, 4)) if distortion is None else np.asarray(distortion).reshape(-1)[:4],
            hues=DEFAULT_HUES,
            hue_deltas=[DEFAULT_HUE_DELTA] * NUM_MARKERS,
            satval_low=[DEFAULT_SATVAL_LOW] * NUM_MARKERS,
            satval_high=[DEFAULT_SATVAL_HIGH] * NUM_MARKERS,
        )


def save_calibration(params: CalibrationParameters, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fs = cv2.FileStorage(str(p), cv2.FILE_STORAGE_WRITE)
    try:
        fs.write("intrinsic", np.array(params.intrinsic))
        fs.write("distortion", np.array(params.distortion))
        fs.write("hues", np.array(params.hues))
        fs.write("hue_deltas", np.array(params.hue_deltas))
        fs.write("satval_low", np.array(params.satval_low))
        fs.write("satval_high", np.array(params.satval_high))
    finally:
        fs.release()


def _mat(fs, key: str) -> Optional[np.ndarray]:
    node = fs.getNode(key)
    if node.empty():
        return None
    return node.mat()


def load_calibration(path: str | Path) -> CalibrationParameters:
    """Read calibration written by ``save_calibration``.

    Files produced by the camera calibration script (``camera_matrix`` and
    ``dist_coeffs`` only) are accepted too; the color thresholds then fall
    back to the defaults.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Calibration not found: {p}")

    fs = cv2.FileStorage(str(p), cv2.FILE_STORAGE_READ)
    try:
        intrinsic = _mat(fs, "intrinsic")
        distortion = _mat(fs, "distortion")
        if intrinsic is None:
            intrinsic = _mat(fs, "camera_matrix")
            distortion = _mat(fs, "dist_coeffs")
            if intrinsic is None:
                raise ValueError(f"{p} holds no intrinsic matrix")
            return CalibrationParameters.with_defaults(intrinsic, distortion)

        fields = {}
        for key in ("hues", "hue_deltas", "satval_low", "satval_high"):
            value = _mat(fs, key)
            if value is None:
                raise ValueError(f"{p} is missing '{key}'")
            fields[key] = value
    finally:
        fs.release()

    return CalibrationParameters(
        intrinsic=intrinsic,
        distortion=np.zeros((1, 4)) if distortion is None else distortion,
        **fields,
    )
