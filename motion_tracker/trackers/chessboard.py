from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from ..calibration import CalibrationParameters
from ..frame_source import FrameDispatcher
from .base import MotionTracker


def board_object_points(columns: int, rows: int, square_size: float) -> np.ndarray:
    """Inner-corner grid on z=0, row-major like cv2.findChessboardCorners."""
    points = np.zeros((columns * rows, 3), dtype=np.float32)
    points[:, :2] = np.mgrid[0:columns, 0:rows].T.reshape(-1, 2) * square_size
    return points


class ChessboardTracker(MotionTracker):
    """Pose of a planar checkerboard from its inner corners."""

    def __init__(
        self,
        source: Optional[FrameDispatcher],
        calib: CalibrationParameters,
        columns: int = 6,
        rows: int = 9,
        square_size: float = 25.0,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(source, calib, logger)
        self.pattern_size = (columns, rows)
        self.num_corners = columns * rows
        self.object_points = board_object_points(columns, rows, square_size)
        self._K = np.array(calib.intrinsic, dtype=np.float64)
        self._dist = np.array(calib.distortion, dtype=np.float64)

    def on_frame(self, frame: np.ndarray) -> None:
        found, corners = cv2.findChessboardCorners(frame, self.pattern_size, flags=cv2.CALIB_CB_FAST_CHECK)
        if not found or corners is None or len(corners) != self.num_corners:
            self.logger.debug("chessboard not found")
            return

        image_points = np.asarray(corners, dtype=np.float32).reshape(-1, 2)
        try:
            ok, rvec, tvec = cv2.solvePnP(self.object_points, image_points, self._K, self._dist)
        except cv2.error as exc:
            self.logger.debug("solvePnP raised on chessboard corners: %s", exc)
            return
        if not ok or not np.all(np.isfinite(tvec)):
            self.logger.debug("solvePnP rejected chessboard corners")
            return

        rotm, _ = cv2.Rodrigues(rvec)
        self.state.update(position=tvec, rotation=rvec, rotation_matrix=rotm)
