from __future__ import annotations

import logging
from typing import Optional, Union

import cv2
import numpy as np

from ..calibration import NUM_MARKERS, MARKER_NAMES, CalibrationParameters
from ..frame_source import FrameDispatcher
from ..mt_types import ConfigurationError, SolverType
from ..posit import POSIT_EPSILON, POSIT_FOCAL_LENGTH, POSIT_MAX_ITER, posit, project_pinhole
from ..segmentation import find_color, to_hsv
from .base import MotionTracker

logger = logging.getLogger(__name__)

ARM_LENGTH = 100.0

# Same order as the calibration arrays: origin (green), red, blue, yellow.
CROSS_OBJECT_POINTS = np.array(
    [
        [0.0, 0.0, 0.0],
        [0.0, ARM_LENGTH, 0.0],
        [ARM_LENGTH, 0.0, 0.0],
        [0.0, 0.0, ARM_LENGTH],
    ],
    dtype=np.float64,
)


def solve_direct_perspective(object_points, image_points, intrinsic, distortion):
    """
    PnP on the marker correspondences.

    Four non-coplanar points are below what the DLT start of the iterative
    solver accepts, so SQPnP gives the initial pose and LM refines it.

    Returns:
        (rvec, tvec, projected_points) or None if the solver failed. OpenCV
        rejects a singular camera matrix or markers that collapse onto one
        spot with cv2.error; that is reported as a failed solve too.
    """
    obj = np.asarray(object_points, dtype=np.float64).reshape(-1, 3)
    img = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
    try:
        ok, rvec, tvec = cv2.solvePnP(obj, img, intrinsic, distortion, flags=cv2.SOLVEPNP_SQPNP)
        if not ok:
            return None
        rvec, tvec = cv2.solvePnPRefineLM(obj, img, intrinsic, distortion, rvec, tvec)
        projected, _ = cv2.projectPoints(obj, rvec, tvec, intrinsic, distortion)
    except cv2.error as exc:
        logger.debug("solvePnP raised: %s", exc)
        return None
    if not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
        return None
    return rvec, tvec, projected.reshape(-1, 2)


def _coerce_solver(solver) -> Union[SolverType, object]:
    if isinstance(solver, SolverType):
        return solver
    if isinstance(solver, bool) or not isinstance(solver, (int, np.integer)):
        return solver
    try:
        return SolverType(solver)
    except (ValueError, TypeError):
        return solver


class ColorCrossTracker(MotionTracker):
    """
    Full 6-DOF pose from four colored markers laid out as a 3D cross.

    All four markers must be found in a frame, otherwise the frame is
    dropped without touching the published pose. The solver is fixed at
    construction; an unknown solver is reported with ``ConfigurationError``
    when the first frame with all markers reaches the solver.
    """

    def __init__(
        self,
        source: Optional[FrameDispatcher],
        calib: CalibrationParameters,
        solver: Union[SolverType, int] = SolverType.DIRECT_PERSPECTIVE,
        logger: Optional[logging.Logger] = None,
    ):
        super().__init__(source, calib, logger)
        self.solver = _coerce_solver(solver)
        if not isinstance(self.solver, SolverType):
            self.logger.warning("unknown solver %r; frames will fail at solve time", solver)
        self.object_points = CROSS_OBJECT_POINTS.copy()
        self._K = np.array(calib.intrinsic, dtype=np.float64)
        self._dist = np.array(calib.distortion, dtype=np.float64)

    def get_image_points(self) -> list[tuple[float, float]]:
        return self.state.get_image_points()

    def get_projected_points(self) -> list[tuple[float, float]]:
        return self.state.get_projected_points()

    def locate_markers(self, frame: np.ndarray) -> Optional[list[tuple[float, float]]]:
        """Centroid of every marker in calibration order, or None if any is missing."""
        hsv = to_hsv(frame)
        points = []
        for index in range(NUM_MARKERS):
            hue, delta, low, high = self.calib.marker_threshold(index)
            point = find_color(hsv, hue, delta, low, high)
            if point is None:
                self.logger.debug("marker %s not found", MARKER_NAMES[index])
                return None
            points.append(point)
        return points

    def on_frame(self, frame: np.ndarray) -> None:
        image_points = self.locate_markers(frame)
        if image_points is None:
            return

        if self.solver is SolverType.DIRECT_PERSPECTIVE:
            self._solve_pnp(image_points)
        elif self.solver is SolverType.ITERATIVE_APPROXIMATE:
            self._solve_posit(image_points)
        else:
            raise ConfigurationError(f"Bad solver type in ColorCrossTracker: {self.solver!r}")

    def _solve_pnp(self, image_points: list[tuple[float, float]]) -> None:
        result = solve_direct_perspective(self.object_points, image_points, self._K, self._dist)
        if result is None:
            self.logger.debug("solvePnP failed")
            return
        rvec, tvec, projected = result
        rotm, _ = cv2.Rodrigues(rvec)
        self.state.update(
            position=tvec,
            rotation=rvec,
            rotation_matrix=rotm,
            image_points=image_points,
            projected_points=projected,
        )

    def _solve_posit(self, image_points: list[tuple[float, float]]) -> None:
        result = posit(
            self.object_points,
            image_points,
            focal_length=POSIT_FOCAL_LENGTH,
            max_iter=POSIT_MAX_ITER,
            epsilon=POSIT_EPSILON,
        )
        if result is None:
            self.logger.debug("POSIT degenerate on %s", image_points)
            return
        rotm, tvec = result
        rvec, _ = cv2.Rodrigues(rotm)
        projected = project_pinhole(self.object_points, rotm, tvec, POSIT_FOCAL_LENGTH)
        self.state.update(
            position=tvec,
            rotation=rvec,
            rotation_matrix=rotm,
            image_points=image_points,
            projected_points=projected,
        )
