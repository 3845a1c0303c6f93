from unittest.mock import patch

import cv2
import numpy as np
import pytest

from conftest import CROSS_TVEC, project_cross, render_markers
from motion_tracker.calibrator import build_calibration
from motion_tracker.mt_types import ConfigurationError, SolverType
from motion_tracker.posit import project_pinhole
from motion_tracker.trackers.color_cross import (
    CROSS_OBJECT_POINTS,
    ColorCrossTracker,
    solve_direct_perspective,
)


def _assert_state_identical(before, after):
    np.testing.assert_array_equal(before.position, after.position)
    np.testing.assert_array_equal(before.rotation, after.rotation)
    np.testing.assert_array_equal(before.rotation_matrix, after.rotation_matrix)
    assert before.image_points == after.image_points
    assert before.projected_points == after.projected_points
    assert before.frame_rate == after.frame_rate
    assert before.updated_at == after.updated_at


def _seed_pose(tracker):
    tracker.state.update(
        position=[10.0, -20.0, 1000.0],
        rotation=[0.1, 0.2, 0.3],
        rotation_matrix=cv2.Rodrigues(np.array([0.1, 0.2, 0.3]))[0],
        image_points=[(1.0, 2.0)] * 4,
        projected_points=[(1.5, 2.5)] * 4,
    )
    return tracker.get_pose()


def test_direct_perspective_recovers_exact_translation(intrinsic):
    rvec = np.array([0.3, -0.2, 0.1])
    tvec = np.array([15.0, -10.0, 500.0])
    image_points = project_cross(rvec, tvec, intrinsic)

    result = solve_direct_perspective(CROSS_OBJECT_POINTS, image_points, intrinsic, np.zeros((1, 4)))

    assert result is not None
    solved_rvec, solved_tvec, projected = result
    np.testing.assert_allclose(solved_tvec.ravel(), tvec, atol=1e-3)
    np.testing.assert_allclose(solved_rvec.ravel(), rvec, atol=1e-5)
    np.testing.assert_allclose(projected, image_points, atol=1e-4)


def test_locates_markers_in_calibration_order(cross_calib, cross_frame, cross_centers):
    tracker = ColorCrossTracker(None, cross_calib)
    points = tracker.locate_markers(cross_frame)
    np.testing.assert_allclose(np.array(points), cross_centers, atol=0.5)


def test_direct_perspective_pose_from_rendered_markers(cross_calib, cross_frame, cross_centers):
    tracker = ColorCrossTracker(None, cross_calib, SolverType.DIRECT_PERSPECTIVE)
    tracker.on_frame(cross_frame)

    pos = tracker.get_position()
    assert np.linalg.norm(pos - CROSS_TVEC) < 25.0
    np.testing.assert_allclose(np.array(tracker.get_image_points()), cross_centers, atol=0.5)
    np.testing.assert_allclose(np.array(tracker.get_projected_points()), cross_centers, atol=2.0)
    rvec = tracker.get_rotation()
    expected_rotm, _ = cv2.Rodrigues(rvec)
    np.testing.assert_allclose(tracker.get_rotation_matrix(), expected_rotm, atol=1e-9)


@pytest.mark.parametrize("missing", [0, 1, 2, 3])
def test_three_of_four_markers_leave_state_untouched(cross_calib, cross_centers, missing):
    tracker = ColorCrossTracker(None, cross_calib)
    tracker.on_frame(render_markers(cross_centers))
    before = tracker.get_pose()

    tracker.on_frame(render_markers(cross_centers, skip=(missing,)))

    _assert_state_identical(before, tracker.get_pose())


def test_unknown_solver_raises_configuration_error_on_first_frame(cross_calib, cross_frame):
    tracker = ColorCrossTracker(None, cross_calib, solver=7)
    before = tracker.get_pose()

    with pytest.raises(ConfigurationError):
        tracker.on_frame(cross_frame)

    _assert_state_identical(before, tracker.get_pose())


def test_unknown_solver_not_reached_without_all_markers(cross_calib, cross_centers):
    tracker = ColorCrossTracker(None, cross_calib, solver="bogus")
    tracker.on_frame(render_markers(cross_centers, skip=(2,)))
    assert tracker.state.get_updated_at() is None


def test_integer_solver_selectors_are_coerced(cross_calib):
    assert ColorCrossTracker(None, cross_calib, solver=1).solver is SolverType.DIRECT_PERSPECTIVE
    assert ColorCrossTracker(None, cross_calib, solver=2).solver is SolverType.ITERATIVE_APPROXIMATE


def test_iterative_approximate_pose(cross_calib):
    """POSIT works on image points measured from the optical axis with f = 1000."""
    rotm, _ = cv2.Rodrigues(np.array([0.2, -0.3, 0.1]))
    tvec = np.array([10.0, -20.0, 1000.0])
    image_points = project_pinhole(CROSS_OBJECT_POINTS, rotm, tvec, 1000.0)

    tracker = ColorCrossTracker(None, cross_calib, SolverType.ITERATIVE_APPROXIMATE)
    with patch.object(tracker, "locate_markers", return_value=image_points):
        tracker.on_frame(np.zeros((4, 4, 3), dtype=np.uint8))

    np.testing.assert_allclose(tracker.get_position(), tvec, atol=2.0)
    np.testing.assert_allclose(tracker.get_rotation_matrix(), rotm, atol=1e-2)
    expected_rvec, _ = cv2.Rodrigues(tracker.get_rotation_matrix())
    np.testing.assert_allclose(tracker.get_rotation(), expected_rvec.ravel(), atol=1e-6)
    np.testing.assert_allclose(np.array(tracker.get_projected_points()), np.array(image_points), atol=1.0)
    assert tracker.get_image_points() == [(float(x), float(y)) for x, y in image_points]


def test_iterative_approximate_on_rendered_frame_publishes_state(cross_calib, cross_frame, cross_centers):
    tracker = ColorCrossTracker(None, cross_calib, SolverType.ITERATIVE_APPROXIMATE)
    tracker.on_frame(cross_frame)

    snap = tracker.get_pose()
    assert snap.updated_at is not None
    assert len(snap.projected_points) == 4
    np.testing.assert_allclose(np.array(snap.image_points), cross_centers, atol=0.5)
    np.testing.assert_allclose(snap.rotation_matrix @ snap.rotation_matrix.T, np.eye(3), atol=1e-9)


def test_uncalibrated_camera_is_a_miss(cross_frame):
    """The calibration tool writes a zero camera matrix until the camera is calibrated."""
    calib = build_calibration([85, 0, 171, 43], [10] * 4, [120] * 4, [255] * 4)
    tracker = ColorCrossTracker(None, calib, SolverType.DIRECT_PERSPECTIVE)
    before = _seed_pose(tracker)

    tracker.on_frame(cross_frame)

    _assert_state_identical(before, tracker.get_pose())


def test_markers_sharing_one_hue_are_a_miss(cross_calib, cross_frame):
    """Four thresholds on the same hue find the same blob four times."""
    calib = build_calibration([85] * 4, [10] * 4, [120] * 4, [255] * 4, intrinsic=cross_calib.intrinsic)
    tracker = ColorCrossTracker(None, calib, SolverType.DIRECT_PERSPECTIVE)
    before = _seed_pose(tracker)

    tracker.on_frame(cross_frame)

    _assert_state_identical(before, tracker.get_pose())


def test_identical_centroids_are_a_miss(cross_calib):
    tracker = ColorCrossTracker(None, cross_calib, SolverType.DIRECT_PERSPECTIVE)
    before = _seed_pose(tracker)

    with patch.object(tracker, "locate_markers", return_value=[(200.0, 150.0)] * 4):
        tracker.on_frame(np.zeros((4, 4, 3), dtype=np.uint8))

    _assert_state_identical(before, tracker.get_pose())


def test_solver_errors_from_opencv_do_not_escape(cross_calib, cross_frame):
    tracker = ColorCrossTracker(None, cross_calib, SolverType.DIRECT_PERSPECTIVE)
    before = _seed_pose(tracker)

    with patch("motion_tracker.trackers.color_cross.cv2.solvePnP", side_effect=cv2.error("assertion failed")):
        tracker.on_frame(cross_frame)

    _assert_state_identical(before, tracker.get_pose())


@pytest.mark.parametrize(
    "points",
    [
        [(0.0, 5.0), (10.0, 5.0), (20.0, 5.0), (30.0, 5.0)],
        [(0.0, 0.0), (10.0, 20.0), (20.0, 40.0), (30.0, 60.0)],
    ],
)
def test_collinear_markers_keep_last_posit_pose(cross_calib, points):
    tracker = ColorCrossTracker(None, cross_calib, SolverType.ITERATIVE_APPROXIMATE)
    before = _seed_pose(tracker)

    with patch.object(tracker, "locate_markers", return_value=points):
        tracker.on_frame(np.zeros((4, 4, 3), dtype=np.uint8))

    _assert_state_identical(before, tracker.get_pose())


@pytest.mark.parametrize("selector", [True, 1.0, 2.0, "1"])
def test_non_integer_solver_selectors_are_not_coerced(cross_calib, cross_frame, selector):
    tracker = ColorCrossTracker(None, cross_calib, solver=selector)
    assert not isinstance(tracker.solver, SolverType)

    with pytest.raises(ConfigurationError):
        tracker.on_frame(cross_frame)


def test_numpy_integer_solver_selector_is_coerced(cross_calib):
    tracker = ColorCrossTracker(None, cross_calib, solver=np.int64(2))
    assert tracker.solver is SolverType.ITERATIVE_APPROXIMATE
