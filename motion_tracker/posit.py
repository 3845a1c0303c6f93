"""Pose from orthography and scaling with iterations (DeMenthon & Davis)."""

from typing import Optional, Tuple

import numpy as np

POSIT_FOCAL_LENGTH = 1000.0
POSIT_MAX_ITER = 100
POSIT_EPSILON = 1.0e-4


def _nearest_rotation(m: np.ndarray) -> np.ndarray:
    u, _s, vt = np.linalg.svd(m)
    r = u @ vt
    if np.linalg.det(r) < 0:
        u[:, -1] *= -1
        r = u @ vt
    return r


def posit(
    model_points,
    image_points,
    focal_length: float = POSIT_FOCAL_LENGTH,
    max_iter: int = POSIT_MAX_ITER,
    epsilon: float = POSIT_EPSILON,
) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """
    Estimate the rigid transform mapping model points into camera space.

    Args:
        model_points: (N, 3) non-coplanar object points, N >= 4. The first
            point is the reference the translation refers to.
        image_points: (N, 2) matching image points, measured from the
            optical axis in pixels.
        focal_length: Focal length in pixels.
        max_iter: Iteration cap.
        epsilon: Stop once the largest change of the perspective correction
            terms drops below this value.

    Returns:
        (rotation_matrix (3, 3), translation (3,)), or None when the first
        iteration is already degenerate (zero-length I or J, e.g. collinear
        image points). Once one iteration has completed its result is
        returned, even if the cap is hit before convergence.
    """
    model = np.asarray(model_points, dtype=np.float64).reshape(-1, 3)
    image = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
    if model.shape[0] < 4:
        raise ValueError("POSIT needs at least 4 points")
    if model.shape[0] != image.shape[0]:
        raise ValueError("model_points and image_points differ in length")

    object_vectors = model[1:] - model[0]
    object_inv = np.linalg.pinv(object_vectors)
    img = image / focal_length

    eps = np.zeros(object_vectors.shape[0])
    rotation = None
    translation = None

    for _ in range(max_iter):
        xs = img[1:, 0] * (1.0 + eps) - img[0, 0]
        ys = img[1:, 1] * (1.0 + eps) - img[0, 1]
        i_vec = object_inv @ xs
        j_vec = object_inv @ ys
        i_norm = np.linalg.norm(i_vec)
        j_norm = np.linalg.norm(j_vec)
        if i_norm == 0 or j_norm == 0:
            break

        r1 = i_vec / i_norm
        r2 = j_vec / j_norm
        r3 = np.cross(r1, r2)
        r3_norm = np.linalg.norm(r3)
        if r3_norm < 1e-9:
            break
        r3 /= r3_norm

        scale = 0.5 * (i_norm + j_norm)
        rotation = np.vstack([r1, r2, r3])
        translation = np.array([img[0, 0] / scale, img[0, 1] / scale, 1.0 / scale])

        new_eps = (object_vectors @ r3) / translation[2]
        change = float(np.max(np.abs(new_eps - eps)))
        eps = new_eps
        if change < epsilon:
            break

    if rotation is None:
        return None
    return _nearest_rotation(rotation), translation


def project_pinhole(model_points, rotation: np.ndarray, translation: np.ndarray, focal_length: float = POSIT_FOCAL_LENGTH):
    """Project model points with ``f * X / Z``; points at zero depth land on (0, 0)."""
    model = np.asarray(model_points, dtype=np.float64).reshape(-1, 3)
    cam = model @ np.asarray(rotation, dtype=np.float64).T + np.asarray(translation, dtype=np.float64).reshape(3)
    projected = []
    for x, y, z in cam:
        if z != 0:
            projected.append((focal_length * x / z, focal_length * y / z))
        else:
            projected.append((0.0, 0.0))
    return projected
