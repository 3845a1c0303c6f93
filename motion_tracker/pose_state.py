"""Thread-safe pose container shared by all tracker variants."""

from __future__ import annotations

import threading
import time
from typing import Optional, Sequence

import numpy as np

from .fps import FPSCounter
from .mt_types import PoseSnapshot


def _points_copy(points) -> list[tuple[float, float]]:
    return [(float(p[0]), float(p[1])) for p in np.asarray(points, dtype=np.float64).reshape(-1, 2)]


class PoseState:
    """
    Position, rotation, rotation matrix and diagnostic points behind one lock.

    Every field that must change together is written by a single ``update``
    call, so readers never see a position from one frame next to a rotation
    from another. Accessors hand out copies.
    """

    def __init__(self, fps_interval: int = 5) -> None:
        self._lock = threading.Lock()
        self._position = np.zeros(3, dtype=np.float64)
        self._rotation = np.zeros(3, dtype=np.float64)
        self._rotation_matrix = np.eye(3, dtype=np.float64)
        self._image_points: list[tuple[float, float]] = []
        self._projected_points: list[tuple[float, float]] = []
        self._counter = FPSCounter(fps_interval)
        self._updated_at: Optional[float] = None

    def update(
        self,
        position=None,
        rotation=None,
        rotation_matrix=None,
        image_points: Optional[Sequence] = None,
        projected_points: Optional[Sequence] = None,
    ) -> None:
        """Assign the given fields atomically and tick the frame-rate counter.

        Fields left as ``None`` keep their previous value.
        """
        # Convert outside the lock; the critical section only assigns.
        pos = None if position is None else np.asarray(position, dtype=np.float64).reshape(3).copy()
        rot = None if rotation is None else np.asarray(rotation, dtype=np.float64).reshape(3).copy()
        rotm = None if rotation_matrix is None else np.asarray(rotation_matrix, dtype=np.float64).reshape(3, 3).copy()
        img = None if image_points is None else _points_copy(image_points)
        proj = None if projected_points is None else _points_copy(projected_points)

        with self._lock:
            if pos is not None:
                self._position = pos
            if rot is not None:
                self._rotation = rot
            if rotm is not None:
                self._rotation_matrix = rotm
            if img is not None:
                self._image_points = img
            if proj is not None:
                self._projected_points = proj
            self._counter.tick()
            self._updated_at = time.time()

    def get_position(self) -> np.ndarray:
        with self._lock:
            return self._position.copy()

    def get_rotation(self) -> np.ndarray:
        with self._lock:
            return self._rotation.copy()

    def get_rotation_matrix(self) -> np.ndarray:
        with self._lock:
            return self._rotation_matrix.copy()

    def get_frame_rate(self) -> float:
        with self._lock:
            return self._counter.fps

    def get_image_points(self) -> list[tuple[float, float]]:
        with self._lock:
            return list(self._image_points)

    def get_projected_points(self) -> list[tuple[float, float]]:
        with self._lock:
            return list(self._projected_points)

    def get_updated_at(self) -> Optional[float]:
        with self._lock:
            return self._updated_at

    def snapshot(self) -> PoseSnapshot:
        with self._lock:
            return PoseSnapshot(
                position=self._position.copy(),
                rotation=self._rotation.copy(),
                rotation_matrix=self._rotation_matrix.copy(),
                image_points=list(self._image_points),
                projected_points=list(self._projected_points),
                frame_rate=self._counter.fps,
                updated_at=self._updated_at,
            )
