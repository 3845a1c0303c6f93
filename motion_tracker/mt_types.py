from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

import numpy as np


class ConfigurationError(RuntimeError):
    """Raised when a tracker is configured with an unusable setting."""


class SolverType(IntEnum):
    DIRECT_PERSPECTIVE = 1
    ITERATIVE_APPROXIMATE = 2


@dataclass(frozen=True, eq=False)
class PoseSnapshot:
    position: np.ndarray
    rotation: np.ndarray
    rotation_matrix: np.ndarray
    image_points: list = field(default_factory=list)
    projected_points: list = field(default_factory=list)
    frame_rate: float = 0.0
    updated_at: Optional[float] = None
