from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ..calibration import CalibrationParameters
from ..frame_source import FrameDispatcher
from ..mt_types import PoseSnapshot
from ..pose_state import PoseState


class MotionTracker(ABC):
    """
    Base class for all trackers.

    A tracker registers with a ``FrameDispatcher`` on construction and gets
    ``on_frame`` called once per delivered frame. Results go into the
    tracker's own ``PoseState``; the getters can be called from any thread.
    A frame on which nothing is found leaves the state untouched.
    """

    def __init__(
        self,
        source: Optional[FrameDispatcher] = None,
        calib: Optional[CalibrationParameters] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.calib = calib
        self.logger = logger or logging.getLogger(__name__)
        self.state = PoseState()
        self._source = source
        if source is not None:
            source.add_listener(self)

    @abstractmethod
    def on_frame(self, frame: np.ndarray) -> None: ...

    def detach(self) -> None:
        """Unregister from the frame source; no callback arrives after this returns."""
        if self._source is not None:
            self._source.remove_listener(self)
            self._source = None

    def __enter__(self) -> "MotionTracker":
        return self

    def __exit__(self, *_exc) -> None:
        self.detach()

    def get_position(self) -> np.ndarray:
        return self.state.get_position()

    def get_rotation(self) -> np.ndarray:
        return self.state.get_rotation()

    def get_rotation_matrix(self) -> np.ndarray:
        return self.state.get_rotation_matrix()

    def get_frame_rate(self) -> float:
        return self.state.get_frame_rate()

    def get_pose(self) -> PoseSnapshot:
        return self.state.snapshot()
