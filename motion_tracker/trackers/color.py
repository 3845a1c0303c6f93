from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..frame_source import FrameDispatcher
from ..segmentation import find_color, to_hsv
from .base import MotionTracker

HUE_DELTA = 20
SATVAL_LOW = 120
SATVAL_HIGH = 255


class ColorTracker(MotionTracker):
    """2D centroid of a single colored blob; position is (x, y, 0), no orientation."""

    def __init__(self, source: Optional[FrameDispatcher], hue: int, logger: Optional[logging.Logger] = None):
        super().__init__(source, None, logger)
        self.hue = int(hue)

    def on_frame(self, frame: np.ndarray) -> None:
        point = find_color(to_hsv(frame), self.hue, HUE_DELTA, SATVAL_LOW, SATVAL_HIGH)
        if point is None:
            self.logger.debug("hue %d not found", self.hue)
            return
        x, y = point
        self.state.update(position=(x, y, 0.0))
