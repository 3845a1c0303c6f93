from .base import MotionTracker
from .chessboard import ChessboardTracker
from .color import ColorTracker
from .color_cross import ColorCrossTracker

__all__ = ["MotionTracker", "ChessboardTracker", "ColorTracker", "ColorCrossTracker"]
