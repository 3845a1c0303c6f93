"""Camera-based pose tracking of a reference object."""

from .calibration import CalibrationParameters, load_calibration, save_calibration
from .config import TrackerConfig, load_config
from .frame_source import FrameDispatcher
from .mt_types import ConfigurationError, PoseSnapshot, SolverType
from .pose_state import PoseState
from .trackers import ChessboardTracker, ColorCrossTracker, ColorTracker, MotionTracker

__all__ = [
    "CalibrationParameters",
    "ChessboardTracker",
    "ColorCrossTracker",
    "ColorTracker",
    "ConfigurationError",
    "FrameDispatcher",
    "MotionTracker",
    "PoseSnapshot",
    "PoseState",
    "SolverType",
    "TrackerConfig",
    "load_calibration",
    "load_config",
    "save_calibration",
]
