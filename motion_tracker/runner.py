from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np

from .calibration import CalibrationParameters, load_calibration
from .config import TrackerConfig
from .frame_source import DeviceCameraSource, FrameDispatcher, FrameSource, SyntheticSource
from .logging_utils import setup_logger
from .mt_types import PoseSnapshot
from .trackers import ChessboardTracker, ColorCrossTracker, ColorTracker, MotionTracker


@dataclass
class RunSummary:
    frames_delivered: int
    errors: int
    avg_fps: float
    last_pose: PoseSnapshot


def _guess_intrinsic(width: int, height: int) -> np.ndarray:
    f = float(max(width, height))
    return np.array([[f, 0.0, width / 2.0], [0.0, f, height / 2.0], [0.0, 0.0, 1.0]])


class TrackerRunner:
    """Wire a frame source, a dispatcher and one tracker from a ``TrackerConfig``."""

    def __init__(
        self,
        config: TrackerConfig,
        logger=None,
        source: Optional[FrameSource] = None,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.tracker_name, config.log_level, config.log_path)
        self.source = source
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def _build_source(self) -> FrameSource:
        if self.source is not None:
            return self.source
        if self.config.dry_run:
            return SyntheticSource(self.config.fps, self.config.width, self.config.height)
        return DeviceCameraSource(
            self.config.device,
            self.config.fps,
            self.config.width,
            self.config.height,
        )

    def _load_calibration(self) -> CalibrationParameters:
        path = Path(self.config.calibration_path)
        if self.config.dry_run and not path.exists():
            self.logger.info("dry run without %s; using default calibration", path)
            return CalibrationParameters.with_defaults(_guess_intrinsic(self.config.width, self.config.height))
        return load_calibration(path)

    def build_tracker(self, dispatcher: FrameDispatcher) -> MotionTracker:
        cfg = self.config
        if cfg.tracker == "color":
            return ColorTracker(dispatcher, cfg.hue, logger=self.logger)
        calib = self._load_calibration()
        if cfg.tracker == "chessboard":
            return ChessboardTracker(
                dispatcher,
                calib,
                columns=cfg.board_columns,
                rows=cfg.board_rows,
                square_size=cfg.square_size,
                logger=self.logger,
            )
        return ColorCrossTracker(dispatcher, calib, cfg.solver, logger=self.logger)

    def _report(self, tracker: MotionTracker) -> None:
        pose = tracker.get_pose()
        self.logger.info(
            "pos=%s rot=%s fps=%.1f",
            np.array2string(pose.position, precision=2),
            np.array2string(pose.rotation, precision=3),
            pose.frame_rate,
        )

    def run(self) -> RunSummary:
        dispatcher = FrameDispatcher(self._build_source(), logger=self.logger)
        tracker = self.build_tracker(dispatcher)

        self.logger.info("tracking started: %s", self.config.as_dict())

        dispatcher.start()
        t0 = time.time()
        next_report = t0 + self.config.report_interval_sec
        try:
            while not self._stop_event.is_set():
                if not dispatcher.running:
                    if dispatcher.failure is not None:
                        raise dispatcher.failure
                    break
                if self.config.duration_sec and (time.time() - t0) >= self.config.duration_sec:
                    break
                if self.config.max_frames and dispatcher.frames_delivered >= self.config.max_frames:
                    break
                if time.time() >= next_report:
                    self._report(tracker)
                    next_report += self.config.report_interval_sec
                self._stop_event.wait(0.01)
        finally:
            tracker.detach()
            dispatcher.stop()

        avg = dispatcher.frames_delivered / max(1e-6, (time.time() - t0))
        self.logger.info(
            "summary frames=%d avg_fps=%.2f errors=%d",
            dispatcher.frames_delivered,
            avg,
            dispatcher.errors,
        )
        return RunSummary(dispatcher.frames_delivered, dispatcher.errors, avg, tracker.get_pose())
