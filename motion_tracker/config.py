from __future__ import annotations

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Optional

from .logging_utils import parse_level
from .mt_types import SolverType

TRACKER_KINDS = ("chessboard", "color", "cross")

_SOLVER_ALIASES = {
    "pnp": SolverType.DIRECT_PERSPECTIVE,
    "direct": SolverType.DIRECT_PERSPECTIVE,
    "direct_perspective": SolverType.DIRECT_PERSPECTIVE,
    "posit": SolverType.ITERATIVE_APPROXIMATE,
    "iterative": SolverType.ITERATIVE_APPROXIMATE,
    "iterative_approximate": SolverType.ITERATIVE_APPROXIMATE,
}


def parse_solver(value: Any) -> Any:
    """Map config spellings onto ``SolverType``.

    Unrecognised values are returned unchanged; the tracker reports them
    when it first has to solve.
    """
    if isinstance(value, SolverType):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _SOLVER_ALIASES:
            return _SOLVER_ALIASES[key]
        if key.isdigit():
            value = int(key)
        else:
            return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return SolverType(value)
        except ValueError:
            return value
    return value


@dataclass
class TrackerConfig:
    tracker_name: str = "tracker"
    tracker: str = "cross"  # "chessboard", "color", "cross"
    solver: Any = SolverType.DIRECT_PERSPECTIVE
    calibration_path: str = "calibration.xml"
    device: int | str = 0
    fps: int = 30
    width: int = 640
    height: int = 480
    hue: int = 85  # ColorTracker target hue
    board_columns: int = 6
    board_rows: int = 9
    square_size: float = 25.0
    duration_sec: float = 0.0  # 0 = run until stopped
    max_frames: Optional[int] = None
    report_interval_sec: float = 1.0
    dry_run: bool = False
    log_level: str = "INFO"
    log_path: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        d = asdict(self)
        if isinstance(self.solver, SolverType):
            d["solver"] = self.solver.name.lower()
        return d

    def apply_overrides(self, **kwargs: Any) -> "TrackerConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        if "solver" in kwargs and kwargs["solver"] is not None:
            self.solver = parse_solver(self.solver)
        return self


def _load_yaml(path: Path) -> dict[str, Any]:
    import yaml

    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def load_config(path: str | Path) -> TrackerConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = TrackerConfig()
    cfg.tracker_name = str(raw.get("tracker_name", cfg.tracker_name))
    cfg.tracker = str(raw.get("tracker", cfg.tracker)).lower()
    if cfg.tracker not in TRACKER_KINDS:
        raise ValueError(f"tracker must be one of {TRACKER_KINDS}, got {cfg.tracker!r}")
    cfg.solver = parse_solver(raw.get("solver", cfg.solver))
    cfg.calibration_path = str(raw.get("calibration_path", cfg.calibration_path))
    cfg.device = raw.get("device", cfg.device)
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.width = int(raw.get("width", cfg.width))
    cfg.height = int(raw.get("height", cfg.height))
    cfg.hue = int(raw.get("hue", cfg.hue))
    cfg.board_columns = int(raw.get("board_columns", cfg.board_columns))
    cfg.board_rows = int(raw.get("board_rows", cfg.board_rows))
    cfg.square_size = float(raw.get("square_size", cfg.square_size))
    cfg.duration_sec = float(raw.get("duration_sec", cfg.duration_sec))
    cfg.max_frames = raw.get("max_frames", cfg.max_frames)
    if cfg.max_frames is not None:
        cfg.max_frames = int(cfg.max_frames)
    cfg.report_interval_sec = float(raw.get("report_interval_sec", cfg.report_interval_sec))
    cfg.dry_run = bool(raw.get("dry_run", cfg.dry_run))
    cfg.log_level = str(raw.get("log_level", cfg.log_level)).upper()
    parse_level(cfg.log_level)
    cfg.log_path = raw.get("log_path", cfg.log_path)

    return cfg
