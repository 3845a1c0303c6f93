import argparse
import signal
import sys

from .config import TrackerConfig, load_config, parse_solver
from .runner import TrackerRunner


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Run a single motion tracker")
    ap.add_argument("--config", required=True, help="Path to JSON/YAML config")

    ap.add_argument("--tracker-name")
    ap.add_argument("--tracker", choices=["chessboard", "color", "cross"])
    ap.add_argument("--solver", help="pnp | posit")
    ap.add_argument("--calib")
    ap.add_argument("--device")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--hue", type=int)
    ap.add_argument("--duration", type=float)
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--report-interval", type=float)
    ap.add_argument("--log-level", help="DEBUG | INFO | WARNING | ERROR")
    ap.add_argument("--log-path")
    ap.add_argument("--dry-run", action="store_true")

    return ap


def _apply_args(cfg: TrackerConfig, args: argparse.Namespace) -> TrackerConfig:
    device = args.device
    if isinstance(device, str) and device.isdigit():
        device = int(device)

    cfg.apply_overrides(
        tracker_name=args.tracker_name,
        tracker=args.tracker,
        solver=parse_solver(args.solver) if args.solver is not None else None,
        calibration_path=args.calib,
        device=device,
        fps=args.fps,
        width=args.width,
        height=args.height,
        hue=args.hue,
        duration_sec=args.duration,
        max_frames=args.max_frames,
        report_interval_sec=args.report_interval,
        log_level=args.log_level.upper() if args.log_level else None,
        log_path=args.log_path,
        dry_run=args.dry_run if args.dry_run else None,
    )
    return cfg


def main(argv=None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    cfg = load_config(args.config)
    cfg = _apply_args(cfg, args)

    runner = TrackerRunner(cfg)

    def _handle_signal(_sig, _frame):
        runner.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    summary = runner.run()
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
