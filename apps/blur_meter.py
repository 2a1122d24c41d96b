from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence


# Allow running this file directly: `python apps/blur_meter.py ...`
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from blurmeter.common.config import AppConfig  # noqa: E402
from blurmeter.common.log import setup_logger  # noqa: E402
from blurmeter.common.timing import timing  # noqa: E402
from blurmeter.quality.blur_meter import BlurMeterConfig, evaluate_sharpness  # noqa: E402
from blurmeter.quality.errors import BlurMeterError  # noqa: E402
from blurmeter.sources.pixel_source import iter_sources, load_frame  # noqa: E402

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Score image sharpness from 1 (very blurry) to 10 (sharp) using Laplacian variance."
    )
    parser.add_argument("sources", nargs="+", type=Path, help="Image/video files or directories")
    parser.add_argument("--config", type=Path, default=None, help="YAML config (see configs/default.yaml)")
    parser.add_argument("--threshold-min", type=float, default=None, help="Variance that maps to score 1")
    parser.add_argument("--threshold-max", type=float, default=None, help="Variance that maps to score 10")
    parser.add_argument("--frame", type=int, default=0, help="Frame index to score for video sources")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Overrides logging.level from the config",
    )
    return parser


def _resolve_config(args: argparse.Namespace) -> tuple[BlurMeterConfig, str]:
    app = AppConfig.from_file(args.config) if args.config else AppConfig(raw={})
    base = app.blur_meter_config()
    overrides = {
        "threshold_min": args.threshold_min if args.threshold_min is not None else base.threshold_min,
        "threshold_max": args.threshold_max if args.threshold_max is not None else base.threshold_max,
    }
    cfg = BlurMeterConfig(**overrides).validate()
    level = args.log_level or app.log_level().upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {LOG_LEVELS}, got {level!r}")
    return cfg, level


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        cfg, level = _resolve_config(args)
    except (OSError, ValueError) as e:
        parser.error(f"invalid configuration: {e}")

    logger = setup_logger(level)
    logger.debug("calibration: %s", cfg.as_dict())

    sources = iter_sources(args.sources)
    if not sources:
        logger.warning("No images found under %s", [str(s) for s in args.sources])
        return 1

    failed = 0
    for src in sources:
        try:
            with timing() as t:
                frame = load_frame(src, frame_index=args.frame)
                result = evaluate_sharpness(frame.pixels, frame.width, frame.height, cfg)
        except (BlurMeterError, OSError, RuntimeError, ValueError) as e:
            failed += 1
            logger.warning("Failed to score %s: %s", src, e)
            print(json.dumps({"source": str(src), "error": type(e).__name__, "message": str(e)}))
            continue

        msg = {
            "source": str(src),
            "width": frame.width,
            "height": frame.height,
            **result.as_dict(),
            "elapsed_ms": round(t.ms, 3),
        }
        print(json.dumps(msg))

    logger.info("Scored %d/%d sources", len(sources) - failed, len(sources))
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
