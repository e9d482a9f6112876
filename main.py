"""Command-line interface for the copy-move forgery detector."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from copymove import __version__
from pipeline import CopyMovePipeline, DetectorConfig
from pipeline.config import CONFIG_PATH

BANNER = f"""\
  ___ ___  _ __  _   _      _ __ ___   _____   _____
 / __/ _ \\| '_ \\| | | |____| '_ ` _ \\ / _ \\ \\ / / _ \\
| (_| (_) | |_) | |_| |____| | | | | | (_) \\ V /  __/
 \\___\\___/| .__/ \\__, |    |_| |_| |_|\\___/ \\_/ \\___|
          |_|    |___/

Image copy-move forgery detection.
    Version: {__version__}
"""

_LOGGERS = ("copymove", "pipeline")


def setup_logging(verbose: bool) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[copymove] %(message)s"))
    for name in _LOGGERS:
        log = logging.getLogger(name)
        if not log.handlers:
            log.addHandler(handler)
        log.setLevel(logging.DEBUG if verbose else logging.INFO)
        log.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=BANNER,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--in", dest="source", help="Input image")
    parser.add_argument("--out", dest="destination", help="Output image (PNG)")
    parser.add_argument("--blur", type=int, default=None, help="Blur radius")
    parser.add_argument("--bs", type=int, default=None, help="Block size")
    parser.add_argument("--ot", type=int, default=None, help="Offset threshold")
    parser.add_argument("--dt", type=float, default=None, help="Distance threshold")
    parser.add_argument("--ft", type=float, default=None, help="Forgery threshold")
    parser.add_argument("--max-size", type=int, default=None,
                        help="Maximum working width/height (0 disables resizing)")
    parser.add_argument("--workers", type=int, default=None, help="Feature-extraction threads")
    parser.add_argument("--config", type=Path, default=CONFIG_PATH, help="Detector YAML config")
    parser.add_argument("--report", type=Path, default=None, help="Optional JSON report path")
    parser.add_argument("--progress", action="store_true", help="Show progress bars")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.source or not args.destination:
        parser.error("Usage: main.py --in input.jpg --out out.png")

    try:
        config = DetectorConfig.from_yaml(args.config).with_overrides(
            block_size=args.bs,
            blur_radius=args.blur,
            offset_threshold=args.ot,
            distance_threshold=args.dt,
            forgery_threshold=args.ft,
            max_image_size=args.max_size,
            workers=args.workers,
        )
    except (OSError, ValueError) as exc:
        parser.error(str(exc))

    setup_logging(args.verbose)
    start = time.perf_counter()

    detector = CopyMovePipeline(config, progress=args.progress)
    try:
        result = detector.analyze(args.source, output_path=args.destination, report_path=args.report)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"\nNumber of forged blocks detected: {len(result.forged_regions)}")
    print(result.verdict())
    if args.verbose:
        print(json.dumps(result.to_dict()["timing_ms"], indent=2))
    print(f"\nDone in: {time.perf_counter() - start:.2f}s")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
