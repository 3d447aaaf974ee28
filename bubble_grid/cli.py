"""Command line front end: detect bubbles in scans or create sample sheets."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .batch import ACCURACY_TARGET, TIME_BUDGET_MS, process_batch
from .config import load_config
from .image_io import expand_inputs
from .samples import create_bubble_sheet_pdf, create_sample_images


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bubble-grid",
        description="Detect filled bubbles on scanned answer sheets",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="Detect bubbles in images or directories")
    detect.add_argument("inputs", type=Path, nargs="+", help="Image files or directories of images")
    detect.add_argument("--config", type=Path, default=None, help="JSON file with detection parameters")
    detect.add_argument("--min-radius", type=int, default=None, help="Smallest bubble radius in pixels")
    detect.add_argument("--max-radius", type=int, default=None, help="Largest bubble radius in pixels")
    detect.add_argument(
        "--min-center-distance",
        type=float,
        default=None,
        help="Minimum distance between two detected bubble centers",
    )
    detect.add_argument("--edge-threshold", type=float, default=None, help="Gradient magnitude for edge pixels")
    detect.add_argument("--center-threshold", type=int, default=None, help="Votes needed to accept a center")
    detect.add_argument(
        "--fill-threshold",
        type=float,
        default=None,
        help="Dark pixel ratio for considering a bubble filled",
    )
    detect.add_argument("--row-band-height", type=int, default=None, help="Height of the coarse row bands")
    detect.add_argument(
        "--row-break-threshold",
        type=int,
        default=None,
        help="Vertical jump in pixels that starts a new row",
    )
    detect.add_argument(
        "--output-json",
        type=Path,
        default=None,
        help="Optional path to save all summaries as JSON",
    )
    detect.add_argument(
        "--debug-dir",
        type=Path,
        default=None,
        help="Directory to store annotated detection images",
    )
    detect.add_argument("--workers", type=int, default=1, help="Number of images processed in parallel")

    samples = subparsers.add_parser("samples", help="Write sample sheets with ground truth")
    samples.add_argument("output_dir", type=Path, help="Directory for the sample images")
    samples.add_argument("--seed", type=int, default=1234, help="Seed for the noisy sheet speckles")
    samples.add_argument("--pdf", action="store_true", help="Also write a printable blank PDF sheet")

    return parser.parse_args(argv)


def print_summary(summary: Dict[str, object]) -> None:
    print(f"Processing: {Path(str(summary['image'])).name}")
    print("-" * 40)

    if "error" in summary:
        print(f"  Error: {summary['error']}")
        print()
        return

    result = summary["result"]
    print(f"  Image size: {result['imageWidth']}x{result['imageHeight']}")
    print(f"  Total bubbles detected: {result['totalBubbles']}")
    print(f"  Filled bubbles: {result['filledBubbles']}")
    print(f"  Empty bubbles: {result['emptyBubbles']}")
    print(f"  Processing time: {result['processingTimeMs']:.2f}ms")
    print(f"  Time criterion (< {TIME_BUDGET_MS / 1000:.0f}s): {'PASS' if summary['withinTimeBudget'] else 'FAIL'}")

    accuracy = summary.get("accuracy")
    if accuracy:
        print(f"  Accuracy: {accuracy['accuracy'] * 100:.1f}%")
        print(f"  False positives: {accuracy['falsePositives']}")
        print(f"  False negatives: {accuracy['falseNegatives']}")
        print(
            f"  Accuracy criterion (>= {ACCURACY_TARGET * 100:.0f}%): "
            f"{'PASS' if accuracy['meetsTarget'] else 'FAIL'}"
        )
    print()


def run_detect(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config).with_overrides(
            min_radius=args.min_radius,
            max_radius=args.max_radius,
            min_center_distance=args.min_center_distance,
            edge_threshold=args.edge_threshold,
            center_threshold=args.center_threshold,
            fill_threshold=args.fill_threshold,
            row_band_height=args.row_band_height,
            row_break_threshold=args.row_break_threshold,
        )
    except (OSError, ValueError) as exc:
        print(f"Invalid configuration: {exc}")
        return 1

    image_paths = expand_inputs(args.inputs)
    if not image_paths:
        print("No image files found")
        return 1

    print("=" * 60)
    print("BUBBLE DETECTION")
    print("=" * 60)
    print(f"Found {len(image_paths)} image(s)")
    print()

    summaries = process_batch(image_paths, config, max_workers=args.workers, debug_dir=args.debug_dir)
    for summary in summaries:
        print_summary(summary)

    if args.output_json:
        args.output_json.parent.mkdir(parents=True, exist_ok=True)
        payload = {"parameters": config.to_dict(), "images": summaries}
        with args.output_json.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        print(f"Summary saved to {args.output_json}")

    failures = [s for s in summaries if "error" in s]
    return 1 if failures else 0


def run_samples(args: argparse.Namespace) -> int:
    written: List[Path] = create_sample_images(args.output_dir, seed=args.seed)
    if args.pdf:
        written.append(create_bubble_sheet_pdf(args.output_dir / "bubble-sheet.pdf"))
    for path in written:
        print(f"Created: {path}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "detect":
        return run_detect(args)
    return run_samples(args)


if __name__ == "__main__":
    sys.exit(main())
