"""Per-image processing and multi-image batches."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import DetectionConfig
from .engine import detect_bubbles
from .image_io import ground_truth_path, load_grayscale, load_ground_truth, save_annotated
from .scoring import score

logger = logging.getLogger(__name__)

TIME_BUDGET_MS = 2000.0
ACCURACY_TARGET = 0.95


def process_image(
    image_path: Path,
    config: Optional[DetectionConfig] = None,
    debug_dir: Optional[Path] = None,
) -> Dict[str, object]:
    """Detect bubbles in one image and score it against its sidecar, if any."""

    config = config or DetectionConfig()
    buffer = load_grayscale(image_path)
    result = detect_bubbles(buffer, config)

    accuracy = None
    truth_path = ground_truth_path(image_path)
    if truth_path.exists():
        report = score(result.bubbles, load_ground_truth(truth_path))
        accuracy = report.to_dict()
        accuracy["meetsTarget"] = report.accuracy >= ACCURACY_TARGET

    if debug_dir is not None:
        save_annotated(debug_dir / f"{image_path.stem}_annotated.png", buffer, result)

    return {
        "image": str(image_path),
        "result": result.to_dict(),
        "withinTimeBudget": result.processing_time_ms < TIME_BUDGET_MS,
        "accuracy": accuracy,
    }


def _process_or_error(image_path: Path, config: DetectionConfig, debug_dir: Optional[Path]) -> Dict[str, object]:
    try:
        return process_image(image_path, config, debug_dir)
    except (OSError, ValueError) as exc:
        logger.error("Failed to process %s: %s", image_path, exc)
        return {"image": str(image_path), "error": str(exc)}


def process_batch(
    image_paths: Sequence[Path],
    config: Optional[DetectionConfig] = None,
    max_workers: int = 1,
    debug_dir: Optional[Path] = None,
) -> List[Dict[str, object]]:
    """Process images independently, one worker process per image.

    Failures are recorded per image (``"error"`` key) instead of aborting
    the batch. Summaries come back in input order.
    """

    config = config or DetectionConfig()
    if max_workers <= 1 or len(image_paths) <= 1:
        return [_process_or_error(path, config, debug_dir) for path in image_paths]

    summaries: Dict[int, Dict[str, object]] = {}
    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(_process_or_error, path, config, debug_dir): index
            for index, path in enumerate(image_paths)
        }
        for future in as_completed(future_to_index):
            summaries[future_to_index[future]] = future.result()

    return [summaries[index] for index in range(len(image_paths))]
