"""Detection pipeline: smooth, find circles, classify fill, assign the grid."""

from __future__ import annotations

import logging
import time
from typing import List, Optional

from .circles import detect_circles
from .config import DetectionConfig
from .fill import classify
from .grid import assign_grid
from .models import BubbleMark, CircleCandidate, DetectionResult, PixelBuffer
from .preprocess import smooth

logger = logging.getLogger(__name__)


def classify_candidates(
    buffer: PixelBuffer, candidates: List[CircleCandidate], config: DetectionConfig
) -> List[BubbleMark]:
    """Turn raw circles into unassigned marks, sampling the raw buffer."""

    marks: List[BubbleMark] = []
    for candidate in candidates:
        is_filled, ratio = classify(
            buffer,
            candidate,
            fill_threshold=config.fill_threshold,
            dark_intensity=config.dark_intensity,
            inner_ratio=config.inner_radius_ratio,
        )
        marks.append(
            BubbleMark(
                x=candidate.x,
                y=candidate.y,
                radius=candidate.radius,
                is_filled=is_filled,
                fill_ratio=ratio,
            )
        )
    return marks


def detect_bubbles(buffer: PixelBuffer, config: Optional[DetectionConfig] = None) -> DetectionResult:
    """Run the full pipeline on one grayscale buffer."""

    config = config or DetectionConfig()
    start = time.perf_counter()

    if buffer.is_empty:
        logger.debug("Empty %dx%d buffer, nothing to detect", buffer.width, buffer.height)
        return DetectionResult.build((), buffer.width, buffer.height, (time.perf_counter() - start) * 1000)

    smoothed = smooth(buffer, config.blur_kernel_size)
    candidates = detect_circles(smoothed, config)
    marks = classify_candidates(buffer, candidates, config)
    marks = assign_grid(marks, config.row_band_height, config.row_break_threshold)

    elapsed_ms = (time.perf_counter() - start) * 1000
    result = DetectionResult.build(marks, buffer.width, buffer.height, elapsed_ms)
    logger.info(
        "Detected %d bubbles (%d filled, %d empty) in %dx%d image in %.1fms",
        result.total_bubbles, result.filled_bubbles, result.empty_bubbles,
        buffer.width, buffer.height, elapsed_ms,
    )
    return result
