"""Bubble grid detection for scanned answer sheets.

Usage:
    from bubble_grid import PixelBuffer, detect_bubbles, score

    buffer = PixelBuffer(width=w, height=h, data=gray_bytes)
    result = detect_bubbles(buffer)
    report = score(result.bubbles, truth)
"""

from .circles import detect_circles
from .config import DetectionConfig, load_config, save_config
from .engine import detect_bubbles
from .fill import classify, measure_fill_ratio
from .grid import assign_grid, duplicate_cells, grid_shape
from .models import (
    AccuracyReport,
    BubbleMark,
    CircleCandidate,
    DetectionResult,
    GroundTruthEntry,
    InvalidBufferError,
    PixelBuffer,
)
from .preprocess import smooth
from .scoring import score

__all__ = [
    "AccuracyReport",
    "BubbleMark",
    "CircleCandidate",
    "DetectionConfig",
    "DetectionResult",
    "GroundTruthEntry",
    "InvalidBufferError",
    "PixelBuffer",
    "assign_grid",
    "classify",
    "detect_bubbles",
    "detect_circles",
    "duplicate_cells",
    "grid_shape",
    "load_config",
    "measure_fill_ratio",
    "save_config",
    "score",
    "smooth",
]
