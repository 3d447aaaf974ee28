"""Filled/empty decision for detected bubbles."""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from .models import CircleCandidate, PixelBuffer


def measure_fill_ratio(
    buffer: PixelBuffer,
    candidate: CircleCandidate,
    dark_intensity: int = 128,
    inner_ratio: float = 0.7,
) -> float:
    """Fraction of dark pixels inside the inset disk of a candidate.

    The disk radius is ``floor(inner_ratio * radius)`` so the printed outline
    is not counted as fill. Offsets falling outside the buffer are skipped;
    a disk entirely outside the image has a ratio of 0.
    """

    inner = int(math.floor(candidate.radius * inner_ratio))
    if buffer.is_empty or inner < 0:
        return 0.0

    x0 = max(0, candidate.x - inner)
    x1 = min(buffer.width, candidate.x + inner + 1)
    y0 = max(0, candidate.y - inner)
    y1 = min(buffer.height, candidate.y + inner + 1)
    if x1 <= x0 or y1 <= y0:
        return 0.0

    region = buffer.as_array()[y0:y1, x0:x1]
    grid_y, grid_x = np.ogrid[y0:y1, x0:x1]
    inside = (grid_x - candidate.x) ** 2 + (grid_y - candidate.y) ** 2 <= inner * inner

    total = int(inside.sum())
    if total == 0:
        return 0.0
    dark = int(np.count_nonzero((region < dark_intensity) & inside))
    return dark / total


def classify(
    buffer: PixelBuffer,
    candidate: CircleCandidate,
    fill_threshold: float = 0.4,
    dark_intensity: int = 128,
    inner_ratio: float = 0.7,
) -> Tuple[bool, float]:
    """Return (is_filled, fill_ratio) for one candidate."""

    ratio = measure_fill_ratio(buffer, candidate, dark_intensity, inner_ratio)
    return ratio >= fill_threshold, ratio
