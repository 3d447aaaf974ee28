"""Synthetic answer sheets with known answers, for calibration and tests.

Raster sheets are drawn with OpenCV and come with a ground-truth sidecar;
the same layout can also be written as a printable PDF with reportlab.
"""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .image_io import save_ground_truth
from .models import GroundTruthEntry

logger = logging.getLogger(__name__)

SHEET_WIDTH = 400
SHEET_HEIGHT = 300
NUM_ROWS = 5
NUM_COLS = 4
BUBBLE_SPACING = 50
BUBBLE_RADIUS = 15
GRID_ORIGIN = 50

DEFAULT_FILLED: Tuple[Tuple[int, int], ...] = ((0, 1), (1, 0), (2, 2), (3, 3), (4, 1))

# Intensities for clean / noisy sheets
CLEAN_BACKGROUND = 255
NOISY_BACKGROUND = 0xF8
CLEAN_FILLED = 0x33
NOISY_FILLED = 0x44
CLEAN_EMPTY = 255
NOISY_EMPTY = 0xF5
OUTLINE = 0

NOISE_SPECKLES = 50


def bubble_center(row: int, col: int, spacing: int = BUBBLE_SPACING, origin: int = GRID_ORIGIN) -> Tuple[int, int]:
    """Pixel center of the bubble at (row, col)."""

    return origin + col * spacing, origin + row * spacing


def add_speckle_noise(image: np.ndarray, rng: random.Random, count: int = NOISE_SPECKLES) -> None:
    """Scatter light gray dots (intensity 180-229) to mimic scan artifacts."""

    height, width = image.shape[:2]
    for _ in range(count):
        nx = rng.randrange(width)
        ny = rng.randrange(height)
        size = int(round(1 + rng.random() * 3))
        gray = 180 + rng.randrange(50)
        cv2.circle(image, (nx, ny), size, gray, -1)


def render_bubble_sheet(
    width: int = SHEET_WIDTH,
    height: int = SHEET_HEIGHT,
    rows: int = NUM_ROWS,
    cols: int = NUM_COLS,
    spacing: int = BUBBLE_SPACING,
    radius: int = BUBBLE_RADIUS,
    filled: Iterable[Tuple[int, int]] = DEFAULT_FILLED,
    noise: bool = False,
    seed: Optional[int] = None,
) -> Tuple[np.ndarray, List[GroundTruthEntry]]:
    """Draw a grayscale bubble sheet and return it with its ground truth."""

    filled_cells = set(filled)
    background = NOISY_BACKGROUND if noise else CLEAN_BACKGROUND
    image = np.full((height, width), background, dtype=np.uint8)

    if noise:
        add_speckle_noise(image, random.Random(seed))

    fill_dark = NOISY_FILLED if noise else CLEAN_FILLED
    fill_light = NOISY_EMPTY if noise else CLEAN_EMPTY
    truth: List[GroundTruthEntry] = []

    for row in range(rows):
        for col in range(cols):
            center = bubble_center(row, col, spacing)
            is_filled = (row, col) in filled_cells
            cv2.circle(image, center, radius, fill_dark if is_filled else fill_light, -1)
            cv2.circle(image, center, radius, OUTLINE, 1)
            truth.append(GroundTruthEntry(row=row, col=col, is_filled=is_filled))

    return image, truth


def write_sample_sheet(
    output_dir: Path,
    name: str,
    noise: bool = False,
    seed: Optional[int] = None,
    filled: Iterable[Tuple[int, int]] = DEFAULT_FILLED,
) -> Path:
    """Write ``<name>.png`` and its ``<name>.json`` sidecar; return the image path."""

    output_dir.mkdir(parents=True, exist_ok=True)
    image, truth = render_bubble_sheet(filled=filled, noise=noise, seed=seed)

    image_path = output_dir / f"{name}.png"
    cv2.imwrite(str(image_path), image)
    save_ground_truth(output_dir / f"{name}.json", truth)

    logger.info("Created sample image %s", image_path)
    return image_path


def create_sample_images(output_dir: Path, seed: Optional[int] = 1234) -> List[Path]:
    """Write the clean and the noisy sample sheet."""

    return [
        write_sample_sheet(output_dir, "sample-clean", noise=False),
        write_sample_sheet(output_dir, "sample-noisy", noise=True, seed=seed),
    ]


def create_bubble_sheet_pdf(
    filename: Path,
    rows: int = NUM_ROWS,
    cols: int = NUM_COLS,
    spacing: float = BUBBLE_SPACING,
    radius: float = BUBBLE_RADIUS,
    page_size: Sequence[float] = letter,
) -> Path:
    """Render a printable blank sheet with the raster layout, in PDF points.

    Row 0 is the top row, matching the image coordinates used by detection.
    """

    filename.parent.mkdir(parents=True, exist_ok=True)
    c = canvas.Canvas(str(filename), pagesize=page_size)
    _, page_height = page_size

    c.setStrokeColor(colors.black)
    c.setFillColor(colors.black)
    c.setFont("Helvetica", 8)

    for row in range(rows):
        x_img, y_img = bubble_center(row, 0, int(spacing))
        # PDF origin is bottom-left
        y_pdf = page_height - y_img
        c.drawString(x_img - radius - 20, y_pdf - 3, str(row + 1))
        for col in range(cols):
            x_pdf = GRID_ORIGIN + col * spacing
            c.circle(x_pdf, y_pdf, radius, stroke=1, fill=0)

    c.save()
    logger.info("PDF created: %s", filename)
    return filename
