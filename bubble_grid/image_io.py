"""Raster loading, ground-truth sidecars and debug overlays."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Iterator, List

import cv2

from .models import DetectionResult, GroundTruthEntry, PixelBuffer

SUPPORTED_EXTS = (".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff")

FILLED_COLOR = (0, 200, 0)
EMPTY_COLOR = (0, 0, 255)


def load_grayscale(image_path: Path) -> PixelBuffer:
    """Decode an image file into an 8-bit single-channel buffer."""

    gray = cv2.imread(str(image_path), cv2.IMREAD_GRAYSCALE)
    if gray is None:
        raise FileNotFoundError(f"Unable to read image: {image_path}")
    return PixelBuffer.from_array(gray)


def iter_images(images_dir: Path) -> Iterator[Path]:
    """Supported image files in a directory, sorted by name."""

    for path in sorted(images_dir.iterdir()):
        if path.is_file() and path.suffix.lower() in SUPPORTED_EXTS:
            yield path


def expand_inputs(inputs: Iterable[Path]) -> List[Path]:
    """Flatten a mix of image paths and directories into image paths."""

    paths: List[Path] = []
    for item in inputs:
        if item.is_dir():
            paths.extend(iter_images(item))
        else:
            paths.append(item)
    return paths


def ground_truth_path(image_path: Path) -> Path:
    """Sidecar location: same stem, .json suffix."""

    return image_path.with_suffix(".json")


def load_ground_truth(truth_path: Path) -> List[GroundTruthEntry]:
    with truth_path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Ground truth must be a JSON list of cells: {truth_path}")
    return [GroundTruthEntry.from_dict(item) for item in data]


def save_ground_truth(truth_path: Path, entries: Iterable[GroundTruthEntry]) -> None:
    truth_path.parent.mkdir(parents=True, exist_ok=True)
    with truth_path.open("w", encoding="utf-8") as f:
        json.dump([entry.to_dict() for entry in entries], f, indent=2)


def save_annotated(output_path: Path, buffer: PixelBuffer, result: DetectionResult) -> None:
    """Save an overlay of the detections: filled in green, empty in red."""

    overlay = cv2.cvtColor(buffer.to_array(), cv2.COLOR_GRAY2BGR)
    for mark in result.bubbles:
        color = FILLED_COLOR if mark.is_filled else EMPTY_COLOR
        center = (mark.x, mark.y)
        cv2.circle(overlay, center, max(2, mark.radius), color, 2)
        if mark.is_filled:
            cv2.circle(overlay, center, 3, color, -1)
        label = f"{mark.row},{mark.col}"
        cv2.putText(
            overlay,
            label,
            (mark.x - mark.radius, mark.y - mark.radius - 3),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.35,
            color,
            1,
            cv2.LINE_AA,
        )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(output_path), overlay)
