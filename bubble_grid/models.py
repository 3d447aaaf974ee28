"""Data structures shared by the bubble grid detection stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

import numpy as np


class InvalidBufferError(ValueError):
    """Raised when a pixel buffer's declared dimensions do not match its data."""


@dataclass(frozen=True)
class PixelBuffer:
    """Row-major 8-bit grayscale image borrowed read-only by the engine."""

    width: int
    height: int
    data: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise InvalidBufferError(
                f"Buffer dimensions must be non-negative, got {self.width}x{self.height}"
            )
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))
        expected = self.width * self.height
        if len(self.data) != expected:
            raise InvalidBufferError(
                f"Buffer declares {self.width}x{self.height} ({expected} bytes) "
                f"but holds {len(self.data)} bytes"
            )

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """Wrap a 2-D uint8 array (height, width)."""

        if array.ndim != 2:
            raise InvalidBufferError(f"Expected a single-channel image, got shape {array.shape}")
        if array.dtype != np.uint8:
            raise InvalidBufferError(f"Expected uint8 intensities, got {array.dtype}")
        height, width = array.shape
        return cls(width=width, height=height, data=np.ascontiguousarray(array).tobytes())

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def as_array(self) -> np.ndarray:
        """Read-only (height, width) view over the intensities."""

        view = np.frombuffer(self.data, dtype=np.uint8).reshape(self.height, self.width)
        view.flags.writeable = False
        return view

    def to_array(self) -> np.ndarray:
        """Writable (height, width) copy, safe to hand to OpenCV."""

        return self.as_array().copy()


@dataclass(frozen=True)
class CircleCandidate:
    """Raw circle produced by the Hough search."""

    x: int
    y: int
    radius: int
    votes: int = 0


@dataclass(frozen=True)
class BubbleMark:
    """A detected bubble with its fill decision and grid coordinates."""

    x: int
    y: int
    radius: int
    is_filled: bool
    fill_ratio: float
    row: int = -1  # -1 until the grid pass runs
    col: int = -1

    @property
    def cell(self) -> Tuple[int, int]:
        return (self.row, self.col)

    def to_dict(self) -> Dict[str, object]:
        return {
            "row": self.row,
            "col": self.col,
            "x": self.x,
            "y": self.y,
            "radius": self.radius,
            "isFilled": self.is_filled,
            "fillRatio": round(self.fill_ratio, 4),
        }


@dataclass(frozen=True)
class DetectionResult:
    """Immutable snapshot of one image's detection run."""

    bubbles: Tuple[BubbleMark, ...]
    total_bubbles: int
    filled_bubbles: int
    empty_bubbles: int
    image_width: int
    image_height: int
    processing_time_ms: float

    @classmethod
    def build(
        cls,
        bubbles: Iterable[BubbleMark],
        image_width: int,
        image_height: int,
        processing_time_ms: float,
    ) -> "DetectionResult":
        marks = tuple(bubbles)
        filled = sum(1 for mark in marks if mark.is_filled)
        return cls(
            bubbles=marks,
            total_bubbles=len(marks),
            filled_bubbles=filled,
            empty_bubbles=len(marks) - filled,
            image_width=image_width,
            image_height=image_height,
            processing_time_ms=processing_time_ms,
        )

    def filled_cells(self) -> List[Tuple[int, int]]:
        return [mark.cell for mark in self.bubbles if mark.is_filled]

    def to_dict(self) -> Dict[str, object]:
        return {
            "totalBubbles": self.total_bubbles,
            "filledBubbles": self.filled_bubbles,
            "emptyBubbles": self.empty_bubbles,
            "imageWidth": self.image_width,
            "imageHeight": self.image_height,
            "processingTimeMs": round(self.processing_time_ms, 3),
            "bubbles": [mark.to_dict() for mark in self.bubbles],
        }


@dataclass(frozen=True)
class GroundTruthEntry:
    """Expected state of one grid cell."""

    row: int
    col: int
    is_filled: bool

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "GroundTruthEntry":
        filled = data.get("isFilled", data.get("is_filled"))
        if filled is None or "row" not in data or "col" not in data:
            raise ValueError(f"Invalid ground truth entry: {data!r}")
        return cls(row=int(data["row"]), col=int(data["col"]), is_filled=bool(filled))

    def to_dict(self) -> Dict[str, object]:
        return {"row": self.row, "col": self.col, "isFilled": self.is_filled}


@dataclass(frozen=True)
class AccuracyReport:
    """Comparison of detected marks against ground truth."""

    accuracy: float
    false_positives: int
    false_negatives: int
    correct: int = 0
    compared: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "accuracy": self.accuracy,
            "falsePositives": self.false_positives,
            "falseNegatives": self.false_negatives,
            "correct": self.correct,
            "compared": self.compared,
        }
