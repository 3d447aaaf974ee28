"""Accuracy of detected marks against a ground-truth answer layout."""

from __future__ import annotations

import logging
from typing import Dict, Sequence, Tuple

from .grid import duplicate_cells
from .models import AccuracyReport, BubbleMark, GroundTruthEntry

logger = logging.getLogger(__name__)


def index_by_cell(detected: Sequence[BubbleMark]) -> Dict[Tuple[int, int], BubbleMark]:
    """Map (row, col) to a mark; the first mark in sequence order wins a shared key."""

    index: Dict[Tuple[int, int], BubbleMark] = {}
    for mark in detected:
        index.setdefault(mark.cell, mark)
    return index


def score(detected: Sequence[BubbleMark], truth: Sequence[GroundTruthEntry]) -> AccuracyReport:
    """Compare detections with ground truth cell by cell.

    A missing detection only counts against the result when the truth cell
    is filled (false negative); a missing empty cell is an implicit true
    negative and is neither correct nor wrong.
    """

    duplicates = duplicate_cells(detected)
    if duplicates:
        logger.warning(
            "%d grid cell(s) hold more than one detected mark, scoring the first of each: %s",
            len(duplicates), duplicates,
        )

    index = index_by_cell(detected)
    correct = 0
    false_positives = 0
    false_negatives = 0

    for entry in truth:
        match = index.get((entry.row, entry.col))
        if match is None:
            if entry.is_filled:
                false_negatives += 1
            continue

        if match.is_filled == entry.is_filled:
            correct += 1
        elif match.is_filled:
            false_positives += 1
        else:
            false_negatives += 1

    accuracy = correct / len(truth) if truth else 0.0
    return AccuracyReport(
        accuracy=accuracy,
        false_positives=false_positives,
        false_negatives=false_negatives,
        correct=correct,
        compared=len(truth),
    )
