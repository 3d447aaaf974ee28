"""Row/column assignment for detected bubbles.

Marks are put in reading order by a coarse vertical band and then by x, and
a new row starts whenever the vertical jump from the row's first mark exceeds
the break threshold. This assumes a reasonably uniform, unskewed layout;
irregular sheets will be misassigned.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import BubbleMark


def reading_order(marks: Iterable[BubbleMark], row_band_height: int = 50) -> List[BubbleMark]:
    """Stable sort: top band first, left to right within a band."""

    return sorted(marks, key=lambda m: (m.y // row_band_height, m.x))


def assign_grid(
    marks: Sequence[BubbleMark],
    row_band_height: int = 50,
    row_break_threshold: int = 30,
) -> List[BubbleMark]:
    """Assign row/col to every mark in a single pass over the whole set.

    Returns new marks in reading order; the input is left untouched.
    """

    ordered = reading_order(marks, row_band_height)
    if not ordered:
        return []

    current_row = 0
    col_in_row = 0
    last_y = ordered[0].y
    assigned: List[BubbleMark] = []

    for mark in ordered:
        if abs(mark.y - last_y) > row_break_threshold:
            current_row += 1
            col_in_row = 0
            last_y = mark.y
        assigned.append(replace(mark, row=current_row, col=col_in_row))
        col_in_row += 1

    return assigned


def grid_shape(marks: Iterable[BubbleMark]) -> Tuple[int, int]:
    """(rows, widest row) of assigned marks; (0, 0) when nothing is assigned."""

    per_row: Dict[int, int] = {}
    for mark in marks:
        if mark.row < 0:
            continue
        per_row[mark.row] = max(per_row.get(mark.row, 0), mark.col + 1)
    if not per_row:
        return (0, 0)
    return (max(per_row) + 1, max(per_row.values()))


def duplicate_cells(marks: Iterable[BubbleMark]) -> List[Tuple[int, int]]:
    """(row, col) keys held by more than one mark, in first-seen order."""

    seen: Dict[Tuple[int, int], int] = {}
    for mark in marks:
        seen[mark.cell] = seen.get(mark.cell, 0) + 1
    return [cell for cell, count in seen.items() if count > 1]
