"""Gradient-guided Hough search for circular bubble outlines.

Every edge pixel votes for the centers that would put it on a circle of each
allowed radius, walking both ways along its gradient direction. Votes land in
a sparse (y, x, r) accumulator; summing over r gives a center-support map
whose local maxima become candidates, accepted strongest first while keeping
``min_center_distance`` between accepted centers.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np

from .config import DetectionConfig
from .models import CircleCandidate, PixelBuffer

logger = logging.getLogger(__name__)

# Edge pixels voted per batch; bounds the size of the temporary vote arrays
VOTE_CHUNK = 32768


def find_edges(image: np.ndarray, edge_threshold: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Return edge coordinates and unit gradient directions.

    An edge pixel is any pixel whose Sobel gradient magnitude reaches
    ``edge_threshold``. The edge band is not thinned: a mirror-symmetric
    outline gives a mirror-symmetric edge set, and its votes peak on the
    drawn center rather than a pixel to one side.
    """

    gx = cv2.Sobel(image, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(image, cv2.CV_32F, 0, 1, ksize=3)
    strength = cv2.magnitude(gx, gy)

    ys, xs = np.nonzero(strength >= edge_threshold)
    dx = gx[ys, xs].astype(np.float64)
    dy = gy[ys, xs].astype(np.float64)
    magnitude = np.hypot(dx, dy)
    return xs, ys, dx / magnitude, dy / magnitude


def accumulate_votes(
    xs: np.ndarray,
    ys: np.ndarray,
    ux: np.ndarray,
    uy: np.ndarray,
    radii: np.ndarray,
    acc_shape: Tuple[int, int],
    resolution: float,
) -> np.ndarray:
    """Flat (y, x, r) keys of every in-bounds vote, one entry per vote."""

    acc_h, acc_w = acc_shape
    n_radii = radii.size
    radius_index = np.arange(n_radii, dtype=np.int64)
    chunks: List[np.ndarray] = []

    for start in range(0, xs.size, VOTE_CHUNK):
        stop = start + VOTE_CHUNK
        px = xs[start:stop, None].astype(np.float64)
        py = ys[start:stop, None].astype(np.float64)
        step_x = ux[start:stop, None] * radii[None, :]
        step_y = uy[start:stop, None] * radii[None, :]

        for sign in (1.0, -1.0):
            qx = np.floor((px + sign * step_x) / resolution + 0.5).astype(np.int64)
            qy = np.floor((py + sign * step_y) / resolution + 0.5).astype(np.int64)
            inside = (qx >= 0) & (qx < acc_w) & (qy >= 0) & (qy < acc_h)
            ri = np.broadcast_to(radius_index, qx.shape)
            keys = (qy[inside] * acc_w + qx[inside]) * n_radii + ri[inside]
            chunks.append(keys)

    if not chunks:
        return np.empty(0, dtype=np.int64)
    return np.concatenate(chunks)


def _local_maxima(support: np.ndarray, threshold: int) -> Tuple[np.ndarray, np.ndarray]:
    """Cells that are maximal in their 3x3 neighbourhood and above threshold."""

    support_f = support.astype(np.float32)
    dilated = cv2.dilate(support_f, np.ones((3, 3), dtype=np.uint8))
    peaks = (support_f >= dilated) & (support > threshold)
    return np.nonzero(peaks)


def _refine_center(support: np.ndarray, cy: int, cx: int) -> Tuple[float, float]:
    """Vote-weighted centroid of the 3x3 window around a peak (accumulator units)."""

    y0, y1 = max(0, cy - 1), min(support.shape[0], cy + 2)
    x0, x1 = max(0, cx - 1), min(support.shape[1], cx + 2)
    window = support[y0:y1, x0:x1].astype(np.float64)
    total = window.sum()
    if total <= 0:
        return float(cy), float(cx)
    grid_y, grid_x = np.mgrid[y0:y1, x0:x1]
    return float((window * grid_y).sum() / total), float((window * grid_x).sum() / total)


def _best_radius(
    keys: np.ndarray,
    counts: np.ndarray,
    cy: int,
    cx: int,
    acc_shape: Tuple[int, int],
    radii: np.ndarray,
) -> int:
    """Radius with the most support around a center, smoothed over +/-1 bin."""

    acc_h, acc_w = acc_shape
    n_radii = radii.size
    histogram = np.zeros(n_radii, dtype=np.int64)

    for y in range(max(0, cy - 1), min(acc_h, cy + 2)):
        for x in range(max(0, cx - 1), min(acc_w, cx + 2)):
            cell = y * acc_w + x
            lo = np.searchsorted(keys, cell * n_radii, side="left")
            hi = np.searchsorted(keys, (cell + 1) * n_radii, side="left")
            if hi > lo:
                np.add.at(histogram, keys[lo:hi] % n_radii, counts[lo:hi])

    if n_radii >= 3:
        histogram = np.convolve(histogram, np.ones(3, dtype=np.int64), mode="same")
    return int(radii[int(np.argmax(histogram))])


def detect_circles(buffer: PixelBuffer, config: Optional[DetectionConfig] = None) -> List[CircleCandidate]:
    """Find circle candidates in a (smoothed) grayscale buffer.

    Returns candidates strongest first. A blank or empty buffer yields an
    empty list.
    """

    config = config or DetectionConfig()
    if buffer.is_empty:
        return []

    image = buffer.to_array()
    xs, ys, ux, uy = find_edges(image, config.edge_threshold)
    if xs.size == 0:
        logger.debug("No edge pixels found in %dx%d buffer", buffer.width, buffer.height)
        return []

    resolution = float(config.accumulator_resolution)
    acc_shape = (
        max(1, int(np.ceil(buffer.height / resolution))),
        max(1, int(np.ceil(buffer.width / resolution))),
    )
    radii = np.arange(config.min_radius, config.max_radius + 1, dtype=np.float64)

    votes = accumulate_votes(xs, ys, ux, uy, radii, acc_shape, resolution)
    if votes.size == 0:
        logger.debug("Edges found but no votes landed inside the accumulator")
        return []

    keys, counts = np.unique(votes, return_counts=True)
    n_radii = radii.size
    support = np.bincount(
        keys // n_radii, weights=counts, minlength=acc_shape[0] * acc_shape[1]
    ).astype(np.int64).reshape(acc_shape)

    peak_y, peak_x = _local_maxima(support, config.center_threshold)
    strengths = support[peak_y, peak_x]
    order = np.lexsort((peak_x, peak_y, -strengths))

    logger.debug(
        "Circle search: %d edge pixels, %d votes, %d peaks above %d",
        xs.size, votes.size, order.size, config.center_threshold,
    )

    min_dist_sq = float(config.min_center_distance) ** 2
    accepted: List[CircleCandidate] = []
    accepted_centers: List[Tuple[float, float]] = []

    for idx in order:
        cy, cx = int(peak_y[idx]), int(peak_x[idx])
        ref_y, ref_x = _refine_center(support, cy, cx)
        center_x = ref_x * resolution
        center_y = ref_y * resolution

        if any((center_x - ax) ** 2 + (center_y - ay) ** 2 < min_dist_sq for ax, ay in accepted_centers):
            continue

        radius = _best_radius(keys, counts, cy, cx, acc_shape, radii)
        accepted_centers.append((center_x, center_y))
        accepted.append(
            CircleCandidate(
                x=int(round(center_x)),
                y=int(round(center_y)),
                radius=radius,
                votes=int(strengths[idx]),
            )
        )

    logger.debug("Accepted %d circle candidates", len(accepted))
    return accepted
