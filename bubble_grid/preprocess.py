"""Noise reduction ahead of edge-sensitive detection."""

from __future__ import annotations

import cv2

from .models import PixelBuffer


def smooth(buffer: PixelBuffer, kernel_size: int = 5) -> PixelBuffer:
    """Apply a Gaussian blur (kernel_size x kernel_size) and return a new buffer."""

    if kernel_size < 1 or kernel_size % 2 == 0:
        raise ValueError(f"kernel_size must be a positive odd number, got {kernel_size}")
    if buffer.is_empty or kernel_size == 1:
        return buffer

    # Sigma 0 lets OpenCV derive it from the kernel size
    blurred = cv2.GaussianBlur(buffer.to_array(), (kernel_size, kernel_size), 0)
    return PixelBuffer.from_array(blurred)
