from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray

# ITU-R BT.601 luma weights; alpha is ignored.
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

DEFAULT_THRESHOLD_MIN = 25.0
DEFAULT_THRESHOLD_MAX = 10000.0


def rgba_to_luminance(pixels: NDArray[np.generic], width: int, height: int) -> NDArray[np.float64]:
    """Reduce a flat RGBA byte buffer to a (height, width) luminance grid."""
    rgba = np.asarray(pixels).reshape(height, width, 4).astype(np.float64)
    r, g, b = LUMA_WEIGHTS
    return r * rgba[..., 0] + g * rgba[..., 1] + b * rgba[..., 2]


def laplacian_response(gray: NDArray[np.floating]) -> NDArray[np.float64]:
    """4-neighbour Laplacian, same shape as `gray`.

    Only interior pixels are computed; the outer row/column stays 0 and is
    never read downstream (no padding, no wraparound).
    """
    gray = np.asarray(gray, dtype=np.float64)
    lap = np.zeros_like(gray)
    center = gray[1:-1, 1:-1]
    # 4*c - l - r - u - d, summed as differences so flat regions are exactly 0
    lap[1:-1, 1:-1] = (
        (center - gray[1:-1, :-2])
        + (center - gray[1:-1, 2:])
        + (center - gray[:-2, 1:-1])
        + (center - gray[2:, 1:-1])
    )
    return lap


def laplacian_statistics(lap: NDArray[np.floating]) -> tuple[float, float]:
    """Population mean and variance of the interior of a Laplacian response."""
    interior = np.asarray(lap, dtype=np.float64)[1:-1, 1:-1]
    count = interior.size
    if count <= 0:
        raise ValueError(f"Laplacian response of shape {np.shape(lap)} has no interior pixels")

    total = float(np.sum(interior))
    total_sq = float(np.sum(interior * interior))
    mean = total / count
    variance = total_sq / count - mean * mean
    return mean, max(0.0, variance)


def score_from_variance(
    variance: float,
    threshold_min: float = DEFAULT_THRESHOLD_MIN,
    threshold_max: float = DEFAULT_THRESHOLD_MAX,
) -> int:
    """Map a Laplacian variance onto an integer score in [1, 10].

    Linear between the two calibration points and saturating outside them.
    Halves round up.
    """
    norm = (float(variance) - threshold_min) / (threshold_max - threshold_min)
    norm = min(1.0, max(0.0, norm))
    return int(math.floor(1.0 + 9.0 * norm + 0.5))


def variance_of_laplacian(pixels: NDArray[np.generic], width: int, height: int) -> float:
    gray = rgba_to_luminance(pixels, width, height)
    _, variance = laplacian_statistics(laplacian_response(gray))
    return variance
