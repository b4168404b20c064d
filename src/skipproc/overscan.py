"""
Overscan baseline estimation and row correction.

Each de-interleaved row has two halves, one per amplifier. A robust
baseline is estimated per half from its overscan window and subtracted
from every pixel of that half.
"""

from __future__ import annotations

import logging
from typing import Literal

import numpy as np

from .config import OverscanLayout
from .errors import InvalidRegion

logger = logging.getLogger(__name__)

# Saturation thresholds (before BZERO) by FITS BITPIX.
# BITPIX 32 gets its own integer limit rather than DEFAULT_SATURATION_VALUE.
SATURATION_VALUES = {
    8: 128.0,
    16: 32768.0,
    32: 2147483648.0,
}
DEFAULT_SATURATION_VALUE = 1e10
SATURATION_MARGIN = 0.99


def trimmed_mean_rows(
    windows: np.ndarray,
    trim: int = 4,
    min_count: int = 4,
) -> np.ndarray:
    """
    Trimmed mean of every row of a 2-D window array.

    Parameters
    ----------
    windows : np.ndarray
        Array of shape (n_rows, count), one overscan window per row.
    trim : int, default 4
        Number of values dropped at each end of each sorted row.
    min_count : int, default 4
        Windows with more than ``min_count`` values are divided by
        ``count - 2*trim``, smaller ones by ``count``.

    Returns
    -------
    np.ndarray
        Baseline per row, shape (n_rows,).

    Raises
    ------
    InvalidRegion
        If the window is empty or the divisor is zero.

    Notes
    -----
    When ``count > 2*trim`` the middle ``count - 2*trim`` sorted values are
    summed; otherwise all values are summed. The divisor is chosen by a
    separate test on ``min_count``, so a window with
    ``min_count < count <= 2*trim`` sums every value but still divides by
    ``count - 2*trim``. Windows of the standard geometry (44 columns) never
    reach that branch.
    """
    windows = np.asarray(windows, dtype=np.float64)
    if windows.ndim != 2:
        raise ValueError(f"Expected a 2-D window array, got shape {windows.shape}")

    count = windows.shape[1]
    if count == 0:
        raise InvalidRegion("Overscan window has no pixels")

    ordered = np.sort(windows, axis=1)
    if count > 2 * trim:
        total = ordered[:, trim:count - trim].sum(axis=1)
    else:
        total = ordered.sum(axis=1)

    divisor = count - 2 * trim if count > min_count else count
    if divisor == 0:
        raise InvalidRegion(
            f"Overscan window of {count} pixels leaves nothing after trimming {trim} per side"
        )
    if divisor < 0:
        logger.debug("Negative trimmed-mean divisor %d for window of %d pixels", divisor, count)

    return total / divisor


def trimmed_mean(values, trim: int = 4, min_count: int = 4) -> float:
    """
    Robust mean of a 1-D sequence, dropping ``trim`` values at each end.

    See ``trimmed_mean_rows`` for the exact rule.
    """
    values = np.asarray(values, dtype=np.float64).ravel()
    return float(trimmed_mean_rows(values[np.newaxis, :], trim=trim, min_count=min_count)[0])


def central_mean_rows(windows: np.ndarray) -> np.ndarray:
    """
    Mean of the middle third of every sorted row.

    Averages sorted values with indices in ``[count // 3, 2 * count // 3)``.
    """
    windows = np.asarray(windows, dtype=np.float64)
    if windows.ndim != 2:
        raise ValueError(f"Expected a 2-D window array, got shape {windows.shape}")

    count = windows.shape[1]
    lo, hi = count // 3, 2 * count // 3
    if hi <= lo:
        raise InvalidRegion(f"Overscan window of {count} pixels is too small for a central mean")

    ordered = np.sort(windows, axis=1)
    return ordered[:, lo:hi].sum(axis=1) / (hi - lo)


def central_mean(values) -> float:
    """Mean of the middle third of a 1-D sequence."""
    values = np.asarray(values, dtype=np.float64).ravel()
    return float(central_mean_rows(values[np.newaxis, :])[0])


def _row_baselines(
    windows: np.ndarray,
    layout: OverscanLayout,
    estimator: Literal["trimmed", "central"],
) -> np.ndarray:
    if estimator == "trimmed":
        return trimmed_mean_rows(windows, trim=layout.trim, min_count=layout.min_count)
    elif estimator == "central":
        return central_mean_rows(windows)
    raise ValueError(f"Unknown estimator: {estimator!r}")


def correct_row(row: np.ndarray, layout: OverscanLayout) -> tuple[float, float]:
    """
    Subtract the overscan baselines from one row, in place.

    Parameters
    ----------
    row : np.ndarray
        One de-interleaved row of ``layout.image_width`` float values.
    layout : OverscanLayout
        Readout geometry.

    Returns
    -------
    tuple[float, float]
        (left_mean, right_mean) subtracted from the left and right halves.
    """
    if not isinstance(row, np.ndarray) or row.ndim != 1:
        raise TypeError("row must be a 1-D numpy array")
    if row.shape[0] != layout.image_width:
        raise ValueError(f"Row has {row.shape[0]} columns, expected {layout.image_width}")

    left_start, left_end = layout.left_window
    right_start, right_end = layout.right_window
    half = layout.half_width

    left_mean = trimmed_mean(row[left_start:left_end], trim=layout.trim, min_count=layout.min_count)
    right_mean = trimmed_mean(row[right_start:right_end], trim=layout.trim, min_count=layout.min_count)

    row[:half] -= left_mean
    row[half:] -= right_mean

    return left_mean, right_mean


def correct_sample(
    image: np.ndarray,
    layout: OverscanLayout,
    estimator: Literal["trimmed", "central"] = "trimmed",
) -> tuple[np.ndarray, np.ndarray]:
    """
    Subtract per-row overscan baselines from a whole sample image, in place.

    Rows are independent; the result equals calling ``correct_row`` on
    every row.

    Parameters
    ----------
    image : np.ndarray
        Sample image of shape (height, layout.image_width), float.
    layout : OverscanLayout
        Readout geometry.
    estimator : {"trimmed", "central"}, default "trimmed"
        Baseline estimator.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        (left_means, right_means), one value per row.
    """
    if image.ndim != 2 or image.shape[1] != layout.image_width:
        raise ValueError(
            f"Sample image has shape {image.shape}, expected (height, {layout.image_width})"
        )

    left_start, left_end = layout.left_window
    right_start, right_end = layout.right_window
    half = layout.half_width

    # Both baselines come from the uncorrected row
    left_means = _row_baselines(image[:, left_start:left_end], layout, estimator)
    right_means = _row_baselines(image[:, right_start:right_end], layout, estimator)

    image[:, :half] -= left_means[:, np.newaxis]
    image[:, half:] -= right_means[:, np.newaxis]

    return left_means, right_means


def saturation_value(bitpix: int, bzero: float = 0.0) -> float:
    """Raw saturation level for a FITS bit depth."""
    if bitpix in SATURATION_VALUES:
        return SATURATION_VALUES[bitpix] + bzero
    return DEFAULT_SATURATION_VALUE


def count_saturated(data: np.ndarray, bitpix: int, bzero: float = 0.0) -> int:
    """
    Count pixels at or above the saturation threshold.

    The threshold is ``saturation_value(bitpix, bzero) * SATURATION_MARGIN``.
    """
    threshold = saturation_value(bitpix, bzero) * SATURATION_MARGIN
    return int(np.count_nonzero(data >= threshold))
