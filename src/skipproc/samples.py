"""
Sample demultiplexing and accumulation.

A raw Skipper extension interleaves its samples along the row axis:
column ``c`` of sample ``s`` is stored at raw column ``n_samples * c + s``.
"""

from __future__ import annotations

import logging

import numpy as np

from .errors import InvalidSampleIndex, MalformedExtension

logger = logging.getLogger(__name__)


def infer_sample_count(width: int, image_width: int) -> int:
    """
    Number of samples interleaved in a raw row.

    Raises
    ------
    MalformedExtension
        If ``width`` is not a positive multiple of ``image_width``.
    """
    if width < image_width or width % image_width:
        raise MalformedExtension(
            f"Raw width {width} is not a multiple of the image width {image_width}"
        )
    return width // image_width


def _check_index(n_samples: int, sample_index: int) -> None:
    if not 0 <= sample_index < n_samples:
        raise InvalidSampleIndex(
            f"Sample index {sample_index} out of range for {n_samples} samples"
        )


class RawSampleView:
    """
    Read-only strided view of one sample inside a raw extension.

    No pixel data is copied; ``view[row, col]`` reads raw pixel
    ``(row, n_samples * col + sample_index)``.
    """

    def __init__(self, raw: np.ndarray, n_samples: int, sample_index: int):
        if raw.ndim != 2:
            raise ValueError(f"Raw extension must be 2-D, got shape {raw.shape}")
        if n_samples < 1 or raw.shape[1] % n_samples:
            raise MalformedExtension(
                f"Raw width {raw.shape[1]} is not a multiple of {n_samples} samples"
            )
        _check_index(n_samples, sample_index)

        self.n_samples = n_samples
        self.sample_index = sample_index
        self._view = raw[:, sample_index::n_samples]
        self._view.flags.writeable = False

    @property
    def shape(self) -> tuple[int, int]:
        return self._view.shape

    @property
    def array(self) -> np.ndarray:
        """The strided read-only array."""
        return self._view

    def __getitem__(self, key):
        return self._view[key]

    def copy(self, dtype=np.float64) -> np.ndarray:
        """Contiguous owned copy of the sample plane."""
        return np.array(self._view, dtype=dtype, order="C")


def extract_sample(raw: np.ndarray, n_samples: int, sample_index: int) -> np.ndarray:
    """
    Extract one sample image from a raw interleaved extension.

    Parameters
    ----------
    raw : np.ndarray
        Raw extension, shape (height, n_samples * image_width).
    n_samples : int
        Number of interleaved samples.
    sample_index : int
        Sample to extract, in ``[0, n_samples)``.

    Returns
    -------
    np.ndarray
        Owned float64 array of shape (height, image_width). No correction
        is applied.
    """
    return RawSampleView(raw, n_samples, sample_index).copy()


class SampleAccumulator:
    """
    Running sum of corrected sample images for one extension.

    Example
    -------
    >>> acc = SampleAccumulator((10, 1000))
    >>> for s in range(n_samples):
    ...     acc.accumulate(corrected[s])
    >>> mean = acc.finalize(n_samples)
    """

    def __init__(self, shape: tuple[int, int]):
        self.shape = tuple(shape)
        self._sum = np.zeros(self.shape, dtype=np.float64)
        self.count = 0
        self.finalized = False

    def accumulate(self, corrected: np.ndarray) -> None:
        """Add a corrected sample pixel-wise into the running sum."""
        if self.finalized:
            raise RuntimeError("Cannot accumulate into a finalized mean; call reset() first")
        if corrected.shape != self.shape:
            raise ValueError(f"Sample shape {corrected.shape} does not match {self.shape}")
        self._sum += corrected
        self.count += 1

    def finalize(self, n_samples: int) -> np.ndarray:
        """
        Divide the running sum by ``n_samples`` and return the mean image.

        Must be called exactly once per extension.
        """
        if self.finalized:
            raise RuntimeError("Mean already finalized")
        if n_samples < 1:
            raise ValueError(f"n_samples must be >= 1, got {n_samples}")
        if n_samples != self.count:
            logger.warning("Dividing by %d samples but %d were accumulated", n_samples, self.count)

        self._sum /= n_samples
        self.finalized = True
        return self._sum

    def reset(self) -> None:
        """Zero the buffer for the next extension."""
        self._sum = np.zeros(self.shape, dtype=np.float64)
        self.count = 0
        self.finalized = False
