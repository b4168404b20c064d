"""
Pytest configuration and fixtures.
"""

import numpy as np
import pytest
from astropy.io import fits

from skipproc.cli_output import STYLE_NAMES, Colors, Symbols
from skipproc.config import OverscanLayout


@pytest.fixture(autouse=True)
def terminal_styles(monkeypatch):
    """Restore console colors and symbols changed by terminal detection."""
    for name in STYLE_NAMES + ("enabled",):
        monkeypatch.setattr(Colors, name, getattr(Colors, name))
    for name in ("CROSS", "ARROW", "SPARKLE"):
        monkeypatch.setattr(Symbols, name, getattr(Symbols, name))


@pytest.fixture
def layout():
    """Default Skipper readout geometry."""
    return OverscanLayout()


@pytest.fixture
def synthetic_sample():
    """Create one de-interleaved sample image with flat overscan windows."""
    def _create(height=10, active=1000.0, left_os=100.0, right_os=200.0, layout=None):
        layout = layout or OverscanLayout()
        image = np.full((height, layout.image_width), active, dtype=np.float64)
        left_start, left_end = layout.left_window
        right_start, right_end = layout.right_window
        image[:, left_start:left_end] = left_os
        image[:, right_start:right_end] = right_os
        return image

    return _create


@pytest.fixture
def interleave():
    """Interleave a list of sample images into a raw extension."""
    def _interleave(samples):
        n_samples = len(samples)
        height, width = samples[0].shape
        raw = np.empty((height, width * n_samples), dtype=samples[0].dtype)
        for s, sample in enumerate(samples):
            raw[:, s::n_samples] = sample
        return raw

    return _interleave


@pytest.fixture
def synthetic_raw(synthetic_sample, interleave):
    """
    Create a raw interleaved extension.

    Sample ``s`` has active pixels at ``active + active_step * s``.
    """
    def _create(n_samples=2, height=10, active=1000.0, active_step=0.0,
                left_os=100.0, right_os=200.0, dtype=np.float32):
        samples = [
            synthetic_sample(height, active + active_step * s, left_os, right_os).astype(dtype)
            for s in range(n_samples)
        ]
        return interleave(samples)

    return _create


@pytest.fixture
def raw_fits_file(tmp_path, synthetic_raw):
    """
    Write a raw Skipper FITS file.

    Layout: header-only primary, one image extension per entry of
    ``n_samples_per_ext``, and optionally a trailing binary table.
    """
    def _create(name="raw.fits", n_samples_per_ext=(2,), with_table=False, **raw_kwargs):
        primary = fits.PrimaryHDU()
        primary.header["OBSERVER"] = "synthetic"
        hdus = [primary]
        for i, n_samples in enumerate(n_samples_per_ext):
            data = synthetic_raw(n_samples=n_samples, **raw_kwargs)
            hdu = fits.ImageHDU(data=data, name=f"CCD{i + 1}")
            hdu.header["NDCMS"] = n_samples
            hdus.append(hdu)
        if with_table:
            table = fits.BinTableHDU.from_columns(
                [
                    fits.Column(name="ROW", format="J", array=np.arange(5)),
                    fits.Column(name="TEMP", format="D", array=np.linspace(-140.0, -139.0, 5)),
                ],
                name="TELEMETRY",
            )
            hdus.append(table)

        path = tmp_path / name
        fits.HDUList(hdus).writeto(path)
        return path

    return _create
