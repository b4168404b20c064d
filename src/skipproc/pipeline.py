"""
Extension pipeline: overscan correction and sample averaging for a file.

Extensions are processed strictly in stored order and samples strictly in
index order, so the per-sample output keeps a deterministic
``(extension, sample)`` plane ordering.
"""

from __future__ import annotations

import logging
import time
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal

import numpy as np

from .config import ExtensionRecord, OverscanLayout, PlaneKind, ProcessConfig, ProcessResult
from .errors import InputNotFound, SaturationWarning
from .io import FitsReader, FitsWriter, image_header, remove_existing
from .overscan import correct_sample, count_saturated
from .samples import SampleAccumulator, extract_sample, infer_sample_count
from .utils import get_platform_info, get_timestamp_iso, get_version, prefixed_path

logger = logging.getLogger(__name__)


@dataclass
class AveragedExtension:
    """Mean image of one raw extension and the baselines used."""

    mean: np.ndarray
    n_samples: int
    left_baselines: np.ndarray  # (n_samples, height)
    right_baselines: np.ndarray  # (n_samples, height)


def correct_and_average(
    raw: np.ndarray,
    layout: OverscanLayout,
    estimator: Literal["trimmed", "central"] = "trimmed",
    on_sample: Callable[[int, np.ndarray], None] | None = None,
) -> AveragedExtension:
    """
    Overscan-correct every sample of a raw extension and average them.

    Parameters
    ----------
    raw : np.ndarray
        Raw interleaved extension, shape (height, n_samples * image_width).
    layout : OverscanLayout
        Readout geometry.
    estimator : {"trimmed", "central"}, default "trimmed"
        Overscan baseline estimator.
    on_sample : callable, optional
        Called as ``on_sample(sample_index, corrected)`` after each sample
        is corrected and accumulated, in index order.

    Returns
    -------
    AveragedExtension
        Mean image (height, image_width) and per-row baselines.
    """
    n_samples = infer_sample_count(raw.shape[1], layout.image_width)
    height = raw.shape[0]

    accumulator = SampleAccumulator((height, layout.image_width))
    left_baselines = np.empty((n_samples, height), dtype=np.float64)
    right_baselines = np.empty((n_samples, height), dtype=np.float64)

    for s in range(n_samples):
        sample = extract_sample(raw, n_samples, s)
        left_baselines[s], right_baselines[s] = correct_sample(sample, layout, estimator)
        accumulator.accumulate(sample)
        if on_sample is not None:
            on_sample(s, sample)

    mean = accumulator.finalize(n_samples)
    return AveragedExtension(mean, n_samples, left_baselines, right_baselines)


def count_total_samples(reader: FitsReader, layout: OverscanLayout) -> int:
    """Total number of samples over all image extensions, from headers only."""
    total = 0
    for index in range(reader.plane_count()):
        if reader.is_image_plane(index):
            total += reader.header(index).get("NAXIS1", 0) // layout.image_width
    return total


def process_extension(
    reader: FitsReader,
    index: int,
    config: ProcessConfig,
    mean_writer: FitsWriter,
    samples_writer: FitsWriter | None = None,
    progress=None,
) -> ExtensionRecord:
    """
    Process one input extension.

    Non-image extensions are copied verbatim to every output. Image
    extensions are demultiplexed, corrected and averaged; the mean goes to
    ``mean_writer``. With ``samples_writer`` every corrected sample is
    written in index order, followed by the mean.

    Parameters
    ----------
    reader : FitsReader
        Open input file.
    index : int
        Extension index.
    config : ProcessConfig
        Run configuration.
    mean_writer : FitsWriter
        Primary output.
    samples_writer : FitsWriter, optional
        Per-sample output.
    progress : tqdm, optional
        Advanced by one per sample.

    Returns
    -------
    ExtensionRecord
        What was done with the extension.
    """
    layout = config.layout

    if not reader.is_image_plane(index):
        mean_writer.copy_plane_verbatim(reader, index)
        if samples_writer is not None:
            samples_writer.copy_plane_verbatim(reader, index)
        logger.info("Extension %d: not an image, copied", index)
        return ExtensionRecord(index=index, kind=PlaneKind.PASSTHROUGH)

    height, width = reader.image_shape(index)
    n_samples = infer_sample_count(width, layout.image_width)

    plane = reader.read_plane(index)

    n_saturated = 0
    if config.check_saturation:
        n_saturated = count_saturated(plane.data, plane.bitpix, plane.bzero)
        if n_saturated:
            warnings.warn(
                f"Extension {index}: {n_saturated} saturated pixels (BITPIX={plane.bitpix})",
                SaturationWarning,
                stacklevel=2,
            )

    def _emit_sample(s: int, corrected: np.ndarray) -> None:
        if samples_writer is not None:
            samples_writer.write_image_plane(
                corrected,
                image_header(plane.header, NSAMP=n_samples, SAMPLE=s),
            )
        if progress is not None:
            progress.update(1)

    averaged = correct_and_average(plane.data, layout, config.estimator, on_sample=_emit_sample)
    plane.data = None

    mean_header = image_header(
        plane.header,
        NSAMP=n_samples,
        HISTORY=f"Overscan-corrected mean of {n_samples} samples (skipproc {get_version()})",
    )
    if samples_writer is not None:
        samples_writer.write_image_plane(averaged.mean, mean_header)
    mean_writer.write_image_plane(averaged.mean, mean_header)

    logger.info(
        "Extension %d: %d samples, %dx%d -> %dx%d",
        index, n_samples, height, width, height, layout.image_width,
    )

    return ExtensionRecord(
        index=index,
        kind=PlaneKind.IMAGE,
        n_samples=n_samples,
        shape=averaged.mean.shape,
        bitpix=plane.bitpix,
        n_saturated=n_saturated,
        left_baseline=float(np.median(averaged.left_baselines)),
        right_baseline=float(np.median(averaged.right_baselines)),
    )


def process_file(
    input_path: str | Path,
    output_path: str | Path,
    config: ProcessConfig | None = None,
    quiet: bool = False,
) -> ProcessResult:
    """
    Correct and average every image extension of a raw Skipper FITS file.

    Parameters
    ----------
    input_path : str or Path
        Raw input FITS file.
    output_path : str or Path
        Output FITS file with one mean image per image extension.
    config : ProcessConfig, optional
        Configuration. Uses defaults if not provided.
    quiet : bool, default False
        If True, suppress console output and the progress bar.

    Returns
    -------
    ProcessResult
        Paths, per-extension records and timing.

    Notes
    -----
    Existing output files are deleted before the run when
    ``config.overwrite`` is set. Any error aborts the run; planes already
    written stay on disk.
    """
    from .cli_output import create_progress_bar, print_warning

    start_time = time.time()
    input_path = Path(input_path)
    output_path = Path(output_path)

    if config is None:
        config = ProcessConfig()
    config.validate()

    if not input_path.exists():
        raise InputNotFound(f"Input file not found: {input_path}")

    samples_path = prefixed_path(output_path, config.samples_prefix) if config.save_samples else None

    if config.overwrite:
        for path in (output_path, samples_path):
            if path is not None and path.exists():
                if not quiet:
                    print_warning(f"The output file exists. Will overwrite: {path}")
                remove_existing(path)

    result = ProcessResult(
        input_path=str(input_path),
        output_path=str(output_path),
        samples_path=str(samples_path) if samples_path else None,
        config=config,
        version=get_version(),
        platform=get_platform_info(),
    )

    logger.info("Processing %s -> %s", input_path, output_path)

    with FitsReader(input_path) as reader:
        samples_writer = FitsWriter(samples_path) if samples_path else None
        mean_writer = FitsWriter(output_path)

        total = count_total_samples(reader, config.layout)
        with create_progress_bar(total, "Samples", unit="sample", disable=quiet) as bar:
            for index in range(reader.plane_count()):
                record = process_extension(
                    reader, index, config, mean_writer, samples_writer, progress=bar
                )
                result.extensions.append(record)

    if result.n_image_extensions == 0:
        logger.warning("No image extensions in %s", input_path)

    result.elapsed_s = time.time() - start_time
    result.timestamp = get_timestamp_iso()
    logger.info(
        "Processed %d extensions (%d samples) in %.1fs",
        len(result.extensions), result.n_samples_total, result.elapsed_s,
    )
    return result
