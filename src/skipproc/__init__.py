"""
skipproc - Overscan correction and sample averaging for Skipper CCD images.

A Skipper CCD reads every pixel several times. Raw FITS extensions store
the samples interleaved along each row, with two overscan windows per row
that carry only the electronic baseline. skipproc subtracts a robust
per-row, per-half baseline from every sample and averages the corrected
samples into one image per extension.

Example
-------
>>> from skipproc import process_file, ProcessConfig
>>> result = process_file("raw.fits", "proc.fits", config=ProcessConfig(save_samples=True))
>>> print(result.samples_path)
samples_proc.fits
"""

from .config import (
    ExtensionRecord,
    OverscanLayout,
    PlaneKind,
    ProcessConfig,
    ProcessResult,
)
from .errors import (
    ContainerIOError,
    InputNotFound,
    InvalidRegion,
    InvalidSampleIndex,
    MalformedExtension,
    SaturationWarning,
    SkipperError,
)
from .utils import __version__, __version_info__, get_version_banner

# Primary entry point
from .pipeline import correct_and_average, process_extension, process_file

# Overscan estimation and correction
from .overscan import (
    central_mean,
    correct_row,
    correct_sample,
    count_saturated,
    saturation_value,
    trimmed_mean,
    trimmed_mean_rows,
)

# Demultiplexing and accumulation
from .samples import RawSampleView, SampleAccumulator, extract_sample, infer_sample_count

# I/O functions
from .io import FitsReader, FitsWriter, ImagePlane

from .report import write_manifest

__all__ = [
    # Version
    "__version__",
    "__version_info__",
    "get_version_banner",
    # Config
    "OverscanLayout",
    "ProcessConfig",
    "ProcessResult",
    "ExtensionRecord",
    "PlaneKind",
    # Errors
    "SkipperError",
    "InputNotFound",
    "ContainerIOError",
    "MalformedExtension",
    "InvalidRegion",
    "InvalidSampleIndex",
    "SaturationWarning",
    # Pipeline
    "process_file",
    "process_extension",
    "correct_and_average",
    # Overscan
    "trimmed_mean",
    "trimmed_mean_rows",
    "central_mean",
    "correct_row",
    "correct_sample",
    "saturation_value",
    "count_saturated",
    # Samples
    "RawSampleView",
    "extract_sample",
    "infer_sample_count",
    "SampleAccumulator",
    # I/O
    "FitsReader",
    "FitsWriter",
    "ImagePlane",
    # Report
    "write_manifest",
]
