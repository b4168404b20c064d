"""
Exception taxonomy for the skipproc pipeline.

Every abort condition derives from ``SkipperError`` and carries the exit
code the command line returns for it. Saturation is advisory only and is
reported through ``SaturationWarning``.
"""

from __future__ import annotations

# CFITSIO-compatible status codes for container I/O failures
FILE_NOT_OPENED = 104
FILE_NOT_CREATED = 105
WRITE_ERROR = 106
READ_ERROR = 108


class SkipperError(Exception):
    """Base class for all skipproc processing errors."""

    exit_code = 3


class InputNotFound(SkipperError):
    """The input path does not exist."""

    exit_code = 1


class UsageError(SkipperError):
    """Invalid command-line arguments."""

    exit_code = 1


class DuplicateOutput(UsageError):
    """The output file was given more than once."""

    exit_code = 2


class ContainerIOError(SkipperError):
    """A FITS open/create/read/write operation failed."""

    def __init__(self, message: str, status: int = READ_ERROR):
        super().__init__(message)
        self.status = status

    @property
    def exit_code(self) -> int:
        return self.status


class MalformedExtension(SkipperError):
    """Interleaved width is not an exact multiple of the image width."""


class InvalidRegion(SkipperError):
    """An overscan window has no usable pixels."""


class InvalidSampleIndex(SkipperError, IndexError):
    """Sample index outside ``[0, n_samples)``."""


class SaturationWarning(UserWarning):
    """Pixels at or above the bit-depth saturation threshold."""
