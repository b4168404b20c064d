"""
Configuration dataclasses for the skipproc pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from .errors import InvalidRegion


class PlaneKind(Enum):
    """How an input extension was handled."""

    IMAGE = "image"  # Overscan-corrected and averaged
    PASSTHROUGH = "passthrough"  # Table, header-only or null image, copied verbatim


@dataclass(frozen=True)
class OverscanLayout:
    """
    Fixed readout geometry of a de-interleaved Skipper CCD row.

    Each row of ``image_width`` columns is split into two halves, one per
    amplifier. The left half holds its overscan just before the row center,
    after the active columns and ``guard_columns`` skipped columns. The
    right half holds its overscan right at the row center.
    """

    image_width: int = 1000
    """Number of columns in one de-interleaved sample row."""

    active_width: int = 904
    """Active columns in a full row (452 per half)."""

    guard_columns: int = 3
    """Columns next to the active area excluded from the left window."""

    trim: int = 4
    """Values dropped at each end of a sorted overscan window."""

    min_count: int = 4
    """Window size above which the trimmed divisor is used."""

    @property
    def half_width(self) -> int:
        return self.image_width // 2

    @property
    def overscan_width(self) -> int:
        """Width of each overscan window."""
        return (self.image_width // 2 - self.active_width // 2) - self.guard_columns - 1

    @property
    def left_window(self) -> tuple[int, int]:
        """Half-open column range of the left overscan window."""
        start = self.active_width // 2 + self.guard_columns
        return start, start + self.overscan_width

    @property
    def right_window(self) -> tuple[int, int]:
        """Half-open column range of the right overscan window."""
        start = self.image_width // 2
        return start, start + self.overscan_width

    def validate(self) -> None:
        """Validate the geometry."""
        if self.image_width < 2 or self.image_width % 2:
            raise ValueError(f"image_width must be even and >= 2, got {self.image_width}")
        if self.trim < 0:
            raise ValueError(f"trim must be >= 0, got {self.trim}")
        if self.min_count < 0:
            raise ValueError(f"min_count must be >= 0, got {self.min_count}")
        if self.overscan_width <= 0:
            raise InvalidRegion(
                f"Overscan window is empty (image_width={self.image_width}, "
                f"active_width={self.active_width}, guard_columns={self.guard_columns})"
            )
        left_start, left_end = self.left_window
        right_start, right_end = self.right_window
        if left_start < 0 or left_end > self.half_width:
            raise InvalidRegion(f"Left overscan window {self.left_window} leaves the left half")
        if right_end > self.image_width:
            raise InvalidRegion(f"Right overscan window {self.right_window} leaves the row")


@dataclass
class ProcessConfig:
    """
    Configuration for a processing run.

    All parameters are explicitly documented and have sensible defaults.
    """

    layout: OverscanLayout = field(default_factory=OverscanLayout)
    """Detector geometry, shared read-only by every extension."""

    save_samples: bool = False
    """Also write every corrected sample to a second FITS file."""

    samples_prefix: str = "samples_"
    """File name prefix of the per-sample output."""

    estimator: Literal["trimmed", "central"] = "trimmed"
    """Overscan baseline: 'trimmed' (drop `trim` at each end) or 'central' (middle third)."""

    check_saturation: bool = True
    """Scan raw extensions for saturated pixels (advisory only)."""

    overwrite: bool = True
    """Delete existing output files before the run starts."""

    def validate(self) -> None:
        """Validate configuration parameters."""
        self.layout.validate()
        if self.estimator not in ("trimmed", "central"):
            raise ValueError(f"estimator must be 'trimmed' or 'central', got {self.estimator!r}")
        if self.save_samples and not self.samples_prefix:
            raise ValueError("samples_prefix must be non-empty when save_samples is set")


@dataclass
class ExtensionRecord:
    """What happened to one input extension."""

    index: int
    kind: PlaneKind
    n_samples: int = 0
    shape: tuple[int, int] | None = None  # (height, width) of the mean image
    bitpix: int | None = None
    n_saturated: int = 0
    left_baseline: float | None = None  # Median overscan baseline over rows and samples
    right_baseline: float | None = None


@dataclass
class ProcessResult:
    """
    Result of a processing run.
    """

    input_path: str
    output_path: str
    samples_path: str | None = None

    extensions: list[ExtensionRecord] = field(default_factory=list)
    """One record per input extension, in stored order."""

    config: ProcessConfig | None = None

    elapsed_s: float = 0.0
    version: str = ""
    timestamp: str = ""
    platform: str = ""

    @property
    def n_image_extensions(self) -> int:
        return sum(1 for rec in self.extensions if rec.kind is PlaneKind.IMAGE)

    @property
    def n_samples_total(self) -> int:
        return sum(rec.n_samples for rec in self.extensions)
