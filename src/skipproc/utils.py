"""
Utility functions for the skipproc pipeline.

Includes:
- Version info
- Platform and timestamp helpers
- Path and duration formatting
"""

from __future__ import annotations

import platform
import sys
from datetime import datetime, timezone
from pathlib import Path

__version__ = "0.3.0"
__version_info__ = {
    "major": 0,
    "minor": 3,
    "patch": 0,
    "status": "stable",
    "date": "2026-10-19",
}


def get_version_banner() -> str:
    """Return a formatted version banner for logging."""
    return f"skipproc v{__version__} | Skipper CCD overscan correction"


def get_version() -> str:
    """Return the library version string."""
    return __version__


def get_platform_info() -> str:
    """Return platform information string."""
    return f"{platform.system()} {platform.release()} / Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"


def get_timestamp_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def prefixed_path(path: str | Path, prefix: str) -> Path:
    """
    Prefix the file name of a path, keeping its directory.

    Parameters
    ----------
    path : str or Path
        Base output path, e.g. ``run/img.fits``.
    prefix : str
        Prefix to prepend to the file name, e.g. ``"samples_"``.

    Returns
    -------
    Path
        ``run/samples_img.fits`` for the example above.
    """
    path = Path(path)
    return path.with_name(f"{prefix}{path.name}")


def format_duration(seconds: float) -> str:
    """
    Format duration in human-readable form.

    Parameters
    ----------
    seconds : float
        Duration in seconds.

    Returns
    -------
    str
        Formatted string like "2h 15m 30s" or "45.2s".
    """
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = seconds % 60
        return f"{hours}h {minutes}m {secs:.0f}s"
