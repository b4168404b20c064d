"""
Run manifest for the skipproc pipeline.

Produces a machine-readable JSON record of a processing run: inputs,
outputs, geometry, and what was done with every extension.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from .config import ExtensionRecord, OverscanLayout, ProcessConfig, ProcessResult

logger = logging.getLogger(__name__)


def _to_native(obj: Any) -> Any:
    """Convert numpy types to native Python types for JSON serialization."""
    if isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {k: _to_native(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_to_native(v) for v in obj]
    return obj


def _serialize_layout(layout: OverscanLayout) -> dict[str, Any]:
    return {
        "image_width": layout.image_width,
        "active_width": layout.active_width,
        "guard_columns": layout.guard_columns,
        "trim": layout.trim,
        "min_count": layout.min_count,
        "left_window": list(layout.left_window),
        "right_window": list(layout.right_window),
    }


def _serialize_config(config: ProcessConfig) -> dict[str, Any]:
    """Serialize ProcessConfig to JSON-compatible dict."""
    return {
        "layout": _serialize_layout(config.layout),
        "save_samples": config.save_samples,
        "samples_prefix": config.samples_prefix,
        "estimator": config.estimator,
        "check_saturation": config.check_saturation,
        "overwrite": config.overwrite,
    }


def _serialize_extension(record: ExtensionRecord) -> dict[str, Any]:
    return {
        "index": record.index,
        "kind": record.kind.value,
        "n_samples": record.n_samples,
        "shape": list(record.shape) if record.shape else None,
        "bitpix": record.bitpix,
        "n_saturated": record.n_saturated,
        "left_baseline": record.left_baseline,
        "right_baseline": record.right_baseline,
    }


def write_manifest(result: ProcessResult, path: str | Path) -> Path:
    """
    Write the run manifest as JSON.

    Parameters
    ----------
    result : ProcessResult
        Completed processing result.
    path : str or Path
        Manifest file path.

    Returns
    -------
    Path
        Path to the written manifest.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    manifest = {
        "version": result.version,
        "timestamp": result.timestamp,
        "platform": result.platform,
        "input": result.input_path,
        "outputs": {
            "mean": result.output_path,
            "samples": result.samples_path,
        },
        "config": _serialize_config(result.config) if result.config else None,
        "extensions": [_serialize_extension(rec) for rec in result.extensions],
        "stats": {
            "n_extensions": len(result.extensions),
            "n_image_extensions": result.n_image_extensions,
            "n_samples_total": result.n_samples_total,
            "elapsed_s": result.elapsed_s,
        },
    }

    with open(path, "w") as f:
        json.dump(_to_native(manifest), f, indent=2)

    logger.info("Wrote manifest: %s", path)
    return path
