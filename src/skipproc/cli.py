"""
Command-line interface for skipproc.

Usage:
    skipproc <input file> -o <output file> [-s] [-q]
    python -m skipproc <input file> -o <output file> [-s] [-q]

Exit codes:
    0   success
    1   help requested, invalid option, missing/duplicate input, input not found
    2   output file missing or given more than once
    3   malformed extension or unusable overscan region
    1xx FITS I/O failure (CFITSIO-style status)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .cli_output import (
    Colors,
    Symbols,
    print_banner,
    print_error,
    print_header,
    print_metric,
    print_path,
    print_substage,
    print_summary_box,
    print_warning,
    setup_terminal,
)
from .config import PlaneKind, ProcessConfig, ProcessResult
from .errors import ContainerIOError, DuplicateOutput, SkipperError, UsageError
from .pipeline import process_file
from .report import write_manifest
from .utils import format_duration, get_version

logger = logging.getLogger(__name__)

DESCRIPTION = (
    "Process raw Skipper CCD data. The overscan mean is computed for each\n"
    "sample and subtracted line by line. The output FITS file holds the\n"
    "pixel values averaged over all samples, after overscan subtraction.\n"
    "Optionally, an additional file keeps the individual values of every\n"
    "sample: nSamples+1 extensions per image extension (the last one is\n"
    "the mean)."
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for CLI."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.captureWarnings(True)


class _Parser(argparse.ArgumentParser):
    """Argument parser that raises ``UsageError`` instead of exiting."""

    def error(self, message):
        raise UsageError(message)


class _SingleOutputAction(argparse.Action):
    """Store an option value, refusing a second occurrence."""

    def __call__(self, parser, namespace, values, option_string=None):
        if getattr(namespace, self.dest, None) is not None:
            raise DuplicateOutput("can not set more than one output file")
        setattr(namespace, self.dest, values)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = _Parser(
        prog="skipproc",
        description="Overscan correction and sample averaging for raw Skipper CCD FITS files",
        add_help=False,
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        metavar="input",
        help="Raw Skipper CCD FITS file",
    )
    parser.add_argument(
        "-o",
        "--output",
        action=_SingleOutputAction,
        default=None,
        help="Output FITS file (required)",
    )
    parser.add_argument(
        "-s",
        "--save-samples",
        action="store_true",
        help="Also save the individual values of all the samples (samples_<output>)",
    )
    parser.add_argument(
        "-q",
        "-Q",
        "--quiet",
        action="store_true",
        help="Suppress status text and progress bar",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--estimator",
        choices=["trimmed", "central"],
        default="trimmed",
        help="Overscan baseline estimator (default: trimmed)",
    )
    parser.add_argument(
        "--no-saturation-check",
        action="store_true",
        help="Skip the advisory saturation scan",
    )
    parser.add_argument(
        "--manifest",
        type=str,
        default=None,
        help="Write a JSON run manifest to this path",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"skipproc {get_version()}",
    )
    parser.add_argument(
        "-h",
        "-H",
        "--help",
        action="store_true",
        dest="help",
        help="Show this help and exit",
    )
    return parser


def print_usage_help(parser: argparse.ArgumentParser, full: bool = False) -> None:
    """Print usage, with the program description when ``full`` is set."""
    if full:
        print(f"\n{Colors.BOLD}{DESCRIPTION}{Colors.RESET}\n")
    print("=" * 74)
    print(f"{Colors.ERROR}")
    parser.print_help()
    print(f"{Colors.RESET}")
    print("=" * 74)


def _print_result(result: ProcessResult) -> None:
    print_header("Extensions")
    for rec in result.extensions:
        if rec.kind is PlaneKind.PASSTHROUGH:
            print_substage(f"HDU {rec.index}: copied (no image data)")
            continue
        height, width = rec.shape
        print_substage(
            f"HDU {rec.index}: {rec.n_samples} samples -> {width}x{height}, "
            f"baseline L={rec.left_baseline:.1f} R={rec.right_baseline:.1f}"
        )
        if rec.n_saturated:
            print_warning(f"HDU {rec.index}: {rec.n_saturated} saturated pixels")

    summary_lines = [
        f"Image extensions: {result.n_image_extensions}/{len(result.extensions)}",
        f"Samples processed: {result.n_samples_total}",
        f"Processing time: {format_duration(result.elapsed_s)}",
    ]
    print_summary_box(summary_lines, title=f"{Symbols.SPARKLE} All done! {Symbols.SPARKLE}")
    print_path("Output", result.output_path)
    if result.samples_path:
        print_path("Samples", result.samples_path)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        print_usage_help(parser, full=True)
        return 1

    try:
        args = parser.parse_args(argv)
    except DuplicateOutput as e:
        print_error(f"Error: {e}")
        print_usage_help(parser)
        return e.exit_code
    except UsageError as e:
        print_error(f"Error: {e}")
        print_usage_help(parser, full=True)
        return e.exit_code

    if args.help:
        print_usage_help(parser, full=True)
        return 1

    if args.output is None:
        print_error("Error: output filename missing.")
        print_usage_help(parser)
        return 2

    if len(args.inputs) == 0:
        print_error("Error: no input file provided!")
        print_usage_help(parser, full=True)
        return 1
    if len(args.inputs) > 1:
        print_error("Error: more than one input file provided!")
        print_usage_help(parser, full=True)
        return 1

    input_path = Path(args.inputs[0])
    if not input_path.exists():
        print_error(f"Error reading input file: {input_path}. The file doesn't exist!")
        print_usage_help(parser, full=True)
        return 1

    setup_logging(args.verbose)
    quiet = args.quiet

    if not quiet:
        setup_terminal()
        print_banner(get_version())
        print_path("Will read the following file", str(input_path))
        print_path("The output will be saved in the file", args.output)
        print_metric("Overscan estimator", args.estimator)

    config = ProcessConfig(
        save_samples=args.save_samples,
        estimator=args.estimator,
        check_saturation=not args.no_saturation_check,
    )

    try:
        result = process_file(input_path, args.output, config=config, quiet=quiet)
    except ContainerIOError as e:
        print_error(f"FITS I/O error (status {e.status}): {e}")
        logger.debug("FITS I/O error", exc_info=True)
        return e.exit_code
    except SkipperError as e:
        print_error(f"Processing failed: {e}")
        logger.debug("Processing failed", exc_info=True)
        return e.exit_code

    if args.manifest:
        manifest_path = write_manifest(result, args.manifest)
        if not quiet:
            print_path("Manifest", str(manifest_path))

    if not quiet:
        _print_result(result)

    return 0


if __name__ == "__main__":
    sys.exit(main())
