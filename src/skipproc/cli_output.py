"""
Colored CLI output utilities for skipproc.

Provides styled terminal output with colors, progress bars, and status indicators.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass

from colorama import Fore, Style, init as colorama_init
from tqdm import tqdm

# Initialize colorama for cross-platform support
colorama_init(autoreset=True)


STYLE_NAMES = (
    "HEADER", "BOLD", "SUCCESS", "WARNING", "ERROR", "INFO",
    "VALUE", "METRIC", "PATH", "PROGRESS", "RESET",
)


class Colors:
    """Color constants for consistent styling."""

    HEADER = Fore.CYAN + Style.BRIGHT
    BOLD = Style.BRIGHT

    # Status indicators
    SUCCESS = Fore.GREEN + Style.BRIGHT
    WARNING = Fore.YELLOW
    ERROR = Fore.RED + Style.BRIGHT
    INFO = Fore.WHITE

    # Values and metrics
    VALUE = Fore.YELLOW + Style.BRIGHT
    METRIC = Fore.MAGENTA
    PATH = Fore.CYAN

    PROGRESS = Fore.GREEN
    RESET = Style.RESET_ALL

    enabled = True

    @classmethod
    def disable(cls):
        """Switch every style to plain text."""
        for name in STYLE_NAMES:
            setattr(cls, name, "")
        cls.enabled = False


class Symbols:
    """Unicode symbols for status indicators."""

    CROSS = "\u2718"  # ✘
    ARROW = "\u2192"  # →
    SPARKLE = "\u2728"  # ✨

    @classmethod
    def use_ascii(cls):
        """Switch to ASCII-only fallbacks."""
        cls.CROSS = "[X]"
        cls.ARROW = "->"
        cls.SPARKLE = "*"


def print_banner(version: str) -> None:
    """Print the skipproc startup banner."""
    banner = f"""
{Colors.HEADER}╔══════════════════════════════════════════════════════════════╗
║  skipproc: Skipper CCD overscan correction                   ║
║     Per-sample baseline subtraction and averaging            ║
║     Version: {version:<20}                            ║
╚══════════════════════════════════════════════════════════════╝{Colors.RESET}
"""
    print(banner)


def print_header(text: str, width: int = 60) -> None:
    """Print a styled section header."""
    line = "═" * width
    print(f"\n{Colors.HEADER}{line}")
    print(f"  {text}")
    print(f"{line}{Colors.RESET}")


def print_substage(text: str) -> None:
    """Print a substage or detail line."""
    print(f"  {Colors.INFO}{Symbols.ARROW} {text}{Colors.RESET}")


def print_warning(text: str) -> None:
    """Print a warning message."""
    print(f"{Colors.WARNING}! {text}{Colors.RESET}")


def print_error(text: str) -> None:
    """Print an error message to stderr."""
    print(f"{Colors.ERROR}{Symbols.CROSS} {text}{Colors.RESET}", file=sys.stderr)


def print_metric(name: str, value: str | int | float, unit: str = "") -> None:
    """Print a metric with value."""
    if unit:
        print(f"  {Colors.METRIC}{name}: {Colors.VALUE}{value}{Colors.RESET} {unit}")
    else:
        print(f"  {Colors.METRIC}{name}: {Colors.VALUE}{value}{Colors.RESET}")


def print_path(label: str, path: str) -> None:
    """Print a file path."""
    print(f"  {Colors.INFO}{label}: {Colors.PATH}{path}{Colors.RESET}")


def print_summary_box(lines: list[str], title: str = "Summary") -> None:
    """Print a summary box with multiple lines."""
    width = max(len(line) for line in lines) + 4
    width = max(width, len(title) + 4)

    border_top = "╔" + "═" * width + "╗"
    border_mid = "╟" + "─" * width + "╢"
    border_bot = "╚" + "═" * width + "╝"

    print(f"\n{Colors.SUCCESS}{border_top}")
    print(f"║ {title:^{width-2}} ║")
    print(border_mid)
    for line in lines:
        print(f"║  {line:<{width-3}}║")
    print(f"{border_bot}{Colors.RESET}")


@dataclass
class ProgressConfig:
    """Configuration for progress bars."""

    bar_format: str = "{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]"
    ncols: int = 80
    colour: str = "green"
    leave: bool = True


def create_progress_bar(
    total: int,
    desc: str,
    unit: str = "sample",
    config: ProgressConfig | None = None,
    disable: bool = False,
) -> tqdm:
    """
    Create a styled progress bar.

    Parameters
    ----------
    total : int
        Total number of items.
    desc : str
        Description text.
    unit : str, default "sample"
        Unit name for items.
    config : ProgressConfig, optional
        Progress bar configuration.
    disable : bool, default False
        Disable the progress bar.

    Returns
    -------
    tqdm
        Configured progress bar.
    """
    if config is None:
        config = ProgressConfig()

    return tqdm(
        total=total,
        desc=f"{Colors.PROGRESS}{desc}{Colors.RESET}",
        unit=unit,
        bar_format=config.bar_format,
        ncols=config.ncols,
        colour=config.colour if Colors.enabled else None,
        leave=config.leave,
        disable=disable,
    )


def detect_terminal_capabilities() -> dict:
    """
    Detect terminal capabilities for optimal display.

    Returns
    -------
    dict
        Capabilities dict with 'unicode', 'color' keys.
    """
    import os

    caps = {
        "unicode": True,
        "color": True,
    }

    if not sys.stdout.isatty():
        caps["color"] = False
    elif os.environ.get("NO_COLOR"):
        caps["color"] = False
    elif os.environ.get("TERM") == "dumb":
        caps["color"] = False
        caps["unicode"] = False

    encoding = (getattr(sys.stdout, "encoding", None) or "").lower()
    if "utf" not in encoding:
        caps["unicode"] = False

    return caps


def setup_terminal() -> dict:
    """
    Setup terminal for optimal display.

    Returns
    -------
    dict
        Terminal capabilities that were configured.
    """
    caps = detect_terminal_capabilities()

    if not caps["unicode"]:
        Symbols.use_ascii()
    if not caps["color"]:
        Colors.disable()

    return caps
