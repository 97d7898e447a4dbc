"""Terminal formatting helpers shared by the text reports."""

import os

from cli.utilities.utils import strip_ansi
from utility.log import Log

log = Log(__name__)

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
MAGENTA = "\033[35m"
CYAN = "\033[36m"
BG_GREEN = "\033[42m"
BG_YELLOW = "\033[43m"
BG_RED = "\033[41m"

PALETTE = (GREEN, BLUE, MAGENTA, YELLOW, CYAN, RED)


def fmt_size(size):
    """Human readable size of a byte count."""
    if size <= 0:
        return "0 B"
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.2f} TiB"


def fmt_kib(kib):
    """Human readable size of a KiB count, as reported by 'ceph osd df'."""
    return fmt_size(kib * 1024)


def bar_chart(value, maximum, width=30, color=BLUE):
    """Bar of filled and empty blocks proportional to value / maximum."""
    if maximum <= 0:
        return ""
    filled = max(0, min(width, int(value / maximum * width)))
    return f"{color}{'█' * filled}{DIM}{'░' * (width - filled)}{RESET}"


def banner(title, width=62):
    rule = f"{BOLD}{CYAN}{'═' * width}{RESET}"
    return [rule, f"{BOLD}{CYAN}  {title}{RESET}", rule, ""]


def save_report(text, path):
    """Write a report without colour codes.

    Args:
        text (str): report as printed on the terminal
        path (str): destination file, parent directories are created
    Returns:
        path of the written file
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as _file:
        _file.write(strip_ansi(text) + "\n")
    log.info(f"Report saved to {path}")
    return path
