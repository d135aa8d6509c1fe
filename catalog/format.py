"""Human-readable number formatting."""

import math

SUFFIXES = ["", "K", "M", "B", "T", "Qa", "Qi", "Sx", "Sp", "Oc", "No"]


def format_number(num: float) -> str:
    """Format ``num`` with a magnitude suffix, e.g. ``1.50K`` or ``12.3M``."""
    if num < 1000:
        return str(int(math.floor(num)))

    magnitude = min(int(math.floor(math.log10(num) / 3)), len(SUFFIXES) - 1)
    suffix = SUFFIXES[magnitude]
    scaled = num / (1000 ** magnitude)

    if scaled >= 100:
        return f"{int(math.floor(scaled))}{suffix}"
    if scaled >= 10:
        return f"{scaled:.1f}{suffix}"
    return f"{scaled:.2f}{suffix}"


def format_income(income: float) -> str:
    return f"{format_number(income)}/s"


def format_short(num: float) -> str:
    """Compact K/M form with one decimal, used in goal descriptions."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    return str(int(num))
