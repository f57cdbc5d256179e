from __future__ import annotations


def format_hashrate(hashrate_hs: float, *, precision: int = 2) -> str:
    """Format hashrate in H/s using SI units.

    Examples:
      950 -> "950.00 H/s"
      12_300 -> "12.30 kH/s"
    """

    try:
        value = float(hashrate_hs)
    except (TypeError, ValueError):
        value = 0.0

    value = max(0.0, value)
    units = ["H/s", "kH/s", "MH/s", "GH/s", "TH/s"]

    unit_index = 0
    while value >= 1000.0 and unit_index < len(units) - 1:
        value /= 1000.0
        unit_index += 1

    return f"{value:.{precision}f} {units[unit_index]}"


def format_money(amount: float, *, precision: int = 2) -> str:
    """``1234.5 -> "$1,234.50"``; negatives keep their sign in front."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.{precision}f}"


def format_duration(seconds: float) -> str:
    """Compact ETA text: ``"45s"``, ``"3m 05s"``, ``"1h 02m"``."""
    total = max(0, int(round(seconds)))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"
