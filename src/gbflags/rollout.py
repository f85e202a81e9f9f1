"""Percentage / range rollout inclusion."""

from __future__ import annotations


def in_range(n: float, range: tuple[float, float]) -> bool:
    """Half-open interval test ``low <= n < high``."""
    low, high = range
    return low <= n < high


def is_included(
    n: float | None,
    coverage: float | None = None,
    range: tuple[float, float] | None = None,
) -> bool:
    """Decide rollout inclusion for a hash value ``n``.

    With neither ``coverage`` nor ``range`` everybody is included. A missing
    hash value is never included. ``range`` takes precedence over ``coverage``.
    """
    if coverage is None and range is None:
        return True
    if n is None:
        return False
    if range is not None:
        return in_range(n, range)
    return n < coverage  # type: ignore[operator]
