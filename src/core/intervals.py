"""
Time-of-day interval predicates.

All values are minutes since midnight (hour * 60 + minute). Windows are
end-exclusive. The plain predicates (`overlaps`, `contains`) work on
non-wrapping intervals; the `window_*` helpers accept windows that cross
midnight (start >= end) by splitting them into non-wrapping segments.
"""

from core.config import MINUTES_PER_DAY


def to_minutes(hour: int, minute: int) -> int:
    """Convert hour/minute to minutes since midnight."""
    return (hour or 0) * 60 + (minute or 0)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """True iff [a_start, a_end) and [b_start, b_end) share at least one minute."""
    return a_start < b_end and b_start < a_end


def contains(outer_start: int, outer_end: int, inner_start: int, inner_end: int) -> bool:
    """True iff the outer interval fully encloses the inner one."""
    return outer_start <= inner_start and outer_end >= inner_end


def in_window(minute: int, window_start: int, window_end: int) -> bool:
    """
    Membership test that understands windows crossing midnight.

    23:00-01:00 contains 23:30 and 00:30 but not 12:00.
    """
    if window_start < window_end:
        return window_start <= minute < window_end
    return minute >= window_start or minute < window_end


def segments(start: int, end: int) -> list[tuple[int, int]]:
    """Split a window into non-wrapping [start, end) segments."""
    if start < end:
        return [(start, end)]
    parts = [(start, MINUTES_PER_DAY)]
    if end > 0:
        parts.append((0, end))
    return parts


def window_overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Overlap check for windows that may cross midnight."""
    return any(
        overlaps(sa, ea, sb, eb)
        for sa, ea in segments(a_start, a_end)
        for sb, eb in segments(b_start, b_end)
    )


def window_contains(outer_start: int, outer_end: int, inner_start: int, inner_end: int) -> bool:
    """Containment check for windows that may cross midnight."""
    outer = segments(outer_start, outer_end)
    return all(
        any(contains(so, eo, si, ei) for so, eo in outer)
        for si, ei in segments(inner_start, inner_end)
    )


def duration_minutes(start: int, end: int) -> int:
    """Length of a window in minutes, taken modulo one day."""
    return (end - start) % MINUTES_PER_DAY
