"""
Schedule and compensation validation guards.

Every check here raises before anything is written, so callers can run
them first and mutate afterwards.
"""

from core.errors import FrozenStateError, ValidationError
from core.intervals import window_overlaps
from models.payroll import PerformanceTier
from models.schedule import Livestream, TimeOfDay


def validate_window(start: TimeOfDay, end: TimeOfDay, label: str = "period") -> None:
    """A window must have a non-zero length; start > end means it crosses midnight."""
    if start.minutes == end.minutes:
        raise ValidationError(f"Invalid {label} window: start and end are both {start}")


def find_overlap(start: TimeOfDay, end: TimeOfDay, others):
    """
    Return the first (other_start, other_end, item) whose window overlaps
    [start, end), or None.
    """
    for other_start, other_end, item in others:
        if window_overlaps(start.minutes, end.minutes, other_start.minutes, other_end.minutes):
            return other_start, other_end, item
    return None


def ensure_mutable(livestream: Livestream, action: str = "modify") -> None:
    """Single guard for every write path: fixed livestreams are frozen."""
    if livestream.fixed:
        raise FrozenStateError(
            f"Cannot {action} livestream {livestream.id} ({livestream.date.isoformat()}): it is fixed"
        )


def validate_tier_values(tier: PerformanceTier) -> None:
    if tier.min_income < 0:
        raise ValidationError("min_income cannot be negative")
    if tier.min_income >= tier.max_income:
        raise ValidationError(
            f"min_income ({tier.min_income}) must be less than max_income ({tier.max_income})"
        )
    if tier.salary_per_hour < 0 or tier.bonus_percentage < 0:
        raise ValidationError("salary_per_hour and bonus_percentage cannot be negative")


def validate_tiers_disjoint(tiers: list[PerformanceTier]) -> None:
    """Tiers grouped into one salary config must not share any income value."""
    ordered = sorted(tiers, key=lambda t: (t.min_income, t.max_income))
    errors = []
    for i, a in enumerate(ordered):
        for b in ordered[i + 1:]:
            if a.min_income < b.max_income and b.min_income < a.max_income:
                errors.append(
                    f"Tier {a.id} [{a.min_income}, {a.max_income}) overlaps "
                    f"tier {b.id} [{b.min_income}, {b.max_income})"
                )
    if errors:
        raise ValidationError("Performance tiers overlap within salary config", details=errors)
