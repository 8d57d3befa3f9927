"""
Schedule data models: periods, daily livestreams and their snapshots.

Dataclasses are the in-memory form; `to_dict` / `from_dict` give the JSON
shape used both for the livestream document column and the API.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from core.config import OTHER_ASSIGNEE
from core.errors import ValidationError
from core.intervals import to_minutes


class Role(str, Enum):
    HOST = "host"
    ASSISTANT = "assistant"

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        try:
            return cls(value)
        except ValueError as e:
            raise ValidationError(f"role must be 'host' or 'assistant', got {value!r}") from e


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Wall-clock time without a date, compared as minutes since midnight."""

    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValidationError(f"hour must be between 0 and 23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValidationError(f"minute must be between 0 and 59, got {self.minute}")

    @property
    def minutes(self) -> int:
        return to_minutes(self.hour, self.minute)

    @classmethod
    def parse(cls, value: Any) -> "TimeOfDay":
        """Accept a TimeOfDay, an {"hour", "minute"} mapping or an "HH:MM" string."""
        if isinstance(value, TimeOfDay):
            return value
        if isinstance(value, dict):
            return cls(int(value.get("hour", 0)), int(value.get("minute", 0)))
        if isinstance(value, str) and ":" in value:
            hour, minute = value.strip().split(":", 1)
            return cls(int(hour), int(minute))
        raise ValidationError(f"Unrecognized time of day: {value!r}")

    def to_dict(self) -> dict:
        return {"hour": self.hour, "minute": self.minute}

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass
class Period:
    """Recurring time slot for one channel and one role."""

    id: int | None
    channel_id: int
    role: Role
    start_time: TimeOfDay
    end_time: TimeOfDay

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "role": self.role.value,
            "start_time": self.start_time.to_dict(),
            "end_time": self.end_time.to_dict(),
        }


@dataclass(frozen=True)
class PeriodCopy:
    """A period as it was when a snapshot was materialized from it."""

    period_id: int | None
    channel_id: int
    role: Role
    start_time: TimeOfDay
    end_time: TimeOfDay

    @classmethod
    def of(cls, period: Period) -> "PeriodCopy":
        return cls(
            period_id=period.id,
            channel_id=period.channel_id,
            role=period.role,
            start_time=period.start_time,
            end_time=period.end_time,
        )

    @property
    def start_minutes(self) -> int:
        return self.start_time.minutes

    @property
    def end_minutes(self) -> int:
        return self.end_time.minutes

    def to_dict(self) -> dict:
        return {
            "period_id": self.period_id,
            "channel_id": self.channel_id,
            "role": self.role.value,
            "start_time": self.start_time.to_dict(),
            "end_time": self.end_time.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PeriodCopy":
        return cls(
            period_id=data.get("period_id"),
            channel_id=data["channel_id"],
            role=Role(data["role"]),
            start_time=TimeOfDay.parse(data["start_time"]),
            end_time=TimeOfDay.parse(data["end_time"]),
        )


class AltKind(str, Enum):
    UNSET = "unset"
    USER = "user"
    OTHER = "other"


@dataclass(frozen=True)
class AltAssignee:
    """Who a snapshot's credit was reassigned to: nobody, a user, or "other"."""

    kind: AltKind = AltKind.UNSET
    user_id: int | None = None
    other_name: str | None = None

    @classmethod
    def unset(cls) -> "AltAssignee":
        return cls()

    @classmethod
    def for_user(cls, user_id: int) -> "AltAssignee":
        return cls(AltKind.USER, user_id=user_id)

    @classmethod
    def other(cls, name: str | None = None) -> "AltAssignee":
        return cls(AltKind.OTHER, other_name=name)

    @classmethod
    def from_wire(cls, value: int | str | None, other_name: str | None = None) -> "AltAssignee":
        """Build from the API form: None, a user id, or the "other" sentinel."""
        if value is None:
            return cls.unset()
        if value == OTHER_ASSIGNEE:
            return cls.other(other_name)
        try:
            return cls.for_user(int(value))
        except (TypeError, ValueError) as e:
            raise ValidationError(f"alt_assignee must be a user id or '{OTHER_ASSIGNEE}'") from e

    @property
    def is_set(self) -> bool:
        return self.kind != AltKind.UNSET

    def to_dict(self) -> dict | None:
        if self.kind == AltKind.USER:
            return {"kind": self.kind.value, "user_id": self.user_id}
        if self.kind == AltKind.OTHER:
            return {"kind": self.kind.value, "name": self.other_name}
        return None

    @classmethod
    def from_dict(cls, data: dict | None) -> "AltAssignee":
        if not data:
            return cls.unset()
        kind = AltKind(data["kind"])
        if kind == AltKind.USER:
            return cls.for_user(data["user_id"])
        return cls.other(data.get("name"))


@dataclass
class Salary:
    salary_per_hour: float
    bonus_percentage: float
    total: int
    income: float = 0

    def to_dict(self) -> dict:
        return {
            "salary_per_hour": self.salary_per_hour,
            "bonus_percentage": self.bonus_percentage,
            "total": self.total,
            "income": self.income,
        }


@dataclass
class Snapshot:
    """One day's instance of a period, carrying that day's numbers."""

    id: str
    period: PeriodCopy
    assignee: int | None = None
    alt_assignee: AltAssignee = field(default_factory=AltAssignee.unset)
    alt_note: str | None = None
    income: float = 0
    real_income: float = 0
    ads_cost: float = 0
    orders: int = 0
    comments: int = 0
    click_rate: float | None = None
    avg_viewing_duration: float | None = None
    orders_note: str | None = None
    rating: str | None = None
    snapshot_kpi: int = 0
    salary: Salary | None = None

    @classmethod
    def new(cls, period: PeriodCopy, snapshot_kpi: int = 0, **values) -> "Snapshot":
        return cls(id=uuid.uuid4().hex, period=period, snapshot_kpi=snapshot_kpi, **values)

    @property
    def role(self) -> Role:
        return self.period.role

    @property
    def channel_id(self) -> int:
        return self.period.channel_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "period": self.period.to_dict(),
            "assignee": self.assignee,
            "alt_assignee": self.alt_assignee.to_dict(),
            "alt_note": self.alt_note,
            "income": self.income,
            "real_income": self.real_income,
            "ads_cost": self.ads_cost,
            "orders": self.orders,
            "comments": self.comments,
            "click_rate": self.click_rate,
            "avg_viewing_duration": self.avg_viewing_duration,
            "orders_note": self.orders_note,
            "rating": self.rating,
            "snapshot_kpi": self.snapshot_kpi,
            "salary": self.salary.to_dict() if self.salary else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Snapshot":
        salary = data.get("salary")
        return cls(
            id=data["id"],
            period=PeriodCopy.from_dict(data["period"]),
            assignee=data.get("assignee"),
            alt_assignee=AltAssignee.from_dict(data.get("alt_assignee")),
            alt_note=data.get("alt_note"),
            income=data.get("income") or 0,
            real_income=data.get("real_income") or 0,
            ads_cost=data.get("ads_cost") or 0,
            orders=data.get("orders") or 0,
            comments=data.get("comments") or 0,
            click_rate=data.get("click_rate"),
            avg_viewing_duration=data.get("avg_viewing_duration"),
            orders_note=data.get("orders_note"),
            rating=data.get("rating"),
            snapshot_kpi=data.get("snapshot_kpi") or 0,
            salary=Salary(**salary) if salary else None,
        )


@dataclass
class Livestream:
    """Per-day, per-channel container of snapshots."""

    id: int | None
    date: date
    channel_id: int
    snapshots: list[Snapshot] = field(default_factory=list)
    total_orders: int = 0
    ads_cost: float = 0
    total_income: float = 0
    date_kpi: int = 0
    fixed: bool = False
    version: int = 0

    def find_snapshot(self, snapshot_id: str) -> Snapshot | None:
        for snapshot in self.snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        return None

    def recompute_total_income(self) -> float:
        self.total_income = sum(s.income or 0 for s in self.snapshots)
        return self.total_income

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "channel_id": self.channel_id,
            "snapshots": [s.to_dict() for s in self.snapshots],
            "total_orders": self.total_orders,
            "ads_cost": self.ads_cost,
            "total_income": self.total_income,
            "date_kpi": self.date_kpi,
            "fixed": self.fixed,
            "version": self.version,
        }


@dataclass(frozen=True)
class Beneficiary:
    """Resolved recipient of a snapshot's revenue and pay."""

    user_id: int | None = None
    is_other: bool = False

    @property
    def key(self) -> int | str:
        return OTHER_ASSIGNEE if self.is_other else self.user_id
