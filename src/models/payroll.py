"""Compensation models: income tiers and salary groups."""

from dataclasses import dataclass, field


@dataclass
class PerformanceTier:
    """Income bracket [min_income, max_income) with its pay rule."""

    id: int | None
    min_income: float
    max_income: float
    salary_per_hour: float
    bonus_percentage: float

    @property
    def quadruple(self) -> tuple[float, float, float, float]:
        return (self.min_income, self.max_income, self.salary_per_hour, self.bonus_percentage)

    def matches(self, income: float) -> bool:
        return self.min_income <= income < self.max_income

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "min_income": self.min_income,
            "max_income": self.max_income,
            "salary_per_hour": self.salary_per_hour,
            "bonus_percentage": self.bonus_percentage,
        }


@dataclass
class SalaryConfig:
    """Named employee group sharing one set of non-overlapping tiers."""

    id: int | None
    name: str
    tier_ids: list[int] = field(default_factory=list)
    employee_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tier_ids": list(self.tier_ids),
            "employee_ids": list(self.employee_ids),
        }
