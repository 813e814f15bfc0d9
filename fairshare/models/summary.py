"""
Derived Summary Models

Everything in this module is computed from a snapshot of ExpenseRecords
and is never persisted or cached across mutations.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from fairshare.models.expense import ExpenseRecord


class Granularity(str, Enum):
    """Period bucket size for history grouping."""
    MONTH = "month"
    YEAR = "year"

    @property
    def prefix_length(self) -> int:
        """Characters of the ISO date that form the bucket key."""
        return 7 if self is Granularity.MONTH else 4


class SettlementState(str, Enum):
    """Whether the dashboard should show a transfer or 'settled'."""
    SETTLED = "settled"
    UNSETTLED = "unsettled"


class Settlement(BaseModel):
    """
    The single transfer that evens out the two participants.

    Direction is always populated, even when `amount` is zero.
    """
    model_config = ConfigDict(frozen=True)

    debtor: str
    creditor: str
    amount: float = Field(default=0.0, ge=0)


class SummaryStats(BaseModel):
    """Totals and settlement for one snapshot of the ledger."""
    model_config = ConfigDict(frozen=True)

    total: float = 0.0
    total_a: float = 0.0
    total_b: float = 0.0
    settlement: Settlement

    @property
    def unattributed(self) -> float:
        """Amount paid by names matching neither participant."""
        return self.total - self.total_a - self.total_b


class CategoryShare(BaseModel):
    """One slice of a spending breakdown."""
    model_config = ConfigDict(frozen=True)

    category: str
    amount: float
    share: float = Field(ge=0.0, description="amount / total, 0 when total is 0")


class PeriodBucket(BaseModel):
    """Expenses sharing a year or year-month prefix."""

    key: str
    granularity: Granularity
    records: list[ExpenseRecord] = Field(default_factory=list)
    total: float = 0.0
    category_totals: dict[str, float] = Field(default_factory=dict)

    def category_shares(self) -> list[CategoryShare]:
        """Each category's fraction of this bucket, guarded against a zero total."""
        return [
            CategoryShare(
                category=name,
                amount=amount,
                share=(amount / self.total) if self.total > 0 else 0.0,
            )
            for name, amount in self.category_totals.items()
        ]


class MonthlyReport(BaseModel):
    """A single month's statement: its records, totals and settlement line."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    label: str
    records: list[ExpenseRecord] = Field(default_factory=list)
    summary: SummaryStats
    headline: str

    @property
    def has_expenses(self) -> bool:
        return bool(self.records)
