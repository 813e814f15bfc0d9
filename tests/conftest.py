"""Shared fixtures for FairShare tests."""

import pytest

from fairshare.models.expense import ExpenseRecord, ParticipantNames


def make_expense(
    amount: float,
    paid_by: str,
    date: str = "2024-01-15T10:00:00.000Z",
    category: str = "Groceries",
    name: str = "Test expense",
) -> ExpenseRecord:
    return ExpenseRecord(
        name=name,
        amount=amount,
        category=category,
        paid_by=paid_by,
        date=date,
    )


@pytest.fixture
def participants() -> ParticipantNames:
    return ParticipantNames(a="Alex", b="Blake")


@pytest.fixture
def sample_expenses() -> list[ExpenseRecord]:
    """A few months of shared spending between Alex and Blake."""
    return [
        make_expense(120.0, "Alex", "2024-03-02T18:00:00.000Z", "Groceries", "Market"),
        make_expense(45.5, "Blake", "2024-03-01T12:00:00.000Z", "Dining", "Lunch"),
        make_expense(900.0, "Alex", "2024-02-01T09:00:00.000Z", "Rent/Bills", "Rent"),
        make_expense(60.0, "Blake", "2024-02-14T20:00:00.000Z", "Dining", "Dinner"),
        make_expense(30.0, "Blake", "2023-12-24T15:00:00.000Z", "Pet Supplies", "Treats"),
    ]
