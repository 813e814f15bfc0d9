"""
Display helpers for computed summaries.

Pure mappings from numbers to what a dashboard shows. The settled /
unsettled decision uses a one-cent threshold so floating point noise
from many cent-level additions never shows up as a debt.
"""

from datetime import datetime
from typing import Optional

from fairshare.models.summary import Settlement, SettlementState

SETTLED_EPSILON = 0.01


def settlement_state(
    settlement: Optional[Settlement],
    epsilon: float = SETTLED_EPSILON,
) -> SettlementState:
    if settlement is None or not settlement.amount > epsilon:
        return SettlementState.SETTLED
    return SettlementState.UNSETTLED


def format_currency(amount: float) -> str:
    """USD with thousands separators and cents, e.g. $1,234.50 or -$3.00."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def describe_settlement(
    settlement: Optional[Settlement],
    epsilon: float = SETTLED_EPSILON,
) -> str:
    """One-line settlement text for a dashboard card."""
    if settlement_state(settlement, epsilon) is SettlementState.SETTLED:
        return "All settled"
    return f"{settlement.debtor} owes {settlement.creditor} {format_currency(settlement.amount)}"


def period_label(key: str) -> str:
    """
    Human label for a period key.

    "2024-01" -> "January 2024", "2024" -> "2024".
    """
    if not isinstance(key, str):
        return "Current Period"
    if len(key) == 4 and key.isdigit():
        return key
    try:
        return datetime.strptime(key, "%Y-%m").strftime("%B %Y")
    except ValueError:
        return "Current Period"
