"""
Monthly Statement

Builds the printable month-by-month statement: the month's records,
each participant's total, and the "X owes Y $Z" line. The statement
is computed with the same aggregator as the dashboard, restricted to
records whose date falls in the selected YYYY-MM prefix.
"""

from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, Union

from fairshare.ledger.aggregator import LedgerAggregator, ParticipantsLike
from fairshare.ledger.display import format_currency, period_label
from fairshare.logs import get_logger
from fairshare.models.summary import MonthlyReport


logger = get_logger(__name__)

MonthLike = Union[str, date, datetime, None]

# year * 12 + (month - 1) for 0001-01 and 9999-12
_FIRST_MONTH_INDEX = 1 * 12
_LAST_MONTH_INDEX = 9999 * 12 + 11


def current_month() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m")


def month_key(month: MonthLike) -> str:
    """
    Resolve a month selector to a YYYY-MM key.

    None (or anything unreadable) selects the current UTC month.
    """
    if month is None:
        return current_month()
    if isinstance(month, datetime):
        if month.tzinfo is not None:
            try:
                month = month.astimezone(timezone.utc)
            except OverflowError:
                # Keep the local month at the edges of the datetime range
                logger.warning("month_selector_out_of_range", received=str(month))
        return f"{month.year:04d}-{month.month:02d}"
    if isinstance(month, date):
        return f"{month.year:04d}-{month.month:02d}"
    if isinstance(month, str):
        try:
            parsed = datetime.strptime(month.strip()[:7], "%Y-%m")
            return f"{parsed.year:04d}-{parsed.month:02d}"
        except ValueError:
            pass
    logger.warning("unreadable_month_selector", received=str(month))
    return current_month()


def shift_month(key: str, offset: int) -> str:
    """
    Move a YYYY-MM key by `offset` months (negative goes back).

    The result is clamped to 0001-01 .. 9999-12.
    """
    key = month_key(key)
    year, month = int(key[:4]), int(key[5:7])
    index = year * 12 + (month - 1) + offset
    index = min(max(index, _FIRST_MONTH_INDEX), _LAST_MONTH_INDEX)
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def build_monthly_report(
    expenses: Optional[Iterable[Any]],
    participant_names: Optional[ParticipantsLike],
    month: MonthLike = None,
    aggregator: Optional[LedgerAggregator] = None,
) -> MonthlyReport:
    """
    Statement for one month.

    Records are listed newest first. The headline reads "No expenses"
    when nothing was spent that month.
    """
    aggregator = aggregator or LedgerAggregator()
    key = month_key(month)

    bucket = next(
        (b for b in aggregator.group_by_period(expenses, "month") if b.key == key),
        None,
    )
    records = sorted(bucket.records, key=lambda r: r.date, reverse=True) if bucket else []
    summary = aggregator.compute_summary(records, participant_names)

    if summary.total > 0:
        settlement = summary.settlement
        headline = (
            f"{settlement.debtor} owes {settlement.creditor} "
            f"{format_currency(settlement.amount)}"
        )
    else:
        headline = "No expenses"

    return MonthlyReport(
        month=key,
        label=period_label(key),
        records=records,
        summary=summary,
        headline=headline,
    )
