"""
Ledger Package

The aggregation core: summaries, settlement, period grouping,
category colours and display mappings. Nothing in here does I/O.
"""

from fairshare.ledger.aggregator import (
    LedgerAggregator,
    PeriodHistory,
    category_breakdown,
    compute_summary,
    group_by_period,
)
from fairshare.ledger.categories import (
    CategoryCatalog,
    CategoryColorResolver,
    CategoryError,
    CategoryNotFoundError,
    LastCategoryError,
    color_for,
    next_palette_color,
)
from fairshare.ledger.display import (
    SETTLED_EPSILON,
    describe_settlement,
    format_currency,
    period_label,
    settlement_state,
)

__all__ = [
    # Aggregation
    "LedgerAggregator",
    "PeriodHistory",
    "category_breakdown",
    "compute_summary",
    "group_by_period",
    # Categories
    "CategoryCatalog",
    "CategoryColorResolver",
    "CategoryError",
    "CategoryNotFoundError",
    "LastCategoryError",
    "color_for",
    "next_palette_color",
    # Display
    "SETTLED_EPSILON",
    "describe_settlement",
    "format_currency",
    "period_label",
    "settlement_state",
]
