"""
Data Models Package

This package contains all Pydantic models used in FairShare.
All data flowing into the aggregation core must conform to these schemas.
"""

from fairshare.models.expense import (
    COLOR_PALETTE,
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_NAME,
    DEFAULT_PARTICIPANTS,
    FALLBACK_COLOR,
    CategoryItem,
    ExpenseRecord,
    ParticipantNames,
    format_timestamp,
    utc_now_iso,
)
from fairshare.models.summary import (
    CategoryShare,
    Granularity,
    MonthlyReport,
    PeriodBucket,
    Settlement,
    SettlementState,
    SummaryStats,
)
from fairshare.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger records
    "COLOR_PALETTE",
    "DEFAULT_CATEGORIES",
    "DEFAULT_CATEGORY_NAME",
    "DEFAULT_PARTICIPANTS",
    "FALLBACK_COLOR",
    "CategoryItem",
    "ExpenseRecord",
    "ParticipantNames",
    "format_timestamp",
    "utc_now_iso",
    # Derived summaries
    "CategoryShare",
    "Granularity",
    "MonthlyReport",
    "PeriodBucket",
    "Settlement",
    "SettlementState",
    "SummaryStats",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
