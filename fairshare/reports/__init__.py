"""Reports package."""

from fairshare.reports.monthly import (
    build_monthly_report,
    current_month,
    month_key,
    shift_month,
)

__all__ = ["build_monthly_report", "current_month", "month_key", "shift_month"]
