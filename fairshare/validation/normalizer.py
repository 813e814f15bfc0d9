"""
Ingestion Normalizer

DESIGN DECISION: Records arrive from several collaborators (JSON file,
Google Sheets rows, hand-built dicts) and the field names have drifted
over time:
- `paidBy` vs `paid_by`
- `date` vs `createdAt` vs `created_at`
- amounts as numbers, strings, "$1,200.00", or missing entirely

This module is the ONE place where that drift is repaired. Everything
past this point works with canonical ExpenseRecord objects.

Unlike the models, normalization NEVER raises. A dashboard showing
"$0.00 - settled" for a bad row is acceptable; a crash is not. Every
repair is reported so it can be logged and audited.
"""

import math
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, Field

from fairshare.logs import get_logger
from fairshare.models.expense import (
    DEFAULT_CATEGORY_NAME,
    ExpenseRecord,
    format_timestamp,
    new_id,
    utc_now_iso,
)


logger = get_logger(__name__)

PAID_BY_KEYS = ("paidBy", "paid_by")
DATE_KEYS = ("date", "createdAt", "created_at")

# Numbers this large are treated as epoch milliseconds rather than seconds.
_EPOCH_MS_THRESHOLD = 10_000_000_000


class NormalizationIssue(BaseModel):
    """A single field that had to be repaired."""

    field: str
    issue_type: str = Field(
        ...,
        description="missing, invalid, negative or renamed"
    )
    message: str
    original: Optional[str] = None


class NormalizationReport(BaseModel):
    """The repaired record plus what was done to it."""

    record: ExpenseRecord
    issues: list[NormalizationIssue] = Field(default_factory=list)

    @property
    def was_repaired(self) -> bool:
        return bool(self.issues)


def _first_present(raw: Mapping[str, Any], keys: Iterable[str]) -> tuple[Optional[str], Any]:
    for key in keys:
        if key in raw and raw[key] is not None:
            return key, raw[key]
    return None, None


def _safe_text(value: Any, limit: Optional[int] = 100) -> str:
    try:
        return str(value)[:limit]
    except ValueError:
        # int -> str refuses very long integers
        return f"<{type(value).__name__}>"


def coerce_amount(value: Any) -> float:
    """
    Coerce any amount-ish value to a finite, non-negative float.

    Anything that cannot be read as a number (None, "abc", NaN, inf,
    booleans, negatives) becomes 0.0 so it can never poison a sum.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError, InvalidOperation):
            return 0.0
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").lstrip("$").strip()
        if not cleaned:
            return 0.0
        try:
            number = float(Decimal(cleaned))
        except (InvalidOperation, ValueError):
            return 0.0
    else:
        return 0.0

    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a date-ish value into an aware UTC datetime.

    Accepts datetime, date, ISO-8601 strings (with 'Z', offsets or
    date-only) and epoch seconds/milliseconds. Returns None if the
    value can't be read.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            if math.isnan(value) or math.isinf(value):
                return None
            seconds = value / 1000 if abs(value) >= _EPOCH_MS_THRESHOLD else value
            moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    try:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # Offsets that push the moment outside datetime's range
        return None


def canonical_timestamp(value: Any) -> str:
    """Canonical ledger timestamp for `value`; current time if unreadable."""
    moment = parse_timestamp(value)
    if moment is None:
        return utc_now_iso()
    return format_timestamp(moment)


class ExpenseNormalizer:
    """
    Maps loosely-typed collaborator records onto ExpenseRecord.

    Defaults:
    - id        -> new uuid4 string
    - name      -> ""
    - amount    -> 0.0
    - category  -> default category ("Other")
    - paidBy    -> ""
    - date      -> now (UTC)
    """

    def __init__(self, default_category: str = DEFAULT_CATEGORY_NAME):
        self._default_category = default_category

    def normalize(self, raw: Any) -> ExpenseRecord:
        """Normalize a single record. Never raises."""
        return self.normalize_with_report(raw).record

    def normalize_many(self, raws: Iterable[Any]) -> list[ExpenseRecord]:
        """Normalize a sequence of records, keeping their order."""
        return [self.normalize(raw) for raw in raws]

    def normalize_with_report(self, raw: Any) -> NormalizationReport:
        """Normalize a record and return every repair that was applied."""
        if isinstance(raw, ExpenseRecord):
            return NormalizationReport(record=raw)

        issues: list[NormalizationIssue] = []

        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        if not isinstance(raw, Mapping):
            issues.append(NormalizationIssue(
                field="*",
                issue_type="invalid",
                message=f"Expected a mapping, got {type(raw).__name__}",
            ))
            raw = {}

        # id
        record_id = raw.get("id")
        if record_id is None or not _safe_text(record_id, None).strip():
            record_id = new_id()
            issues.append(NormalizationIssue(
                field="id", issue_type="missing", message="Assigned a new id",
            ))
        record_id = _safe_text(record_id, None).strip()

        # name
        name = raw.get("name")
        name = "" if name is None else _safe_text(name, None).strip()[:200]

        # amount
        raw_amount = raw.get("amount")
        amount = coerce_amount(raw_amount)
        if raw_amount is None:
            issues.append(NormalizationIssue(
                field="amount", issue_type="missing", message="Missing amount treated as 0",
            ))
        elif amount == 0.0 and not self._is_zero(raw_amount):
            issue_type = "negative" if self._is_negative(raw_amount) else "invalid"
            issues.append(NormalizationIssue(
                field="amount",
                issue_type=issue_type,
                message=f"Amount {_safe_text(raw_amount)} treated as 0",
                original=_safe_text(raw_amount),
            ))

        # category
        category = raw.get("category")
        category = "" if category is None else _safe_text(category, None).strip()
        if not category:
            category = self._default_category
            issues.append(NormalizationIssue(
                field="category",
                issue_type="missing",
                message=f"Missing category set to {self._default_category!r}",
            ))

        # paid by
        paid_by_key, paid_by = _first_present(raw, PAID_BY_KEYS)
        paid_by = "" if paid_by is None else _safe_text(paid_by, None).strip()
        if paid_by_key is None:
            issues.append(NormalizationIssue(
                field="paidBy", issue_type="missing", message="Missing payer",
            ))

        # date
        date_key, raw_date = _first_present(raw, DATE_KEYS)
        moment = parse_timestamp(raw_date)
        if moment is None:
            timestamp = utc_now_iso()
            issues.append(NormalizationIssue(
                field="date",
                issue_type="missing" if raw_date is None else "invalid",
                message="Date set to current time",
                original=None if raw_date is None else _safe_text(raw_date),
            ))
        else:
            timestamp = format_timestamp(moment)

        record = ExpenseRecord(
            id=record_id,
            name=name,
            amount=amount,
            category=category,
            paid_by=paid_by,
            date=timestamp,
        )

        if issues:
            logger.warning(
                "expense_normalized",
                expense_id=record.id,
                issues=[issue.model_dump() for issue in issues],
            )

        return NormalizationReport(record=record, issues=issues)

    @staticmethod
    def _is_zero(value: Any) -> bool:
        try:
            return float(str(value).replace(",", "").lstrip("$").strip()) == 0.0
        except ValueError:
            return False

    @staticmethod
    def _is_negative(value: Any) -> bool:
        try:
            return float(str(value).replace(",", "").lstrip("$").strip()) < 0
        except ValueError:
            return False


_default_normalizer = ExpenseNormalizer()


def normalize_expense(raw: Any) -> ExpenseRecord:
    """Normalize one record with the default settings."""
    return _default_normalizer.normalize(raw)


def normalize_expenses(raws: Iterable[Any]) -> list[ExpenseRecord]:
    """Normalize many records with the default settings."""
    return _default_normalizer.normalize_many(raws)
