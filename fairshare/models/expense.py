"""
Core Ledger Records for FairShare

These models define the canonical shape of everything the aggregation
core reads:
1. ExpenseRecord - one dated, categorized, attributed expense
2. CategoryItem - a named colour swatch used for charts
3. ParticipantNames - the two parties the ledger is split between

DESIGN DECISION: The models are strict. Loosely-typed collaborator data
(paid_by vs paidBy, missing dates, "12.50" strings) is repaired ONCE by
fairshare.validation.normalizer before a model is built, so anything
holding an ExpenseRecord can trust its fields.
"""

import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_CATEGORY_NAME = "Other"
FALLBACK_COLOR = "#94a3b8"
DEFAULT_PARTICIPANTS = ("User A", "User B")

COLOR_PALETTE = [
    "#ef4444", "#f97316", "#f59e0b", "#84cc16", "#10b981", "#06b6d4",
    "#3b82f6", "#6366f1", "#8b5cf6", "#d946ef", "#f43f5e", "#64748b",
]

# Zero-padded UTC timestamp with millisecond precision, e.g.
# 2024-01-15T09:30:00.000Z. Period bucketing slices this text.
TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def format_timestamp(moment: datetime) -> str:
    """Render a datetime in the canonical ledger format (UTC, ms, Z suffix)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    # strftime("%Y") doesn't zero-pad years below 1000 on every platform
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f".{moment.microsecond // 1000:03d}Z"
    )


def utc_now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def new_id() -> str:
    return str(uuid4())


# =============================================================================
# EXPENSE RECORD
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    A single shared expense.

    `id` is assigned at creation and never changes; edits go through
    model_copy(update=...), which leaves the original untouched.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique identifier"
    )
    name: str = Field(
        default="",
        max_length=200,
        description="Free-text description"
    )
    amount: float = Field(
        default=0.0,
        ge=0,
        allow_inf_nan=False,
        description="Amount in dollars"
    )
    category: str = Field(
        default=DEFAULT_CATEGORY_NAME,
        min_length=1,
        description="Category name (not enforced against the catalog)"
    )
    paid_by: str = Field(
        default="",
        validation_alias=AliasChoices("paid_by", "paidBy"),
        description="Participant who paid"
    )
    date: str = Field(
        default_factory=utc_now_iso,
        validation_alias=AliasChoices("date", "createdAt", "created_at"),
        description="Canonical ISO-8601 UTC timestamp"
    )

    @field_validator("date")
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        """Bucketing is a text prefix operation, so the format is enforced."""
        if not TIMESTAMP_PATTERN.match(v):
            raise ValueError(
                f"Date must be a UTC timestamp like 2024-01-15T09:30:00.000Z, got {v!r}"
            )
        return v

    @property
    def month_key(self) -> str:
        return self.date[:7]

    @property
    def year_key(self) -> str:
        return self.date[:4]

    def to_storage_dict(self) -> dict:
        """Serialize with the camelCase keys used by the stored ledger."""
        return {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "category": self.category,
            "paidBy": self.paid_by,
            "date": self.date,
        }


# =============================================================================
# CATEGORIES
# =============================================================================

class CategoryItem(BaseModel):
    """
    A category swatch.

    Lookups are by `name`, not `id`, so renaming a category orphans the
    expenses already tagged with the old name.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default=FALLBACK_COLOR, min_length=1)


DEFAULT_CATEGORIES = [
    CategoryItem(id="1", name="Groceries", color="#34d399"),
    CategoryItem(id="2", name="Rent/Bills", color="#f87171"),
    CategoryItem(id="3", name="Dining", color="#fbbf24"),
    CategoryItem(id="4", name="Transport", color="#60a5fa"),
    CategoryItem(id="5", name="Entertainment", color="#a78bfa"),
    CategoryItem(id="6", name="Other", color="#94a3b8"),
]


# =============================================================================
# PARTICIPANTS
# =============================================================================

class ParticipantNames(BaseModel):
    """The two participants, positional: `a` is first, `b` is second."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    a: str = Field(default=DEFAULT_PARTICIPANTS[0], min_length=1)
    b: str = Field(default=DEFAULT_PARTICIPANTS[1], min_length=1)

    @classmethod
    def from_sequence(
        cls,
        names: Sequence[str],
        defaults: Sequence[str] = DEFAULT_PARTICIPANTS,
    ) -> "ParticipantNames":
        """
        Build a pair from any sequence.

        Missing or blank positions are filled from `defaults`;
        entries past the second are ignored.
        """
        resolved = []
        for index in range(2):
            name = names[index] if index < len(names) else None
            if not isinstance(name, str) or not name.strip():
                name = defaults[index]
            resolved.append(name)
        return cls(a=resolved[0], b=resolved[1])

    @classmethod
    def from_stored(cls, payload: Any) -> Optional["ParticipantNames"]:
        """
        Read a stored pair: ["A", "B"] or {"a": "A", "b": "B"}.

        Returns None unless the payload holds exactly two non-blank names.
        """
        if isinstance(payload, Mapping):
            payload = [payload.get("a"), payload.get("b")]
        if not isinstance(payload, (list, tuple)) or len(payload) != 2:
            return None
        if not all(isinstance(name, str) and name.strip() for name in payload):
            return None
        return cls(a=payload[0], b=payload[1])

    @property
    def names(self) -> tuple[str, str]:
        return (self.a, self.b)

    def with_name(self, index: int, new_name: str) -> "ParticipantNames":
        """Return a copy with one position renamed. Blank names are ignored."""
        if index not in (0, 1):
            raise IndexError(f"Participant index must be 0 or 1, got {index}")
        new_name = (new_name or "").strip()
        if not new_name:
            return self
        field = "a" if index == 0 else "b"
        return self.model_copy(update={field: new_name})
