"""Ingestion normalization package."""

from fairshare.validation.normalizer import (
    ExpenseNormalizer,
    NormalizationIssue,
    NormalizationReport,
    canonical_timestamp,
    coerce_amount,
    normalize_expense,
    normalize_expenses,
    parse_timestamp,
)

__all__ = [
    "ExpenseNormalizer",
    "NormalizationIssue",
    "NormalizationReport",
    "canonical_timestamp",
    "coerce_amount",
    "normalize_expense",
    "normalize_expenses",
    "parse_timestamp",
]
