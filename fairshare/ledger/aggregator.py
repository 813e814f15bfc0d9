"""
Ledger Aggregation Engine

DESIGN DECISION: Aggregation is PURE.
Every call re-derives its result from the snapshot it is handed:
no caching, no shared mutable state, no I/O. The storage layer
and the ledger flows own the data; this module only reads it.

It also NEVER FAILS on bad data. Raw mappings are run through the
ingestion normalizer, unknown payers are counted in the total only,
and orphaned categories are summed under their literal name.
"""

import math
from typing import Any, Iterable, Iterator, Optional, Sequence, Union

from fairshare.ledger.categories import coerce_categories
from fairshare.logs import get_logger
from fairshare.models.expense import (
    DEFAULT_PARTICIPANTS,
    CategoryItem,
    ExpenseRecord,
    ParticipantNames,
)
from fairshare.models.summary import (
    CategoryShare,
    Granularity,
    PeriodBucket,
    Settlement,
    SummaryStats,
)
from fairshare.validation.normalizer import ExpenseNormalizer


logger = get_logger(__name__)

ParticipantsLike = Union[ParticipantNames, Sequence[str]]


class PeriodHistory:
    """
    Lazy, restartable view of period buckets.

    Holds an immutable snapshot of the records; every iteration groups
    them again from scratch, newest period first.
    """

    def __init__(self, records: Iterable[ExpenseRecord], granularity: Granularity):
        self._records = tuple(records)
        self._granularity = granularity

    @property
    def granularity(self) -> Granularity:
        return self._granularity

    def __iter__(self) -> Iterator[PeriodBucket]:
        prefix = self._granularity.prefix_length
        buckets: dict[str, PeriodBucket] = {}

        for record in self._records:
            key = record.date[:prefix]
            bucket = buckets.get(key)
            if bucket is None:
                bucket = PeriodBucket(key=key, granularity=self._granularity)
                buckets[key] = bucket
            bucket.records.append(record)

        for key in sorted(buckets, reverse=True):
            bucket = buckets[key]
            amounts: dict[str, list[float]] = {}
            for record in bucket.records:
                amounts.setdefault(record.category, []).append(record.amount)
            bucket.category_totals = {
                name: math.fsum(values) for name, values in amounts.items()
            }
            bucket.total = math.fsum(r.amount for r in bucket.records)
            yield bucket

    def keys(self) -> list[str]:
        return [bucket.key for bucket in self]

    def __len__(self) -> int:
        prefix = self._granularity.prefix_length
        return len({record.date[:prefix] for record in self._records})


class LedgerAggregator:
    """
    Summary statistics, category breakdowns and period grouping.

    GUARANTEES:
    - total_a + total_b <= total (unknown payers dilute the split)
    - settlement.amount >= 0 with a non-null direction
    - bad input degrades to zeros, never an exception
    """

    def __init__(
        self,
        default_participants: Sequence[str] = DEFAULT_PARTICIPANTS,
        normalizer: Optional[ExpenseNormalizer] = None,
    ):
        self._default_participants = tuple(default_participants)
        self._normalizer = normalizer or ExpenseNormalizer()

    # -------------------------------------------------------------------------
    # Input handling
    # -------------------------------------------------------------------------

    def _records(self, expenses: Optional[Iterable[Any]]) -> list[ExpenseRecord]:
        if expenses is None:
            return []
        if isinstance(expenses, (str, bytes)) or not isinstance(expenses, Iterable):
            logger.warning("expenses_not_iterable", type=type(expenses).__name__)
            return []
        return [
            item if isinstance(item, ExpenseRecord) else self._normalizer.normalize(item)
            for item in expenses
        ]

    def _participants(self, participant_names: Optional[ParticipantsLike]) -> ParticipantNames:
        if isinstance(participant_names, ParticipantNames):
            return participant_names
        if participant_names is None:
            names = []
        elif isinstance(participant_names, (str, bytes)) or not isinstance(participant_names, Iterable):
            logger.warning(
                "participant_names_not_a_sequence",
                type=type(participant_names).__name__,
                defaults=list(self._default_participants),
            )
            return ParticipantNames.from_sequence([], self._default_participants)
        else:
            names = list(participant_names)
        if len(names) != 2 or not all(isinstance(n, str) and n.strip() for n in names):
            logger.warning(
                "participant_names_repaired",
                received=[n if isinstance(n, str) else type(n).__name__ for n in names],
                defaults=list(self._default_participants),
            )
        return ParticipantNames.from_sequence(names, self._default_participants)

    @staticmethod
    def _granularity(granularity: Union[Granularity, str]) -> Granularity:
        if isinstance(granularity, Granularity):
            return granularity
        try:
            return Granularity(str(granularity).strip().lower())
        except ValueError:
            logger.warning("unknown_granularity", received=str(granularity))
            return Granularity.MONTH

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def compute_summary(
        self,
        expenses: Optional[Iterable[Any]],
        participant_names: Optional[ParticipantsLike],
    ) -> SummaryStats:
        """
        Totals and the single settlement transfer.

        Tie-break: debtor is A only when A paid strictly less than B.
        On an exact tie (including an empty ledger) B is the debtor and
        A the creditor, with amount 0.
        """
        records = self._records(expenses)
        participants = self._participants(participant_names)
        name_a, name_b = participants.names

        total = math.fsum(r.amount for r in records)
        total_a = math.fsum(r.amount for r in records if r.paid_by == name_a)
        total_b = math.fsum(r.amount for r in records if r.paid_by == name_b)

        amount = abs(total_a - total_b) / 2

        if total_a < total_b:
            debtor, creditor = name_a, name_b
        else:
            debtor, creditor = name_b, name_a

        return SummaryStats(
            total=total,
            total_a=total_a,
            total_b=total_b,
            settlement=Settlement(debtor=debtor, creditor=creditor, amount=amount),
        )

    def group_by_period(
        self,
        expenses: Optional[Iterable[Any]],
        granularity: Union[Granularity, str] = Granularity.MONTH,
    ) -> PeriodHistory:
        """
        Group by the YYYY-MM or YYYY prefix of each record's date.

        This is a text prefix operation on the canonical UTC timestamp,
        not calendar arithmetic.
        """
        return PeriodHistory(self._records(expenses), self._granularity(granularity))

    def category_breakdown(
        self,
        expenses: Optional[Iterable[Any]],
        categories: Optional[Iterable[CategoryItem]] = None,
    ) -> list[CategoryShare]:
        """
        Spending per category across the whole snapshot.

        Catalog categories come first, in catalog order, followed by
        orphaned names in order of first appearance. Categories with
        nothing spent are dropped.
        """
        records = self._records(expenses)

        order: list[str] = []
        for category in coerce_categories(categories):
            if category.name not in order:
                order.append(category.name)
        for record in records:
            if record.category not in order:
                order.append(record.category)

        sums: dict[str, list[float]] = {}
        for record in records:
            sums.setdefault(record.category, []).append(record.amount)

        amounts = [(name, math.fsum(sums.get(name, []))) for name in order]
        amounts = [(name, amount) for name, amount in amounts if amount > 0]
        grand_total = math.fsum(amount for _, amount in amounts)

        return [
            CategoryShare(
                category=name,
                amount=amount,
                share=(amount / grand_total) if grand_total > 0 else 0.0,
            )
            for name, amount in amounts
        ]


_default_aggregator = LedgerAggregator()


def compute_summary(
    expenses: Optional[Iterable[Any]],
    participant_names: Optional[ParticipantsLike],
) -> SummaryStats:
    """Summary statistics with the default aggregator."""
    return _default_aggregator.compute_summary(expenses, participant_names)


def group_by_period(
    expenses: Optional[Iterable[Any]],
    granularity: Union[Granularity, str] = Granularity.MONTH,
) -> PeriodHistory:
    """Period grouping with the default aggregator."""
    return _default_aggregator.group_by_period(expenses, granularity)


def category_breakdown(
    expenses: Optional[Iterable[Any]],
    categories: Optional[Iterable[CategoryItem]] = None,
) -> list[CategoryShare]:
    """Category breakdown with the default aggregator."""
    return _default_aggregator.category_breakdown(expenses, categories)
