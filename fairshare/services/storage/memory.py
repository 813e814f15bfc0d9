"""
In-Memory Storage

Used by tests and by the "memory" backend. Each store can be told to
fail its next writes so the rollback paths of the ledger flows can be
exercised without a network.
"""

from typing import Optional

from fairshare.models.audit import AuditEvent
from fairshare.models.expense import (
    DEFAULT_CATEGORIES,
    CategoryItem,
    ExpenseRecord,
    ParticipantNames,
)
from fairshare.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    ParticipantStorageInterface,
    StorageError,
)


class _FailureInjection:
    def __init__(self):
        self._fail_writes = 0
        self._fail_reads = 0

    def fail_next_writes(self, count: int = 1) -> None:
        self._fail_writes = count

    def fail_next_reads(self, count: int = 1) -> None:
        self._fail_reads = count

    def _check_write(self, operation: str) -> None:
        if self._fail_writes > 0:
            self._fail_writes -= 1
            raise StorageError(f"Simulated failure during {operation}")

    def _check_read(self, operation: str) -> None:
        if self._fail_reads > 0:
            self._fail_reads -= 1
            raise StorageError(f"Simulated failure during {operation}")


class InMemoryExpenseStorage(_FailureInjection, ExpenseStorageInterface):
    """Expense store backed by a list."""

    def __init__(self, records: Optional[list[ExpenseRecord]] = None):
        super().__init__()
        self._records: list[ExpenseRecord] = list(records or [])

    @property
    def records(self) -> list[ExpenseRecord]:
        return list(self._records)

    async def load(self) -> list[ExpenseRecord]:
        self._check_read("load")
        return sorted(self._records, key=lambda r: r.date, reverse=True)

    async def save(self, records: list[ExpenseRecord]) -> bool:
        self._check_write("save")
        self._records = list(records)
        return True

    async def append(self, record: ExpenseRecord) -> bool:
        self._check_write("append")
        if any(r.id == record.id for r in self._records):
            raise DuplicateError(f"Expense already exists: {record.id}")
        self._records.append(record)
        return True

    async def remove(self, expense_id: str) -> bool:
        self._check_write("remove")
        before = len(self._records)
        self._records = [r for r in self._records if r.id != expense_id]
        return len(self._records) < before


class InMemoryCategoryStorage(_FailureInjection, CategoryStorageInterface):
    """Category store backed by a list."""

    def __init__(self, categories: Optional[list[CategoryItem]] = None):
        super().__init__()
        self._categories: list[CategoryItem] = list(categories or [])

    async def load(self) -> list[CategoryItem]:
        self._check_read("load")
        return list(self._categories) or list(DEFAULT_CATEGORIES)

    async def save(self, categories: list[CategoryItem]) -> bool:
        self._check_write("save")
        self._categories = list(categories)
        return True


class InMemoryParticipantStorage(_FailureInjection, ParticipantStorageInterface):
    """Participant pair held in memory; None until first saved."""

    def __init__(self, participants: Optional[ParticipantNames] = None):
        super().__init__()
        self._participants = participants

    async def load(self) -> Optional[ParticipantNames]:
        self._check_read("load_participants")
        return self._participants

    async def save(self, participants: ParticipantNames) -> bool:
        self._check_write("save_participants")
        self._participants = participants
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
