"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract port for persistence.
This allows us to:
1. Swap the JSON file for Google Sheets (or anything else) freely
2. Use in-memory storage for testing
3. Keep the aggregation core completely unaware of storage

The port is intentionally tiny - load, save, append, remove. The
ledger flows build optimistic updates and rollback on top of it.
"""

from abc import ABC, abstractmethod
from typing import Optional

from fairshare.models.audit import AuditEvent
from fairshare.models.expense import CategoryItem, ExpenseRecord, ParticipantNames


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense persistence.

    Any storage implementation (JSON file, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def load(self) -> list[ExpenseRecord]:
        """
        Load every stored expense, newest first.

        Rows are normalized on the way in, so callers always get
        canonical ExpenseRecords.

        Raises:
            StorageError: If the backend can't be read
        """
        pass

    @abstractmethod
    async def save(self, records: list[ExpenseRecord]) -> bool:
        """
        Replace the stored ledger with `records`.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def append(self, record: ExpenseRecord) -> bool:
        """
        Add a single expense.

        Raises:
            DuplicateError: If an expense with the same id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove(self, expense_id: str) -> bool:
        """
        Delete an expense by id.

        Returns:
            True if a record was removed, False if none matched

        Raises:
            StorageError: If the write fails
        """
        pass


class CategoryStorageInterface(ABC):
    """Abstract interface for the category catalog."""

    @abstractmethod
    async def load(self) -> list[CategoryItem]:
        """Load categories; the defaults when nothing usable is stored."""
        pass

    @abstractmethod
    async def save(self, categories: list[CategoryItem]) -> bool:
        """Replace the stored catalog."""
        pass


class ParticipantStorageInterface(ABC):
    """
    Abstract interface for the participant pair.

    Renaming a participant rewrites `paid_by` on stored expenses, so the
    pair itself has to survive a restart too.
    """

    @abstractmethod
    async def load(self) -> Optional[ParticipantNames]:
        """The stored pair, or None when nothing usable is stored."""
        pass

    @abstractmethod
    async def save(self, participants: ParticipantNames) -> bool:
        """Replace the stored pair."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log."""
        pass

    @abstractmethod
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
