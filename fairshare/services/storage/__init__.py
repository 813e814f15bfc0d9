"""
Storage Services Package

Provides the persistence port and its implementations:
in-memory (tests), JSON file (single device) and Google Sheets (shared).
"""

from fairshare.services.storage.interface import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    ParticipantStorageInterface,
    StorageConnectionError,
    StorageError,
)
from fairshare.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryParticipantStorage,
)
from fairshare.services.storage.json_file import (
    JsonFileCategoryStorage,
    JsonFileExpenseStorage,
    JsonFileParticipantStorage,
)
from fairshare.services.storage.google_sheets import (
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsParticipantStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "ExpenseStorageInterface",
    "ParticipantStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCategoryStorage",
    "InMemoryExpenseStorage",
    "InMemoryParticipantStorage",
    # JSON file implementation
    "JsonFileCategoryStorage",
    "JsonFileExpenseStorage",
    "JsonFileParticipantStorage",
    # Google Sheets implementation
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsParticipantStorage",
]
