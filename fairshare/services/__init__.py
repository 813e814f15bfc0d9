"""Services package."""

from fairshare.services.storage import (
    AuditStorageInterface,
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    ParticipantStorageInterface,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsParticipantStorage,
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryParticipantStorage,
    JsonFileCategoryStorage,
    JsonFileExpenseStorage,
    JsonFileParticipantStorage,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "CategoryStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "ParticipantStorageInterface",
    "GoogleSheetsCategoryStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsParticipantStorage",
    "InMemoryAuditStorage",
    "InMemoryCategoryStorage",
    "InMemoryExpenseStorage",
    "InMemoryParticipantStorage",
    "JsonFileCategoryStorage",
    "JsonFileExpenseStorage",
    "JsonFileParticipantStorage",
    "StorageConnectionError",
    "StorageError",
]
