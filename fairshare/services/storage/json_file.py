"""
JSON File Storage

The local, single-device backend: each collection is one JSON document
in a data directory (fairshare_expenses_v1.json, fairshare_categories_v1.json,
fairshare_usernames_v1.json).

TRADEOFFS:
- Whole-document rewrites on every change (fine for a household ledger)
- No cross-device sync; the last full write wins
- Writes go through a temp file + rename so a crash never leaves half a file
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from fairshare.logs import get_logger
from fairshare.models.expense import (
    DEFAULT_CATEGORIES,
    CategoryItem,
    ExpenseRecord,
    ParticipantNames,
)
from fairshare.services.storage.interface import (
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    ParticipantStorageInterface,
    StorageError,
)
from fairshare.validation.normalizer import ExpenseNormalizer


logger = get_logger(__name__)


class JsonDocument:
    """One JSON document on disk."""

    def __init__(self, data_dir: Path, key: str):
        self._path = Path(data_dir) / f"{key}.json"

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> Optional[Any]:
        """Parsed document, or None when the file doesn't exist yet."""
        if not self._path.exists():
            return None
        try:
            with self._path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt JSON in {self._path}: {e}")
        except UnicodeDecodeError as e:
            raise StorageError(f"{self._path} is not valid UTF-8: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

    def write(self, payload: Any) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=self._path.stem, suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {self._path}: {e}")


class JsonFileExpenseStorage(ExpenseStorageInterface):
    """
    Expenses stored as a JSON array of camelCase objects.

    Rows written by older versions (paid_by, created_at, string amounts)
    are repaired by the normalizer on load.
    """

    def __init__(
        self,
        data_dir: Path,
        key: str = "fairshare_expenses_v1",
        normalizer: Optional[ExpenseNormalizer] = None,
    ):
        self._document = JsonDocument(data_dir, key)
        self._normalizer = normalizer or ExpenseNormalizer()

    @property
    def path(self) -> Path:
        return self._document.path

    def _read_records(self) -> list[ExpenseRecord]:
        payload = self._document.read()
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise StorageError(f"Expected a JSON array in {self.path}")
        return self._normalizer.normalize_many(payload)

    def _write_records(self, records: list[ExpenseRecord]) -> None:
        self._document.write([record.to_storage_dict() for record in records])

    async def load(self) -> list[ExpenseRecord]:
        records = self._read_records()
        return sorted(records, key=lambda r: r.date, reverse=True)

    async def save(self, records: list[ExpenseRecord]) -> bool:
        self._write_records(list(records))
        return True

    async def append(self, record: ExpenseRecord) -> bool:
        records = self._read_records()
        if any(r.id == record.id for r in records):
            raise DuplicateError(f"Expense already exists: {record.id}")
        self._write_records([record] + records)
        return True

    async def remove(self, expense_id: str) -> bool:
        records = self._read_records()
        remaining = [r for r in records if r.id != expense_id]
        if len(remaining) == len(records):
            return False
        self._write_records(remaining)
        return True


class JsonFileCategoryStorage(CategoryStorageInterface):
    """
    Category catalog stored as a JSON array.

    A missing, corrupt or empty document yields the default categories.
    """

    def __init__(self, data_dir: Path, key: str = "fairshare_categories_v1"):
        self._document = JsonDocument(data_dir, key)

    @property
    def path(self) -> Path:
        return self._document.path

    async def load(self) -> list[CategoryItem]:
        try:
            payload = self._document.read()
        except StorageError as e:
            logger.warning("categories_unreadable", path=str(self.path), error=str(e))
            return list(DEFAULT_CATEGORIES)

        if not isinstance(payload, list) or not payload:
            return list(DEFAULT_CATEGORIES)

        categories = []
        for row in payload:
            try:
                categories.append(CategoryItem.model_validate(row))
            except ValidationError as e:
                logger.warning("category_row_skipped", row=str(row), error=str(e))
        return categories or list(DEFAULT_CATEGORIES)

    async def save(self, categories: list[CategoryItem]) -> bool:
        self._document.write([category.model_dump() for category in categories])
        return True


class JsonFileParticipantStorage(ParticipantStorageInterface):
    """
    The participant pair stored as a two-element JSON array.

    A missing or unusable document loads as None, so the flow keeps
    the configured names.
    """

    def __init__(self, data_dir: Path, key: str = "fairshare_usernames_v1"):
        self._document = JsonDocument(data_dir, key)

    @property
    def path(self) -> Path:
        return self._document.path

    async def load(self) -> Optional[ParticipantNames]:
        try:
            payload = self._document.read()
        except StorageError as e:
            logger.warning("participants_unreadable", path=str(self.path), error=str(e))
            return None

        if payload is None:
            return None
        participants = ParticipantNames.from_stored(payload)
        if participants is None:
            logger.warning("participants_invalid", path=str(self.path))
        return participants

    async def save(self, participants: ParticipantNames) -> bool:
        self._document.write(list(participants.names))
        return True
