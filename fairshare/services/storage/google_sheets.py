"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the shared, multi-device backend because:
1. Both participants can open the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a shared household ledger)
- No transactions; concurrent writers resolve as "last full refresh wins"
- Limited query capabilities (we read everything and aggregate in Python)

The implementation follows the abstract interface, so the flows
never know which backend they are talking to.
"""

from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fairshare.config import GoogleSheetsSettings, get_settings
from fairshare.logs import get_logger
from fairshare.models.expense import (
    DEFAULT_CATEGORIES,
    FALLBACK_COLOR,
    CategoryItem,
    ExpenseRecord,
    ParticipantNames,
)
from fairshare.services.storage.interface import (
    CategoryStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    ParticipantStorageInterface,
    StorageConnectionError,
    StorageError,
)
from fairshare.validation.normalizer import ExpenseNormalizer


logger = get_logger(__name__)

# Column mappings for the Expenses sheet (same keys as the JSON backend)
EXPENSE_COLUMNS = [
    "id",
    "name",
    "amount",
    "category",
    "paidBy",
    "date",
]

# Column mappings for the Categories sheet
CATEGORY_COLUMNS = [
    "id",
    "name",
    "color",
]

# The Participants sheet holds a single data row
PARTICIPANT_COLUMNS = [
    "a",
    "b",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        """Get or create the Expenses worksheet."""
        return self._get_or_create(self._settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def get_categories_sheet(self) -> gspread.Worksheet:
        """Get or create the Categories worksheet."""
        return self._get_or_create(self._settings.categories_sheet_name, CATEGORY_COLUMNS)

    def get_participants_sheet(self) -> gspread.Worksheet:
        """Get or create the Participants worksheet."""
        return self._get_or_create(self._settings.participants_sheet_name, PARTICIPANT_COLUMNS)


def _rows_to_dicts(all_rows: list[list[str]]) -> list[dict]:
    """Map data rows onto the header row, skipping blank rows."""
    if not all_rows:
        return []
    header = all_rows[0]
    result = []
    for row in all_rows[1:]:
        if not row or not any(cell for cell in row):
            continue
        result.append({
            column: (row[index] if index < len(row) and row[index] != "" else None)
            for index, column in enumerate(header)
        })
    return result


class GoogleSheetsExpenseStorage(ExpenseStorageInterface):
    """
    Google Sheets implementation of expense storage.

    One expense per row. Cells come back as strings, so every row goes
    through the normalizer on load.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        normalizer: Optional[ExpenseNormalizer] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._normalizer = normalizer or ExpenseNormalizer()

    def _record_to_row(self, record: ExpenseRecord) -> list:
        """Convert an ExpenseRecord to a spreadsheet row."""
        data = record.to_storage_dict()
        return [data["id"], data["name"], str(data["amount"]), data["category"],
                data["paidBy"], data["date"]]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def load(self) -> list[ExpenseRecord]:
        """Read every row, newest first."""
        try:
            sheet = self._client.get_expenses_sheet()
            rows = _rows_to_dicts(sheet.get_all_values())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load expenses: {e}")

        records = self._normalizer.normalize_many(rows)
        return sorted(records, key=lambda r: r.date, reverse=True)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save(self, records: list[ExpenseRecord]) -> bool:
        """Rewrite the whole sheet."""
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.clear()
            sheet.append_rows(
                [EXPENSE_COLUMNS] + [self._record_to_row(r) for r in records],
                value_input_option="RAW",
            )
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expenses: {e}")

    @retry(
        retry=retry_if_not_exception_type(DuplicateError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append(self, record: ExpenseRecord) -> bool:
        """Append one expense row."""
        try:
            sheet = self._client.get_expenses_sheet()
            if record.id in sheet.col_values(1)[1:]:
                raise DuplicateError(f"Expense already exists: {record.id}")
            sheet.append_row(self._record_to_row(record), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to append expense: {e}")

    async def remove(self, expense_id: str) -> bool:
        """Delete the row holding `expense_id`."""
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
                if row and row[0] == expense_id:
                    sheet.delete_rows(idx)
                    return True

            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")


class GoogleSheetsCategoryStorage(CategoryStorageInterface):
    """Google Sheets implementation of the category catalog."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def load(self) -> list[CategoryItem]:
        try:
            sheet = self._client.get_categories_sheet()
            rows = _rows_to_dicts(sheet.get_all_values())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load categories: {e}")

        categories = []
        for row in rows:
            if not row.get("id") or not row.get("name"):
                logger.warning("category_row_skipped", row=row)
                continue
            categories.append(CategoryItem(
                id=row["id"],
                name=row["name"],
                color=row.get("color") or FALLBACK_COLOR,
            ))
        return categories or list(DEFAULT_CATEGORIES)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save(self, categories: list[CategoryItem]) -> bool:
        try:
            sheet = self._client.get_categories_sheet()
            sheet.clear()
            sheet.append_rows(
                [CATEGORY_COLUMNS] + [[c.id, c.name, c.color] for c in categories],
                value_input_option="RAW",
            )
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save categories: {e}")


class GoogleSheetsParticipantStorage(ParticipantStorageInterface):
    """The participant pair as the single data row of the Participants sheet."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def load(self) -> Optional[ParticipantNames]:
        try:
            sheet = self._client.get_participants_sheet()
            rows = _rows_to_dicts(sheet.get_all_values())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load participants: {e}")

        if not rows:
            return None
        participants = ParticipantNames.from_stored(rows[0])
        if participants is None:
            logger.warning("participants_row_invalid", row=rows[0])
        return participants

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save(self, participants: ParticipantNames) -> bool:
        try:
            sheet = self._client.get_participants_sheet()
            sheet.clear()
            sheet.append_rows(
                [PARTICIPANT_COLUMNS, list(participants.names)],
                value_input_option="RAW",
            )
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save participants: {e}")
