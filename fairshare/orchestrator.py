"""
Main Orchestrator for FairShare

This module ties the pure aggregation core to a storage backend and
defines the flows a front end drives:
1. Expenses (refresh, add, edit, delete, clear, rename a participant)
2. Categories (add, edit, delete with the keep-one rule)

DESIGN DECISION: Every mutation follows the same three-step protocol:
1. Snapshot the current in-memory state
2. Apply the change locally (optimistic update)
3. Attempt the storage write; on failure restore the snapshot,
   record a user-facing error and audit the rollback

Storage errors never propagate out of a flow. The aggregator only ever
sees a complete snapshot, and it is re-run from scratch on every read.
"""

from typing import Any, Optional, Union
from uuid import UUID

from fairshare.audit import AuditLogger, create_correlation_id
from fairshare.config import Settings, get_settings
from fairshare.ledger.aggregator import LedgerAggregator, PeriodHistory
from fairshare.ledger.categories import CategoryCatalog, CategoryColorResolver
from fairshare.ledger.display import SETTLED_EPSILON, settlement_state
from fairshare.logs import configure_logging, get_logger
from fairshare.models.audit import AuditEventType
from fairshare.models.expense import (
    FALLBACK_COLOR,
    CategoryItem,
    ExpenseRecord,
    ParticipantNames,
    new_id,
    utc_now_iso,
)
from fairshare.models.summary import (
    CategoryShare,
    Granularity,
    MonthlyReport,
    SettlementState,
    SummaryStats,
)
from fairshare.reports.monthly import MonthLike, build_monthly_report
from fairshare.services.storage import (
    CategoryStorageInterface,
    ExpenseStorageInterface,
    GoogleSheetsCategoryStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsParticipantStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryParticipantStorage,
    JsonFileCategoryStorage,
    JsonFileExpenseStorage,
    JsonFileParticipantStorage,
    ParticipantStorageInterface,
    StorageError,
)
from fairshare.validation.normalizer import ExpenseNormalizer


logger = get_logger(__name__)

# Fields a user may change on an existing expense
EDITABLE_FIELDS = {"name", "amount", "category", "paid_by", "date"}

ADD_FAILED_MESSAGE = "Failed to add expense. Check connection."
UPDATE_FAILED_MESSAGE = "Failed to update expense. Restoring data."
DELETE_FAILED_MESSAGE = "Failed to delete expense. Restoring data."
CLEAR_FAILED_MESSAGE = "Failed to clear expenses. Restoring data."
RENAME_FAILED_MESSAGE = "Failed to rename participant. Restoring data."
LOAD_FAILED_MESSAGE = "Failed to load expenses"


class ExpenseLedgerFlow:
    """
    Owns the in-memory expense snapshot and keeps it in step with storage.

    Reads (summary, history, breakdown, monthly report) always run the
    aggregator over the current snapshot; nothing is cached.
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        participants: Optional[ParticipantNames] = None,
        aggregator: Optional[LedgerAggregator] = None,
        normalizer: Optional[ExpenseNormalizer] = None,
        audit_logger: Optional[AuditLogger] = None,
        settled_epsilon: float = SETTLED_EPSILON,
        participant_storage: Optional[ParticipantStorageInterface] = None,
    ):
        self._storage = storage
        self._participant_storage = participant_storage
        self._settled_epsilon = settled_epsilon
        self._participants = participants or ParticipantNames()
        self._aggregator = aggregator or LedgerAggregator(self._participants.names)
        self._normalizer = normalizer or ExpenseNormalizer()
        self._audit_logger = audit_logger
        self._expenses: list[ExpenseRecord] = []
        self.is_loading = False
        self.last_error: Optional[str] = None

    @property
    def expenses(self) -> list[ExpenseRecord]:
        """Current snapshot, newest first."""
        return list(self._expenses)

    @property
    def participants(self) -> ParticipantNames:
        return self._participants

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def refresh(self) -> bool:
        """
        Reload the snapshot (and the stored participant names) from storage.

        On failure the previous snapshot is kept and `last_error` is set.
        """
        self.is_loading = True
        self.last_error = None
        try:
            expenses = await self._storage.load()
            stored_participants = None
            if self._participant_storage is not None:
                stored_participants = await self._participant_storage.load()
        except StorageError as e:
            logger.error("expenses_load_failed", error=str(e))
            self.last_error = str(e) or LOAD_FAILED_MESSAGE
            if self._audit_logger:
                await self._audit_logger.log_storage_error("load", str(e))
            return False
        finally:
            self.is_loading = False

        self._expenses = expenses
        if stored_participants is not None:
            self._participants = stored_participants
        if self._audit_logger:
            await self._audit_logger.log_expenses_loaded(len(self._expenses))
        return True

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def _rollback(
        self,
        snapshot: list[ExpenseRecord],
        operation: str,
        error: Exception,
        message: str,
        correlation_id: UUID,
        participants: Optional[ParticipantNames] = None,
    ) -> None:
        self._expenses = snapshot
        if participants is not None:
            self._participants = participants
        self.last_error = message
        logger.warning("mutation_rolled_back", operation=operation, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_rollback(operation, str(error), correlation_id)

    async def add_expense(
        self,
        name: str,
        amount: Any,
        category: Optional[str],
        paid_by: str,
    ) -> Optional[ExpenseRecord]:
        """
        Record a new expense dated now.

        Returns the stored record, or None if the write failed (in
        which case the snapshot is unchanged and `last_error` is set).
        """
        correlation_id = create_correlation_id()
        report = self._normalizer.normalize_with_report({
            "id": new_id(),
            "name": name,
            "amount": amount,
            "category": category,
            "paidBy": paid_by,
            "date": utc_now_iso(),
        })
        record = report.record

        snapshot = list(self._expenses)
        self._expenses = [record] + snapshot
        self.last_error = None

        try:
            await self._storage.append(record)
        except StorageError as e:
            await self._rollback(snapshot, "add_expense", e, ADD_FAILED_MESSAGE, correlation_id)
            return None

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                expense_id=record.id,
                name=record.name,
                amount=record.amount,
                paid_by=record.paid_by,
                correlation_id=correlation_id,
            )
            if report.was_repaired:
                await self._audit_logger.log_record_normalized(
                    record.id,
                    [issue.model_dump() for issue in report.issues],
                    correlation_id,
                )
        return record

    async def update_expense(self, expense_id: str, **changes: Any) -> Optional[ExpenseRecord]:
        """
        Edit an existing expense. `id` can't be changed.

        Returns the updated record, or None if the id is unknown or
        the write failed.
        """
        changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        index = next((i for i, r in enumerate(self._expenses) if r.id == expense_id), None)
        if index is None:
            self.last_error = f"Expense not found: {expense_id}"
            return None

        correlation_id = create_correlation_id()
        current = self._expenses[index]
        merged = current.to_storage_dict()
        merged.pop("paidBy")
        merged["paid_by"] = current.paid_by
        merged.update(changes)
        updated = self._normalizer.normalize(merged)

        snapshot = list(self._expenses)
        self._expenses[index] = updated
        self.last_error = None

        try:
            await self._storage.save(self._expenses)
        except StorageError as e:
            await self._rollback(snapshot, "update_expense", e, UPDATE_FAILED_MESSAGE, correlation_id)
            return None

        if self._audit_logger:
            await self._audit_logger.log_expense_updated(
                expense_id, {k: str(v) for k, v in changes.items()}, correlation_id
            )
        return updated

    async def delete_expense(self, expense_id: str) -> bool:
        """Remove an expense; restores it if storage refuses."""
        correlation_id = create_correlation_id()
        snapshot = list(self._expenses)
        self._expenses = [r for r in snapshot if r.id != expense_id]
        self.last_error = None

        try:
            await self._storage.remove(expense_id)
        except StorageError as e:
            await self._rollback(snapshot, "delete_expense", e, DELETE_FAILED_MESSAGE, correlation_id)
            return False

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(expense_id, correlation_id)
        return True

    async def clear_expenses(self) -> bool:
        """Delete every expense."""
        correlation_id = create_correlation_id()
        snapshot = list(self._expenses)
        self._expenses = []
        self.last_error = None

        try:
            await self._storage.save([])
        except StorageError as e:
            await self._rollback(snapshot, "clear_expenses", e, CLEAR_FAILED_MESSAGE, correlation_id)
            return False

        if self._audit_logger:
            await self._audit_logger.log_expenses_cleared(len(snapshot), correlation_id)
        return True

    async def rename_participant(self, index: int, new_name: str) -> bool:
        """
        Rename participant A (0) or B (1).

        Expenses paid under the old name are moved to the new one so the
        totals follow the person. Blank names are ignored.
        """
        old_participants = self._participants
        new_participants = old_participants.with_name(index, new_name)
        if new_participants == old_participants:
            return True

        old_name = old_participants.names[index]
        new_name = new_participants.names[index]
        correlation_id = create_correlation_id()

        snapshot = list(self._expenses)
        renamed = 0
        updated = []
        for record in snapshot:
            if record.paid_by == old_name:
                record = record.model_copy(update={"paid_by": new_name})
                renamed += 1
            updated.append(record)

        self._expenses = updated
        self._participants = new_participants
        self.last_error = None

        if self._participant_storage is not None:
            try:
                await self._participant_storage.save(new_participants)
            except StorageError as e:
                await self._rollback(
                    snapshot, "rename_participant", e, RENAME_FAILED_MESSAGE,
                    correlation_id, participants=old_participants,
                )
                return False

        if renamed:
            try:
                await self._storage.save(self._expenses)
            except StorageError as e:
                await self._rollback(
                    snapshot, "rename_participant", e, RENAME_FAILED_MESSAGE,
                    correlation_id, participants=old_participants,
                )
                await self._restore_stored_participants(old_participants, correlation_id)
                return False

        if self._audit_logger:
            await self._audit_logger.log_participant_renamed(
                index, old_name, new_name, renamed, correlation_id
            )
        return True

    async def _restore_stored_participants(
        self, participants: ParticipantNames, correlation_id: UUID
    ) -> None:
        # The names were already written; put the old pair back
        if self._participant_storage is None:
            return
        try:
            await self._participant_storage.save(participants)
        except StorageError as e:
            logger.error(
                "participants_restore_failed",
                names=list(participants.names),
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    "restore_participants", str(e), correlation_id
                )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def summary(self) -> SummaryStats:
        return self._aggregator.compute_summary(self._expenses, self._participants)

    def settlement_state(self) -> SettlementState:
        return settlement_state(self.summary().settlement, self._settled_epsilon)

    def history(self, granularity: Union[Granularity, str] = Granularity.MONTH) -> PeriodHistory:
        return self._aggregator.group_by_period(self._expenses, granularity)

    def category_breakdown(self, categories: Optional[list[CategoryItem]] = None) -> list[CategoryShare]:
        return self._aggregator.category_breakdown(self._expenses, categories)

    def monthly_report(self, month: MonthLike = None) -> MonthlyReport:
        return build_monthly_report(
            self._expenses, self._participants, month, aggregator=self._aggregator
        )


class CategoryFlow:
    """
    The category catalog plus its persistence.

    Catalog rule violations (blank name, unknown id, deleting the last
    category) raise CategoryError to the caller. Storage failures roll
    the catalog back and set `last_error` instead.
    """

    def __init__(
        self,
        storage: CategoryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        fallback_color: str = FALLBACK_COLOR,
    ):
        self._storage = storage
        self._fallback_color = fallback_color
        self._catalog = CategoryCatalog()
        self._audit_logger = audit_logger
        self.last_error: Optional[str] = None

    @property
    def categories(self) -> list[CategoryItem]:
        return self._catalog.categories

    def resolver(self) -> CategoryColorResolver:
        return self._catalog.resolver(self._fallback_color)

    def color_for(self, category_name: Optional[str]) -> str:
        return self.resolver().color_for(category_name)

    async def load(self) -> bool:
        self.last_error = None
        try:
            self._catalog = CategoryCatalog(await self._storage.load())
        except StorageError as e:
            logger.error("categories_load_failed", error=str(e))
            self.last_error = str(e)
            return False
        return True

    async def _persist(
        self,
        previous: CategoryCatalog,
        operation: str,
        event_type: AuditEventType,
        item: CategoryItem,
    ) -> bool:
        correlation_id = create_correlation_id()
        try:
            await self._storage.save(self._catalog.categories)
        except StorageError as e:
            self._catalog = previous
            self.last_error = f"Failed to {operation.replace('_', ' ')}. Restoring data."
            logger.warning("mutation_rolled_back", operation=operation, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_rollback(operation, str(e), correlation_id)
            return False

        if self._audit_logger:
            await self._audit_logger.log_category_changed(
                event_type, item.id, item.name, item.color, correlation_id
            )
        return True

    def _snapshot(self) -> CategoryCatalog:
        return CategoryCatalog(self._catalog.categories)

    async def add_category(self, name: str, color: Optional[str] = None) -> Optional[CategoryItem]:
        previous = self._snapshot()
        item = self._catalog.add_category(name, color)
        self.last_error = None
        ok = await self._persist(previous, "add_category", AuditEventType.CATEGORY_ADDED, item)
        return item if ok else None

    async def update_category(self, category_id: str, name: str, color: str) -> Optional[CategoryItem]:
        previous = self._snapshot()
        item = self._catalog.update_category(category_id, name, color)
        self.last_error = None
        ok = await self._persist(previous, "update_category", AuditEventType.CATEGORY_UPDATED, item)
        return item if ok else None

    async def delete_category(self, category_id: str) -> bool:
        previous = self._snapshot()
        item = self._catalog.delete_category(category_id)
        self.last_error = None
        return await self._persist(previous, "delete_category", AuditEventType.CATEGORY_DELETED, item)


def create_storage(
    settings: Optional[Settings] = None,
) -> tuple[ExpenseStorageInterface, CategoryStorageInterface, ParticipantStorageInterface]:
    """Build the expense, category and participant stores for the configured backend."""
    settings = settings or get_settings()
    storage_settings = settings.storage

    if storage_settings.backend == "memory":
        return InMemoryExpenseStorage(), InMemoryCategoryStorage(), InMemoryParticipantStorage()

    if storage_settings.backend == "sheets":
        client = GoogleSheetsClient(settings.google_sheets)
        return (
            GoogleSheetsExpenseStorage(client),
            GoogleSheetsCategoryStorage(client),
            GoogleSheetsParticipantStorage(client),
        )

    data_dir = storage_settings.data_path
    return (
        JsonFileExpenseStorage(data_dir, storage_settings.expenses_key),
        JsonFileCategoryStorage(data_dir, storage_settings.categories_key),
        JsonFileParticipantStorage(data_dir, storage_settings.participants_key),
    )


def create_app_components(
    settings: Optional[Settings] = None,
) -> tuple[ExpenseLedgerFlow, CategoryFlow]:
    """
    Factory function to create all application components.

    Returns:
        (expense_flow, category_flow)
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    ledger_settings = settings.ledger
    expense_storage, category_storage, participant_storage = create_storage(settings)
    audit_logger = AuditLogger()

    normalizer = ExpenseNormalizer(default_category=ledger_settings.default_category)
    participants = ParticipantNames(
        a=ledger_settings.participant_a,
        b=ledger_settings.participant_b,
    )
    aggregator = LedgerAggregator(participants.names, normalizer)

    expense_flow = ExpenseLedgerFlow(
        storage=expense_storage,
        participants=participants,
        aggregator=aggregator,
        normalizer=normalizer,
        audit_logger=audit_logger,
        settled_epsilon=ledger_settings.settled_epsilon,
        participant_storage=participant_storage,
    )
    category_flow = CategoryFlow(
        storage=category_storage,
        audit_logger=audit_logger,
        fallback_color=ledger_settings.fallback_color,
    )

    return expense_flow, category_flow
