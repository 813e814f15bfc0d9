"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Traceability of adds, edits, deletes and renames
2. A record of every optimistic change that had to be rolled back
3. Debugging capability when collaborator data needs repair

The audit logger:
- Is async so it slots into the ledger flows
- Gracefully handles failures (never crashes the app if logging fails)
- Supports correlation IDs to tie a mutation to its rollback
"""

from typing import Optional
from uuid import UUID, uuid4

from fairshare.logs import get_logger
from fairshare.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from fairshare.services.storage.interface import AuditStorageInterface


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = get_logger("fairshare.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expenses_loaded(
        self,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expenses_loaded(count, correlation_id))

    async def log_expense_added(
        self,
        expense_id: str,
        name: str,
        amount: float,
        paid_by: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.expense_added(
            expense_id=expense_id,
            name=name,
            amount=amount,
            paid_by=paid_by,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_updated(
        self,
        expense_id: str,
        changes: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.expense_updated(expense_id, changes, correlation_id)
        )

    async def log_expense_deleted(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(expense_id, correlation_id))

    async def log_expenses_cleared(
        self,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expenses_cleared(count, correlation_id))

    async def log_participant_renamed(
        self,
        index: int,
        old_name: str,
        new_name: str,
        records_updated: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.participant_renamed(
            index=index,
            old_name=old_name,
            new_name=new_name,
            records_updated=records_updated,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_category_changed(
        self,
        event_type: AuditEventType,
        category_id: str,
        name: str,
        color: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.category_changed(
            event_type=event_type,
            category_id=category_id,
            name=name,
            color=color,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_normalized(
        self,
        expense_id: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.record_normalized(expense_id, issues, correlation_id)
        )

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.storage_error(operation, error_message, correlation_id)
        )

    async def log_rollback(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure and the rollback that followed it."""
        await self.log(
            AuditEventBuilder.storage_error(operation, error_message, correlation_id)
        )
        await self.log(
            AuditEventBuilder.mutation_rolled_back(operation, error_message, correlation_id)
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a ledger mutation and pass it through
    the storage write and any rollback.
    """
    return uuid4()
