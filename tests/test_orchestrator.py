"""
Integration tests for the ledger flows.

Storage is mostly in-memory; failures are injected to exercise the
optimistic update / rollback protocol.
"""

import pytest

from fairshare.audit import AuditLogger
from fairshare.config import Settings
from fairshare.ledger.categories import LastCategoryError
from fairshare.models.audit import AuditEventType
from fairshare.models.expense import ParticipantNames
from fairshare.models.summary import Granularity, SettlementState
from fairshare.orchestrator import (
    ADD_FAILED_MESSAGE,
    DELETE_FAILED_MESSAGE,
    RENAME_FAILED_MESSAGE,
    UPDATE_FAILED_MESSAGE,
    CategoryFlow,
    ExpenseLedgerFlow,
    create_app_components,
    create_storage,
)
from fairshare.services.storage import (
    InMemoryAuditStorage,
    InMemoryCategoryStorage,
    InMemoryExpenseStorage,
    InMemoryParticipantStorage,
    JsonFileCategoryStorage,
    JsonFileExpenseStorage,
    JsonFileParticipantStorage,
)

from conftest import make_expense


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def expense_storage(sample_expenses):
    return InMemoryExpenseStorage(sample_expenses)


@pytest.fixture
def flow(expense_storage, participants, audit_storage):
    return ExpenseLedgerFlow(
        storage=expense_storage,
        participants=participants,
        audit_logger=AuditLogger(audit_storage),
    )


def _event_types(audit_storage):
    return [event.event_type for event in audit_storage.events]


class TestRefresh:
    @pytest.mark.asyncio
    async def test_loads_snapshot(self, flow, sample_expenses, audit_storage):
        assert await flow.refresh() is True

        assert len(flow.expenses) == len(sample_expenses)
        assert flow.is_loading is False
        assert flow.last_error is None
        assert _event_types(audit_storage) == [AuditEventType.EXPENSES_LOADED]

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self, flow, expense_storage, audit_storage):
        await flow.refresh()
        before = flow.expenses
        expense_storage.fail_next_reads()

        assert await flow.refresh() is False
        assert flow.expenses == before
        assert flow.last_error
        assert flow.is_loading is False
        assert _event_types(audit_storage)[-1] == AuditEventType.STORAGE_ERROR

    @pytest.mark.asyncio
    async def test_undecodable_file_keeps_previous_snapshot(self, tmp_path, participants, sample_expenses):
        storage = JsonFileExpenseStorage(tmp_path)
        await storage.save(sample_expenses)
        flow = ExpenseLedgerFlow(storage, participants)
        await flow.refresh()
        before = flow.expenses

        storage.path.write_bytes(b'[{"name": "\xff\xfe"}]')

        assert await flow.refresh() is False
        assert flow.expenses == before
        assert "UTF-8" in flow.last_error
        assert flow.is_loading is False

    @pytest.mark.asyncio
    async def test_applies_stored_participants(self, expense_storage, participants):
        flow = ExpenseLedgerFlow(
            expense_storage,
            participants,
            participant_storage=InMemoryParticipantStorage(ParticipantNames(a="Sam", b="Blake")),
        )

        assert await flow.refresh() is True
        assert flow.participants.names == ("Sam", "Blake")

    @pytest.mark.asyncio
    async def test_nothing_stored_keeps_configured_names(self, expense_storage, participants):
        flow = ExpenseLedgerFlow(
            expense_storage, participants, participant_storage=InMemoryParticipantStorage()
        )

        assert await flow.refresh() is True
        assert flow.participants == participants

    @pytest.mark.asyncio
    async def test_participant_read_failure_keeps_state(self, expense_storage, participants):
        participant_storage = InMemoryParticipantStorage(ParticipantNames(a="Sam", b="Blake"))
        flow = ExpenseLedgerFlow(expense_storage, participants, participant_storage=participant_storage)
        participant_storage.fail_next_reads()

        assert await flow.refresh() is False
        assert flow.expenses == []
        assert flow.participants == participants
        assert flow.last_error


class TestExpenseMutations:
    """Optimistic updates with rollback on storage failure."""

    @pytest.mark.asyncio
    async def test_add_expense(self, flow, expense_storage, audit_storage):
        await flow.refresh()
        record = await flow.add_expense("Coffee", "4.50", "Dining", "Blake")

        assert record is not None
        assert record.amount == 4.5
        assert flow.expenses[0] == record
        assert record in expense_storage.records
        assert AuditEventType.EXPENSE_ADDED in _event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_add_repaired_record_is_audited(self, flow, audit_storage):
        await flow.add_expense("Mystery", "abc", None, "Alex")
        assert AuditEventType.RECORD_NORMALIZED in _event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_add_failure_rolls_back(self, flow, expense_storage, audit_storage):
        await flow.refresh()
        before = flow.expenses
        expense_storage.fail_next_writes()

        assert await flow.add_expense("Coffee", 4.5, "Dining", "Blake") is None
        assert flow.expenses == before
        assert flow.last_error == ADD_FAILED_MESSAGE
        assert _event_types(audit_storage)[-2:] == [
            AuditEventType.STORAGE_ERROR,
            AuditEventType.MUTATION_ROLLED_BACK,
        ]
        events = audit_storage.events
        assert events[-1].correlation_id == events[-2].correlation_id

    @pytest.mark.asyncio
    async def test_update_expense(self, flow, expense_storage):
        await flow.refresh()
        target = flow.expenses[0]

        updated = await flow.update_expense(target.id, amount="99", id="hijack")

        assert updated.id == target.id
        assert updated.amount == 99
        assert updated.paid_by == target.paid_by
        stored = {r.id: r for r in expense_storage.records}
        assert stored[target.id].amount == 99

    @pytest.mark.asyncio
    async def test_update_unknown(self, flow):
        await flow.refresh()
        assert await flow.update_expense("missing", amount=1) is None
        assert flow.last_error == "Expense not found: missing"

    @pytest.mark.asyncio
    async def test_update_failure_rolls_back(self, flow, expense_storage):
        await flow.refresh()
        before = flow.expenses
        expense_storage.fail_next_writes()

        assert await flow.update_expense(before[0].id, name="Changed") is None
        assert flow.expenses == before
        assert flow.last_error == UPDATE_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_delete_expense(self, flow, expense_storage):
        await flow.refresh()
        target = flow.expenses[0]

        assert await flow.delete_expense(target.id) is True
        assert target not in flow.expenses
        assert target.id not in {r.id for r in expense_storage.records}

    @pytest.mark.asyncio
    async def test_delete_failure_restores_record(self, flow, expense_storage):
        await flow.refresh()
        before = flow.expenses
        expense_storage.fail_next_writes()

        assert await flow.delete_expense(before[0].id) is False
        assert flow.expenses == before
        assert flow.last_error == DELETE_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_clear_expenses(self, flow, expense_storage, audit_storage):
        await flow.refresh()
        assert await flow.clear_expenses() is True

        assert flow.expenses == []
        assert expense_storage.records == []
        assert flow.summary().total == 0
        assert AuditEventType.EXPENSES_CLEARED in _event_types(audit_storage)

    @pytest.mark.asyncio
    async def test_clear_failure_restores(self, flow, expense_storage):
        await flow.refresh()
        before = flow.expenses
        expense_storage.fail_next_writes()

        assert await flow.clear_expenses() is False
        assert flow.expenses == before


class TestRenameParticipant:
    @pytest.mark.asyncio
    async def test_totals_follow_the_person(self, flow, expense_storage):
        await flow.refresh()
        total_before = flow.summary().total_a

        assert await flow.rename_participant(0, "Sam") is True

        assert flow.participants.names == ("Sam", "Blake")
        assert flow.summary().total_a == total_before
        assert all(r.paid_by != "Alex" for r in expense_storage.records)

    @pytest.mark.asyncio
    async def test_blank_name_ignored(self, flow):
        await flow.refresh()
        assert await flow.rename_participant(1, "  ") is True
        assert flow.participants.b == "Blake"

    @pytest.mark.asyncio
    async def test_failure_restores_names_and_records(self, flow, expense_storage):
        await flow.refresh()
        before = flow.expenses
        expense_storage.fail_next_writes()

        assert await flow.rename_participant(1, "Jordan") is False
        assert flow.participants.names == ("Alex", "Blake")
        assert flow.expenses == before
        assert flow.last_error == RENAME_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_rename_survives_restart(self, tmp_path, participants, sample_expenses):
        await JsonFileExpenseStorage(tmp_path).save(sample_expenses)
        flow = ExpenseLedgerFlow(
            JsonFileExpenseStorage(tmp_path),
            participants,
            participant_storage=JsonFileParticipantStorage(tmp_path),
        )
        await flow.refresh()
        before = flow.summary()

        assert await flow.rename_participant(0, "Sam") is True

        # A fresh flow that only knows the default names
        restarted = ExpenseLedgerFlow(
            JsonFileExpenseStorage(tmp_path),
            participant_storage=JsonFileParticipantStorage(tmp_path),
        )
        assert await restarted.refresh() is True

        after = restarted.summary()
        assert restarted.participants.names == ("Sam", "Blake")
        assert after.total_a == before.total_a == 1020
        assert after.total_b == before.total_b
        assert after.settlement.creditor == "Sam"

    @pytest.mark.asyncio
    async def test_names_saved_even_without_matching_records(self, participants):
        participant_storage = InMemoryParticipantStorage()
        flow = ExpenseLedgerFlow(
            InMemoryExpenseStorage(), participants, participant_storage=participant_storage
        )

        assert await flow.rename_participant(1, "Jordan") is True
        assert await participant_storage.load() == ParticipantNames(a="Alex", b="Jordan")

    @pytest.mark.asyncio
    async def test_participant_write_failure_rolls_back(self, expense_storage, participants):
        participant_storage = InMemoryParticipantStorage()
        flow = ExpenseLedgerFlow(expense_storage, participants, participant_storage=participant_storage)
        await flow.refresh()
        before = flow.expenses
        participant_storage.fail_next_writes()

        assert await flow.rename_participant(0, "Sam") is False
        assert flow.participants.names == ("Alex", "Blake")
        assert flow.expenses == before
        assert any(r.paid_by == "Alex" for r in expense_storage.records)
        assert await participant_storage.load() is None

    @pytest.mark.asyncio
    async def test_record_write_failure_restores_stored_names(self, expense_storage, participants):
        participant_storage = InMemoryParticipantStorage(participants)
        flow = ExpenseLedgerFlow(expense_storage, participants, participant_storage=participant_storage)
        await flow.refresh()
        expense_storage.fail_next_writes()

        assert await flow.rename_participant(0, "Sam") is False
        assert flow.participants.names == ("Alex", "Blake")
        assert await participant_storage.load() == participants


class TestReads:
    """Reads run the aggregator over the current snapshot."""

    @pytest.mark.asyncio
    async def test_summary_tracks_mutations(self, participants):
        flow = ExpenseLedgerFlow(InMemoryExpenseStorage(), participants)
        assert flow.settlement_state() is SettlementState.SETTLED

        await flow.add_expense("Dinner", 100, "Dining", "Alex")
        summary = flow.summary()

        assert summary.settlement.debtor == "Blake"
        assert summary.settlement.amount == pytest.approx(50)
        assert flow.settlement_state() is SettlementState.UNSETTLED

    @pytest.mark.asyncio
    async def test_sub_cent_difference_is_settled(self, participants):
        flow = ExpenseLedgerFlow(InMemoryExpenseStorage(), participants)
        await flow.add_expense("A", 10.01, "Dining", "Alex")
        await flow.add_expense("B", 10.00, "Dining", "Blake")

        assert flow.summary().settlement.amount > 0
        assert flow.settlement_state() is SettlementState.SETTLED

    @pytest.mark.asyncio
    async def test_history_and_breakdown(self, flow):
        await flow.refresh()

        assert flow.history().keys() == ["2024-03", "2024-02", "2023-12"]
        assert flow.history(Granularity.YEAR).keys() == ["2024", "2023"]
        assert flow.category_breakdown()[0].category == "Groceries"

    @pytest.mark.asyncio
    async def test_monthly_report(self, flow):
        await flow.refresh()
        report = flow.monthly_report("2024-03")

        assert len(report.records) == 2
        assert report.headline == "Blake owes Alex $37.25"


class TestCategoryFlow:
    @pytest.mark.asyncio
    async def test_load_defaults(self):
        flow = CategoryFlow(InMemoryCategoryStorage())
        assert await flow.load() is True
        assert len(flow.categories) == 6

    @pytest.mark.asyncio
    async def test_add_and_color_lookup(self, audit_storage):
        storage = InMemoryCategoryStorage()
        flow = CategoryFlow(storage, AuditLogger(audit_storage))
        await flow.load()

        item = await flow.add_category("Pets", "#123456")

        assert flow.color_for("Pets") == "#123456"
        assert item in await storage.load()
        assert _event_types(audit_storage) == [AuditEventType.CATEGORY_ADDED]

    @pytest.mark.asyncio
    async def test_add_failure_rolls_back(self):
        storage = InMemoryCategoryStorage()
        flow = CategoryFlow(storage)
        await flow.load()
        storage.fail_next_writes()

        assert await flow.add_category("Pets") is None
        assert len(flow.categories) == 6
        assert flow.last_error == "Failed to add category. Restoring data."

    @pytest.mark.asyncio
    async def test_delete_and_orphan_fallback(self):
        flow = CategoryFlow(InMemoryCategoryStorage(), fallback_color="#000000")
        await flow.load()

        assert await flow.delete_category("3") is True
        assert flow.color_for("Dining") == "#000000"

    @pytest.mark.asyncio
    async def test_cannot_delete_last(self):
        flow = CategoryFlow(InMemoryCategoryStorage())
        await flow.load()
        for category in flow.categories[:-1]:
            await flow.delete_category(category.id)

        with pytest.raises(LastCategoryError):
            await flow.delete_category(flow.categories[0].id)

    @pytest.mark.asyncio
    async def test_update_failure_rolls_back(self):
        storage = InMemoryCategoryStorage()
        flow = CategoryFlow(storage)
        await flow.load()
        storage.fail_next_writes()

        assert await flow.update_category("3", "Eating Out", "#000000") is None
        assert flow.categories[2].name == "Dining"


class TestFactories:
    def test_memory_backend(self, monkeypatch):
        monkeypatch.setenv("FAIRSHARE_STORAGE_BACKEND", "memory")
        expenses, categories, participants = create_storage(Settings())

        assert isinstance(expenses, InMemoryExpenseStorage)
        assert isinstance(categories, InMemoryCategoryStorage)
        assert isinstance(participants, InMemoryParticipantStorage)

    def test_json_backend(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FAIRSHARE_STORAGE_BACKEND", "json")
        monkeypatch.setenv("FAIRSHARE_STORAGE_DATA_DIR", str(tmp_path))
        expenses, categories, participants = create_storage(Settings())

        assert isinstance(expenses, JsonFileExpenseStorage)
        assert isinstance(categories, JsonFileCategoryStorage)
        assert isinstance(participants, JsonFileParticipantStorage)
        assert expenses.path.parent == tmp_path
        assert participants.path.name == "fairshare_usernames_v1.json"

    @pytest.mark.asyncio
    async def test_create_app_components(self, monkeypatch):
        monkeypatch.setenv("FAIRSHARE_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("FAIRSHARE_PARTICIPANT_A", "Alex")
        monkeypatch.setenv("FAIRSHARE_PARTICIPANT_B", "Blake")

        expense_flow, category_flow = create_app_components(Settings())
        await expense_flow.add_expense("Rent", 100, "Rent/Bills", "Blake")

        assert expense_flow.participants.names == ("Alex", "Blake")
        assert expense_flow.summary().settlement.debtor == "Alex"
        assert await category_flow.load() is True
