"""
Unit Tests for the Bank Book Service

Runs against an in-memory SQLite database.

Tests:
- Statement import (all rows or none)
- Reconciliation, including tenant isolation and the one-to-one journal link
- Manual adjustments
- Listing, stats and match candidates

Run with: pytest tests/test_bank_book_service.py -v
"""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from bank_book.services.bank_book_service import (
    BankBookService,
    ManualAdjustmentCreate,
    ENTRY_NOT_FOUND,
)
from database.bank_book_models import BankBookEntryType
from utils.errors import BadRequestError, ConflictError, NotFoundError, ValidationError

from conftest import TENANT_A, TENANT_B, make_journal_entry


TWO_ROWS = (
    b"statementRef,statementDate,amount,description\n"
    b"S1,2024-01-15,100.00,Deposit\n"
    b"S2,2024-01-16,-20.00,Fee\n"
)


@pytest.fixture
def service(db_session):
    return BankBookService(db_session)


async def _import_two(service, tenant_id=TENANT_A):
    result = await service.import_statement(tenant_id, "statement.csv", TWO_ROWS, user_id="user-1")
    by_ref = {e.statement_ref: e for e in result.entries}
    return by_ref["S1"], by_ref["S2"]


class TestImportStatement:
    """Statement import."""

    @pytest.mark.asyncio
    async def test_import_creates_unreconciled_entries(self, service):
        result = await service.import_statement(TENANT_A, "statement.csv", TWO_ROWS, user_id="user-1")

        assert result.count == 2
        assert all(e.reconciled is False for e in result.entries)
        assert all(e.entry_type == BankBookEntryType.IMPORT for e in result.entries)
        assert {e.import_batch_id for e in result.entries} == {result.import_batch_id}
        assert all(e.tenant_id == TENANT_A for e in result.entries)

        listed = await service.list_entries(TENANT_A)
        assert [e.statement_ref for e in listed] == ["S1", "S2"]
        assert listed[0].amount == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_invalid_row_rejects_whole_batch(self, service):
        content = (
            b"ref,date,amount\n"
            b"S1,2024-01-15,10.00\n"
            b"S2,bad-date,11.00\n"
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.import_statement(TENANT_A, "statement.csv", content)

        assert exc_info.value.details["rows"][0]["line"] == 3
        assert await service.list_entries(TENANT_A) == []

    @pytest.mark.asyncio
    async def test_missing_file(self, service):
        with pytest.raises(BadRequestError):
            await service.import_statement(TENANT_A, None, None)

    @pytest.mark.asyncio
    async def test_each_import_gets_its_own_batch(self, service):
        first = await service.import_statement(TENANT_A, "a.csv", TWO_ROWS)
        second = await service.import_statement(TENANT_A, "b.csv", TWO_ROWS)

        assert first.import_batch_id != second.import_batch_id
        assert len(await service.list_entries(TENANT_A)) == 4


class TestReconcile:
    """Manual reconciliation."""

    @pytest.mark.asyncio
    async def test_reconcile_links_journal_entry(self, service, db_session):
        s1, s2 = await _import_two(service)
        journal = await make_journal_entry(db_session, TENANT_A, date(2024, 1, 15), "100.00")

        entry = await service.reconcile(TENANT_A, s1.id, journal_entry_id=journal.id, user_id="user-2")

        assert entry.reconciled is True
        assert entry.journal_entry_id == journal.id
        assert entry.reconciled_by == "user-2"
        assert entry.reconciled_at is not None

        untouched = await service.get_entry(TENANT_A, s2.id)
        assert untouched.reconciled is False
        assert untouched.journal_entry_id is None

    @pytest.mark.asyncio
    async def test_reconcile_without_journal_entry(self, service):
        s1, _ = await _import_two(service)

        entry = await service.reconcile(TENANT_A, s1.id)

        assert entry.reconciled is True
        assert entry.journal_entry_id is None

    @pytest.mark.asyncio
    async def test_missing_entry_id(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.reconcile(TENANT_A, None)
        assert exc_info.value.details == {"parameter": "bankBookEntryId"}

    @pytest.mark.asyncio
    async def test_unknown_entry_leaves_entries_unchanged(self, service):
        await _import_two(service)

        with pytest.raises(NotFoundError) as exc_info:
            await service.reconcile(TENANT_A, "does-not-exist")

        assert exc_info.value.message == ENTRY_NOT_FOUND
        assert all(not e.reconciled for e in await service.list_entries(TENANT_A))

    @pytest.mark.asyncio
    async def test_other_tenants_entry_is_not_found(self, service):
        s1, _ = await _import_two(service, tenant_id=TENANT_B)

        with pytest.raises(NotFoundError) as exc_info:
            await service.reconcile(TENANT_A, s1.id)

        assert exc_info.value.message == ENTRY_NOT_FOUND
        entry = await service.get_entry(TENANT_B, s1.id)
        assert entry.reconciled is False

    @pytest.mark.asyncio
    async def test_other_tenants_journal_entry_is_not_found(self, service, db_session):
        s1, _ = await _import_two(service)
        journal = await make_journal_entry(db_session, TENANT_B, date(2024, 1, 15), "100.00")

        with pytest.raises(NotFoundError):
            await service.reconcile(TENANT_A, s1.id, journal_entry_id=journal.id)

    @pytest.mark.asyncio
    async def test_journal_entry_linked_elsewhere_conflicts(self, service, db_session):
        s1, s2 = await _import_two(service)
        journal = await make_journal_entry(db_session, TENANT_A, date(2024, 1, 15), "100.00")
        await service.reconcile(TENANT_A, s1.id, journal_entry_id=journal.id)

        with pytest.raises(ConflictError):
            await service.reconcile(TENANT_A, s2.id, journal_entry_id=journal.id)

        entry = await service.get_entry(TENANT_A, s2.id)
        assert entry.reconciled is False

    @pytest.mark.asyncio
    async def test_reconcile_again_replaces_link(self, service, db_session):
        s1, _ = await _import_two(service)
        first = await make_journal_entry(db_session, TENANT_A, date(2024, 1, 15), "100.00")
        second = await make_journal_entry(db_session, TENANT_A, date(2024, 1, 15), "100.00")

        await service.reconcile(TENANT_A, s1.id, journal_entry_id=first.id)
        entry = await service.reconcile(TENANT_A, s1.id, journal_entry_id=second.id)

        assert entry.journal_entry_id == second.id

        # the first journal entry is free again
        candidates = await service.find_candidates(TENANT_A, s1.id)
        assert {j.id for j in candidates} == {first.id, second.id}


class TestManualAdjustment:

    @pytest.mark.asyncio
    async def test_records_manual_entry(self, service):
        data = ManualAdjustmentCreate(
            statement_ref="ADJ-1",
            statement_date=date(2024, 2, 1),
            amount=Decimal("12.50"),
            description="Bank interest",
        )

        entry = await service.record_manual_adjustment(TENANT_A, data, user_id="user-1")

        assert entry.entry_type == BankBookEntryType.MANUAL
        assert entry.reconciled is False
        assert entry.tenant_id == TENANT_A
        assert entry.import_batch_id is None

    def test_rejects_unknown_fields(self):
        with pytest.raises(PydanticValidationError):
            ManualAdjustmentCreate.model_validate({
                "statementRef": "ADJ-1",
                "statementDate": "2024-02-01",
                "tenantId": "someone-else",
            })

    def test_rejects_blank_reference(self):
        with pytest.raises(PydanticValidationError):
            ManualAdjustmentCreate(statement_ref="   ", statement_date=date(2024, 2, 1))


class TestListingAndStats:

    @pytest.mark.asyncio
    async def test_list_is_tenant_scoped(self, service):
        await _import_two(service, tenant_id=TENANT_A)
        await _import_two(service, tenant_id=TENANT_B)

        entries = await service.list_entries(TENANT_A)

        assert len(entries) == 2
        assert {e.tenant_id for e in entries} == {TENANT_A}

    @pytest.mark.asyncio
    async def test_list_filters(self, service):
        s1, s2 = await _import_two(service)
        await service.reconcile(TENANT_A, s1.id)

        reconciled = await service.list_entries(TENANT_A, reconciled=True)
        assert [e.id for e in reconciled] == [s1.id]

        from_16th = await service.list_entries(TENANT_A, date_from=date(2024, 1, 16))
        assert [e.id for e in from_16th] == [s2.id]

        page = await service.list_entries(TENANT_A, limit=1, offset=1)
        assert [e.id for e in page] == [s2.id]

    @pytest.mark.asyncio
    async def test_list_rejects_inverted_date_range(self, service):
        with pytest.raises(ValidationError):
            await service.list_entries(TENANT_A, date_from=date(2024, 2, 1), date_to=date(2024, 1, 1))

    @pytest.mark.asyncio
    async def test_stats(self, service):
        assert await service.get_stats(TENANT_A) == {
            "total": 0, "reconciled": 0, "unreconciled": 0, "reconciliation_rate": 0.0,
        }

        s1, _ = await _import_two(service)
        await service.reconcile(TENANT_A, s1.id)

        assert await service.get_stats(TENANT_A) == {
            "total": 2, "reconciled": 1, "unreconciled": 1, "reconciliation_rate": 50.0,
        }


class TestCandidates:

    @pytest.mark.asyncio
    async def test_candidates_match_date_and_amount(self, service, db_session):
        s1, s2 = await _import_two(service)
        match = await make_journal_entry(db_session, TENANT_A, date(2024, 1, 15), "100.00")
        await make_journal_entry(db_session, TENANT_A, date(2024, 1, 15), "99.00")
        await make_journal_entry(db_session, TENANT_A, date(2024, 1, 14), "100.00")
        await make_journal_entry(db_session, TENANT_B, date(2024, 1, 15), "100.00")
        fee = await make_journal_entry(db_session, TENANT_A, date(2024, 1, 16), "20.00")

        assert [j.id for j in await service.find_candidates(TENANT_A, s1.id)] == [match.id]
        assert [j.id for j in await service.find_candidates(TENANT_A, s2.id)] == [fee.id]

    @pytest.mark.asyncio
    async def test_candidates_skip_journal_linked_elsewhere(self, service, db_session):
        content = (
            b"ref,date,amount\n"
            b"S1,2024-01-15,100.00\n"
            b"S1-dup,2024-01-15,100.00\n"
        )
        result = await service.import_statement(TENANT_A, "statement.csv", content)
        first, second = sorted(result.entries, key=lambda e: e.statement_ref)
        journal = await make_journal_entry(db_session, TENANT_A, date(2024, 1, 15), "100.00")

        await service.reconcile(TENANT_A, first.id, journal_entry_id=journal.id)

        assert await service.find_candidates(TENANT_A, second.id) == []
        assert [j.id for j in await service.find_candidates(TENANT_A, first.id)] == [journal.id]

    @pytest.mark.asyncio
    async def test_candidates_for_unknown_entry(self, service):
        with pytest.raises(NotFoundError):
            await service.find_candidates(TENANT_A, "missing")
