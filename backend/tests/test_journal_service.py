"""
Unit Tests for journal entry validation and the journal repository.

Run with: pytest tests/test_journal_service.py -v
"""

import pytest
from datetime import date
from decimal import Decimal

from services.journal_service import (
    JournalEntryCreate,
    JournalEntryRepository,
    JournalLineCreate,
    db_to_journal_entry,
    validate_lines,
)
from utils.errors import NotFoundError, ValidationError

from conftest import TENANT_A, TENANT_B, make_journal_entry


def _line(account, debit="0", credit="0"):
    return JournalLineCreate(account=account, debit=Decimal(debit), credit=Decimal(credit))


class TestValidateLines:

    def test_balanced_entry(self):
        validate_lines([_line("1000", debit="50"), _line("4000", credit="50")])

    def test_needs_two_lines(self):
        with pytest.raises(ValidationError):
            validate_lines([_line("1000", debit="50")])

    def test_line_with_debit_and_credit(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_lines([_line("1000", debit="50", credit="50"), _line("4000", credit="0")])
        assert exc_info.value.details == {"line": 0}

    def test_unbalanced(self):
        with pytest.raises(ValidationError):
            validate_lines([_line("1000", debit="50"), _line("4000", credit="49.99")])

    def test_zero_amount(self):
        with pytest.raises(ValidationError):
            validate_lines([_line("1000"), _line("4000")])


class TestRepository:

    @pytest.mark.asyncio
    async def test_create_keeps_line_order(self, db_session):
        repo = JournalEntryRepository(db_session)
        entry = await repo.create(
            TENANT_A,
            "user-1",
            JournalEntryCreate(
                entry_date=date(2024, 3, 1),
                lines=[
                    _line("6000 Fees", debit="10"),
                    _line("6100 Interest", debit="5"),
                    _line("1000 Bank", credit="15"),
                ],
            ),
        )

        model = db_to_journal_entry(entry)
        assert [line.account for line in model.lines] == ["6000 Fees", "6100 Interest", "1000 Bank"]
        assert model.total_amount == 15.0
        assert model.status == "Draft"

    @pytest.mark.asyncio
    async def test_get_is_tenant_scoped(self, db_session):
        entry = await make_journal_entry(db_session, TENANT_A, date(2024, 3, 1), "20.00")
        repo = JournalEntryRepository(db_session)

        assert (await repo.get(TENANT_A, entry.id)).id == entry.id
        with pytest.raises(NotFoundError):
            await repo.get(TENANT_B, entry.id)

    @pytest.mark.asyncio
    async def test_find_by_date(self, db_session):
        await make_journal_entry(db_session, TENANT_A, date(2024, 3, 1), "20.00")
        other_day = await make_journal_entry(db_session, TENANT_A, date(2024, 3, 2), "20.00")
        await make_journal_entry(db_session, TENANT_B, date(2024, 3, 2), "20.00")

        found = await JournalEntryRepository(db_session).find_by_date(TENANT_A, date(2024, 3, 2))

        assert [e.id for e in found] == [other_day.id]
