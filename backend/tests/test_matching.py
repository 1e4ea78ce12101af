"""
Unit Tests for statement line matching.

Run with: pytest tests/test_matching.py -v
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from bank_book.matching import MatchKey, is_match, select_candidates


def _entry(on=date(2024, 1, 15), amount="100.00", journal_entry_id=None):
    return SimpleNamespace(
        statement_date=on,
        amount=Decimal(amount) if amount is not None else None,
        journal_entry_id=journal_entry_id,
    )


def _journal(id, on=date(2024, 1, 15), total="100.00"):
    return SimpleNamespace(id=id, date=on, total_amount=Decimal(total))


class TestIsMatch:

    def test_same_date_and_amount(self):
        assert is_match(_entry(), _journal("J1"))

    def test_withdrawal_matches_journal_total(self):
        assert is_match(_entry(amount="-45.50"), _journal("J1", total="45.50"))

    def test_compared_at_two_places(self):
        assert is_match(_entry(amount="100"), _journal("J1", total="100.000"))

    def test_different_date(self):
        assert not is_match(_entry(), _journal("J1", on=date(2024, 1, 16)))

    def test_different_amount(self):
        assert not is_match(_entry(), _journal("J1", total="100.01"))

    def test_entry_without_amount_never_matches(self):
        assert not is_match(_entry(amount=None), _journal("J1", total="0"))

    def test_match_key_requires_both_parts(self):
        assert MatchKey.build(None, Decimal("1")) is None
        assert MatchKey.build(date(2024, 1, 1), None) is None


class TestSelectCandidates:

    def test_filters_and_keeps_order(self):
        journals = [
            _journal("J1"),
            _journal("J2", total="99.00"),
            _journal("J3"),
        ]
        assert [j.id for j in select_candidates(_entry(), journals)] == ["J1", "J3"]

    def test_excludes_journals_linked_elsewhere(self):
        journals = [_journal("J1"), _journal("J2")]
        result = select_candidates(_entry(), journals, linked_journal_ids={"J1"})
        assert [j.id for j in result] == ["J2"]

    def test_keeps_journal_linked_to_this_entry(self):
        journals = [_journal("J1"), _journal("J2")]
        entry = _entry(journal_entry_id="J1")
        result = select_candidates(entry, journals, linked_journal_ids={"J1"})
        assert [j.id for j in result] == ["J1", "J2"]
