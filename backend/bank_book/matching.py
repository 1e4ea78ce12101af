"""
Statement Line Matching

Exact-match rule used to show which journal entries a statement line could
be reconciled against: same date and same amount. This only narrows the
list the user picks from. Reconciliation itself is always a manual
confirmation of one specific journal entry.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Set

TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class MatchKey:
    """Date + amount pair compared by the matcher."""
    date: date
    amount: Decimal

    @classmethod
    def build(cls, on: Optional[date], amount: Optional[Decimal]) -> Optional["MatchKey"]:
        if on is None or amount is None:
            return None
        return cls(date=on, amount=abs(Decimal(amount)).quantize(TWO_PLACES))


def statement_key(entry) -> Optional[MatchKey]:
    """Match key for a bank book entry; None when it has no amount."""
    return MatchKey.build(entry.statement_date, entry.amount)


def journal_key(journal_entry) -> Optional[MatchKey]:
    return MatchKey.build(journal_entry.date, journal_entry.total_amount)


def is_match(entry, journal_entry) -> bool:
    """
    True when the journal entry has the statement line's date and amount.

    Statement amounts are signed (debits negative); journal totals are the
    debit side, so the comparison is on absolute value.
    """
    key = statement_key(entry)
    return key is not None and key == journal_key(journal_entry)


def select_candidates(
    entry,
    journal_entries: Iterable,
    linked_journal_ids: Optional[Set[str]] = None,
) -> List:
    """
    Journal entries that match the statement line, in the order given.

    Journal entries already linked to a different statement line are left
    out, since each journal entry can back at most one line.
    """
    linked = linked_journal_ids or set()
    return [
        je for je in journal_entries
        if is_match(entry, je)
        and (je.id not in linked or je.id == entry.journal_entry_id)
    ]
