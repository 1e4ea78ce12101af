"""
Bank Book Database Models

One row per bank-statement line, imported from a statement file or
recorded as a manual adjustment.

Tables:
- bank_book_entries: Statement lines with reconciliation status

State machine: Unreconciled -> Reconciled (one way, via reconcile).
journal_entry_id is unique: a journal entry backs at most one statement line.
"""

from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, Text, Boolean, Date, DateTime, ForeignKey, Index, Numeric,
    Enum as SQLEnum,
)

from database.connection import Base
from database.journal_models import generate_uuid, utc_now


class BankBookEntryType(str, PyEnum):
    """How the entry entered the bank book"""
    IMPORT = "Import"  # Statement file import
    MANUAL = "Manual"  # Manual adjustment


class BankBookEntryDB(Base):
    """Bank statement line tracked for reconciliation."""
    __tablename__ = "bank_book_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), nullable=False, index=True)

    # Statement line
    statement_ref = Column(Text, nullable=False)
    statement_date = Column(Date, nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=True)
    description = Column(Text, nullable=True)

    entry_type = Column(
        SQLEnum(BankBookEntryType, name="bank_book_entry_type_enum",
                values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=BankBookEntryType.IMPORT,
    )
    import_batch_id = Column(String(36), nullable=True, index=True)

    # Reconciliation
    reconciled = Column(Boolean, nullable=False, default=False, index=True)
    journal_entry_id = Column(
        String(36),
        ForeignKey("journal_entries.id"),
        nullable=True,
        unique=True,
    )
    reconciled_at = Column(DateTime(timezone=True), nullable=True)
    reconciled_by = Column(String(36), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("ix_bank_book_entries_tenant_date", "tenant_id", "statement_date"),
        Index("ix_bank_book_entries_tenant_reconciled", "tenant_id", "reconciled"),
    )
