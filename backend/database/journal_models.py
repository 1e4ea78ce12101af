"""
Journal Entry Database Models

Double-entry postings referenced by the bank book. A journal entry owns two
or more lines; debits must equal credits.

Tables:
- journal_entries: Journal entry header (tenant-scoped)
- journal_entry_lines: Debit/credit lines
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, String, Text, Integer, Date, DateTime, ForeignKey, Index, Numeric,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from database.connection import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JournalEntryStatus(str, PyEnum):
    DRAFT = "Draft"
    PENDING_APPROVAL = "Pending Approval"
    APPROVED = "Approved"
    POSTED = "Posted"
    REJECTED = "Rejected"


class JournalSourceType(str, PyEnum):
    MANUAL = "Manual"
    IMPORT = "Import"
    TEMPLATE = "Template"
    SYSTEM = "System"


class JournalEntryDB(Base):
    """Journal entry header."""
    __tablename__ = "journal_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tenant_id = Column(String(36), nullable=False, index=True)

    date = Column(Date, nullable=False)
    narration = Column(Text, nullable=True)
    reference_number = Column(String(100), nullable=True)

    status = Column(
        SQLEnum(JournalEntryStatus, name="journal_entry_status_enum",
                values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=JournalEntryStatus.DRAFT,
    )
    source_type = Column(
        SQLEnum(JournalSourceType, name="journal_source_type_enum",
                values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=JournalSourceType.MANUAL,
    )

    created_by = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    lines = relationship(
        "JournalEntryLineDB",
        back_populates="journal_entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalEntryLineDB.position",
    )

    __table_args__ = (
        Index("ix_journal_entries_tenant_date", "tenant_id", "date"),
        Index("ix_journal_entries_tenant_status", "tenant_id", "status"),
    )

    @property
    def total_amount(self) -> Decimal:
        """Total debit; equals total credit for a balanced entry."""
        return sum((line.debit or Decimal("0") for line in self.lines), Decimal("0"))


class JournalEntryLineDB(Base):
    """One debit or credit line of a journal entry."""
    __tablename__ = "journal_entry_lines"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    journal_entry_id = Column(
        String(36),
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)

    account = Column(String(100), nullable=False)
    debit = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    credit = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    description = Column(Text, nullable=True)

    journal_entry = relationship("JournalEntryDB", back_populates="lines")
