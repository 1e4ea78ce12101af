"""
Journal Entry Service Layer

Minimal journal store the bank book reconciles against:
- Create balanced journal entries
- Tenant-scoped lookup and listing
- Same-day lookup for the statement matcher
"""

from datetime import date as DateType
from decimal import Decimal
from typing import List, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.journal_models import (
    JournalEntryDB, JournalEntryLineDB, JournalEntryStatus, JournalSourceType
)
from utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

BALANCE_TOLERANCE = Decimal("0.001")


# ==================== PYDANTIC MODELS ====================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JournalLineCreate(CamelModel):
    account: str = Field(..., min_length=1)
    debit: Decimal = Field(default=Decimal("0"), ge=0)
    credit: Decimal = Field(default=Decimal("0"), ge=0)
    description: Optional[str] = None


class JournalEntryCreate(CamelModel):
    """Request to create a journal entry"""
    entry_date: DateType = Field(..., alias="date")
    lines: List[JournalLineCreate]
    narration: Optional[str] = None
    reference_number: Optional[str] = None
    status: JournalEntryStatus = JournalEntryStatus.DRAFT
    source_type: JournalSourceType = JournalSourceType.MANUAL


class JournalLine(CamelModel):
    account: str
    debit: float
    credit: float
    description: Optional[str] = None


class JournalEntry(CamelModel):
    """Journal entry response model"""
    id: str
    tenant_id: str
    entry_date: str = Field(..., alias="date")
    narration: Optional[str] = None
    reference_number: Optional[str] = None
    status: str
    source_type: str
    total_amount: float
    lines: List[JournalLine]
    created_by: str
    created_at: Optional[str] = None


def db_to_journal_entry(db_obj: JournalEntryDB) -> JournalEntry:
    """Convert database model to Pydantic model"""
    return JournalEntry(
        id=db_obj.id,
        tenant_id=db_obj.tenant_id,
        entry_date=db_obj.date.isoformat(),
        narration=db_obj.narration,
        reference_number=db_obj.reference_number,
        status=db_obj.status.value,
        source_type=db_obj.source_type.value,
        total_amount=float(db_obj.total_amount),
        lines=[
            JournalLine(
                account=line.account,
                debit=float(line.debit or 0),
                credit=float(line.credit or 0),
                description=line.description,
            )
            for line in db_obj.lines
        ],
        created_by=db_obj.created_by,
        created_at=db_obj.created_at.isoformat() if db_obj.created_at else None,
    )


def validate_lines(lines: List[JournalLineCreate]) -> None:
    """
    Double-entry rules:
    - at least two lines
    - a line carries a debit or a credit, not both
    - total debits equal total credits
    """
    if len(lines) < 2:
        raise ValidationError("Journal entry must have at least 2 lines")

    for index, line in enumerate(lines):
        if line.debit > 0 and line.credit > 0:
            raise ValidationError(
                "A journal entry line cannot have both debit and credit values",
                details={"line": index},
            )

    total_debit = sum((line.debit for line in lines), Decimal("0"))
    total_credit = sum((line.credit for line in lines), Decimal("0"))
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        raise ValidationError(
            "Journal entry debits must equal credits",
            details={"total_debit": str(total_debit), "total_credit": str(total_credit)},
        )

    if total_debit == 0:
        raise ValidationError("Journal entry must have a non-zero amount")


# ==================== REPOSITORY CLASS ====================

class JournalEntryRepository:
    """Repository for journal entry database operations. Every call is tenant-scoped."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, tenant_id: str, user_id: str, data: JournalEntryCreate) -> JournalEntryDB:
        validate_lines(data.lines)

        db_entry = JournalEntryDB(
            tenant_id=tenant_id,
            date=data.entry_date,
            narration=data.narration,
            reference_number=data.reference_number,
            status=data.status,
            source_type=data.source_type,
            created_by=user_id,
        )
        db_entry.lines = [
            JournalEntryLineDB(
                position=index,
                account=line.account,
                debit=line.debit,
                credit=line.credit,
                description=line.description,
            )
            for index, line in enumerate(data.lines)
        ]

        self.session.add(db_entry)
        await self.session.commit()
        await self.session.refresh(db_entry, ["lines"])

        logger.info(
            f"Journal entry created: {db_entry.id}",
            extra={"tenant": tenant_id, "journal_entry_id": db_entry.id}
        )
        return db_entry

    async def get(self, tenant_id: str, journal_entry_id: str) -> JournalEntryDB:
        result = await self.session.execute(
            select(JournalEntryDB).where(
                JournalEntryDB.id == journal_entry_id,
                JournalEntryDB.tenant_id == tenant_id,
            )
        )
        db_entry = result.scalar_one_or_none()
        if not db_entry:
            raise NotFoundError("Journal entry not found")
        return db_entry

    async def list_entries(
        self,
        tenant_id: str,
        on_date: Optional[DateType] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[JournalEntryDB]:
        query = select(JournalEntryDB).where(JournalEntryDB.tenant_id == tenant_id)
        if on_date:
            query = query.where(JournalEntryDB.date == on_date)
        query = query.order_by(JournalEntryDB.date, JournalEntryDB.created_at).limit(limit).offset(offset)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_by_date(self, tenant_id: str, on_date: DateType) -> List[JournalEntryDB]:
        """All of a tenant's journal entries posted on a date."""
        result = await self.session.execute(
            select(JournalEntryDB)
            .where(JournalEntryDB.tenant_id == tenant_id, JournalEntryDB.date == on_date)
            .order_by(JournalEntryDB.created_at)
        )
        return list(result.scalars().all())
