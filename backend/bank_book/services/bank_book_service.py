"""
Bank Book Service

Core business logic for the bank book:
- Listing a tenant's statement lines and reconciliation stats
- Importing statement files (all rows or none)
- Reconciling a statement line against a journal entry (manual confirmation)
- Recording manual adjustments
- Showing journal entries that match a line on date and amount

Every method takes the caller's tenant id explicitly. An entry that exists
under another tenant is reported exactly like an entry that does not exist.

Known gap: two concurrent reconcile calls on the same entry are not
serialised; the last write wins. The unique index on journal_entry_id is
the only cross-request guard.
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import date as DateType, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database.bank_book_models import BankBookEntryDB, BankBookEntryType
from database.journal_models import JournalEntryDB
from bank_book.matching import select_candidates
from bank_book.statement_importer import BankStatementImporter
from services.journal_service import JournalEntryRepository
from utils.errors import (
    ConflictError, NotFoundError, ValidationError, BankBookError, missing_parameter
)

logger = logging.getLogger(__name__)

ENTRY_NOT_FOUND = "Bank book entry not found"
JOURNAL_ALREADY_LINKED = "Journal entry is already linked to another bank book entry"


# ==================== REQUEST / RESPONSE MODELS ====================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReconcileRequest(CamelModel):
    """Body of POST /bank-book/{id}/reconcile."""
    bank_book_entry_id: Optional[str] = None
    journal_entry_id: Optional[str] = None


class ManualAdjustmentCreate(CamelModel):
    """Validated input for a manual bank book adjustment. Tenant comes from auth."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    statement_ref: str = Field(..., min_length=1, max_length=255)
    statement_date: DateType
    amount: Optional[Decimal] = Field(default=None, max_digits=14, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("statement_ref")
    @classmethod
    def _strip_ref(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("statementRef must not be blank")
        return value


class BankBookEntry(CamelModel):
    """Bank book entry response model"""
    id: str
    tenant_id: str
    statement_ref: str
    statement_date: str
    amount: Optional[float] = None
    description: Optional[str] = None
    entry_type: str = Field(..., alias="type")
    import_batch_id: Optional[str] = None
    reconciled: bool
    journal_entry_id: Optional[str] = None
    reconciled_at: Optional[str] = None
    reconciled_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class ImportResult:
    """Result of a statement import."""
    import_batch_id: str
    entries: List[BankBookEntryDB]

    @property
    def count(self) -> int:
        return len(self.entries)


def _format_datetime(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def db_to_entry(db_obj: BankBookEntryDB) -> BankBookEntry:
    """Convert database model to Pydantic model"""
    return BankBookEntry(
        id=db_obj.id,
        tenant_id=db_obj.tenant_id,
        statement_ref=db_obj.statement_ref,
        statement_date=db_obj.statement_date.isoformat(),
        amount=float(db_obj.amount) if db_obj.amount is not None else None,
        description=db_obj.description,
        entry_type=db_obj.entry_type.value if db_obj.entry_type else BankBookEntryType.IMPORT.value,
        import_batch_id=db_obj.import_batch_id,
        reconciled=bool(db_obj.reconciled),
        journal_entry_id=db_obj.journal_entry_id,
        reconciled_at=_format_datetime(db_obj.reconciled_at),
        reconciled_by=db_obj.reconciled_by,
        created_at=_format_datetime(db_obj.created_at),
        updated_at=_format_datetime(db_obj.updated_at),
    )


# ==================== AUDIT EVENTS ====================

class BankBookAuditEvent:
    """Audit event types for bank book operations."""
    STATEMENT_IMPORTED = "bank_book.statement_imported"
    IMPORT_REJECTED = "bank_book.import_rejected"
    ENTRY_RECONCILED = "bank_book.entry_reconciled"
    MANUAL_ADJUSTMENT_RECORDED = "bank_book.manual_adjustment_recorded"


def log_bank_book_event(
    event_type: str,
    tenant_id: str,
    details: Dict[str, Any],
    entry_id: Optional[str] = None,
    actor: str = "system",
    success: bool = True
):
    """
    Log bank book event for audit trail.

    Only ids, counts and flags are logged; statement descriptions and
    amounts stay out of the logs.
    """
    log_entry = {
        "event": event_type,
        "tenant": tenant_id,
        "entry_id": entry_id,
        "details": details,
        "actor": actor,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
    if success:
        logger.info(f"Bank book event: {event_type}", extra=log_entry)
    else:
        logger.warning(f"Bank book event FAILED: {event_type}", extra=log_entry)


# ==================== SERVICE ====================

class BankBookService:
    """Tenant-scoped bank book operations."""

    def __init__(self, db: AsyncSession, importer: Optional[BankStatementImporter] = None):
        self.db = db
        if importer is None:
            settings = get_settings()
            importer = BankStatementImporter(
                max_rows=settings.STATEMENT_MAX_ROWS,
                max_bytes=settings.upload_max_bytes,
            )
        self.importer = importer
        self.journals = JournalEntryRepository(db)

    # ==================== READ ====================

    async def list_entries(
        self,
        tenant_id: str,
        reconciled: Optional[bool] = None,
        date_from: Optional[DateType] = None,
        date_to: Optional[DateType] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[BankBookEntryDB]:
        """List the tenant's entries, oldest statement date first."""
        if date_from and date_to and date_from > date_to:
            raise ValidationError(
                "date_from must not be after date_to",
                details={"date_from": date_from.isoformat(), "date_to": date_to.isoformat()},
            )

        query = select(BankBookEntryDB).where(BankBookEntryDB.tenant_id == tenant_id)

        if reconciled is not None:
            query = query.where(BankBookEntryDB.reconciled == reconciled)
        if date_from:
            query = query.where(BankBookEntryDB.statement_date >= date_from)
        if date_to:
            query = query.where(BankBookEntryDB.statement_date <= date_to)

        query = query.order_by(
            BankBookEntryDB.statement_date, BankBookEntryDB.created_at, BankBookEntryDB.id
        ).limit(limit).offset(offset)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_entry(self, tenant_id: str, entry_id: str) -> BankBookEntryDB:
        result = await self.db.execute(
            select(BankBookEntryDB).where(
                BankBookEntryDB.id == entry_id,
                BankBookEntryDB.tenant_id == tenant_id,
            )
        )
        entry = result.scalar_one_or_none()
        if not entry:
            raise NotFoundError(ENTRY_NOT_FOUND)
        return entry

    async def get_stats(self, tenant_id: str) -> Dict[str, Any]:
        """Counts by reconciliation status and the overall reconciliation rate."""
        result = await self.db.execute(
            select(BankBookEntryDB.reconciled, func.count(BankBookEntryDB.id))
            .where(BankBookEntryDB.tenant_id == tenant_id)
            .group_by(BankBookEntryDB.reconciled)
        )
        counts = {bool(reconciled): count for reconciled, count in result.all()}

        reconciled_count = counts.get(True, 0)
        unreconciled_count = counts.get(False, 0)
        total = reconciled_count + unreconciled_count

        return {
            "total": total,
            "reconciled": reconciled_count,
            "unreconciled": unreconciled_count,
            "reconciliation_rate": round(reconciled_count / total * 100, 2) if total else 0.0,
        }

    async def find_candidates(self, tenant_id: str, entry_id: str) -> List[JournalEntryDB]:
        """
        Journal entries with the same date and amount as the statement line.

        Read only: choosing one of them and calling reconcile is left to the user.
        """
        entry = await self.get_entry(tenant_id, entry_id)
        if entry.amount is None:
            return []

        same_day = await self.journals.find_by_date(tenant_id, entry.statement_date)
        if not same_day:
            return []

        linked_result = await self.db.execute(
            select(BankBookEntryDB.journal_entry_id).where(
                BankBookEntryDB.tenant_id == tenant_id,
                BankBookEntryDB.journal_entry_id.in_([je.id for je in same_day]),
            )
        )
        linked_ids = {row[0] for row in linked_result.all()}

        return select_candidates(entry, same_day, linked_ids)

    # ==================== IMPORT ====================

    async def import_statement(
        self,
        tenant_id: str,
        filename: Optional[str],
        content: Optional[bytes],
        user_id: Optional[str] = None,
    ) -> ImportResult:
        """
        Import a statement file as unreconciled bank book entries.

        Any invalid row rejects the whole file; nothing is written and the
        raised ValidationError lists every bad row.
        """
        try:
            self.importer.check_upload(filename, content)
            lines = self.importer.parse_or_raise(content)
        except BankBookError as e:
            log_bank_book_event(
                BankBookAuditEvent.IMPORT_REJECTED,
                tenant_id,
                {"kind": e.kind.value, "reason": e.message,
                 "error_count": (e.details or {}).get("error_count")},
                actor=user_id or "system",
                success=False,
            )
            raise

        batch_id = str(uuid.uuid4())
        entries = [
            BankBookEntryDB(
                tenant_id=tenant_id,
                statement_ref=line.statement_ref,
                statement_date=line.statement_date,
                amount=line.amount,
                description=line.description,
                entry_type=BankBookEntryType.IMPORT,
                import_batch_id=batch_id,
                reconciled=False,
            )
            for line in lines
        ]

        self.db.add_all(entries)
        await self.db.commit()

        log_bank_book_event(
            BankBookAuditEvent.STATEMENT_IMPORTED,
            tenant_id,
            {"import_batch_id": batch_id, "count": len(entries), "filename": filename},
            actor=user_id or "system",
        )

        return ImportResult(import_batch_id=batch_id, entries=entries)

    # ==================== RECONCILE ====================

    async def reconcile(
        self,
        tenant_id: str,
        bank_book_entry_id: Optional[str],
        journal_entry_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> BankBookEntryDB:
        """
        Mark a statement line reconciled, optionally linking a journal entry.

        Reconciling without a journal entry is accepted and leaves the link
        empty. An already reconciled entry can be reconciled again; a new
        journal entry id replaces the old link.
        """
        if not bank_book_entry_id:
            raise missing_parameter("bankBookEntryId")

        entry = await self.get_entry(tenant_id, bank_book_entry_id)

        if journal_entry_id:
            await self.journals.get(tenant_id, journal_entry_id)

            linked = await self.db.execute(
                select(BankBookEntryDB.id).where(
                    BankBookEntryDB.tenant_id == tenant_id,
                    BankBookEntryDB.journal_entry_id == journal_entry_id,
                    BankBookEntryDB.id != entry.id,
                )
            )
            if linked.first() is not None:
                raise ConflictError(JOURNAL_ALREADY_LINKED, details={"journalEntryId": journal_entry_id})

        was_reconciled = bool(entry.reconciled)
        entry.reconciled = True
        if journal_entry_id:
            entry.journal_entry_id = journal_entry_id
        entry.reconciled_at = datetime.now(timezone.utc)
        entry.reconciled_by = user_id

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(JOURNAL_ALREADY_LINKED, details={"journalEntryId": journal_entry_id})

        await self.db.refresh(entry)

        log_bank_book_event(
            BankBookAuditEvent.ENTRY_RECONCILED,
            tenant_id,
            {
                "journal_entry_id": entry.journal_entry_id,
                "linked": entry.journal_entry_id is not None,
                "was_reconciled": was_reconciled,
            },
            entry_id=entry.id,
            actor=user_id or "system",
        )

        return entry

    # ==================== MANUAL ADJUSTMENT ====================

    async def record_manual_adjustment(
        self,
        tenant_id: str,
        data: ManualAdjustmentCreate,
        user_id: Optional[str] = None,
    ) -> BankBookEntryDB:
        """Create an unreconciled Manual entry from a validated adjustment."""
        entry = BankBookEntryDB(
            tenant_id=tenant_id,
            statement_ref=data.statement_ref,
            statement_date=data.statement_date,
            amount=data.amount,
            description=data.description,
            entry_type=BankBookEntryType.MANUAL,
            reconciled=False,
        )

        self.db.add(entry)
        await self.db.commit()
        await self.db.refresh(entry)

        log_bank_book_event(
            BankBookAuditEvent.MANUAL_ADJUSTMENT_RECORDED,
            tenant_id,
            {"has_amount": data.amount is not None},
            entry_id=entry.id,
            actor=user_id or "system",
        )

        return entry
