"""
Bank Book API Endpoints

REST API for bank statement import and reconciliation:
- GET /api/bank-book - List the tenant's bank book entries
- GET /api/bank-book/stats - Reconciliation statistics
- GET /api/bank-book/{entry_id} - Get a single entry
- GET /api/bank-book/{entry_id}/candidates - Journal entries matching on date + amount
- POST /api/bank-book/import-statement - Import a statement file
- POST /api/bank-book/{entry_id}/reconcile - Reconcile an entry
- POST /api/bank-book/manual-adjustment - Record a manual adjustment

Permissions:
┌──────────────────────────────────────────┬────────┬────────────┬───────┐
│ Endpoint                                 │ viewer │ accountant │ admin │
├──────────────────────────────────────────┼────────┼────────────┼───────┤
│ GET /bank-book, /stats, /{id}, /candid.  │   ✔️    │     ✔️      │   ✔️   │
│ POST /bank-book/import-statement         │   ❌   │     ✔️      │   ✔️   │
│ POST /bank-book/{id}/reconcile           │   ❌   │     ✔️      │   ✔️   │
│ POST /bank-book/manual-adjustment        │   ❌   │     ✔️      │   ✔️   │
└──────────────────────────────────────────┴────────┴────────────┴───────┘
"""

import logging
from datetime import date as DateType
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from middleware.auth import (
    get_current_user_required,
    require_bankbook_import,
    require_bankbook_reconcile,
    require_bankbook_manual,
)
from services.auth import AuthUser
from services.journal_service import db_to_journal_entry
from bank_book.services.bank_book_service import (
    BankBookService,
    ReconcileRequest,
    ManualAdjustmentCreate,
    db_to_entry,
)
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bank-book", tags=["Bank Book"])


def _dump(entry) -> dict:
    return db_to_entry(entry).model_dump(by_alias=True)


# ==================== READ ====================

@router.get("", summary="List bank book entries")
async def list_bank_book(
    reconciled: Optional[bool] = Query(default=None, description="Filter by reconciliation status"),
    date_from: Optional[DateType] = Query(default=None, description="Earliest statement date (inclusive)"),
    date_to: Optional[DateType] = Query(default=None, description="Latest statement date (inclusive)"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    current_user: AuthUser = Depends(get_current_user_required),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's tenant's bank book entries."""
    service = BankBookService(db)
    entries = await service.list_entries(
        current_user.tenant_id,
        reconciled=reconciled,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset,
    )
    return {"success": True, "count": len(entries), "data": [_dump(e) for e in entries]}


@router.get("/stats", summary="Reconciliation statistics")
async def get_bank_book_stats(
    current_user: AuthUser = Depends(get_current_user_required),
    db: AsyncSession = Depends(get_db),
):
    service = BankBookService(db)
    stats = await service.get_stats(current_user.tenant_id)
    return {"success": True, "data": stats}


@router.get("/{entry_id}", summary="Get bank book entry")
async def get_bank_book_entry(
    entry_id: str,
    current_user: AuthUser = Depends(get_current_user_required),
    db: AsyncSession = Depends(get_db),
):
    service = BankBookService(db)
    entry = await service.get_entry(current_user.tenant_id, entry_id)
    return {"success": True, "data": _dump(entry)}


@router.get("/{entry_id}/candidates", summary="Matching journal entries")
async def get_match_candidates(
    entry_id: str,
    current_user: AuthUser = Depends(get_current_user_required),
    db: AsyncSession = Depends(get_db),
):
    """
    Journal entries with the same date and amount as the statement line.

    Nothing is reconciled here; pick a candidate and call reconcile.
    """
    service = BankBookService(db)
    candidates = await service.find_candidates(current_user.tenant_id, entry_id)
    return {
        "success": True,
        "count": len(candidates),
        "data": [db_to_journal_entry(je).model_dump(by_alias=True) for je in candidates],
    }


# ==================== WRITE ====================

@router.post("/import-statement", status_code=status.HTTP_201_CREATED, summary="Import bank statement")
async def import_statement(
    file: Optional[UploadFile] = File(default=None, description="CSV statement file"),
    current_user: AuthUser = Depends(require_bankbook_import),
    db: AsyncSession = Depends(get_db),
):
    """
    Import a delimited bank statement.

    Creates one unreconciled entry per row. If any row is invalid nothing is
    imported and the response lists every invalid row.
    """
    service = BankBookService(db)
    content = await service.importer.read_upload(file)
    filename = file.filename if file is not None else None

    result = await service.import_statement(
        current_user.tenant_id,
        filename,
        content,
        user_id=current_user.id,
    )

    return {
        "success": True,
        "count": result.count,
        "import_batch_id": result.import_batch_id,
        "data": [_dump(e) for e in result.entries],
    }


@router.post("/manual-adjustment", status_code=status.HTTP_201_CREATED, summary="Record manual adjustment")
async def record_manual_adjustment(
    request: ManualAdjustmentCreate,
    current_user: AuthUser = Depends(require_bankbook_manual),
    db: AsyncSession = Depends(get_db),
):
    service = BankBookService(db)
    entry = await service.record_manual_adjustment(
        current_user.tenant_id,
        request,
        user_id=current_user.id,
    )
    return {"success": True, "data": _dump(entry)}


@router.post("/{entry_id}/reconcile", summary="Reconcile bank book entry")
async def reconcile_entry(
    entry_id: str,
    request: Optional[ReconcileRequest] = None,
    current_user: AuthUser = Depends(require_bankbook_reconcile),
    db: AsyncSession = Depends(get_db),
):
    """
    Mark a bank book entry reconciled, optionally linking a journal entry.

    The body must name the entry (bankBookEntryId); it has to agree with the path.
    """
    request = request or ReconcileRequest()

    if request.bank_book_entry_id and request.bank_book_entry_id != entry_id:
        raise ValidationError(
            "bankBookEntryId does not match the entry in the path",
            details={"parameter": "bankBookEntryId"},
        )

    service = BankBookService(db)
    entry = await service.reconcile(
        current_user.tenant_id,
        request.bank_book_entry_id,
        journal_entry_id=request.journal_entry_id,
        user_id=current_user.id,
    )
    return {"success": True, "data": _dump(entry)}
