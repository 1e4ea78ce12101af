"""
Journal Entries - API Router

Minimal journal store that bank book lines are reconciled against:
- GET /api/journal-entries - List journal entries (optional ?date=)
- GET /api/journal-entries/{id} - Retrieve a journal entry
- POST /api/journal-entries - Create a balanced journal entry

Permissions:
- admin: full access
- accountant: full access
- viewer: read-only
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from datetime import date
import logging

from database import get_db
from middleware.auth import get_current_user_required, require_journal_create
from services.auth import AuthUser
from services.journal_service import (
    JournalEntryRepository, JournalEntryCreate, db_to_journal_entry
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/journal-entries", tags=["Journal Entries"])


@router.get("", summary="List journal entries")
async def list_journal_entries(
    on_date: Optional[date] = Query(default=None, alias="date", description="Only entries posted on this date"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    current_user: AuthUser = Depends(get_current_user_required),
    db: AsyncSession = Depends(get_db),
):
    repo = JournalEntryRepository(db)
    entries = await repo.list_entries(current_user.tenant_id, on_date=on_date, limit=limit, offset=offset)
    return {
        "success": True,
        "count": len(entries),
        "data": [db_to_journal_entry(e).model_dump(by_alias=True) for e in entries],
    }


@router.get("/{journal_entry_id}", summary="Get journal entry")
async def get_journal_entry(
    journal_entry_id: str,
    current_user: AuthUser = Depends(get_current_user_required),
    db: AsyncSession = Depends(get_db),
):
    repo = JournalEntryRepository(db)
    entry = await repo.get(current_user.tenant_id, journal_entry_id)
    return {"success": True, "data": db_to_journal_entry(entry).model_dump(by_alias=True)}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create journal entry")
async def create_journal_entry(
    request: JournalEntryCreate,
    current_user: AuthUser = Depends(require_journal_create),
    db: AsyncSession = Depends(get_db),
):
    """Create a journal entry. Debits must equal credits."""
    repo = JournalEntryRepository(db)
    entry = await repo.create(current_user.tenant_id, current_user.id, request)
    return {"success": True, "data": db_to_journal_entry(entry).model_dump(by_alias=True)}
