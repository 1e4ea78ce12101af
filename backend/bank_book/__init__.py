"""
Bank Book Module

Bank statement lines and their reconciliation against journal entries:
- Statement import (CSV, all rows or none)
- Date + amount match candidates
- Manual reconciliation with a one-to-one journal link
- Manual adjustments
- Tenant isolation on every read and write
"""

from bank_book.statement_importer import (
    BankStatementImporter,
    StatementLine,
    RowError,
    ParsedStatement,
    parse_amount,
    parse_statement_date,
)
from bank_book.matching import MatchKey, is_match, select_candidates
from bank_book.services.bank_book_service import (
    BankBookService,
    BankBookEntry,
    ReconcileRequest,
    ManualAdjustmentCreate,
    ImportResult,
    BankBookAuditEvent,
)
from bank_book.endpoints.bank_book_api import router as bank_book_router

__all__ = [
    # Importer
    'BankStatementImporter',
    'StatementLine',
    'RowError',
    'ParsedStatement',
    'parse_amount',
    'parse_statement_date',
    # Matching
    'MatchKey',
    'is_match',
    'select_candidates',
    # Service
    'BankBookService',
    'BankBookEntry',
    'ReconcileRequest',
    'ManualAdjustmentCreate',
    'ImportResult',
    'BankBookAuditEvent',
    # Router
    'bank_book_router'
]
