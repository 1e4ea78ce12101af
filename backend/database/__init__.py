from .connection import (
    get_db, get_engine, get_session_factory, init_db, create_tables, dispose_engine, Base
)

# Import models to ensure they are registered with Base
from .journal_models import (
    JournalEntryDB, JournalEntryLineDB, JournalEntryStatus, JournalSourceType
)
from .bank_book_models import BankBookEntryDB, BankBookEntryType

__all__ = [
    'get_db', 'get_engine', 'get_session_factory', 'init_db', 'create_tables',
    'dispose_engine', 'Base',
    # Journal models
    'JournalEntryDB', 'JournalEntryLineDB', 'JournalEntryStatus', 'JournalSourceType',
    # Bank book models
    'BankBookEntryDB', 'BankBookEntryType',
]
