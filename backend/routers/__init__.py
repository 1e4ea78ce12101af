from .journal_entries import router as journal_router

__all__ = [
    'journal_router',
]
