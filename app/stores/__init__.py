from functools import lru_cache

from app.core.config import get_settings
from app.stores.base import SheetSnapshot, SheetStore
from app.stores.memory_store import MemorySheetStore

__all__ = ["SheetSnapshot", "SheetStore", "MemorySheetStore", "get_sheet_store"]


@lru_cache
def get_sheet_store() -> SheetStore:
    """
    FastAPI dependency returning the configured sheet store.
    """
    settings = get_settings()
    if settings.STORE_BACKEND == "memory":
        return MemorySheetStore()

    from app.db.session import async_session_factory
    from app.stores.sql_store import SqlSheetStore
    return SqlSheetStore(async_session_factory, settings.SHEET_NAME)
