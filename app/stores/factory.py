import asyncio
import logging
from typing import Optional

from app.core.config import settings
from app.stores.base import Store

logger = logging.getLogger(__name__)

_store: Optional[Store] = None
_lock = asyncio.Lock()

def build_store() -> Store:
    backend = settings.STORE_BACKEND.lower()
    if backend == "sql":
        from app.stores.sql import SqlStore
        return SqlStore(settings.DATABASE_URL, create_schema=settings.DB_CREATE_SCHEMA)
    if backend == "mongo":
        from app.stores.mongo import MongoStore
        return MongoStore(settings.MONGODB_URI, settings.MONGODB_DB)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")

async def get_store() -> Store:
    """Process-wide store, built and initialised on first use."""
    global _store
    if _store is None:
        async with _lock:
            if _store is None:
                store = build_store()
                await store.init()
                _store = store
                logger.info("Store initialised (backend=%s)", settings.STORE_BACKEND)
    return _store

async def close_store() -> None:
    global _store
    if _store is not None:
        await _store.close()
        _store = None
