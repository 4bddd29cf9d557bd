from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool, StaticPool
import os

Base = declarative_base()

DISABLE_ASYNC_POOL = os.getenv("DISABLE_ASYNC_DB_POOL", "0") == "1"

def make_engine(database_url: str) -> AsyncEngine:
    engine_kwargs = dict(echo=False)
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url:
            # one shared connection, otherwise every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_pre_ping"] = True
        if DISABLE_ASYNC_POOL:
            engine_kwargs["poolclass"] = NullPool

    engine = create_async_engine(database_url, **engine_kwargs)

    if engine.dialect.name == "sqlite":
        # ON DELETE CASCADE is a no-op in SQLite unless enabled per connection
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_sqlite_fk(dbapi_conn, _record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine

def make_sessionmaker(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
