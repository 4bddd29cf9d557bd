import asyncio
from app.core.config import settings
from app.db.base import Base  # imports all models so metadata is populated
from app.db.session import make_engine

async def _init():
    engine = make_engine(settings.DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()

def main():
    asyncio.run(_init())

if __name__ == "__main__":
    main()
