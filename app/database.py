from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.config import get_settings

DATABASE_URL = get_settings().database_url

# Database configuration based on URL type
if "postgresql" in DATABASE_URL:
    engine = create_async_engine(DATABASE_URL, pool_pre_ping=True, poolclass=NullPool)
else:
    # SQLite or other databases - no special connection args needed
    engine = create_async_engine(DATABASE_URL, pool_pre_ping=True)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


# Models are imported via main.py and routes, ensuring they're registered with Base.metadata


async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
