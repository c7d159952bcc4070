from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from core.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str, echo: bool = False):
    kwargs = {"echo": echo}
    # aiosqlite connections are bound to the loop that opened them
    if database_url.startswith("sqlite"):
        kwargs["poolclass"] = NullPool
    return create_async_engine(database_url, **kwargs)


engine = make_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
