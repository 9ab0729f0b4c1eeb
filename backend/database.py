from sqlalchemy.ext.asyncio import (
    AsyncAttrs,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from logging_config import get_logger

logger = get_logger("database")


class Base(AsyncAttrs, DeclarativeBase):
    pass


class Database:
    """
    Owns the engine and session factory for one process.

    Built once at startup, connect()ed in the app lifespan and handed to the
    storage layer. Nothing here connects lazily.
    """

    def __init__(self, url: str):
        self.url = url
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    async def connect(self):
        if self._engine is not None:
            return
        sqlite = "sqlite" in self.url
        self._engine = create_async_engine(
            self.url,
            connect_args={"check_same_thread": False} if sqlite else {},
            poolclass=StaticPool if sqlite else None,
            echo=False,
        )
        self._sessionmaker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        # Import models so metadata is populated before create_all
        import client_model  # noqa: F401
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database.connected", extra={"dialect": self._engine.dialect.name})

    async def disconnect(self):
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("database.disconnected")

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database.connect() must be awaited before opening sessions")
        return self._sessionmaker()
