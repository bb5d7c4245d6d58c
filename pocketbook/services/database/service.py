from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, AsyncGenerator

from loguru import logger
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from pocketbook.services.base import Service

if TYPE_CHECKING:
    from pocketbook.services.settings.service import SettingsService


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseService(Service):
    name = "database_service"

    def __init__(self, settings_service: "SettingsService"):
        self.settings_service = settings_service
        self.database_url = settings_service.settings.database_url
        self.engine = self._create_engine()

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    def _create_engine(self) -> AsyncEngine:
        settings = self.settings_service.settings
        if self.is_sqlite:
            database = make_url(self.database_url).database
            if database and database != ":memory:":
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            engine = create_async_engine(
                self.database_url,
                connect_args={"check_same_thread": False},
                echo=settings.db_connection_settings.get("echo", False),
            )
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
            return engine
        return create_async_engine(self.database_url, **settings.db_connection_settings)

    @asynccontextmanager
    async def with_session(self) -> AsyncGenerator[AsyncSession, None]:
        async with AsyncSession(self.engine, expire_on_commit=False) as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def create_db_and_tables(self) -> None:
        # register the tables on SQLModel.metadata
        from pocketbook.services.database import models  # noqa: F401

        logger.debug("Creating database tables")
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.debug("Database tables created")

    async def teardown(self) -> None:
        logger.debug("Disposing database engine")
        await self.engine.dispose()
