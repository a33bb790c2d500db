"""Database connection and session management."""

import ssl
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from leadsheets.config import Settings


def _make_ssl_context_for_hosted_pg():
    """SSL context for hosted Postgres - disables cert verification for pooled proxies."""
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def get_engine_url_and_connect_args(database_url: str) -> tuple[str, dict[str, Any]]:
    """Strip sslmode from URL (asyncpg doesn't accept it) and add SSL via connect_args."""
    url = database_url
    connect_args: dict[str, Any] = {}
    if "sslmode=" in url or "ssl=" in url:
        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        sslmode = (query.pop("sslmode", None) or query.pop("ssl", None) or [""])[0]
        query.pop("ssl", None)
        new_query = urlencode(query, doseq=True)
        url = urlunparse(parsed._replace(query=new_query))
        if sslmode not in ("", "disable", "false"):
            connect_args["ssl"] = _make_ssl_context_for_hosted_pg()
    return url, connect_args


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


class Database:
    """Process-wide engine and session factory, constructed once and injected.

    Every unit of work takes its own session from ``session()`` and releases it
    when the block exits, so no pooled connection outlives a single store call.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs: Any) -> None:
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        url, connect_args = get_engine_url_and_connect_args(settings.database_url)
        return cls(
            url,
            echo=settings.log_level == "DEBUG",
            connect_args=connect_args,
            pool_pre_ping=True,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Scoped session: commit on success, rollback on error, always release."""
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_all(self) -> None:
        """Create missing tables; safe to run on every boot."""
        # Registers every mapped table on Base.metadata
        import leadsheets.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for database sessions."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session
