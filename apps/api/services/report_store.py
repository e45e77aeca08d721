"""
Storage backends for shared reports.

``ReportStore`` is the capability the share services depend on. Two backends
implement it: ``SqlReportStore`` (async SQLAlchemy, Postgres in production)
and ``InMemoryReportStore`` (process-local, for local runs and tests). The
backend is picked once at startup by ``build_report_store``.
"""

from __future__ import annotations

import abc
import asyncio
import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from config import Settings, settings
from database import build_engine, build_session_maker, create_schema
from models.shared_report import SharedReport
from services.share_errors import DuplicateShortId, StoreError

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class SharedReportRecord:
    """Backend-neutral view of one ``shared_reports`` row."""

    short_id: str
    audit_result: Dict[str, Any]
    lighthouse_data: Optional[Dict[str, Any]]
    website: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > _as_utc(self.expires_at)


class ReportStore(abc.ABC):
    """Persistence operations needed by issuance, resolution and sweeping."""

    backend_name = "abstract"

    async def initialize(self) -> None:
        """Prepare the backend (schema, connections). Optional."""

    async def close(self) -> None:
        """Release backend resources. Optional."""

    @abc.abstractmethod
    async def exists(self, short_id: str) -> bool:
        """True when any row, live or expired, uses ``short_id``."""

    @abc.abstractmethod
    async def insert(self, record: SharedReportRecord) -> None:
        """Insert a new row; raise ``DuplicateShortId`` if the key is taken."""

    @abc.abstractmethod
    async def get(self, short_id: str) -> Optional[SharedReportRecord]:
        ...

    @abc.abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete rows with ``expires_at < now``; return the number deleted."""

    @abc.abstractmethod
    async def count_all(self) -> int:
        ...

    @abc.abstractmethod
    async def count_active(self, now: datetime) -> int:
        """Rows with ``expires_at >= now``."""

    @abc.abstractmethod
    async def ping(self) -> None:
        """Raise ``StoreError`` when the backend is unreachable."""


class InMemoryReportStore(ReportStore):
    """Dict-backed store. Payloads are deep-copied in and out."""

    backend_name = "memory"

    def __init__(self):
        self._rows: Dict[str, SharedReportRecord] = {}
        self._lock = asyncio.Lock()

    async def exists(self, short_id: str) -> bool:
        async with self._lock:
            return short_id in self._rows

    async def insert(self, record: SharedReportRecord) -> None:
        async with self._lock:
            if record.short_id in self._rows:
                raise DuplicateShortId(record.short_id)
            self._rows[record.short_id] = copy.deepcopy(record)

    async def get(self, short_id: str) -> Optional[SharedReportRecord]:
        async with self._lock:
            row = self._rows.get(short_id)
            return copy.deepcopy(row) if row is not None else None

    async def delete_expired(self, now: datetime) -> int:
        async with self._lock:
            expired = [key for key, row in self._rows.items() if _as_utc(row.expires_at) < now]
            for key in expired:
                del self._rows[key]
            return len(expired)

    async def count_all(self) -> int:
        async with self._lock:
            return len(self._rows)

    async def count_active(self, now: datetime) -> int:
        async with self._lock:
            return sum(1 for row in self._rows.values() if _as_utc(row.expires_at) >= now)

    async def ping(self) -> None:
        return None


class SqlReportStore(ReportStore):
    """SQLAlchemy-backed store over the ``shared_reports`` table."""

    backend_name = "sql"

    def __init__(
        self,
        session_maker: async_sessionmaker,
        engine: Optional[AsyncEngine] = None,
        auto_create_schema: bool = False,
    ):
        self._session_maker = session_maker
        self._engine = engine
        self._auto_create_schema = auto_create_schema

    @contextmanager
    def _guard(self, operation: str, short_id: Optional[str] = None) -> Iterator[None]:
        try:
            yield
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            logger.exception("Report store %s failed short_id=%s", operation, short_id or "-")
            raise StoreError(operation, short_id=short_id) from exc

    async def initialize(self) -> None:
        if self._auto_create_schema and self._engine is not None:
            with self._guard("create_schema"):
                await create_schema(self._engine)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def exists(self, short_id: str) -> bool:
        with self._guard("exists", short_id):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(SharedReport.short_id).where(SharedReport.short_id == short_id)
                )
                return result.scalar_one_or_none() is not None

    async def insert(self, record: SharedReportRecord) -> None:
        with self._guard("insert", record.short_id):
            async with self._session_maker() as session:
                session.add(
                    SharedReport(
                        short_id=record.short_id,
                        audit_result=record.audit_result,
                        lighthouse_data=record.lighthouse_data,
                        website=record.website,
                        created_at=record.created_at,
                        expires_at=record.expires_at,
                    )
                )
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    raise DuplicateShortId(record.short_id)

    async def get(self, short_id: str) -> Optional[SharedReportRecord]:
        with self._guard("get", short_id):
            async with self._session_maker() as session:
                row = await session.get(SharedReport, short_id)
                if row is None:
                    return None
                return SharedReportRecord(
                    short_id=row.short_id,
                    audit_result=row.audit_result,
                    lighthouse_data=row.lighthouse_data,
                    website=row.website,
                    created_at=_as_utc(row.created_at),
                    expires_at=_as_utc(row.expires_at),
                )

    async def delete_expired(self, now: datetime) -> int:
        with self._guard("delete_expired"):
            async with self._session_maker() as session:
                result = await session.execute(
                    delete(SharedReport).where(SharedReport.expires_at < now)
                )
                await session.commit()
                return int(result.rowcount or 0)

    async def count_all(self) -> int:
        with self._guard("count_all"):
            async with self._session_maker() as session:
                result = await session.execute(select(func.count()).select_from(SharedReport))
                return int(result.scalar_one() or 0)

    async def count_active(self, now: datetime) -> int:
        with self._guard("count_active"):
            async with self._session_maker() as session:
                result = await session.execute(
                    select(func.count())
                    .select_from(SharedReport)
                    .where(SharedReport.expires_at >= now)
                )
                return int(result.scalar_one() or 0)

    async def ping(self) -> None:
        with self._guard("ping"):
            async with self._session_maker() as session:
                await session.execute(text("SELECT 1"))


def build_report_store(config: Optional[Settings] = None) -> ReportStore:
    """Construct the backend named by ``REPORT_STORE_BACKEND``."""
    config = config or settings
    backend = (config.REPORT_STORE_BACKEND or "").strip().lower()
    if backend == "memory":
        return InMemoryReportStore()
    if backend == "sql":
        engine = build_engine(config.DATABASE_URL)
        return SqlReportStore(
            build_session_maker(engine),
            engine=engine,
            auto_create_schema=config.AUTO_CREATE_DB_SCHEMA,
        )
    raise ValueError(f"Unknown report store backend: {config.REPORT_STORE_BACKEND!r}")
