# homewatch/store.py
from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional, Sequence

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from homewatch.clock import as_utc
from homewatch.errors import AcknowledgmentCommitFailure, StoreQueryFailure
from homewatch.logging import get_logger
from homewatch.schemas import DetectionEvent

log = get_logger("store")

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _db_time(ts: datetime) -> datetime:
    """Columns hold naive UTC; normalise bounds and inserted values to that."""
    return as_utc(ts).replace(tzinfo=None)


class Detection(Base):
    """One classified media file written by the detection pipeline."""

    __tablename__ = "data"

    id = Column(Integer, primary_key=True, autoincrement=True)
    label = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False, default="")
    file_name = Column(String(255), nullable=False)
    file_create_date = Column(DateTime, nullable=False)      # capture time
    detection_result = Column(String(1024), nullable=False, default="")
    voice_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_data_capture_voice", "file_create_date", "voice_completed"),
    )

    def __repr__(self) -> str:
        return f"<Detection id={self.id} label={self.label!r} file={self.file_name!r}>"


class DetectionStore:
    """
    Async access to the detections table.
    Every query failure is re-raised as StoreQueryFailure; nothing is retried.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo)
        self.session = async_sessionmaker(self.engine, expire_on_commit=False)

    @staticmethod
    def _ensure_sqlite_dir(url: str):
        u = make_url(url)
        if u.get_backend_name() == "sqlite" and u.database and u.database != ":memory:":
            Path(u.database).parent.mkdir(parents=True, exist_ok=True)

    async def init(self):
        self._ensure_sqlite_dir(self.url)
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        log.info(f"Detection store ready: {make_url(self.url).render_as_string(hide_password=True)}")

    async def dispose(self):
        await self.engine.dispose()

    # ----------------- writes -----------------
    async def add(self, label: str, file_name: str, file_create_date: datetime,
                  detection_result: str = "", name: str = "", voice_completed: bool = False) -> Detection:
        row = Detection(
            label=label,
            name=name,
            file_name=file_name,
            file_create_date=_db_time(file_create_date),
            detection_result=detection_result or "",
            voice_completed=voice_completed,
        )
        try:
            async with self.session() as s, s.begin():
                s.add(row)
        except SQLAlchemyError as e:
            raise StoreQueryFailure(f"insert failed: {e}") from e
        return row

    async def add_event(self, event: DetectionEvent) -> Detection:
        return await self.add(
            label=event.label,
            file_name=event.file_name,
            file_create_date=event.file_create_date,
            detection_result=event.detection_result,
            name=event.name,
        )

    # ----------------- reads -----------------
    async def _fetch(self, stmt) -> List[Any]:
        try:
            async with self.session() as s:
                res = await s.execute(stmt)
                return list(res.all())
        except SQLAlchemyError as e:
            raise StoreQueryFailure(f"query failed: {e}") from e

    @staticmethod
    def _captured_between(start: datetime, end: datetime):
        # half-open [start, end)
        return (Detection.file_create_date >= _db_time(start),
                Detection.file_create_date < _db_time(end))

    async def capture_times(self, start: datetime, end: datetime) -> List[datetime]:
        stmt = (select(Detection.file_create_date)
                .where(*self._captured_between(start, end))
                .order_by(Detection.created_at.asc(), Detection.id.asc()))
        return [as_utc(r[0]) for r in await self._fetch(stmt)]

    async def captures(self, start: datetime, end: datetime) -> List[Any]:
        """(label, file_name, file_create_date) rows, in insertion order."""
        stmt = (select(Detection.label, Detection.file_name, Detection.file_create_date)
                .where(*self._captured_between(start, end))
                .order_by(Detection.created_at.asc(), Detection.id.asc()))
        return await self._fetch(stmt)

    async def unacknowledged(self, start: datetime, end: datetime) -> List[Detection]:
        stmt = (select(Detection)
                .where(Detection.voice_completed.is_(False), *self._captured_between(start, end))
                .order_by(Detection.created_at.asc(), Detection.id.asc()))
        return [r[0] for r in await self._fetch(stmt)]

    async def get(self, record_id: int) -> Optional[Detection]:
        try:
            async with self.session() as s:
                return await s.get(Detection, record_id)
        except SQLAlchemyError as e:
            raise StoreQueryFailure(f"query failed: {e}") from e

    # ----------------- acknowledgment -----------------
    async def _acknowledge(self, *where) -> int:
        stmt = (update(Detection)
                .where(Detection.voice_completed.is_(False), *where)
                .values(voice_completed=True, updated_at=_utcnow())
                .execution_options(synchronize_session=False))
        try:
            async with self.session() as s, s.begin():
                res = await s.execute(stmt)
                return int(res.rowcount or 0)
        except SQLAlchemyError as e:
            raise AcknowledgmentCommitFailure(f"acknowledge failed: {e}") from e

    async def acknowledge_ids(self, ids: Sequence[int]) -> int:
        """Mark exactly these records; rows already acknowledged are left alone."""
        if not ids:
            return 0
        return await self._acknowledge(Detection.id.in_(list(ids)))

    async def acknowledge_matching(self, start: datetime, end: datetime) -> int:
        """Re-evaluated filter: also sweeps rows inserted since the slice was read."""
        return await self._acknowledge(*self._captured_between(start, end))

