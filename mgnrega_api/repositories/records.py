from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
from sqlalchemy import select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mgnrega_api.config import settings
from mgnrega_api.exceptions import StorageError
from mgnrega_api.models import District, MetadataEntry, MgnregaRecord
from mgnrega_api.schemas import DistrictOut, DistrictRecord, MetadataOut

log = structlog.get_logger(__name__)


class RecordStore:
    """
    Durable storage for district records, the district directory and
    metadata entries. Built once per process around a shared sessionmaker;
    every operation runs in its own short transaction.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    def _insert(self, session: AsyncSession, table):
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        return sqlite.insert(table)

    # ── Reads ────────────────────────────────────────────────────────────────

    async def list_districts(self) -> List[DistrictOut]:
        try:
            async with self._sessionmaker() as session:
                rows = await session.execute(
                    select(District).order_by(District.district_name)
                )
                return [DistrictOut.model_validate(r) for r in rows.scalars().all()]
        except SQLAlchemyError as exc:
            raise self._fault("list_districts", exc) from exc

    async def read_records(
        self, district_code: str, limit: int = settings.RECORD_LIMIT
    ) -> List[DistrictRecord]:
        """Newest first by created_at; empty list when nothing is stored."""
        try:
            async with self._sessionmaker() as session:
                rows = await session.execute(
                    select(MgnregaRecord)
                    .where(MgnregaRecord.district_code == district_code)
                    .order_by(MgnregaRecord.created_at.desc(), MgnregaRecord.id.desc())
                    .limit(limit)
                )
                return [DistrictRecord.model_validate(r) for r in rows.scalars().all()]
        except SQLAlchemyError as exc:
            raise self._fault("read_records", exc, district_code=district_code) from exc

    async def list_records(self, state_name: Optional[str] = None) -> List[DistrictRecord]:
        query = select(MgnregaRecord).order_by(MgnregaRecord.fin_year, MgnregaRecord.id)
        if state_name:
            query = query.where(MgnregaRecord.state_name == state_name)
        try:
            async with self._sessionmaker() as session:
                rows = await session.execute(query)
                return [DistrictRecord.model_validate(r) for r in rows.scalars().all()]
        except SQLAlchemyError as exc:
            raise self._fault("list_records", exc, state_name=state_name) from exc

    async def read_metadata(self) -> List[MetadataOut]:
        try:
            async with self._sessionmaker() as session:
                rows = await session.execute(select(MetadataEntry).order_by(MetadataEntry.key))
                return [MetadataOut.model_validate(r) for r in rows.scalars().all()]
        except SQLAlchemyError as exc:
            raise self._fault("read_metadata", exc) from exc

    async def ping(self) -> bool:
        try:
            async with self._sessionmaker() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    # ── Writes ───────────────────────────────────────────────────────────────

    async def upsert_records(self, records: Sequence[DistrictRecord]) -> int:
        """
        Insert-or-replace keyed on (district_code, fin_year, month), all in
        one transaction. A conflicting row gets the new payload and
        created_at. Raises StorageError and writes nothing if any payload
        cannot be serialized.
        """
        rows = self._record_rows(records)
        if not rows:
            return 0
        try:
            async with self._sessionmaker() as session, session.begin():
                await self._write_records(session, rows)
        except SQLAlchemyError as exc:
            raise self._fault("upsert_records", exc, count=len(rows)) from exc

        log.info("store.upsert", records=len(rows))
        return len(rows)

    async def upsert_districts(self, entries: Iterable[Tuple[str, str]]) -> int:
        """Insert-if-absent; an existing district keeps its first name."""
        rows = [{"district_code": code, "district_name": name} for code, name in entries]
        if not rows:
            return 0
        try:
            async with self._sessionmaker() as session, session.begin():
                await self._write_districts(session, rows)
        except SQLAlchemyError as exc:
            raise self._fault("upsert_districts", exc, count=len(rows)) from exc
        return len(rows)

    async def upsert_district(self, code: str, name: str) -> None:
        await self.upsert_districts([(code, name)])

    async def set_metadata(self, key: str, value: str) -> None:
        try:
            async with self._sessionmaker() as session, session.begin():
                await self._write_metadata(session, {key: value})
        except SQLAlchemyError as exc:
            raise self._fault("set_metadata", exc, key=key) from exc

    async def persist_fetch(
        self,
        records: Sequence[DistrictRecord],
        districts: Iterable[Tuple[str, str]] = (),
        metadata: Optional[Dict[str, str]] = None,
    ) -> int:
        """
        Write one upstream batch: records, directory entries and metadata
        commit together or not at all.
        """
        rows = self._record_rows(records)
        district_rows = [{"district_code": c, "district_name": n} for c, n in districts]
        if not rows:
            return 0
        try:
            async with self._sessionmaker() as session, session.begin():
                await self._write_records(session, rows)
                if district_rows:
                    await self._write_districts(session, district_rows)
                if metadata:
                    await self._write_metadata(session, metadata)
        except SQLAlchemyError as exc:
            raise self._fault("persist_fetch", exc, count=len(rows)) from exc

        log.info("store.persist_fetch", records=len(rows), districts=len(district_rows))
        return len(rows)

    # ── Statement helpers (caller owns the transaction) ─────────────────────

    def _record_rows(self, records: Sequence[DistrictRecord]) -> List[dict]:
        # One row per (district_code, fin_year, month), last occurrence wins;
        # PostgreSQL rejects ON CONFLICT DO UPDATE touching a row twice.
        now = datetime.now(timezone.utc)
        rows: Dict[Tuple[str, str, str], dict] = {}
        for r in records:
            try:
                json.dumps(r.payload)
            except (TypeError, ValueError) as exc:
                raise StorageError(
                    "Record payload is not JSON serializable",
                    {"district_code": r.district_code, "fin_year": r.fin_year, "month": r.month},
                ) from exc
            key = (r.district_code, r.fin_year, r.month)
            rows.pop(key, None)
            rows[key] = {
                "district_code": r.district_code,
                "district_name": r.district_name,
                "state_code": r.state_code,
                "state_name": r.state_name,
                "fin_year": r.fin_year,
                "month": r.month,
                "payload": r.payload,
                "created_at": r.created_at or now,
            }
        return list(rows.values())

    async def _write_records(self, session: AsyncSession, rows: List[dict]) -> None:
        stmt = self._insert(session, MgnregaRecord.__table__)
        stmt = stmt.on_conflict_do_update(
            index_elements=["district_code", "fin_year", "month"],
            set_={
                "payload": stmt.excluded.payload,
                "created_at": stmt.excluded.created_at,
            },
        )
        await session.execute(stmt, rows)

    async def _write_districts(self, session: AsyncSession, rows: List[dict]) -> None:
        stmt = self._insert(session, District.__table__)
        await session.execute(stmt.on_conflict_do_nothing(index_elements=["district_code"]), rows)

    async def _write_metadata(self, session: AsyncSession, entries: Dict[str, str]) -> None:
        stmt = self._insert(session, MetadataEntry.__table__)
        await session.execute(
            stmt.on_conflict_do_update(index_elements=["key"], set_={"value": stmt.excluded.value}),
            [{"key": k, "value": v} for k, v in entries.items()],
        )

    def _fault(self, op: str, exc: Exception, **context) -> StorageError:
        log.error("store.error", op=op, error=str(exc), **context)
        return StorageError(f"Record store failure during {op}", {"op": op})
