from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import structlog

from mgnrega_api.config import settings
from mgnrega_api.exceptions import InvalidInputError, NotFoundError, RemoteUnavailableError
from mgnrega_api.repositories.records import RecordStore
from mgnrega_api.schemas import DistrictDataResponse, DistrictRecord
from mgnrega_api.services.fetcher import FetchStatus, GovDataClient
from mgnrega_api.services.projection import period_sort_key, project

log = structlog.get_logger(__name__)


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def normalize_record(raw: Any, defaults: Dict[str, Optional[str]]) -> Optional[DistrictRecord]:
    """
    Map one upstream record onto a DistrictRecord, filling state_name and
    district_code from the request filters when the record omits them.
    Returns None for entries that cannot be keyed by district and period.
    """
    if not isinstance(raw, dict):
        return None
    district_code = _text(raw.get("district_code")) or defaults.get("district_code")
    fin_year, month = _text(raw.get("fin_year")), _text(raw.get("month"))
    if not (district_code and fin_year and month):
        return None
    return DistrictRecord(
        district_code=district_code,
        district_name=_text(raw.get("district_name")),
        state_code=_text(raw.get("state_code")),
        state_name=_text(raw.get("state_name")) or defaults.get("state_name"),
        fin_year=fin_year,
        month=month,
        payload=raw,
    )


class DistrictDataService:
    """
    Cache-aside retrieval of district statistics: serve from the record
    store when it holds anything for the district, otherwise populate it
    from data.gov.in first. Concurrent misses for the same district share
    one in-flight fetch.
    """

    def __init__(
        self,
        store: RecordStore,
        client: GovDataClient,
        state_name: str = settings.STATE_NAME,
        record_limit: int = settings.RECORD_LIMIT,
    ):
        self.store = store
        self.client = client
        self.state_name = state_name
        self.record_limit = record_limit
        self._inflight: Dict[Tuple[str, str], asyncio.Task] = {}
        self._inflight_lock = asyncio.Lock()

    async def get_district_data(
        self, district_code: Optional[str], state_name: Optional[str] = None
    ) -> DistrictDataResponse:
        code = (district_code or "").strip()
        if not code:
            raise InvalidInputError("Invalid district code")
        state = (state_name or "").strip() or self.state_name

        records = await self.store.read_records(code, self.record_limit)
        if records:
            log.info("district.cache_hit", district_code=code, records=len(records))
        else:
            log.info("district.cache_miss", district_code=code, state_name=state)
            await self._populate_once(code, state)
            records = await self.store.read_records(code, self.record_limit)

        if not records:
            raise NotFoundError("No records found for this district", {"district_code": code})
        return project(records)

    async def _populate_once(self, code: str, state: str) -> int:
        key = (state, code)
        async with self._inflight_lock:
            task = self._inflight.get(key)
            if task is None:
                task = asyncio.ensure_future(self._populate(code, state))
                self._inflight[key] = task
                task.add_done_callback(lambda _: self._inflight.pop(key, None))
            else:
                log.info("district.fetch_joined", district_code=code)
        return await asyncio.shield(task)

    async def _populate(self, code: str, state: str) -> int:
        filters = {"state_name": state, "district_code": code}
        result = await self.client.fetch(filters)

        if result.status is FetchStatus.UNAVAILABLE:
            raise RemoteUnavailableError(
                "Upstream data source unavailable",
                {"district_code": code, "reason": result.error},
            )
        if result.status is FetchStatus.NO_DATA:
            raise NotFoundError("No records found for this district", {"district_code": code})

        batch: List[DistrictRecord] = []
        for raw in result.records:
            record = normalize_record(raw, filters)
            if record is None:
                log.warning("district.record_skipped", district_code=code)
                continue
            batch.append(record)

        # Later periods get later timestamps so newest-first reads follow the calendar.
        batch.sort(key=lambda r: period_sort_key(r.fin_year, r.month))
        stamp = datetime.now(timezone.utc)
        for i, record in enumerate(batch):
            record.created_at = stamp + timedelta(microseconds=i)

        written = await self.store.persist_fetch(
            batch,
            districts={r.district_code: r.district_name for r in batch if r.district_name}.items(),
            metadata={"last_fetch": stamp.isoformat()},
        )

        log.info(
            "district.populated",
            district_code=code,
            fetched=len(result.records),
            written=written,
            ms=result.duration_ms,
        )
        return written
