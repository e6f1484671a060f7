"""Insert one sample district record so the API can be tried without an upstream fetch."""
from __future__ import annotations

import asyncio

import structlog

from mgnrega_api.database import build_engine, build_sessionmaker, close_db, init_db
from mgnrega_api.repositories.records import RecordStore
from mgnrega_api.schemas import DistrictRecord

log = structlog.get_logger(__name__)

SAMPLE = DistrictRecord(
    district_code="0501",
    district_name="PATNA",
    state_code="05",
    state_name="BIHAR",
    fin_year="2024-2025",
    month="Dec",
    payload={
        "fin_year": "2024-2025",
        "month": "Dec",
        "Total_Households_Worked": 87155,
        "Total_Individuals_Worked": 90928,
        "Total_Exp": 15209.14166989,
        "Women_Persondays": 1696959,
        "Avg_Days_Worked": 39,
        "Payment_within_15_days": 100.74,
    },
)


async def seed(store: RecordStore) -> None:
    await store.upsert_district(SAMPLE.district_code, SAMPLE.district_name)
    await store.upsert_records([SAMPLE])
    log.info("seed.inserted", district_code=SAMPLE.district_code)


async def _main() -> None:
    engine = build_engine()
    await init_db(engine)
    try:
        await seed(RecordStore(build_sessionmaker(engine)))
    finally:
        await close_db(engine)


def main() -> None:
    asyncio.run(_main())


if __name__ == "__main__":
    main()
