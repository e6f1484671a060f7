import asyncio
from datetime import datetime, timedelta

from mgnrega_api.schemas import DistrictRecord
from mgnrega_api.services.fetcher import FetchResult, FetchStatus

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)


def make_record(month, fin_year="2023-2024", code="0501", offset=0, **payload):
    """A stored-record fixture whose created_at is BASE_TIME + offset minutes."""
    body = {"fin_year": fin_year, "month": month, "district_code": code}
    body.update(payload)
    return DistrictRecord(
        district_code=code,
        district_name=payload.get("district_name"),
        state_name="BIHAR",
        fin_year=fin_year,
        month=month,
        payload=body,
        created_at=BASE_TIME + timedelta(minutes=offset),
    )


class FakeGovClient:
    """Records every fetch and replays a canned FetchResult."""

    def __init__(self, result=None, delay=0.0):
        self.result = result or FetchResult(FetchStatus.NO_DATA)
        self.delay = delay
        self.calls = []

    async def fetch(self, filters, limit=None):
        self.calls.append({"filters": dict(filters), "limit": limit})
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.result

    async def aclose(self):
        pass
