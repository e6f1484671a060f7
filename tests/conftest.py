import os

# Set required env vars BEFORE any app imports trigger Settings()
os.environ.setdefault("DATA_GOV_API_KEY", "test-api-key-for-testing")
os.environ.setdefault("STATE_NAME", "BIHAR")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from mgnrega_api.main import app
from mgnrega_api.database import build_engine, build_sessionmaker, init_db
from mgnrega_api.dependencies import get_district_service, get_gov_client, get_store
from mgnrega_api.repositories.records import RecordStore
from mgnrega_api.services.district_data import DistrictDataService
from tests.helpers import FakeGovClient


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(db_engine):
    return RecordStore(build_sessionmaker(db_engine))


@pytest.fixture
def gov_client():
    return FakeGovClient()


@pytest.fixture
def service(store, gov_client):
    return DistrictDataService(store, gov_client, state_name="BIHAR")


@pytest_asyncio.fixture
async def client(store, gov_client, service):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_gov_client] = lambda: gov_client
    app.dependency_overrides[get_district_service] = lambda: service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
