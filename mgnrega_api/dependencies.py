from fastapi import Request

from mgnrega_api.repositories.records import RecordStore
from mgnrega_api.services.district_data import DistrictDataService
from mgnrega_api.services.fetcher import GovDataClient


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_gov_client(request: Request) -> GovDataClient:
    return request.app.state.gov_client


def get_district_service(request: Request) -> DistrictDataService:
    return request.app.state.district_service
