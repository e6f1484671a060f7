from __future__ import annotations
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from mgnrega_api.config import settings
from mgnrega_api.dependencies import get_district_service, get_gov_client, get_store
from mgnrega_api.exceptions import InvalidInputError, NotFoundError, RemoteUnavailableError
from mgnrega_api.repositories.records import RecordStore
from mgnrega_api.schemas import (
    AvailabilityResponse, DistrictDataResponse, DistrictOut,
    MetadataOut, StateMonthPoint, StateSeriesResponse, YearTotal,
)
from mgnrega_api.services.district_data import DistrictDataService
from mgnrega_api.services.fetcher import FetchStatus, GovDataClient
from mgnrega_api.services.projection import availability, state_series, year_totals

router = APIRouter(tags=["data"])


@router.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} is running", "version": settings.APP_VERSION}


@router.get("/districts", response_model=List[DistrictOut])
async def list_districts(store: RecordStore = Depends(get_store)):
    return await store.list_districts()


@router.get("/data/{district_code}", response_model=DistrictDataResponse)
async def district_data(
    district_code: str,
    state_name: Optional[str] = Query(None),
    service: DistrictDataService = Depends(get_district_service),
):
    return await service.get_district_data(district_code, state_name)


@router.get("/state-comparison", response_model=List[YearTotal])
async def state_comparison(
    state_name: Optional[str] = Query(None),
    store: RecordStore = Depends(get_store),
):
    """Stored totals grouped by financial year."""
    return year_totals(await store.list_records(state_name))


@router.get("/state/{state_name}", response_model=StateSeriesResponse)
async def state_years(
    state_name: str,
    years: Optional[str] = Query(None, description="Comma separated financial years"),
    client: GovDataClient = Depends(get_gov_client),
):
    year_list = [y.strip() for y in (years or "").split(",") if y.strip()]
    if not year_list:
        raise InvalidInputError("Please specify years in query")

    data: Dict[str, List[StateMonthPoint]] = {}
    for year in year_list:
        result = await client.fetch(
            {"state_name": state_name, "fin_year": year}, limit=settings.STATE_FETCH_LIMIT
        )
        if result.status is FetchStatus.UNAVAILABLE:
            raise RemoteUnavailableError(
                "Upstream data source unavailable",
                {"state_name": state_name, "fin_year": year, "reason": result.error},
            )
        if result.ok:
            data[year] = state_series(r for r in result.records if isinstance(r, dict))

    if not data:
        raise NotFoundError(
            "No MGNREGA data found for that state/year range",
            {"state_name": state_name, "years": year_list},
        )
    return StateSeriesResponse(state_name=state_name.upper(), data=data)


@router.get("/availability", response_model=AvailabilityResponse)
async def available_states_and_years(client: GovDataClient = Depends(get_gov_client)):
    result = await client.fetch({}, limit=settings.AVAILABILITY_SAMPLE_SIZE)
    if result.status is FetchStatus.UNAVAILABLE:
        raise RemoteUnavailableError("Upstream data source unavailable", {"reason": result.error})
    return availability(r for r in result.records if isinstance(r, dict))


@router.get("/metadata", response_model=List[MetadataOut])
async def metadata(store: RecordStore = Depends(get_store)):
    return await store.read_metadata()
