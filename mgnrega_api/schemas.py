from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

Number = Union[int, float]


class DistrictRecord(BaseModel):
    """One district observation for a (fin_year, month) period."""
    district_code: str
    district_name: Optional[str] = None
    state_code: Optional[str] = None
    state_name: Optional[str] = None
    fin_year: str
    month: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    model_config = {"from_attributes": True}


class DistrictOut(BaseModel):
    district_code: str
    district_name: str
    model_config = {"from_attributes": True}


class MetadataOut(BaseModel):
    key: str
    value: Optional[str] = None
    model_config = {"from_attributes": True}


class KpiSnapshot(BaseModel):
    district_name: str = "Unknown"
    Total_Individuals_Worked: Number = 0
    Total_Households_Worked: Number = 0
    Total_Exp: Number = 0
    Women_Persondays: Number = 0
    Avg_Days_Worked: Number = 0
    Payment_within_15_days: Number = 0


class TimeseriesPoint(BaseModel):
    fin_year: Optional[str] = None
    month: Optional[str] = None
    persondays: Number = 0
    Total_Households_Worked: Number = 0
    Total_Individuals_Worked: Number = 0
    expenditure: Number = 0


class DistrictDataResponse(BaseModel):
    kpis: KpiSnapshot
    timeseries: List[TimeseriesPoint]


class YearTotal(BaseModel):
    fin_year: str
    total_households: Number
    total_expenditure: Number


class StateMonthPoint(BaseModel):
    month: str
    expenditure: Number
    persondays: Number


class StateSeriesResponse(BaseModel):
    state_name: str
    data: Dict[str, List[StateMonthPoint]]


class AvailabilityResponse(BaseModel):
    states: List[str]
    years: List[str]


class HealthResponse(BaseModel):
    status: str
    database: str
    version: str
