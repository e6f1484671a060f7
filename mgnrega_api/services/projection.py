from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from mgnrega_api.schemas import (
    AvailabilityResponse,
    DistrictDataResponse,
    DistrictRecord,
    KpiSnapshot,
    StateMonthPoint,
    TimeseriesPoint,
    YearTotal,
)
from mgnrega_api.services.coercion import to_number

# Financial years run April to March.
_FY_MONTHS = ["apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec", "jan", "feb", "mar"]

_STATE_PERSONDAY_FIELDS = (
    "SC_persondays",
    "ST_persondays",
    "Women_Persondays",
    "Persondays_of_Central_Liability_so_far",
)


def period_sort_key(fin_year: str | None, month: str | None) -> Tuple[int, int]:
    """Chronological key for a (fin_year, month) pair; unknown parts sort first."""
    try:
        start_year = int(str(fin_year).strip()[:4])
    except (TypeError, ValueError):
        start_year = -1
    abbrev = str(month or "").strip()[:3].lower()
    month_idx = _FY_MONTHS.index(abbrev) if abbrev in _FY_MONTHS else -1
    return start_year, month_idx


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def _newest_first(records: Sequence[DistrictRecord]) -> List[DistrictRecord]:
    if all(r.created_at is not None for r in records):
        return sorted(records, key=lambda r: r.created_at, reverse=True)
    return list(records)


def build_timeseries(records: Sequence[DistrictRecord]) -> List[TimeseriesPoint]:
    """Oldest-first points from newest-first records."""
    points = []
    for r in reversed(records):
        p = r.payload
        points.append(
            TimeseriesPoint(
                fin_year=r.fin_year,
                month=r.month,
                persondays=to_number(p.get("Persondays_of_Central_Liability_so_far")),
                Total_Households_Worked=to_number(p.get("Total_Households_Worked")),
                Total_Individuals_Worked=to_number(p.get("Total_Individuals_Worked")),
                expenditure=to_number(p.get("Total_Exp")),
            )
        )
    return points


def build_kpis(latest: DistrictRecord) -> KpiSnapshot:
    p = latest.payload
    name = p.get("district_name") or latest.district_name
    return KpiSnapshot(
        district_name=str(name) if name else "Unknown",
        Total_Individuals_Worked=to_number(p.get("Total_Individuals_Worked")),
        Total_Households_Worked=to_number(p.get("Total_Households_Worked")),
        Total_Exp=to_number(p.get("Total_Exp")),
        Women_Persondays=to_number(p.get("Women_Persondays")),
        Avg_Days_Worked=to_number(
            _first_present(p, "Average_days_of_employment_provided_per_Household", "Avg_Days_Worked")
        ),
        Payment_within_15_days=to_number(
            _first_present(p, "percentage_payments_gererated_within_15_days", "Payment_within_15_days")
        ),
    )


def project(records: Sequence[DistrictRecord]) -> DistrictDataResponse:
    """KPI snapshot from the newest record plus an oldest-first time series."""
    if not records:
        raise ValueError("cannot project an empty record set")
    ordered = _newest_first(records)
    return DistrictDataResponse(kpis=build_kpis(ordered[0]), timeseries=build_timeseries(ordered))


# ── State-level reshapes ──────────────────────────────────────────────────────

def year_totals(records: Iterable[DistrictRecord]) -> List[YearTotal]:
    totals: Dict[str, Dict[str, float]] = {}
    for r in records:
        bucket = totals.setdefault(r.fin_year, {"households": 0.0, "expenditure": 0.0})
        bucket["households"] += to_number(r.payload.get("Total_Households_Worked"))
        bucket["expenditure"] += to_number(r.payload.get("Total_Exp"))
    return [
        YearTotal(
            fin_year=year,
            total_households=to_number(t["households"]),
            total_expenditure=to_number(round(t["expenditure"], 2)),
        )
        for year, t in sorted(totals.items())
    ]


def state_series(raw_records: Iterable[Mapping[str, Any]]) -> List[StateMonthPoint]:
    return [
        StateMonthPoint(
            month=str(item.get("month") or "Unknown"),
            expenditure=to_number(item.get("Total_Exp")),
            persondays=to_number(sum(to_number(item.get(f)) for f in _STATE_PERSONDAY_FIELDS)),
        )
        for item in raw_records
    ]


def availability(raw_records: Iterable[Mapping[str, Any]]) -> AvailabilityResponse:
    states, years = set(), set()
    for r in raw_records:
        if isinstance(r.get("state_name"), str) and r["state_name"].strip():
            states.add(r["state_name"].strip())
        if isinstance(r.get("fin_year"), str) and r["fin_year"].strip():
            years.add(r["fin_year"].strip())
    return AvailabilityResponse(states=sorted(states), years=sorted(years, reverse=True))
