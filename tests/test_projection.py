import pytest

from mgnrega_api.schemas import DistrictRecord
from mgnrega_api.services.projection import (
    availability, build_kpis, period_sort_key, project, state_series, year_totals,
)
from tests.helpers import make_record


def _three_periods():
    return [
        make_record("Jan", fin_year="2023", offset=0, district_name="OLD", Total_Exp="100"),
        make_record("Feb", fin_year="2023", offset=1, district_name="MID", Total_Exp="200"),
        make_record("Mar", fin_year="2023", offset=2, district_name="NEW", Total_Exp="300",
                    Total_Households_Worked="87", Women_Persondays="NA"),
    ]


def test_timeseries_is_reverse_of_newest_first():
    newest_first = list(reversed(_three_periods()))
    result = project(newest_first)
    assert [p.month for p in result.timeseries] == ["Jan", "Feb", "Mar"]
    assert [p.month for p in result.timeseries] == [r.month for r in reversed(newest_first)]


@pytest.mark.parametrize("order", [(0, 1, 2), (2, 0, 1), (1, 2, 0)])
def test_kpis_come_from_latest_record_regardless_of_order(order):
    records = _three_periods()
    shuffled = [records[i] for i in order]
    kpis = project(shuffled).kpis
    assert kpis.district_name == "NEW"
    assert kpis.Total_Exp == 300
    assert kpis.Total_Households_Worked == 87
    assert kpis.Women_Persondays == 0


def test_kpis_default_unknown_name_and_zero_fields():
    record = DistrictRecord(district_code="0501", fin_year="2024-2025", month="Dec", payload={})
    kpis = build_kpis(record)
    assert kpis.district_name == "Unknown"
    assert kpis.Total_Individuals_Worked == 0
    assert kpis.Avg_Days_Worked == 0
    assert kpis.Payment_within_15_days == 0


def test_kpis_prefer_upstream_field_names():
    record = DistrictRecord(
        district_code="0501", district_name="PATNA", fin_year="2024-2025", month="Dec",
        payload={
            "Average_days_of_employment_provided_per_Household": "41",
            "Avg_Days_Worked": 39,
            "percentage_payments_gererated_within_15_days": "99.5",
        },
    )
    kpis = build_kpis(record)
    assert kpis.district_name == "PATNA"
    assert kpis.Avg_Days_Worked == 41
    assert kpis.Payment_within_15_days == 99.5


def test_timeseries_coerces_every_field():
    record = make_record(
        "Dec",
        Persondays_of_Central_Liability_so_far="1200",
        Total_Households_Worked=None,
        Total_Individuals_Worked="abc",
        Total_Exp="15209.14",
    )
    point = project([record]).timeseries[0]
    assert point.persondays == 1200
    assert point.Total_Households_Worked == 0
    assert point.Total_Individuals_Worked == 0
    assert point.expenditure == 15209.14


def test_project_rejects_empty():
    with pytest.raises(ValueError):
        project([])


def test_period_sort_key_follows_financial_year():
    periods = [("2024-2025", "Jan"), ("2023-2024", "Dec"), ("2024-2025", "Apr"), ("2024-2025", "Dec")]
    ordered = sorted(periods, key=lambda p: period_sort_key(*p))
    assert ordered == [
        ("2023-2024", "Dec"),
        ("2024-2025", "Apr"),
        ("2024-2025", "Dec"),
        ("2024-2025", "Jan"),
    ]
    assert period_sort_key(None, "???") == (-1, -1)


def test_year_totals_grouped_and_sorted():
    records = [
        make_record("Jan", fin_year="2024-2025", Total_Households_Worked="10", Total_Exp=1.5),
        make_record("Feb", fin_year="2023-2024", Total_Households_Worked=5),
        make_record("Feb", fin_year="2024-2025", Total_Households_Worked="NA", Total_Exp="2.25"),
    ]
    totals = year_totals(records)
    assert [(t.fin_year, t.total_households, t.total_expenditure) for t in totals] == [
        ("2023-2024", 5, 0),
        ("2024-2025", 10, 3.75),
    ]
    assert isinstance(totals[1].total_households, int)
    assert totals[1].model_dump_json() == '{"fin_year":"2024-2025","total_households":10,"total_expenditure":3.75}'


def test_state_series_sums_persondays():
    points = state_series([
        {"month": "Apr", "Total_Exp": "10", "SC_persondays": "1", "ST_persondays": 2,
         "Women_Persondays": "3", "Persondays_of_Central_Liability_so_far": "NA"},
        {"Total_Exp": None},
    ])
    assert points[0].month == "Apr"
    assert points[0].persondays == 6
    assert points[0].expenditure == 10
    assert points[1].month == "Unknown"
    assert points[1].persondays == 0


def test_availability_sorts_states_and_years():
    result = availability([
        {"state_name": " GOA ", "fin_year": "2022-2023"},
        {"state_name": "BIHAR", "fin_year": "2024-2025"},
        {"state_name": "GOA", "fin_year": "2023-2024"},
        {"state_name": None},
    ])
    assert result.states == ["BIHAR", "GOA"]
    assert result.years == ["2024-2025", "2023-2024", "2022-2023"]
