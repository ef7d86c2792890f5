from __future__ import annotations

import pandas as pd
import pytest

from evcore.data import CAFV_ELIGIBLE, DEFAULT_DATA_PATH, Dataset, ingest
from evcore.errors import UnknownView
from evcore.views import (
    DEFAULT_VIEW,
    VIEW_SPECS,
    VIEWS,
    ViewRequest,
    aggregate,
    compute_all,
    compute_view,
    normalize_request,
)

BEV = "Battery Electric Vehicle (BEV)"
PHEV = "Plug-in Hybrid Electric Vehicle (PHEV)"


def _makes_by_city():
    rows = (
        [("A", "TESLA")] * 4
        + [("A", "NISSAN")] * 3
        + [("B", "TESLA")] * 3
        + [("B", "KIA")] * 2
        + [("C", "FORD"), ("C", "FORD"), ("C", "NISSAN"), ("C", "TESLA")]
        + [("D", "BMW")] * 3
    )
    return [{"City": city, "Make": make} for city, make in rows]


def test_view_table_lists_nine_views_in_display_order() -> None:
    assert [spec.name for spec in VIEW_SPECS] == [
        "top_makes_by_city",
        "ev_type_distribution",
        "avg_range_by_make",
        "base_msrp_over_years",
        "range_distribution",
        "ev_adoption",
        "most_common_models",
        "cafv_eligibility",
        "ev_market_share",
    ]
    assert DEFAULT_VIEW in VIEWS


def test_avg_range_by_make_ranks_by_average() -> None:
    result = aggregate(
        [
            {"Make": "Tesla", "ElectricRange": 300},
            {"Make": "Tesla", "ElectricRange": 250},
            {"Make": "Nissan", "ElectricRange": 150},
        ],
        "avg_range_by_make",
    )
    assert result.labels == ("Tesla", "Nissan")
    assert result.series[0].values == (275.0, 150.0)
    assert result.insights == (
        "The top EV make, Tesla, has an average electric range of 275.00 miles.",
        "The second best performing make is Nissan, with an average range of 150.00 miles.",
        "The top two makes together contribute an average electric range of 425.00 miles.",
    )


def test_avg_range_by_make_without_ranges_is_empty() -> None:
    result = aggregate([{"Make": "Tesla"}, {"Make": "Nissan", "ElectricRange": "n/a"}], "avg_range_by_make")
    assert result.is_empty
    assert result.series == ()
    assert result.insights == ()


def test_range_distribution_counts_every_bucket() -> None:
    result = aggregate(
        [{"ElectricRange": 40}, {"ElectricRange": 60}, {"ElectricRange": None}],
        "range_distribution",
    )
    assert result.labels == ("0-50", "51-100", "101-150", "151-200", "201-250", "251-300", "301-350", "351+")
    assert result.series[0].values == (1, 1, 0, 0, 0, 0, 0, 0)
    assert result.facts["total"] == 2
    assert result.insights[0] == "There are a total of 2 vehicles categorized by their electric range."
    assert result.insights[1] == "The most common range bucket is 0-50 miles, which includes 1 vehicles (50.00%)."
    assert result.insights[2] == "0 vehicles (0.00%) fall in the open-ended 351+ bucket."


def test_top_makes_by_city_two_level_selection() -> None:
    result = aggregate(_makes_by_city(), ViewRequest(view="top_makes_by_city", top_n=3, top_inner=1))
    assert result.labels == ("A", "B", "C")
    assert [(s.name, s.values) for s in result.series] == [("TESLA", (4, 3, 1)), ("FORD", (0, 0, 2))]
    assert result.insights == (
        "TESLA is the most registered make across the top 3 cities, with 8 vehicles.",
        "FORD follows with 2 vehicles in the same cities.",
        "A leads all cities with 7 registered vehicles.",
    )


def test_top_makes_by_city_union_of_local_top_lists() -> None:
    result = aggregate(_makes_by_city(), ViewRequest(view="top_makes_by_city", top_n=3, top_inner=2))
    assert [(s.name, s.values) for s in result.series] == [
        ("TESLA", (4, 3, 1)),
        ("NISSAN", (3, 0, 1)),
        ("KIA", (0, 2, 0)),
        ("FORD", (0, 0, 2)),
    ]
    assert result.insights[-1] == "The remaining 2 makes account for 4 vehicles in these cities."


def test_top_makes_by_city_defaults_to_five_cities() -> None:
    result = aggregate(_makes_by_city(), "top_makes_by_city")
    assert result.labels == ("A", "B", "C", "D")
    assert result.chart == "grouped_bar"


def _models():
    names = ["MODEL 3", "LEAF", "MODEL 3", "VOLT", "LEAF", "I3", "MODEL 3", None]
    return [{"Model": name, "Make": "X"} for name in names]


def test_most_common_models_shares_and_insights() -> None:
    result = aggregate(_models(), "most_common_models")
    assert result.labels == ("MODEL 3", "LEAF", "VOLT", "I3")
    assert result.series[0].values == (3, 2, 1, 1)
    assert result.facts["total"] == 7
    assert result.insights == (
        "The most common model in the dataset is MODEL 3, which accounts for 3 vehicles, "
        "representing 42.86% of the total vehicle count.",
        "The second-most common model, LEAF, has 2 vehicles, 1 fewer than MODEL 3.",
        "The 4th most common model, I3, has just 1 vehicle.",
        "Overall, the top 4 models represent 100.00% of the vehicles.",
    )


def test_most_common_models_top_n_keeps_full_denominator() -> None:
    result = aggregate(_models(), ViewRequest(view="most_common_models", top_n=2))
    assert result.labels == ("MODEL 3", "LEAF")
    assert result.insights[-1] == "Overall, the top 2 models represent 71.43% of the vehicles."


def test_top_n_zero_gives_empty_result() -> None:
    result = aggregate(_models(), ViewRequest(view="most_common_models", top_n=0))
    assert result.is_empty
    assert result.insights == ()


def test_base_msrp_over_years_ignores_unreported_prices() -> None:
    result = aggregate(
        [
            {"ModelYear": 2021, "BaseMSRP": 50000},
            {"ModelYear": 2019, "BaseMSRP": 30000},
            {"ModelYear": 2019, "BaseMSRP": 0},
            {"ModelYear": 2019, "BaseMSRP": 40000},
        ],
        "base_msrp_over_years",
    )
    assert result.labels == (2019, 2021)
    assert result.series[0].values == (35000.0, 50000.0)
    assert result.insights == (
        "In 2019, the average base MSRP was $35,000.00.",
        "By 2021, the average base MSRP rose to $50,000.00, a change of $15,000.00 (42.86%).",
        "Base MSRP is reported for 3 vehicles across 2 model years.",
    )


def test_ev_adoption_orders_years_ascending() -> None:
    years = [2020, 2019, 2020, 2021, None]
    result = aggregate([{"ModelYear": y} for y in years], "ev_adoption")
    assert result.labels == (2019, 2020, 2021)
    assert result.series[0].values == (1, 2, 1)
    assert result.insights == (
        "There are a total of 4 EVs registered across model years 2019 to 2021.",
        "The year with the highest adoption was 2020, with 2 registrations (50.00% of the total).",
        "The latest model year, 2021, has 1 registration.",
    )


def test_cafv_eligibility_fixed_categories() -> None:
    statuses = [CAFV_ELIGIBLE, "Not eligible due to low battery range", CAFV_ELIGIBLE, "Eligibility unknown"]
    result = aggregate([{"CafvEligibility": s} for s in statuses], "cafv_eligibility")
    assert result.labels == ("Eligible", "Not eligible")
    assert result.series[0].values == (2, 2)
    assert result.insights == (
        "Out of 4 vehicles, 2 are eligible for Clean Alternative Fuel Vehicle (CAFV) status, "
        "50.0% of all vehicles in the dataset.",
        "The remaining 2 vehicles, or 50.0%, are not eligible or have not been evaluated.",
    )


def test_cafv_eligibility_reports_empty_category_as_zero() -> None:
    result = aggregate([{"CafvEligibility": CAFV_ELIGIBLE}] * 3, "cafv_eligibility")
    assert result.labels == ("Eligible", "Not eligible")
    assert result.series[0].values == (3, 0)
    assert result.insights[1] == "The remaining 0 vehicles, or 0.0%, are not eligible or have not been evaluated."


def test_ev_type_views_rank_by_count() -> None:
    records = [{"ElectricVehicleType": t} for t in [PHEV, BEV, BEV, BEV]]
    distribution = aggregate(records, "ev_type_distribution")
    share = aggregate(records, "ev_market_share")
    assert distribution.labels == share.labels == (BEV, PHEV)
    assert distribution.series[0].values == (3, 1)
    assert share.series[0].values == (75.0, 25.0)
    assert share.insights == (
        f"The most popular EV type is {BEV}, accounting for 75.00% of all electric vehicles.",
        f"The second most popular EV type is {PHEV}, making up 25.00% of the market.",
    )


def test_ev_market_share_mentions_remaining_types() -> None:
    records = [{"ElectricVehicleType": t} for t in [BEV, BEV, PHEV, "Fuel Cell"]]
    result = aggregate(records, "ev_market_share")
    assert result.insights[-1] == "The remaining EV types together account for 25.00% of the market."


@pytest.mark.parametrize("name", [spec.name for spec in VIEW_SPECS])
def test_every_view_is_empty_for_empty_dataset(name) -> None:
    result = compute_view(Dataset(), name)
    assert result.view == name
    assert result.labels == ()
    assert result.series == ()
    assert result.insights == ()
    assert result.to_frame().empty


def test_compute_view_is_pure_and_deterministic(sample_dataset) -> None:
    before = sample_dataset.frame.copy()
    first = {name: r.to_dict() for name, r in compute_all(sample_dataset).items()}
    second = {name: r.to_dict() for name, r in compute_all(sample_dataset).items()}
    assert first == second
    pd.testing.assert_frame_equal(sample_dataset.frame, before)


def test_result_frame_has_one_row_per_point(sample_dataset) -> None:
    result = compute_view(sample_dataset, "top_makes_by_city")
    frame = result.to_frame()
    assert list(frame.columns) == ["position", "label", "series", "value"]
    assert len(frame) == len(result.labels) * len(result.series)
    assert result.points()[0] == (result.labels[0], result.series[0].values[0])


def test_compute_view_rejects_unknown_view(sample_dataset) -> None:
    with pytest.raises(UnknownView):
        compute_view(sample_dataset, "fuel_economy")


def test_bundled_sample_renders_every_view() -> None:
    results = compute_all(ingest(DEFAULT_DATA_PATH))
    assert list(results) == list(VIEWS)
    for result in results.values():
        assert not result.is_empty
        assert all(len(s.values) == len(result.labels) for s in result.series)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ({}, ViewRequest(view=DEFAULT_VIEW)),
        ({"view": " most_common_models ", "top_n": "3"}, ViewRequest(view="most_common_models", top_n=3)),
        ({"view": "most_common_models", "top_n": -2}, ViewRequest(view="most_common_models", top_n=0)),
        ({"view": "most_common_models", "top_n": "many"}, ViewRequest(view="most_common_models")),
        ({"view": "top_makes_by_city", "top_inner": 2, "dark_mode": False},
         ViewRequest(view="top_makes_by_city", top_inner=2, dark_mode=False)),
    ],
)
def test_normalize_request(raw, expected) -> None:
    assert normalize_request(raw) == expected


def test_normalize_request_rejects_unknown_view() -> None:
    with pytest.raises(UnknownView) as excinfo:
        normalize_request({"view": "fuel_economy"})
    assert excinfo.value.view == "fuel_economy"


def test_share_and_count_totals_match_present_records(sample_dataset) -> None:
    share = compute_view(sample_dataset, "ev_market_share")
    models = compute_view(sample_dataset, "most_common_models")
    histogram = compute_view(sample_dataset, "range_distribution")
    assert sum(share.series[0].values) == pytest.approx(100.0)
    assert sum(models.series[0].values) == len(sample_dataset)
    assert sum(histogram.series[0].values) == len(sample_dataset) - 1


SINGLE_VEHICLE = {
    "City": "Seattle",
    "Make": "TESLA",
    "Model": "MODEL 3",
    "ModelYear": 2020,
    "ElectricRange": 300,
    "BaseMSRP": 50000,
    "ElectricVehicleType": BEV,
    "CafvEligibility": CAFV_ELIGIBLE,
}


@pytest.mark.parametrize("name", [spec.name for spec in VIEW_SPECS])
def test_single_group_results_still_have_two_to_four_insights(name) -> None:
    result = aggregate([SINGLE_VEHICLE, dict(SINGLE_VEHICLE)], name)
    assert not result.is_empty
    assert 2 <= len(result.insights) <= 4


def test_avg_range_top_one_describes_all_makes(sample_dataset) -> None:
    result = compute_view(sample_dataset, ViewRequest(view="avg_range_by_make", top_n=1))
    assert result.labels == ("TESLA",)
    assert result.insights[1] == "Average ranges were computed for 6 makes from 9 vehicles with a reported range."


def test_single_type_share_views_report_totals() -> None:
    records = [{"ElectricVehicleType": BEV}] * 3
    assert aggregate(records, "ev_type_distribution").insights[1] == (
        "All 3 vehicles with a recorded type fall under 1 EV type."
    )
    assert aggregate(records, "ev_market_share").insights[1] == (
        "Market share is measured over 3 vehicles across 1 EV type."
    )
