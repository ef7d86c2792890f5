from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from evcore import insights
from evcore.aggregate import RANGE_BUCKETS, Bucket, bucket_histogram, group_reduce, nested_top, rank, with_shares
from evcore.data import CAFV_ELIGIBLE, Dataset, label_series, number_series, year_series
from evcore.errors import UnknownView


logger = logging.getLogger(__name__)

ChartKind = Literal["bar", "grouped_bar", "line", "pie", "doughnut"]
Shape = Literal["grouped", "nested", "histogram"]
Order = Literal["rank", "key", "fixed"]
ValueField = Literal["count", "average", "share"]
Selector = Callable[[pd.DataFrame], pd.Series]
InsightFn = Callable[[Mapping[str, Any]], List[str]]


# ---------------- Selectors ----------------
def text_key(col: str) -> Selector:
    return lambda frame: label_series(frame, col)


def year_key(col: str) -> Selector:
    return lambda frame: year_series(frame, col)


def numeric(col: str, *, positive: bool = False) -> Selector:
    def select(frame: pd.DataFrame) -> pd.Series:
        values = number_series(frame, col)
        return values.where(values > 0) if positive else values

    return select


def cafv_key(frame: pd.DataFrame) -> pd.Series:
    status = label_series(frame, "cafv_eligibility")
    return status.map(lambda v: None if v is None else ("Eligible" if v == CAFV_ELIGIBLE else "Not eligible")).astype(object)


# ---------------- View table ----------------
@dataclass(frozen=True)
class ViewSpec:
    name: str
    title: str
    chart: ChartKind
    shape: Shape
    insights: InsightFn
    key: Optional[Selector] = None
    inner_key: Optional[Selector] = None
    metric: Optional[Selector] = None
    value: ValueField = "count"
    order: Order = "rank"
    rank_by: str = "count"
    top_n: Optional[int] = None
    top_inner: Optional[int] = None
    categories: Tuple[str, ...] = ()
    buckets: Tuple[Bucket, ...] = ()
    series_name: str = ""
    x_title: str = ""
    y_title: str = ""

    @property
    def ranked(self) -> bool:
        return self.shape == "nested" or self.order == "rank"


VIEW_SPECS: Tuple[ViewSpec, ...] = (
    ViewSpec(
        name="top_makes_by_city",
        title="Top EV Makes in Major Cities",
        chart="grouped_bar",
        shape="nested",
        key=text_key("city"),
        inner_key=text_key("make"),
        top_n=5,
        top_inner=3,
        x_title="City",
        y_title="Number of Vehicles",
        insights=insights.top_makes_by_city,
    ),
    ViewSpec(
        name="ev_type_distribution",
        title="EV Type Distribution",
        chart="doughnut",
        shape="grouped",
        key=text_key("ev_type"),
        series_name="Number of Vehicles",
        insights=insights.ev_type_distribution,
    ),
    ViewSpec(
        name="avg_range_by_make",
        title="Average Electric Range by Make",
        chart="bar",
        shape="grouped",
        key=text_key("make"),
        metric=numeric("electric_range"),
        value="average",
        rank_by="average",
        top_n=10,
        series_name="Avg Electric Range (miles)",
        x_title="Make",
        y_title="Average Electric Range (miles)",
        insights=insights.avg_range_by_make,
    ),
    ViewSpec(
        name="base_msrp_over_years",
        title="Average Base MSRP Over Model Years",
        chart="line",
        shape="grouped",
        key=year_key("model_year"),
        metric=numeric("base_msrp", positive=True),
        value="average",
        order="key",
        series_name="Avg Base MSRP ($)",
        x_title="Model Year",
        y_title="Average Base MSRP ($)",
        insights=insights.base_msrp_over_years,
    ),
    ViewSpec(
        name="range_distribution",
        title="Electric Range Distribution",
        chart="bar",
        shape="histogram",
        metric=numeric("electric_range"),
        order="fixed",
        buckets=RANGE_BUCKETS,
        series_name="Number of Vehicles",
        x_title="Electric Range (miles)",
        y_title="Number of Vehicles",
        insights=insights.range_distribution,
    ),
    ViewSpec(
        name="ev_adoption",
        title="EV Adoption Over Time",
        chart="line",
        shape="grouped",
        key=year_key("model_year"),
        order="key",
        series_name="Number of EVs",
        x_title="Model Year",
        y_title="Number of Vehicles",
        insights=insights.ev_adoption,
    ),
    ViewSpec(
        name="most_common_models",
        title="Most Common EV Models",
        chart="bar",
        shape="grouped",
        key=text_key("model"),
        top_n=10,
        series_name="Count of EVs",
        x_title="Model",
        y_title="Number of Vehicles",
        insights=insights.most_common_models,
    ),
    ViewSpec(
        name="cafv_eligibility",
        title="CAFV Eligibility Breakdown",
        chart="pie",
        shape="grouped",
        key=cafv_key,
        order="fixed",
        categories=("Eligible", "Not eligible"),
        series_name="Number of Vehicles",
        insights=insights.cafv_eligibility,
    ),
    ViewSpec(
        name="ev_market_share",
        title="EV Market Share by Type",
        chart="doughnut",
        shape="grouped",
        key=text_key("ev_type"),
        value="share",
        series_name="Market Share (%)",
        insights=insights.ev_market_share,
    ),
)

VIEWS: Dict[str, ViewSpec] = {spec.name: spec for spec in VIEW_SPECS}
DEFAULT_VIEW = "top_makes_by_city"


def get_view(name: str) -> ViewSpec:
    try:
        return VIEWS[name]
    except KeyError:
        raise UnknownView(name) from None


# ---------------- Requests ----------------
@dataclass(frozen=True)
class ViewRequest:
    view: str = DEFAULT_VIEW
    top_n: Optional[int] = None
    top_inner: Optional[int] = None
    dark_mode: bool = True


def _as_count(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return None


def normalize_request(raw: Mapping[str, Any]) -> ViewRequest:
    view = str(raw.get("view") or DEFAULT_VIEW).strip()
    get_view(view)
    return ViewRequest(
        view=view,
        top_n=_as_count(raw.get("top_n")),
        top_inner=_as_count(raw.get("top_inner")),
        dark_mode=bool(raw.get("dark_mode", True)),
    )


# ---------------- Results ----------------
@dataclass(frozen=True)
class Series:
    name: str
    values: Tuple[float, ...]


@dataclass(frozen=True)
class AggregationResult:
    view: str
    title: str
    chart: ChartKind
    labels: Tuple[Any, ...] = ()
    series: Tuple[Series, ...] = ()
    facts: Mapping[str, Any] = field(default_factory=dict)
    insights: Tuple[str, ...] = ()
    x_title: str = ""
    y_title: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.labels

    def points(self) -> List[Tuple[Any, float]]:
        if not self.series:
            return []
        return list(zip(self.labels, self.series[0].values))

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {"position": i, "label": label, "series": s.name, "value": value}
            for s in self.series
            for i, (label, value) in enumerate(zip(self.labels, s.values))
        ]
        return pd.DataFrame(rows, columns=["position", "label", "series", "value"])

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _empty(spec: ViewSpec) -> AggregationResult:
    return AggregationResult(view=spec.name, title=spec.title, chart=spec.chart, x_title=spec.x_title, y_title=spec.y_title)


def _top(requested: Optional[int], default: Optional[int]) -> Optional[int]:
    return requested if requested is not None else default


def _entries(df: pd.DataFrame, label_col: str = "key") -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for row in df.to_dict(orient="records"):
        entry: Dict[str, Any] = {"label": row[label_col], "count": int(row["count"])}
        for col in ("sum", "average", "share"):
            if col in row:
                entry[col] = float(row[col])
        out.append(entry)
    return out


Computed = Optional[Tuple[List[Any], Tuple[Series, ...], Dict[str, Any]]]


def _grouped(frame: pd.DataFrame, spec: ViewSpec, request: ViewRequest) -> Computed:
    values = spec.metric(frame) if spec.metric is not None else None
    grouped = group_reduce(spec.key(frame), values)
    if grouped.empty:
        return None
    total = int(grouped["count"].sum())
    if spec.order == "key":
        ordered = grouped.sort_values("key", kind="stable").reset_index(drop=True)
    elif spec.order == "fixed":
        ordered = grouped.set_index("key").reindex(list(spec.categories), fill_value=0).rename_axis("key").reset_index()
    else:
        ordered = rank(grouped, spec.rank_by, _top(request.top_n, spec.top_n))
    entries = _entries(with_shares(ordered, total))
    if not entries:
        return None
    labels = [e["label"] for e in entries]
    series = (Series(name=spec.series_name, values=tuple(e[spec.value] for e in entries)),)
    return labels, series, {"total": total, "groups": len(grouped), "entries": entries}


def _histogram(frame: pd.DataFrame, spec: ViewSpec, request: ViewRequest) -> Computed:
    counts = bucket_histogram(spec.metric(frame), spec.buckets)
    total = int(counts["count"].sum())
    if total == 0:
        return None
    entries = _entries(with_shares(counts, total), label_col="bucket")
    labels = [e["label"] for e in entries]
    series = (Series(name=spec.series_name, values=tuple(e[spec.value] for e in entries)),)
    return labels, series, {"total": total, "groups": len(entries), "entries": entries}


def _nested(frame: pd.DataFrame, spec: ViewSpec, request: ViewRequest) -> Computed:
    cells, outer_totals = nested_top(
        spec.key(frame),
        spec.inner_key(frame),
        top_outer=_top(request.top_n, spec.top_n),
        top_inner=_top(request.top_inner, spec.top_inner),
    )
    if cells.empty:
        return None
    labels = [r["outer"] for r in outer_totals.to_dict(orient="records")]
    series = tuple(
        Series(name=make, values=tuple(int(v) for v in group["count"]))
        for make, group in cells.groupby("inner", sort=False)
    )
    make_totals = rank(cells.groupby("inner", sort=False)["count"].sum().reset_index(), "count")
    facts = {
        "total": int(cells["count"].sum()),
        "cities": [{"label": r["outer"], "count": int(r["count"])} for r in outer_totals.to_dict(orient="records")],
        "makes": [{"label": r["inner"], "count": int(r["count"])} for r in make_totals.to_dict(orient="records")],
    }
    return labels, series, facts


_SHAPES: Dict[str, Callable[[pd.DataFrame, ViewSpec, ViewRequest], Computed]] = {
    "grouped": _grouped,
    "histogram": _histogram,
    "nested": _nested,
}


def compute_view(dataset: Dataset, request: Union[ViewRequest, str]) -> AggregationResult:
    """Aggregate the dataset for one view. Pure: the dataset is never modified."""
    if isinstance(request, str):
        request = ViewRequest(view=request)
    spec = get_view(request.view)
    if dataset.is_empty:
        return _empty(spec)
    computed = _SHAPES[spec.shape](dataset.frame.copy(), spec, request)
    if computed is None:
        logger.debug("View %s has no qualifying records", spec.name)
        return _empty(spec)
    labels, series, facts = computed
    logger.debug("View %s: %d labels, %d series", spec.name, len(labels), len(series))
    return AggregationResult(
        view=spec.name,
        title=spec.title,
        chart=spec.chart,
        labels=tuple(labels),
        series=series,
        facts=facts,
        insights=tuple(spec.insights(facts)),
        x_title=spec.x_title,
        y_title=spec.y_title,
    )


def aggregate(records: Union[Dataset, Iterable[Mapping[str, object]]], request: Union[ViewRequest, str]) -> AggregationResult:
    dataset = records if isinstance(records, Dataset) else Dataset.from_records(records)
    return compute_view(dataset, request)


def compute_all(dataset: Dataset, views: Optional[Sequence[str]] = None) -> Dict[str, AggregationResult]:
    return {name: compute_view(dataset, name) for name in (views or list(VIEWS))}
