from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


GROUP_COLUMNS = ["key", "count", "sum", "average"]


@dataclass(frozen=True)
class Bucket:
    label: str
    upper: Optional[float] = None  # inclusive; None = unbounded above


RANGE_BUCKETS: Tuple[Bucket, ...] = (
    Bucket("0-50", 50),
    Bucket("51-100", 100),
    Bucket("101-150", 150),
    Bucket("151-200", 200),
    Bucket("201-250", 250),
    Bucket("251-300", 300),
    Bucket("301-350", 350),
    Bucket("351+"),
)


def group_reduce(keys: pd.Series, values: Optional[pd.Series] = None) -> pd.DataFrame:
    """Count, sum and average of ``values`` per key, keys in first-seen order.

    Rows with a missing key or a missing value are skipped. Without ``values``
    every row counts as 1, so ``sum`` equals ``count``.
    """
    frame = pd.DataFrame({"key": keys})
    frame["value"] = 1.0 if values is None else values
    frame = frame.dropna(subset=["key", "value"])
    if frame.empty:
        return pd.DataFrame(columns=GROUP_COLUMNS)
    grouped = frame.groupby("key", sort=False)["value"].agg(["count", "sum"]).reset_index()
    grouped["average"] = grouped["sum"] / grouped["count"]
    return grouped[GROUP_COLUMNS]


def rank(grouped: pd.DataFrame, by: str, top_n: Optional[int] = None) -> pd.DataFrame:
    """Sort descending by ``by``; ties keep their incoming order."""
    ranked = grouped.sort_values(by, ascending=False, kind="stable")
    if top_n is not None:
        ranked = ranked.head(max(int(top_n), 0))
    return ranked.reset_index(drop=True)


def with_shares(grouped: pd.DataFrame, total: Optional[float] = None) -> pd.DataFrame:
    total = float(grouped["count"].sum()) if total is None else float(total)
    share = grouped["count"] / total * 100 if total else 0.0
    return grouped.assign(share=share)


def nested_top(
    outer: pd.Series,
    inner: pd.Series,
    *,
    top_outer: Optional[int],
    top_inner: Optional[int],
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Two-level selection for composite keys such as city x make.

    Outer keys are ranked by their total count and truncated first. Each kept
    outer key then ranks its own inner keys independently. The inner keys kept
    are the union of every local top list, in order of first selection.

    Returns ``(cells, outer_totals)``: one row per kept outer x kept inner pair
    (absent pairs count 0), and the ranked, truncated outer totals.
    """
    empty = pd.DataFrame(columns=["outer", "inner", "count"]), pd.DataFrame(columns=["outer", "count"])
    frame = pd.DataFrame({"outer": outer, "inner": inner}).dropna()
    if frame.empty:
        return empty

    pairs = frame.groupby(["outer", "inner"], sort=False).size().reset_index(name="count")
    totals = pairs.groupby("outer", sort=False)["count"].sum().reset_index()
    kept_outer = rank(totals, "count", top_outer)

    kept_inner: List[object] = []
    for key in kept_outer["outer"]:
        local = rank(pairs[pairs["outer"] == key], "count", top_inner)
        for name in local["inner"]:
            if name not in kept_inner:
                kept_inner.append(name)
    if kept_outer.empty or not kept_inner:
        return empty

    grid = pd.MultiIndex.from_product([kept_outer["outer"].tolist(), kept_inner], names=["outer", "inner"])
    cells = pairs.set_index(["outer", "inner"])["count"].reindex(grid, fill_value=0).reset_index()
    return cells, kept_outer


def bucket_edges(buckets: Sequence[Bucket]) -> List[float]:
    if not buckets or buckets[-1].upper is not None:
        raise ValueError("last bucket must be unbounded above")
    uppers = [float(b.upper) for b in buckets[:-1]]
    if any(b >= a for a, b in zip(uppers[1:], uppers)):
        raise ValueError("bucket bounds must be strictly increasing")
    return [-np.inf] + uppers + [np.inf]


def bucket_histogram(values: pd.Series, buckets: Sequence[Bucket] = RANGE_BUCKETS) -> pd.DataFrame:
    """Count values per bucket; every bucket is reported, missing values are not counted."""
    edges = bucket_edges(buckets)
    labels = [b.label for b in buckets]
    present = pd.to_numeric(values, errors="coerce").dropna()
    present = present[np.isfinite(present)]
    if present.empty:
        counts = [0] * len(labels)
    else:
        binned = pd.cut(present, bins=edges, labels=labels, right=True)
        tally = binned.value_counts(sort=False)
        counts = [int(tally.get(label, 0)) for label in labels]
    return pd.DataFrame({"bucket": labels, "count": counts})
