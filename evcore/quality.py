from __future__ import annotations

from typing import Any, Dict

from evcore.data import FRAME_COLUMNS, Dataset, dataset_columns, label_series, number_series

NUMERIC_COLUMNS = {"model_year", "electric_range", "base_msrp"}


def compute_data_quality(dataset: Dataset) -> Dict[str, Any]:
    """Row counts and per-field missing counts, as the aggregators see them."""
    frame = dataset.frame.copy()
    missing: Dict[str, int] = {}
    for col in FRAME_COLUMNS:
        if col in NUMERIC_COLUMNS:
            missing[col] = int(number_series(frame, col).isna().sum())
        else:
            missing[col] = int(label_series(frame, col).isna().sum())
    unreported_msrp = int((number_series(frame, "base_msrp") == 0).sum())
    return {
        "source": dataset.source,
        "records": len(dataset),
        "columns": list(dataset_columns(dataset)),
        "unrecognized_columns": [c for c in dataset.header if c not in dataset_columns(dataset)],
        "missing": missing,
        "unreported_msrp": unreported_msrp,
    }
