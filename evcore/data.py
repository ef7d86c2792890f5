from __future__ import annotations

import csv
import io
import logging
import math
import os
import re
from dataclasses import dataclass
from functools import cached_property, lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import requests

from evcore.errors import ParseFailure, SourceUnavailable


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
DEFAULT_DATA_PATH = DATA_DIR / "data-to-visualize" / "Electric_Vehicle_Population_Data.csv"
DATA_PATH_ENV = "EV_DATA_PATH"

CAFV_ELIGIBLE = "Clean Alternative Fuel Vehicle Eligible"

# CSV header (or compact record name) -> frame column
VEHICLE_COLUMNS = {
    "Make": "make",
    "Model": "model",
    "City": "city",
    "Model Year": "model_year",
    "ModelYear": "model_year",
    "Electric Range": "electric_range",
    "ElectricRange": "electric_range",
    "Base MSRP": "base_msrp",
    "BaseMSRP": "base_msrp",
    "Electric Vehicle Type": "ev_type",
    "ElectricVehicleType": "ev_type",
    "Clean Alternative Fuel Vehicle (CAFV) Eligibility": "cafv_eligibility",
    "CafvEligibility": "cafv_eligibility",
}
FRAME_COLUMNS = list(dict.fromkeys(VEHICLE_COLUMNS.values()))

_NUMBER_RE = re.compile(r"^\s*-?(\d+\.?|\.\d+|\d+\.\d+)([eE][-+]?\d+)?\s*$")
_INTEGER_RE = re.compile(r"^\s*-?\d+\s*$")

Record = Mapping[str, object]
Source = Union[str, Path]
Fetcher = Callable[[Source], str]


# ---------------- Coercion ----------------
def coerce_value(raw: Optional[str]) -> object:
    """Best-effort typing of one CSV field: whole numbers -> int, other numbers -> float, blank -> None."""
    if raw is None:
        return None
    if not raw.strip():
        return None
    if not _NUMBER_RE.match(raw):
        return raw
    if _INTEGER_RE.match(raw):
        return int(raw)
    return float(raw)


def as_number(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        return np.nan
    out = float(value)
    return out if math.isfinite(out) else np.nan


def as_label(value: object) -> Optional[str]:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    number = as_number(value)
    if math.isnan(number):
        return None
    return str(int(number)) if number.is_integer() else str(number)


def as_year(value: object) -> Optional[int]:
    number = as_number(value)
    if math.isnan(number) or not number.is_integer():
        return None
    return int(number)


def number_series(frame: pd.DataFrame, col: str) -> pd.Series:
    return frame[col].map(as_number).astype(float)


def label_series(frame: pd.DataFrame, col: str) -> pd.Series:
    return pd.Series([as_label(v) for v in frame[col]], index=frame.index, dtype=object)


def year_series(frame: pd.DataFrame, col: str) -> pd.Series:
    return pd.Series([as_year(v) for v in frame[col]], index=frame.index, dtype=object)


def drop_duplicate_columns(df: pd.DataFrame) -> pd.DataFrame:
    return df.loc[:, ~df.columns.duplicated()]


def build_frame(records: Iterable[Record]) -> pd.DataFrame:
    df = pd.DataFrame.from_records([dict(r) for r in records])
    df = df.rename(columns=VEHICLE_COLUMNS)
    df = drop_duplicate_columns(df)
    for col in FRAME_COLUMNS:
        if col not in df.columns:
            df[col] = None
    return df[FRAME_COLUMNS].astype(object)


# ---------------- Dataset ----------------
@dataclass(frozen=True)
class Dataset:
    records: Tuple[Record, ...] = ()
    source: str = ""
    header: Tuple[str, ...] = ()

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, object]], *, source: str = "<memory>") -> "Dataset":
        frozen = tuple(MappingProxyType(dict(r)) for r in records)
        header: Dict[str, None] = {}
        for r in frozen:
            header.update(dict.fromkeys(r))
        return cls(records=frozen, source=source, header=tuple(header))

    def __len__(self) -> int:
        return len(self.records)

    @property
    def is_empty(self) -> bool:
        return not self.records

    @cached_property
    def frame(self) -> pd.DataFrame:
        """Aggregation view of the records; callers copy before changing it."""
        return build_frame(self.records)


# ---------------- Parsing ----------------
def parse_csv_text(text: str) -> List[Dict[str, object]]:
    """Parse a whole CSV document into typed rows.

    The first non-blank line is the header. Blank lines are skipped. A row with
    the wrong number of fields or an unterminated quote fails the whole parse.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=",", quotechar='"', strict=True)
    header: Optional[List[str]] = None
    rows: List[Dict[str, object]] = []
    # first line of the row being read
    row_start = 1
    try:
        for row in reader:
            line, row_start = row_start, reader.line_num + 1
            if not any(cell.strip() for cell in row):
                continue
            if header is None:
                header = [cell.strip() for cell in row]
                continue
            if len(row) != len(header):
                raise ParseFailure(f"Expected {len(header)} fields, saw {len(row)}", line=line)
            rows.append({name: coerce_value(cell) for name, cell in zip(header, row)})
    except csv.Error as exc:
        raise ParseFailure(f"Malformed CSV: {exc}", line=row_start) from exc
    return rows


# ---------------- Fetch ----------------
def resolve_source(source: Optional[Source] = None) -> Source:
    if source is not None:
        return source
    env = os.getenv(DATA_PATH_ENV)
    return env if env else DEFAULT_DATA_PATH


def is_url(source: Source) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


def fetch_text(source: Source) -> str:
    if is_url(source):
        try:
            response = requests.get(str(source))
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SourceUnavailable(str(source), str(exc)) from exc
        response.encoding = "utf-8"
        return response.text
    path = Path(source)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceUnavailable(str(path), str(exc)) from exc


def ingest(source: Optional[Source] = None, fetcher: Fetcher = fetch_text) -> Dataset:
    """Fetch and parse the whole document; nothing is returned unless both steps succeed."""
    source = resolve_source(source)
    logger.info("Loading vehicle data from %s", source)
    try:
        text = fetcher(source)
        rows = parse_csv_text(text)
    except (SourceUnavailable, ParseFailure):
        logger.exception("Ingestion failed for %s", source)
        raise
    dataset = Dataset.from_records(rows, source=str(source))
    logger.info("Loaded %d vehicle records from %s", len(dataset), source)
    return dataset


# ---------------- Cached loader ----------------
def source_signature(source: Source) -> Tuple[str, float]:
    if is_url(source):
        return str(source), 0.0
    path = Path(source)
    try:
        return str(path), path.stat().st_mtime
    except OSError:
        return str(path), -1.0


@lru_cache(maxsize=4)
def _load_dataset_cached(signature: Tuple[str, float]) -> Dataset:
    return ingest(signature[0])


def load_dataset(source: Optional[Source] = None) -> Dataset:
    return _load_dataset_cached(source_signature(resolve_source(source)))


def clear_cache() -> None:
    _load_dataset_cached.cache_clear()


def dataset_columns(dataset: Dataset) -> Sequence[str]:
    return [c for c in dataset.header if c in VEHICLE_COLUMNS]
