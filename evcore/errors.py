from __future__ import annotations

from typing import Optional


class IngestionError(Exception):
    """Fatal ingestion failure; surfaced to the caller, never retried automatically."""


class SourceUnavailable(IngestionError):
    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Source unavailable: {source} ({reason})")
        self.source = source
        self.reason = reason


class ParseFailure(IngestionError):
    def __init__(self, message: str, line: Optional[int] = None) -> None:
        text = f"{message} (line {line})" if line is not None else message
        super().__init__(text)
        self.line = line


class DatasetNotReady(RuntimeError):
    """Aggregation was requested before ingestion finished."""


class UnknownView(ValueError):
    def __init__(self, view: str) -> None:
        super().__init__(f"Unknown view: {view!r}")
        self.view = view
