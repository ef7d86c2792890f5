from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from evcore.data import Dataset, Fetcher, Source, fetch_text, ingest, resolve_source
from evcore.errors import DatasetNotReady, IngestionError


logger = logging.getLogger(__name__)


class LoadStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadState:
    status: LoadStatus = LoadStatus.PENDING
    dataset: Optional[Dataset] = None
    error: Optional[IngestionError] = None

    @property
    def ready(self) -> bool:
        return self.status is LoadStatus.READY


class DatasetLoader:
    """One-shot ingestion: pending until an attempt finishes, then ready or failed.

    A failed loader stays failed; only an explicit ``retry()`` starts a new
    attempt.
    """

    def __init__(self, source: Optional[Source] = None, fetcher: Fetcher = fetch_text) -> None:
        self.source = resolve_source(source)
        self._fetcher = fetcher
        self._state = LoadState()

    @property
    def state(self) -> LoadState:
        return self._state

    def load(self) -> LoadState:
        if self._state.status is not LoadStatus.PENDING:
            return self._state
        try:
            dataset = ingest(self.source, fetcher=self._fetcher)
        except IngestionError as exc:
            self._state = LoadState(status=LoadStatus.FAILED, error=exc)
        else:
            self._state = LoadState(status=LoadStatus.READY, dataset=dataset)
        logger.info("Dataset loader for %s is %s", self.source, self._state.status.value)
        return self._state

    async def aload(self) -> LoadState:
        return await asyncio.to_thread(self.load)

    def retry(self) -> LoadState:
        self._state = LoadState()
        return self.load()

    def require_dataset(self) -> Dataset:
        state = self._state
        if state.status is LoadStatus.FAILED and state.error is not None:
            raise state.error
        if state.dataset is None:
            raise DatasetNotReady(f"Dataset from {self.source} is still loading")
        return state.dataset
