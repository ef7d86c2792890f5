from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from evapi.schemas import MetaViewsResponse, StatusResponse, ViewMetaModel, ViewRequestModel
from evcore.charts import build_chart, to_vega_spec
from evcore.data import dataset_columns
from evcore.errors import DatasetNotReady, ParseFailure, SourceUnavailable, UnknownView
from evcore.loader import DatasetLoader, LoadStatus
from evcore.logging_utils import configure_logging
from evcore.quality import compute_data_quality
from evcore.views import VIEW_SPECS, compute_view, get_view, normalize_request


configure_logging()
app = FastAPI(title="EV Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_loader: Optional[DatasetLoader] = None


def current_loader() -> DatasetLoader:
    global _loader
    if _loader is None:
        _loader = DatasetLoader()
    return _loader


def get_loader(loader: DatasetLoader = Depends(current_loader)) -> DatasetLoader:
    loader.load()
    return loader


def _json(data: object, status_code: int = 200) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        ),
    )


def _error(exc: Exception, status_code: int) -> JSONResponse:
    body = {"error": str(exc), "type": type(exc).__name__}
    if isinstance(exc, ParseFailure):
        body["line"] = exc.line
    return JSONResponse(status_code=status_code, content=body)


def _handle(exc: Exception, name: str) -> JSONResponse:
    if isinstance(exc, UnknownView):
        return _error(exc, 404)
    if isinstance(exc, SourceUnavailable):
        return _error(exc, 503)
    if isinstance(exc, ParseFailure):
        return _error(exc, 422)
    if isinstance(exc, DatasetNotReady):
        return _error(exc, 409)
    logger.exception("%s failed", name)
    return _error(exc, 500)


@app.get("/meta/views")
def meta_views():
    views = [
        ViewMetaModel(
            name=spec.name,
            title=spec.title,
            chart=spec.chart,
            ranked=spec.ranked,
            default_top_n=spec.top_n,
            default_top_inner=spec.top_inner,
        )
        for spec in VIEW_SPECS
    ]
    return _json(MetaViewsResponse(views=views).model_dump())


@app.get("/status")
def status(loader: DatasetLoader = Depends(get_loader)):
    state = loader.state
    body = StatusResponse(status=state.status.value, source=str(loader.source))
    if state.dataset is not None:
        body.records = len(state.dataset)
        body.columns = list(dataset_columns(state.dataset))
    if state.error is not None:
        body.error = str(state.error)
    code = 503 if state.status is LoadStatus.FAILED else 200
    return _json(body.model_dump(), status_code=code)


@app.post("/reload")
def reload(loader: DatasetLoader = Depends(current_loader)):
    state = loader.retry()
    return status(loader) if state.ready else _handle(state.error, "reload")


@app.post("/views/{name}")
def view(name: str, body: ViewRequestModel, loader: DatasetLoader = Depends(get_loader)):
    try:
        request = normalize_request({"view": name, **body.model_dump()})
        result = compute_view(loader.require_dataset(), request)
        payload = result.to_dict()
        payload["chart_spec"] = to_vega_spec(build_chart(result, dark_mode=request.dark_mode))
        return _json(payload)
    except Exception as exc:
        return _handle(exc, f"view {name}")


@app.get("/debug")
def debug(loader: DatasetLoader = Depends(get_loader)):
    try:
        return _json(compute_data_quality(loader.require_dataset()))
    except Exception as exc:
        return _handle(exc, "debug")


@app.get("/export/{name}")
def export_view(name: str, loader: DatasetLoader = Depends(get_loader)):
    try:
        spec = get_view(name)
        result = compute_view(loader.require_dataset(), spec.name)
    except Exception as exc:
        return _handle(exc, f"export {name}")
    export_df = result.to_frame().drop(columns=["position"])
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={spec.name}.csv"},
    )
