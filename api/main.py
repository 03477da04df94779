from __future__ import annotations

from dataclasses import asdict
import logging
import math
from datetime import date
from typing import Any, Callable, Dict, Iterable

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import DashboardFiltersModel, ErrorResponse, MetaListResponse
from core.config import configure_logging
from core.data import (
    DataLoadError,
    available_entities,
    load_dashboard_data,
    prepare_context,
    require_datasets,
)
from core.filters import DashboardFilters, normalize_filters
from core.metrics_ballots import compute_ballot_returns
from core.metrics_contributions import compute_contributions
from core.metrics_debug import compute_debug
from core.metrics_expenditures import compute_expenditures


configure_logging()
app = FastAPI(title="SD D1 Runoff Tracker API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

PAGE_DATASETS: Dict[str, tuple] = {
    "expenditures": ("expenditures",),
    "contributions": ("contributions",),
    "ballot-returns": ("ballots_primary", "ballots_runoff"),
    "debug": (),
}


def _filters_from_model(model: DashboardFiltersModel, *, entities: Iterable[str] | None = None) -> DashboardFilters:
    raw = model.model_dump()
    return normalize_filters(raw, available_entities=list(entities) if entities is not None else None)


def _json(data: object) -> JSONResponse:
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
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
                date: lambda d: d.isoformat(),
            },
        )
    )


def _load_error(exc: DataLoadError) -> JSONResponse:
    body = ErrorResponse(error=exc.message, type=type(exc).__name__, dataset=exc.dataset, kind=exc.kind)
    return JSONResponse(status_code=502, content=body.model_dump())


def _server_error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _run_page(page: str, filters: DashboardFiltersModel, compute: Callable[..., Dict[str, Any]], **kwargs: Any) -> JSONResponse:
    try:
        data_ctx = load_dashboard_data()
        require_datasets(data_ctx, PAGE_DATASETS[page])
        entities = available_entities(data_ctx)
        scope = "contributions" if page == "contributions" else "expenditures"
        f = _filters_from_model(filters, entities=entities.get(scope, []))
        ctx = prepare_context(f, data_ctx)
        return _json(compute(f, ctx, **kwargs))
    except DataLoadError as exc:
        logger.error("%s failed to load %s (%s): %s", page, exc.dataset, exc.kind, exc.message)
        return _load_error(exc)
    except Exception as exc:
        logger.exception("%s failed", page)
        return _server_error(exc)


@app.get("/meta/entities")
def meta_entities(dataset: str = Query(default="expenditures")):
    try:
        data_ctx = load_dashboard_data()
        if dataset not in ("expenditures", "contributions"):
            return JSONResponse(status_code=400, content={"error": f"unknown dataset: {dataset}", "type": "ValueError"})
        require_datasets(data_ctx, [dataset])
        return _json(MetaListResponse(values=available_entities(data_ctx)[dataset]).model_dump())
    except DataLoadError as exc:
        return _load_error(exc)
    except Exception as exc:
        logger.exception("meta_entities failed")
        return _server_error(exc)


@app.get("/meta/candidates")
def meta_candidates():
    try:
        settings = load_dashboard_data()["settings"]
        return _json({"candidates": [asdict(c) for c in settings.election.candidates]})
    except Exception as exc:
        logger.exception("meta_candidates failed")
        return _server_error(exc)


@app.post("/expenditures")
def expenditures(filters: DashboardFiltersModel):
    return _run_page("expenditures", filters, compute_expenditures)


@app.post("/contributions")
def contributions(filters: DashboardFiltersModel):
    return _run_page("contributions", filters, compute_contributions)


@app.post("/ballot-returns")
def ballot_returns(filters: DashboardFiltersModel):
    return _run_page("ballot-returns", filters, compute_ballot_returns)


@app.post("/debug")
def debug(filters: DashboardFiltersModel):
    return _run_page("debug", filters, compute_debug)


@app.post("/export/{page}")
def export_page(page: str, filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        require_datasets(data_ctx, PAGE_DATASETS.get(page, ()))
        f = _filters_from_model(filters)
        ctx = prepare_context(f, data_ctx)
    except DataLoadError as exc:
        return _load_error(exc)
    except Exception as exc:
        logger.exception("export %s failed", page)
        return _server_error(exc)

    export_df = None
    filename = f"{page}.csv"
    if page == "expenditures":
        export_df = ctx.get("filtered_expenditures")
    elif page == "contributions":
        export_df = ctx.get("filtered_contributions")
    elif page == "ballot-returns":
        export_df = ctx.get("ballots_runoff")
        filename = "ballot_returns.csv"
    else:
        export_df = pd.DataFrame()

    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame()
    export_df = export_df.drop(columns=["amount_valid", "date_valid"], errors="ignore")
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
