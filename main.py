# main.py v1.0 — Rated Capacity ledger API

import time
import uuid
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from functools import partial
from typing import Optional

from fastapi import FastAPI, HTTPException, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from analysis.aggregate import total
from analysis.stats import comparison_to_frame, frame_to_rows, ledger_to_frame, rows_to_preview
from config import (
    APP_SECRET_KEY,
    CAPACITY_CSV_URL,
    DEFAULT_COMPARISON_MONTHS,
    HISTORY_CSV_URL,
    LOG_LEVEL,
    PLF_POLICY,
    STORAGE_DB_URL,
)
from core.fetcher import load_csv_text
from core.ledger import HistoricalEntry, HistoricalLedger
from core.months import minus_months, normalize_month
from core.records import round2
from core.snapshot import CapacitySnapshotStore
from core.storage import create_store
from models import (
    CapacityUpdate,
    ComparisonResponse,
    LedgerEntryModel,
    LedgerResponse,
    MetricsResponse,
    SnapshotResponse,
)
from utils.metrics import metrics

# -----------------------------
# Boot + Config
# -----------------------------
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger("RatedCapacity")

# Request ID tracking for observability
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


@dataclass
class Services:
    """Engine state shared by all requests."""
    snapshot: CapacitySnapshotStore
    ledger: HistoricalLedger


def build_services(
    storage_url: str = STORAGE_DB_URL,
    capacity_csv: str = CAPACITY_CSV_URL,
    history_csv: str = HISTORY_CSV_URL,
    plf_policy: str = PLF_POLICY,
) -> Services:
    """
    Open storage, restore the capacity snapshot and load the historical ledger.

    The two CSV loads are independent; either may fail without affecting the
    other or aborting startup.
    """
    store = create_store(storage_url)

    snapshot = CapacitySnapshotStore(store, plf_policy=plf_policy)
    snapshot.bootstrap(partial(load_csv_text, capacity_csv))

    ledger = HistoricalLedger()
    if ledger.load(partial(load_csv_text, history_csv)):
        log.debug("Ledger preview:\n" + rows_to_preview(ledger_to_frame(ledger.entries)))

    return Services(snapshot=snapshot, ledger=ledger)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    yield


# -----------------------------
# App
# -----------------------------
app = FastAPI(title="Rated Capacity Ledger", version="1.0", lifespan=lifespan)


# Request ID middleware for observability and debugging
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add unique request ID to each request for tracing and debugging."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request_id_var.set(request_id)
        start = time.time()

        log.info(f"[{request_id}] {request.method} {request.url.path}")

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            log.info(f"[{request_id}] Response: {response.status_code}")
            return response
        except Exception as e:
            metrics.log_error()
            log.error(f"[{request_id}] Error: {e}")
            raise
        finally:
            metrics.log_request(time.time() - start)


app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------
# Helpers
# -----------------------------
def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="Capacity engine is still starting up.")
    return services


def require_app_key(x_app_key: Optional[str]) -> None:
    """Mutations need X-App-Key only when APP_SECRET_KEY is configured."""
    if APP_SECRET_KEY and x_app_key != APP_SECRET_KEY:
        raise HTTPException(status_code=401, detail="Unauthorized")


def entry_model(entry: Optional[HistoricalEntry]) -> Optional[LedgerEntryModel]:
    if entry is None:
        return None
    return LedgerEntryModel(month=entry.month, values=entry.values, total=round2(total(entry.values)))


# -----------------------------
# Rated capacity
# -----------------------------
@app.get("/capacity", response_model=SnapshotResponse)
def get_capacity(request: Request):
    """Installed, PLF and rated capacity with totals and the CSV advisory."""
    return get_services(request).snapshot.snapshot()


@app.put("/capacity/installed", response_model=SnapshotResponse)
def put_installed(
    request: Request,
    update: CapacityUpdate,
    x_app_key: Optional[str] = Header(None, alias="X-App-Key"),
):
    require_app_key(x_app_key)
    snapshot = get_services(request).snapshot
    snapshot.update_installed(update.values)
    return snapshot.snapshot()


@app.put("/capacity/plf", response_model=SnapshotResponse)
def put_plf(
    request: Request,
    update: CapacityUpdate,
    x_app_key: Optional[str] = Header(None, alias="X-App-Key"),
):
    require_app_key(x_app_key)
    snapshot = get_services(request).snapshot
    snapshot.update_plf(update.values)
    return snapshot.snapshot()


# -----------------------------
# Historical ledger
# -----------------------------
@app.get("/ledger", response_model=LedgerResponse)
def get_ledger(request: Request):
    ledger = get_services(request).ledger
    return LedgerResponse(
        months=ledger.months,
        loaded=ledger.loaded,
        advisory=ledger.advisory,
        duplicate_months=ledger.duplicate_months(),
    )


@app.get("/ledger/entry", response_model=LedgerEntryModel)
def get_ledger_entry(request: Request, month: str = Query(..., description="Month, e.g. 01/2024")):
    if normalize_month(month) is None:
        raise HTTPException(status_code=422, detail=f"Unrecognized month: {month!r}")
    entry = get_services(request).ledger.entry_for(month)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"No data for {normalize_month(month)}")
    return entry_model(entry)


@app.get("/ledger/compare", response_model=ComparisonResponse)
def compare_ledger_months(
    request: Request,
    start: Optional[str] = Query(None, description="Start month; defaults to end minus the look-back window"),
    end: Optional[str] = Query(None, description="End month; defaults to the latest month in the ledger"),
):
    """
    Compare two monthly snapshots.

    Months absent from the ledger return empty deltas rather than an error,
    so the dashboard can render a placeholder.

    Examples:
        GET /ledger/compare?start=01/2023&end=01/2024
        GET /ledger/compare                 (latest month vs 12 months earlier)
    """
    ledger = get_services(request).ledger

    if start is None and end is None:
        default = ledger.default_range(DEFAULT_COMPARISON_MONTHS)
        if default is None:
            raise HTTPException(status_code=404, detail="Historical ledger is empty.")
        start, end = default
    elif end is None:
        end = ledger.latest_month
        if end is None:
            raise HTTPException(status_code=404, detail="Historical ledger is empty.")
    if start is None:
        end_key = normalize_month(end)
        if end_key is None:
            raise HTTPException(status_code=422, detail=f"Unrecognized month: {end!r}")
        start = minus_months(end_key, DEFAULT_COMPARISON_MONTHS)

    try:
        comparison = ledger.compare(start, end)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return ComparisonResponse(
        start_month=comparison.start_month,
        end_month=comparison.end_month,
        start=entry_model(comparison.start),
        end=entry_model(comparison.end),
        delta=(
            {s: round2(v) for s, v in comparison.delta.per_source.items()}
            if comparison.delta else None
        ),
        net_addition=comparison.net_addition,
        sign=comparison.sign,
        table=frame_to_rows(comparison_to_frame(comparison)),
    )


@app.get("/ledger/table")
def get_ledger_table(request: Request):
    """Ledger rows with per-month totals and month-over-month change."""
    ledger = get_services(request).ledger
    return {"rows": frame_to_rows(ledger_to_frame(ledger.entries))}


@app.get("/metrics", response_model=MetricsResponse)
def get_metrics():
    """Return application metrics for observability."""
    return MetricsResponse(status="healthy", metrics=metrics.get_stats())
