"""
Main FastAPI application and routing layer.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from hottopic.config import settings
from hottopic.core.errors import (
    DuplicateRecordError,
    HotTopicError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from hottopic.core.scoring import grade_indices
from hottopic.db.session import SessionLocal, init_db
from hottopic.pipeline import HotTopicPipeline, run_blocking
from hottopic.repository.analyses import AnalysisRecordStore
from hottopic.repository.weights import WeightConfigurationStore
from hottopic.schemas import (
    AnalysisBatchResponse,
    AnalysisRecord,
    AnalysisRecordResponse,
    AnalysisRequest,
    KeywordStats,
    WeightConfiguration,
    WeightConfigurationIn,
)
from hottopic.services.insights import InsightService
from hottopic.services.reports import ReportRenderer
from hottopic.sources.base import create_http_client
from hottopic.sources.collector import build_collectors
from hottopic.utils import now_utc, parse_date

logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=settings.LOG_FORMAT)
logger = logging.getLogger(__name__)


# ---- Dependencies (overridden in tests) ----

def get_weight_store() -> WeightConfigurationStore:
    return WeightConfigurationStore(SessionLocal)


def get_record_store() -> AnalysisRecordStore:
    return AnalysisRecordStore(SessionLocal)


def get_report_renderer() -> ReportRenderer:
    return ReportRenderer(settings.REPORTS_DIR)


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Client opened at startup and shared by every collector."""
    return request.app.state.http_client


def get_pipeline(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    weight_store: WeightConfigurationStore = Depends(get_weight_store),
    record_store: AnalysisRecordStore = Depends(get_record_store),
    report_renderer: ReportRenderer = Depends(get_report_renderer),
) -> HotTopicPipeline:
    return HotTopicPipeline(
        weight_store=weight_store,
        record_store=record_store,
        collectors=build_collectors(http_client),
        insight_service=InsightService(),
        report_renderer=report_renderer,
    )


def _optional_date(value: Optional[str], field: str):
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from e


def to_response(record: AnalysisRecord, record_store: Optional[AnalysisRecordStore] = None) -> AnalysisRecordResponse:
    """Attach grades, and the stored insight when a store is given."""
    insight = None
    if record_store is not None and record.insight_id is not None:
        insight = record_store.get_insight(record.insight_id)
    return AnalysisRecordResponse(
        **record.model_dump(),
        grades=grade_indices(record.metrics),
        insight=insight,
    )


# ---- Application ----

app = FastAPI(
    title="Hot-Topic Index API",
    version="0.1.0",
    description="Multi-source keyword popularity scoring with configurable weights",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    init_db()
    logger.info("Database ready at %s", settings.DB_URL)
    app.state.http_client = create_http_client()


@app.on_event("shutdown")
async def shutdown_event():
    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()
        logger.info("HTTP client closed")


def _error(status_code: int, exc: HotTopicError, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc), **extra})


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError):
    return _error(400, exc, field=exc.field)


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError):
    return _error(404, exc)


@app.exception_handler(DuplicateRecordError)
async def handle_duplicate(request: Request, exc: DuplicateRecordError):
    return _error(409, exc, keyword=exc.keyword, date=str(exc.date))


@app.exception_handler(PersistenceError)
async def handle_persistence_error(request: Request, exc: PersistenceError):
    logger.error("Persistence failure on %s: %s", request.url.path, exc)
    return _error(503, exc)


@app.exception_handler(HotTopicError)
async def handle_hot_topic_error(request: Request, exc: HotTopicError):
    logger.error("Unhandled error on %s: %s", request.url.path, exc)
    return _error(500, exc)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "as_of": now_utc().isoformat(),
        "service": "hot-topic-index-api",
    }


# ---- Weights ----

@app.get("/weights", response_model=WeightConfiguration)
def get_active_weights(store: WeightConfigurationStore = Depends(get_weight_store)):
    return store.get_active()


@app.post("/weights", response_model=WeightConfiguration)
def save_weights(payload: WeightConfigurationIn, store: WeightConfigurationStore = Depends(get_weight_store)):
    """Store a new configuration and make it active; optionally normalize each group first."""
    candidate = WeightConfiguration(**payload.model_dump(exclude={"normalize"}))
    if payload.normalize:
        candidate = store.normalize(candidate)
    return store.save(candidate)


@app.get("/weights/history", response_model=List[WeightConfiguration])
def weights_history(
    limit: int = Query(10, ge=1, le=100),
    store: WeightConfigurationStore = Depends(get_weight_store),
):
    return store.history(limit)


@app.post("/weights/activate/{config_id}", response_model=WeightConfiguration)
def activate_weights(config_id: int, store: WeightConfigurationStore = Depends(get_weight_store)):
    return store.activate(config_id)


# ---- Hot topics ----

@app.post("/hot-topics/start", response_model=AnalysisBatchResponse)
async def start_analysis(
    request: AnalysisRequest,
    pipeline: HotTopicPipeline = Depends(get_pipeline),
):
    """Run the full analysis for every keyword and return the stored records."""
    records = await pipeline.run(request.keywords, request.start_date, request.end_date)
    results = [await run_blocking(to_response, r, pipeline.record_store) for r in records]
    return AnalysisBatchResponse(count=len(results), results=results)


@app.get("/hot-topics/results", response_model=AnalysisBatchResponse)
def list_results(
    keyword: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    limit: int = Query(20, ge=1, le=200),
    store: AnalysisRecordStore = Depends(get_record_store),
):
    records = store.find_recent(
        keyword=keyword,
        start=_optional_date(start_date, "start_date"),
        end=_optional_date(end_date, "end_date"),
        limit=limit,
    )
    results = [to_response(r) for r in records]
    return AnalysisBatchResponse(count=len(results), results=results)


@app.get("/hot-topics/timeseries/{keyword}", response_model=List[AnalysisRecordResponse])
def keyword_timeseries(
    keyword: str,
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    store: AnalysisRecordStore = Depends(get_record_store),
):
    records = store.find_by_keyword_and_date_range(
        keyword, _optional_date(start_date, "start_date"), _optional_date(end_date, "end_date")
    )
    return [to_response(r) for r in records]


@app.get("/hot-topics/stats/{keyword}", response_model=KeywordStats)
def keyword_stats(
    keyword: str,
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    store: AnalysisRecordStore = Depends(get_record_store),
):
    return store.stats(keyword, _optional_date(start_date, "start_date"), _optional_date(end_date, "end_date"))


@app.get("/hot-topics/{record_id}", response_model=AnalysisRecordResponse)
def get_result(record_id: int, store: AnalysisRecordStore = Depends(get_record_store)):
    return to_response(store.get(record_id), store)


@app.delete("/hot-topics/{record_id}")
def delete_result(record_id: int, store: AnalysisRecordStore = Depends(get_record_store)):
    if not store.delete(record_id):
        raise NotFoundError(f"Analysis {record_id} not found")
    return {"deleted": True, "id": record_id}


# ---- Reports ----

@app.get("/reports/{report_id}")
def get_report(report_id: str, renderer: ReportRenderer = Depends(get_report_renderer)):
    path = renderer.path_for(report_id)
    if path is None:
        raise NotFoundError(f"Report {report_id} not found")
    return FileResponse(path, media_type="text/html")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("hottopic.main:app", host="0.0.0.0", port=8000, reload=False)
