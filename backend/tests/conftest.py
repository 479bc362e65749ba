"""Shared fixtures: in-memory database, stores, and fake collaborators."""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hottopic.core.errors import CollectorError
from hottopic.db.session import init_db
from hottopic.repository.analyses import AnalysisRecordStore
from hottopic.repository.weights import WeightConfigurationStore
from hottopic.services.reports import ReportRenderer
from hottopic.schemas import (
    SOURCE_METRIC_TYPES,
    SOURCE_NAMES,
    AnalysisRecord,
    Indices,
    InsightResult,
    NewsMetrics,
    SourceBundle,
)


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def weight_store(session_factory):
    return WeightConfigurationStore(session_factory)


@pytest.fixture
def record_store(session_factory):
    return AnalysisRecordStore(session_factory)


@pytest.fixture
def make_record():
    """Factory for unsaved analysis records."""

    def _make(keyword="coffee", on=date(2024, 3, 10), overall=50, **kwargs):
        return AnalysisRecord(
            keyword=keyword,
            date=on,
            analysis_date=datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc),
            sources=kwargs.pop("sources", SourceBundle(news=NewsMetrics(article_count=3, total_views=3000))),
            metrics=kwargs.pop("metrics", Indices(exposure=overall, engagement=overall, demand=overall, overall=overall)),
            **kwargs,
        )

    return _make


class FakeCollector:
    """Collector double returning canned metrics or raising."""

    def __init__(self, source_name, metrics=None, error=None):
        self.source_name = source_name
        self.metrics = metrics
        self.error = error
        self.calls = []

    async def collect(self, keyword, start, end):
        self.calls.append((keyword, start, end))
        if self.error is not None:
            raise self.error
        return self.metrics


class FakeInsightService:
    def __init__(self, summary="Looks hot"):
        self.summary = summary
        self.records = []

    async def generate_insights(self, record):
        self.records.append(record)
        return InsightResult(summary=f"{self.summary}: {record.keyword}", key_findings=["finding"])


@pytest.fixture
def fake_insights():
    return FakeInsightService()


def make_collectors(news_articles=10, failing=()):
    """One fake per source; news returns ``news_articles`` articles, ``failing`` sources raise."""
    collectors = []
    for name in SOURCE_NAMES:
        if name in failing:
            collectors.append(FakeCollector(name, error=CollectorError(name, "quota exceeded")))
        elif name == "news":
            collectors.append(
                FakeCollector(name, NewsMetrics(article_count=news_articles, total_views=news_articles * 1000))
            )
        else:
            collectors.append(FakeCollector(name, SOURCE_METRIC_TYPES[name]()))
    return collectors


@pytest.fixture
def renderer(tmp_path):
    return ReportRenderer(tmp_path / "reports")
