"""
Hot-topic analysis pipeline: collect -> score -> persist -> insight -> report.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import time
from datetime import date
from typing import Any, Callable, List, Optional, Sequence, Tuple

from hottopic.config import settings
from hottopic.core.errors import CollaboratorError, ValidationError
from hottopic.core.scoring import compute_indices
from hottopic.models import CollectorOutcome
from hottopic.repository.analyses import AnalysisRecordStore
from hottopic.repository.weights import WeightConfigurationStore
from hottopic.schemas import SOURCE_METRIC_TYPES, SOURCE_NAMES, AnalysisRecord, SourceBundle, WeightConfiguration
from hottopic.services.insights import InsightService, fallback_insights
from hottopic.services.reports import ReportRenderer
from hottopic.sources.base import SourceCollector
from hottopic.sources.collector import collect_all
from hottopic.utils import now_utc, parse_date

logger = logging.getLogger(__name__)


def clean_keywords(keywords: Sequence[str]) -> List[str]:
    """Strip blanks and drop duplicates, keeping first-seen order."""
    seen: set[str] = set()
    cleaned: List[str] = []
    for keyword in keywords or []:
        keyword = (keyword or "").strip()
        if keyword and keyword not in seen:
            seen.add(keyword)
            cleaned.append(keyword)
    return cleaned


def validate_request(keywords: Sequence[str], start, end) -> Tuple[List[str], date, date]:
    """
    Validate a batch request before anything is collected or stored.

    Raises:
        ValidationError: No usable keyword, an unparseable date, or start >= end
    """
    cleaned = clean_keywords(keywords)
    if not cleaned:
        raise ValidationError("At least one keyword is required", field="keywords")

    parsed = {}
    for field, value in (("start_date", start), ("end_date", end)):
        try:
            parsed[field] = parse_date(value)
        except ValueError as e:
            raise ValidationError(f"Invalid {field}: {value!r}", field=field) from e

    if parsed["start_date"] >= parsed["end_date"]:
        raise ValidationError("start_date must be before end_date", field="start_date")
    return cleaned, parsed["start_date"], parsed["end_date"]


def assess_data_quality(failed_sources: Sequence[str]) -> str:
    """high when every collector succeeded, medium for one or two failures, low beyond that."""
    failed = len(failed_sources)
    if failed == 0:
        return "high"
    if failed <= 2:
        return "medium"
    return "low"


def merge_outcomes(outcomes: Sequence[CollectorOutcome]) -> Tuple[SourceBundle, List[str]]:
    """Build the source bundle; failed or missing sources contribute zero-valued metrics."""
    bundle = {}
    failed: List[str] = []
    for outcome in outcomes:
        if outcome.ok and outcome.metrics is not None:
            bundle[outcome.source] = outcome.metrics
        else:
            failed.append(outcome.source)
            bundle[outcome.source] = SOURCE_METRIC_TYPES[outcome.source]()
    for source in SOURCE_NAMES:
        if source not in bundle:
            failed.append(source)
            bundle[source] = SOURCE_METRIC_TYPES[source]()
    return SourceBundle(**bundle), failed


async def run_blocking(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Run a blocking store or file call in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


class HotTopicPipeline:
    """Runs one analysis batch over a list of keywords."""

    def __init__(
        self,
        weight_store: WeightConfigurationStore,
        record_store: AnalysisRecordStore,
        collectors: Sequence[SourceCollector],
        insight_service: InsightService,
        report_renderer: ReportRenderer,
        clamp: Optional[bool] = None,
    ):
        self.weight_store = weight_store
        self.record_store = record_store
        self.collectors = list(collectors)
        self.insight_service = insight_service
        self.report_renderer = report_renderer
        self.clamp = settings.CLAMP_INDICES if clamp is None else clamp

    async def run(
        self,
        keywords: Sequence[str],
        start_date,
        end_date,
        as_of: Optional[date] = None,
    ) -> List[AnalysisRecord]:
        """
        Analyze every keyword over [start_date, end_date].

        Args:
            keywords: Keywords to analyze; blanks and duplicates are dropped
            start_date: Window start (date or parseable string)
            end_date: Window end (date or parseable string)
            as_of: Date the records are filed under (defaults to today, UTC)

        Returns:
            Persisted records in input keyword order

        Raises:
            ValidationError: Bad request; nothing is collected or stored
            DuplicateRecordError: A keyword already has a record for the date
            PersistenceError: The record store failed
        """
        cleaned, start, end = validate_request(keywords, start_date, end_date)
        weights = await run_blocking(self.weight_store.get_active)
        record_date = as_of or now_utc().date()

        logger.info(
            "Starting analysis of %d keyword(s) %s..%s with weights %s",
            len(cleaned), start, end, weights.id,
        )
        records = []
        for keyword in cleaned:
            records.append(await self._analyze(keyword, start, end, weights, record_date))
        return records

    async def _analyze(
        self,
        keyword: str,
        start: date,
        end: date,
        weights: WeightConfiguration,
        record_date: date,
    ) -> AnalysisRecord:
        started = time.perf_counter()
        logger.info("Analyzing %r", keyword)

        outcomes = await collect_all(self.collectors, keyword, start, end)
        sources, failed = merge_outcomes(outcomes)
        indices = compute_indices(sources, weights, clamp=self.clamp)

        record = await run_blocking(
            self.record_store.save,
            AnalysisRecord(
                keyword=keyword,
                date=record_date,
                analysis_date=now_utc(),
                sources=sources,
                metrics=indices,
                weight_configuration_id=weights.id,
                data_quality=assess_data_quality(failed),
                failed_sources=failed,
                processing_time_ms=int((time.perf_counter() - started) * 1000),
            ),
        )

        try:
            insight = await self.insight_service.generate_insights(record)
        except CollaboratorError as e:
            logger.warning("Insight generation failed for %r: %s", keyword, e)
            insight = fallback_insights(record)
        insight_id = await run_blocking(self.record_store.save_insight, keyword, insight)

        report_id = report_path = None
        try:
            report = await run_blocking(self.report_renderer.render, record, insight)
            report_id, report_path = report.report_id, report.file_path
        except CollaboratorError as e:
            logger.warning("Report generation failed for %r: %s", keyword, e)

        record = await run_blocking(
            self.record_store.attach_references,
            record.id, insight_id=insight_id, report_id=report_id, report_path=report_path
        )
        logger.info(
            "Finished %r: overall=%d quality=%s failed=%s",
            keyword, record.metrics.overall, record.data_quality, failed or "none",
        )
        return record
