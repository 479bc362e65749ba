"""
Analysis record store.

One record per (keyword, date). Records are created by the pipeline,
updated once when insight/report references are attached, and otherwise
only deleted.
"""
from __future__ import annotations

import logging
from datetime import date, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from hottopic.config import TREND_DELTA, TREND_WINDOW
from hottopic.core.errors import DuplicateRecordError, NotFoundError, PersistenceError
from hottopic.db.models import AnalysisRow, InsightRow
from hottopic.schemas import (
    AnalysisRecord,
    IndexStats,
    Indices,
    InsightResult,
    KeywordStats,
    SourceBundle,
)

logger = logging.getLogger(__name__)

INDEX_NAMES = ("exposure", "engagement", "demand", "overall")


def derive_trend(overall_newest_first: List[int]) -> str:
    """
    Classify the direction of the overall index.

    Args:
        overall_newest_first: Overall index values, newest first

    Returns:
        "increasing" if the newest of the last three beats the oldest by more
        than 5, "decreasing" if it trails by more than 5, otherwise "stable"
        (including when fewer than three values exist)
    """
    if len(overall_newest_first) < TREND_WINDOW:
        return "stable"
    window = overall_newest_first[:TREND_WINDOW]
    newest, oldest = window[0], window[-1]
    if newest > oldest + TREND_DELTA:
        return "increasing"
    if newest < oldest - TREND_DELTA:
        return "decreasing"
    return "stable"


def _to_schema(row: AnalysisRow) -> AnalysisRecord:
    analysis_date = row.analysis_date
    if analysis_date is not None and analysis_date.tzinfo is None:
        analysis_date = analysis_date.replace(tzinfo=timezone.utc)
    return AnalysisRecord(
        id=row.id,
        keyword=row.keyword,
        date=row.date,
        analysis_date=analysis_date,
        sources=SourceBundle.model_validate(row.sources or {}),
        metrics=Indices(
            exposure=row.exposure or 0,
            engagement=row.engagement or 0,
            demand=row.demand or 0,
            overall=row.overall or 0,
        ),
        weight_configuration_id=row.weight_configuration_id,
        data_quality=row.data_quality or "medium",
        failed_sources=list(row.failed_sources or []),
        processing_time_ms=row.processing_time_ms or 0,
        insight_id=row.insight_id,
        report_id=row.report_id,
        report_path=row.report_path,
    )


class AnalysisRecordStore:
    """SQL-backed store for analysis records and their insights."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def save(self, record: AnalysisRecord) -> AnalysisRecord:
        """
        Insert a new record.

        Raises:
            DuplicateRecordError: A record for (keyword, date) already exists
            PersistenceError: The store rejected the write for another reason
        """
        row = AnalysisRow(
            keyword=record.keyword,
            date=record.date,
            analysis_date=record.analysis_date,
            sources=record.sources.model_dump(mode="json"),
            weight_configuration_id=record.weight_configuration_id,
            data_quality=record.data_quality,
            failed_sources=list(record.failed_sources),
            processing_time_ms=record.processing_time_ms,
            insight_id=record.insight_id,
            report_id=record.report_id,
            report_path=record.report_path,
            **record.metrics.model_dump(),
        )
        try:
            with self.session_factory() as session, session.begin():
                session.add(row)
                session.flush()
                saved = _to_schema(row)
        except IntegrityError as e:
            if self._exists(record.keyword, record.date):
                raise DuplicateRecordError(record.keyword, record.date) from e
            raise PersistenceError(f"Failed to save analysis for '{record.keyword}': {e}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save analysis for '{record.keyword}': {e}") from e
        return saved

    def _exists(self, keyword: str, on: date) -> bool:
        """Whether (keyword, date) is taken; decides if an integrity failure was the uniqueness rule."""
        try:
            with self.session_factory() as session:
                found = session.scalars(
                    select(AnalysisRow.id).where(AnalysisRow.keyword == keyword, AnalysisRow.date == on)
                ).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to check analysis for '{keyword}': {e}") from e
        return found is not None

    def get(self, record_id: int) -> AnalysisRecord:
        with self.session_factory() as session:
            row = session.get(AnalysisRow, record_id)
            if row is None:
                raise NotFoundError(f"Analysis {record_id} not found")
            return _to_schema(row)

    def attach_references(
        self,
        record_id: int,
        insight_id: Optional[int] = None,
        report_id: Optional[str] = None,
        report_path: Optional[str] = None,
    ) -> AnalysisRecord:
        """Attach collaborator outputs; scored fields are left untouched."""
        try:
            with self.session_factory() as session, session.begin():
                row = session.get(AnalysisRow, record_id)
                if row is None:
                    raise NotFoundError(f"Analysis {record_id} not found")
                if insight_id is not None:
                    row.insight_id = insight_id
                if report_id is not None:
                    row.report_id = report_id
                    row.report_path = report_path
                session.flush()
                updated = _to_schema(row)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update analysis {record_id}: {e}") from e
        return updated

    def find_by_keyword_and_date_range(
        self, keyword: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[AnalysisRecord]:
        """Records for a keyword, oldest first, for time-series use."""
        query = select(AnalysisRow).where(AnalysisRow.keyword == keyword)
        if start is not None:
            query = query.where(AnalysisRow.date >= start)
        if end is not None:
            query = query.where(AnalysisRow.date <= end)
        query = query.order_by(AnalysisRow.date.asc())

        with self.session_factory() as session:
            return [_to_schema(row) for row in session.scalars(query).all()]

    def find_recent(
        self,
        keyword: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 20,
    ) -> List[AnalysisRecord]:
        """Most recent records first, optionally filtered by keyword and date range."""
        query = select(AnalysisRow)
        if keyword:
            query = query.where(AnalysisRow.keyword == keyword)
        if start is not None:
            query = query.where(AnalysisRow.date >= start)
        if end is not None:
            query = query.where(AnalysisRow.date <= end)
        query = query.order_by(AnalysisRow.date.desc(), AnalysisRow.id.desc()).limit(limit)

        with self.session_factory() as session:
            return [_to_schema(row) for row in session.scalars(query).all()]

    def stats(self, keyword: str, start: Optional[date] = None, end: Optional[date] = None) -> KeywordStats:
        """Count, average/min/max per index, and the overall trend for a keyword."""
        records = self.find_by_keyword_and_date_range(keyword, start, end)
        if not records:
            return KeywordStats(keyword=keyword, count=0)

        per_index = {}
        for name in INDEX_NAMES:
            values = [getattr(r.metrics, name) for r in records]
            per_index[name] = IndexStats(
                average=round(sum(values) / len(values), 2),
                min=min(values),
                max=max(values),
            )

        newest_first = [r.metrics.overall for r in reversed(records)]
        return KeywordStats(
            keyword=keyword,
            count=len(records),
            trend=derive_trend(newest_first),
            **per_index,
        )

    def delete(self, record_id: int) -> bool:
        """Hard delete. Referenced insights and reports are left in place."""
        try:
            with self.session_factory() as session, session.begin():
                row = session.get(AnalysisRow, record_id)
                if row is None:
                    return False
                session.delete(row)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete analysis {record_id}: {e}") from e
        logger.info("Analysis %s deleted", record_id)
        return True

    def save_insight(self, keyword: str, insight: InsightResult) -> int:
        try:
            with self.session_factory() as session, session.begin():
                row = InsightRow(keyword=keyword, payload=insight.model_dump(mode="json"))
                session.add(row)
                session.flush()
                insight_id = row.id
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save insight for '{keyword}': {e}") from e
        return insight_id

    def get_insight(self, insight_id: int) -> Optional[InsightResult]:
        with self.session_factory() as session:
            row = session.get(InsightRow, insight_id)
            if row is None:
                return None
            return InsightResult.model_validate(row.payload)
