"""Tests for the analysis record store and trend derivation."""

from datetime import date, timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hottopic.core.errors import DuplicateRecordError, NotFoundError, PersistenceError
from hottopic.repository.analyses import derive_trend
from hottopic.schemas import InsightResult, Scenarios, TrendOutlook


class TestDeriveTrend:
    @pytest.mark.parametrize(
        "newest_first, expected",
        [
            ([70, 65, 60], "increasing"),
            ([58, 62, 65], "decreasing"),
            ([61, 60, 60], "stable"),
            ([65, 62, 60], "stable"),
            ([66, 62, 60], "increasing"),
            ([80, 90], "stable"),
            ([], "stable"),
        ],
    )
    def test_direction(self, newest_first, expected):
        assert derive_trend(newest_first) == expected

    def test_only_three_most_recent_count(self):
        assert derive_trend([60, 60, 60, 10]) == "stable"


class TestAnalysisRecordStore:
    def test_save_and_get_round_trip(self, record_store, make_record):
        saved = record_store.save(make_record(failed_sources=["photo"], data_quality="medium"))

        loaded = record_store.get(saved.id)

        assert loaded.keyword == "coffee"
        assert loaded.date == date(2024, 3, 10)
        assert loaded.sources.news.article_count == 3
        assert loaded.metrics.overall == 50
        assert loaded.failed_sources == ["photo"]
        assert loaded.analysis_date.tzinfo is not None

    def test_duplicate_keyword_and_date_rejected(self, record_store, make_record):
        record_store.save(make_record())

        with pytest.raises(DuplicateRecordError) as exc_info:
            record_store.save(make_record(overall=10))

        assert exc_info.value.keyword == "coffee"
        assert len(record_store.find_recent(keyword="coffee")) == 1

    def test_other_integrity_failures_are_not_duplicates(self, record_store, make_record, monkeypatch):
        def reject(self, *args, **kwargs):
            raise IntegrityError(
                "INSERT INTO hot_topic_analyses", {}, Exception("FOREIGN KEY constraint failed")
            )

        monkeypatch.setattr(Session, "flush", reject)

        with pytest.raises(PersistenceError):
            record_store.save(make_record(weight_configuration_id=999))

        monkeypatch.undo()
        assert record_store.find_recent() == []

    def test_same_keyword_different_date_allowed(self, record_store, make_record):
        record_store.save(make_record(on=date(2024, 3, 10)))
        record_store.save(make_record(on=date(2024, 3, 11)))

        assert len(record_store.find_recent(keyword="coffee")) == 2

    def test_get_missing_raises(self, record_store):
        with pytest.raises(NotFoundError):
            record_store.get(404)

    def test_find_by_keyword_and_date_range_ascending(self, record_store, make_record):
        start = date(2024, 3, 1)
        for offset in (2, 0, 4, 1):
            record_store.save(make_record(on=start + timedelta(days=offset), overall=offset))
        record_store.save(make_record(keyword="tea", on=start))

        records = record_store.find_by_keyword_and_date_range("coffee", start, start + timedelta(days=2))

        assert [r.date for r in records] == [start, start + timedelta(days=1), start + timedelta(days=2)]

    def test_find_recent_descending_with_limit(self, record_store, make_record):
        start = date(2024, 3, 1)
        for offset in range(5):
            record_store.save(make_record(on=start + timedelta(days=offset)))

        records = record_store.find_recent(limit=2)

        assert [r.date for r in records] == [start + timedelta(days=4), start + timedelta(days=3)]

    def test_stats(self, record_store, make_record):
        start = date(2024, 3, 1)
        for offset, overall in enumerate([60, 65, 70]):
            record_store.save(make_record(on=start + timedelta(days=offset), overall=overall))

        stats = record_store.stats("coffee")

        assert stats.count == 3
        assert stats.overall.average == 65.0
        assert stats.overall.min == 60
        assert stats.overall.max == 70
        assert stats.trend == "increasing"

    def test_stats_empty(self, record_store):
        stats = record_store.stats("nothing")

        assert stats.count == 0
        assert stats.trend == "stable"

    def test_delete(self, record_store, make_record):
        saved = record_store.save(make_record())

        assert record_store.delete(saved.id) is True
        assert record_store.delete(saved.id) is False
        with pytest.raises(NotFoundError):
            record_store.get(saved.id)

    def test_attach_references_keeps_scores(self, record_store, make_record):
        saved = record_store.save(make_record(overall=42))
        insight_id = record_store.save_insight("coffee", InsightResult(summary="hot"))

        updated = record_store.attach_references(
            saved.id, insight_id=insight_id, report_id="RPT-1-ABCDEFGHI", report_path="/tmp/r.html"
        )

        assert updated.insight_id == insight_id
        assert updated.report_id == "RPT-1-ABCDEFGHI"
        assert updated.metrics.overall == 42
        assert record_store.get(saved.id).report_path == "/tmp/r.html"

    def test_attach_references_missing_record(self, record_store):
        with pytest.raises(NotFoundError):
            record_store.attach_references(7, insight_id=1)

    def test_insight_round_trip(self, record_store):
        insight = InsightResult(
            summary="hot",
            key_findings=["a", "b"],
            trend_outlook=TrendOutlook(scenarios=Scenarios(best="up")),
        )

        insight_id = record_store.save_insight("coffee", insight)

        assert record_store.get_insight(insight_id) == insight
        assert record_store.get_insight(insight_id + 100) is None
