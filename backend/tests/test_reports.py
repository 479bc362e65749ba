"""Tests for the HTML report renderer."""

import re

import pytest

from hottopic.core.errors import CollaboratorError
from hottopic.schemas import InsightResult, StrategicRecommendations
from hottopic.services.reports import ReportRenderer


@pytest.fixture
def insight():
    return InsightResult(
        summary="Strong week",
        key_findings=["News spike"],
        strategic_recommendations=StrategicRecommendations(short_term=["Publish <b>now</b>"]),
    )


class TestReportRenderer:
    def test_render_writes_html(self, renderer, make_record, insight):
        result = renderer.render(make_record(keyword="<cold brew>"), insight)

        assert re.fullmatch(r"RPT-\d+-[A-Z0-9]{9}", result.report_id)
        html = open(result.file_path, encoding="utf-8").read()
        assert "&lt;cold brew&gt;" in html
        assert "Publish &lt;b&gt;now&lt;/b&gt;" in html
        assert "Strong week" in html
        assert result.file_name.endswith(".html")

    def test_path_for(self, renderer, make_record, insight):
        result = renderer.render(make_record(), insight)

        assert str(renderer.path_for(result.report_id)) == result.file_path
        assert renderer.path_for("RPT-1-AAAAAAAAA") is None
        assert renderer.path_for("../etc/passwd") is None

    def test_unwritable_directory(self, tmp_path, make_record, insight):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")

        with pytest.raises(CollaboratorError):
            ReportRenderer(blocker / "reports").render(make_record(), insight)
