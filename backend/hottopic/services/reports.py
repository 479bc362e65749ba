"""
Static HTML report rendering.
"""
from __future__ import annotations

import logging
import re
from html import escape
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from hottopic.config import settings
from hottopic.core.errors import CollaboratorError
from hottopic.core.scoring import grade_indices
from hottopic.models import ReportResult
from hottopic.schemas import AnalysisRecord, InsightResult
from hottopic.utils import generate_report_id, now_utc

logger = logging.getLogger(__name__)

REPORT_ID_RE = re.compile(r"^RPT-\d+-[A-Z0-9]{9}$")

STYLE = """
body { font-family: 'Segoe UI', Tahoma, sans-serif; line-height: 1.6; color: #333;
       max-width: 1100px; margin: 0 auto; padding: 20px; background: #f8f9fa; }
.header { background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: #fff;
          padding: 30px; border-radius: 10px; margin-bottom: 30px; text-align: center; }
.section { background: #fff; margin-bottom: 30px; padding: 24px; border-radius: 10px;
           box-shadow: 0 2px 10px rgba(0,0,0,0.1); }
.section h2 { color: #667eea; border-bottom: 3px solid #667eea; padding-bottom: 8px; }
.metrics-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 20px; }
.metric-card { background: linear-gradient(135deg, #f093fb 0%, #f5576c 100%); color: #fff;
               padding: 20px; border-radius: 10px; text-align: center; }
.metric-score { font-size: 2.4em; font-weight: bold; }
.data-table { width: 100%; border-collapse: collapse; margin-top: 16px; }
.data-table th, .data-table td { padding: 10px; text-align: left; border-bottom: 1px solid #ddd; }
.insight-card { background: #f8f9fa; border-left: 4px solid #667eea; padding: 16px; margin: 12px 0; }
.footer { text-align: center; margin-top: 40px; color: #666; }
"""

Cell = Union[str, int, float]


def report_file_name(report_id: str) -> str:
    return f"hot-topic-report-{report_id}.html"


def _table(headers: Sequence[str], rows: Iterable[Sequence[Cell]]) -> str:
    head = "".join(f"<th>{escape(h)}</th>" for h in headers)
    body = "".join(
        "<tr>" + "".join(f"<td>{escape(str(cell))}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f'<table class="data-table"><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>'


def _list(items: List[str]) -> str:
    if not items:
        return "<p>-</p>"
    return "<ul>" + "".join(f"<li>{escape(item)}</li>" for item in items) + "</ul>"


def _card(title: str, body: str) -> str:
    return f'<div class="insight-card"><h4>{escape(title)}</h4>{body}</div>'


def _paragraph(text: str) -> str:
    return "<p>" + escape(text or "-").replace("\n", "<br>") + "</p>"


def build_report_html(record: AnalysisRecord, insight: InsightResult, report_id: str) -> str:
    """Render the full report document for one analysis record."""
    m = record.metrics
    s = record.sources
    grades = grade_indices(m)

    metric_cards = "".join(
        f'<div class="metric-card"><h3>{escape(name.capitalize())}</h3>'
        f'<div class="metric-score">{getattr(m, name)}</div><div>{escape(grades[name])}</div></div>'
        for name in ("overall", "exposure", "engagement", "demand")
    )

    summary_rows: List[Tuple[Cell, ...]] = [
        ("News", s.news.article_count, f"{s.news.total_views:,} views"),
        ("Search trend", s.trend.trend_score, f"volume {s.trend.search_volume:g}, shopping {s.trend.shopping_insight}"),
        ("Video", s.video.video_count, f"{s.video.total_views:,} views, {s.video.total_likes:,} likes"),
        ("Microblog", s.microblog.post_count, f"{s.microblog.total_likes:,} likes, {s.microblog.total_reshares:,} reshares"),
        ("Photo", s.photo.post_count, f"{s.photo.total_likes:,} likes, {s.photo.total_comments:,} comments"),
        ("Short video", s.short_video.video_count, f"{s.short_video.total_views:,} views, {s.short_video.total_likes:,} likes"),
    ]

    articles = _table(
        ("Title", "Publisher"), [(a.title, a.source) for a in s.news.top_articles]
    ) if s.news.top_articles else "<p>No articles collected.</p>"
    videos = _table(
        ("Title", "Channel", "Views", "Likes"),
        [(v.title, v.channel_title, f"{v.views:,}", f"{v.likes:,}") for v in s.video.top_videos],
    ) if s.video.top_videos else "<p>No videos collected.</p>"

    rec = insight.strategic_recommendations
    outlook = insight.trend_outlook
    failed = ", ".join(record.failed_sources) or "none"

    return f"""<!DOCTYPE html>
<html lang="ko">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Hot-topic report - {escape(record.keyword)}</title>
<style>{STYLE}</style>
</head>
<body>
<div class="header">
<h1>{escape(record.keyword)}</h1>
<p>Analysis date {record.date.isoformat()} &middot; Report {escape(report_id)}</p>
</div>

<div class="section">
<h2>Indices</h2>
<div class="metrics-grid">{metric_cards}</div>
<p>Data quality: {escape(record.data_quality)} (failed sources: {escape(failed)})</p>
</div>

<div class="section">
<h2>Summary</h2>
{_paragraph(insight.summary)}
{_card("Exposure", _paragraph(insight.data_interpretation.exposure))}
{_card("Engagement", _paragraph(insight.data_interpretation.engagement))}
{_card("Demand", _paragraph(insight.data_interpretation.demand))}
</div>

<div class="section">
<h2>Sources</h2>
{_table(("Source", "Items", "Detail"), summary_rows)}
<h3>Top articles</h3>
{articles}
<h3>Top videos</h3>
{videos}
</div>

<div class="section">
<h2>Key findings</h2>
{_list(insight.key_findings)}
</div>

<div class="section">
<h2>Strategy</h2>
{_card("Short term", _list(rec.short_term))}
{_card("Medium term", _list(rec.medium_term))}
{_card("Long term", _list(rec.long_term))}
</div>

<div class="section">
<h2>Outlook</h2>
{_card("Positive factors", _list(outlook.positive_factors))}
{_card("Negative factors", _list(outlook.negative_factors))}
{_card("Best case", _paragraph(outlook.scenarios.best))}
{_card("Base case", _paragraph(outlook.scenarios.base))}
{_card("Worst case", _paragraph(outlook.scenarios.worst))}
</div>

<div class="section">
<h2>Risks and opportunities</h2>
{_card("Risks", _list(insight.risk_factors))}
{_card("Opportunities", _list(insight.opportunities))}
{_card("Action items", _list(insight.action_items))}
</div>

<div class="footer">Generated {now_utc().strftime("%Y-%m-%d %H:%M UTC")}</div>
</body>
</html>
"""


class ReportRenderer:
    """Writes one static HTML file per analysis under the reports directory."""

    def __init__(self, reports_dir: Optional[Union[str, Path]] = None):
        self.reports_dir = Path(reports_dir or settings.REPORTS_DIR)

    def render(self, record: AnalysisRecord, insight: InsightResult) -> ReportResult:
        """
        Render and write the report.

        Raises:
            CollaboratorError: The file could not be written
        """
        report_id = generate_report_id()
        file_name = report_file_name(report_id)
        file_path = self.reports_dir / file_name
        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
            file_path.write_text(build_report_html(record, insight, report_id), encoding="utf-8")
        except OSError as e:
            raise CollaboratorError(f"Failed to write report for '{record.keyword}': {e}") from e

        logger.info("Report %s written for %r", report_id, record.keyword)
        return ReportResult(report_id=report_id, file_path=str(file_path), file_name=file_name)

    def path_for(self, report_id: str) -> Optional[Path]:
        """Location of a previously rendered report, or None when the id is unknown."""
        if not REPORT_ID_RE.match(report_id):
            return None
        path = self.reports_dir / report_file_name(report_id)
        return path if path.is_file() else None
