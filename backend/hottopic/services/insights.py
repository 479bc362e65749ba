"""
Narrative insight generation for analysis records.

Any OpenAI-compatible chat completion endpoint can be used. The model is
asked to answer in a fixed set of Korean section headers which
``parse_insight_response`` maps onto InsightResult fields.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from openai import AsyncOpenAI

from hottopic.config import settings
from hottopic.core.scoring import grade
from hottopic.schemas import AnalysisRecord, InsightResult

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "당신은 화제성 분석 전문가입니다. 주어진 데이터를 바탕으로 정확하고 실용적인 인사이트를 제공해주세요. "
    "데이터의 신뢰성과 한계, 시장 트렌드와의 연관성, 실무진이 활용할 수 있는 구체적인 제안, "
    "위험 요소와 기회 요소의 균형을 고려하고 한국 시장 특성을 반영해주세요."
)

RESPONSE_FORMAT = """위 데이터를 바탕으로 다음 형식으로 종합 분석해주세요:

## 핵심 요약
[키워드의 전체적인 화제성 상황을 3-4문장으로 요약]

## 데이터 해석
### 노출 지수 분석
[노출 지수의 의미와 주요 소스별 기여도 분석]
### 참여 지수 분석
[참여 지수의 의미와 플랫폼별 참여도 분석]
### 수요 지수 분석
[수요 지수의 의미와 검색 트렌드 분석]

## 주요 발견사항
- [발견사항과 데이터 근거]

## 전략적 제안
### 단기 전략
- [제안]
### 중기 전략
- [제안]
### 장기 전략
- [제안]

## 트렌드 전망
### 긍정적 요인
- [요인]
### 부정적 요인
- [요인]
### 예상 시나리오
- 최적 시나리오: [상황과 예상 결과]
- 기본 시나리오: [상황과 예상 결과]
- 최악 시나리오: [상황과 예상 결과]

## 주의사항
- [주의사항과 이유]

## 기회요소
- [기회와 활용 방안]

## 액션 아이템
1. [우선순위 높음] [구체적인 액션]
2. [우선순위 중간] [구체적인 액션]
3. [우선순위 낮음] [구체적인 액션]
"""

# Header keyword -> dotted InsightResult field. Order matters: the first
# keyword contained in a header wins.
SECTION_FIELDS = (
    ("핵심 요약", "summary"),
    ("노출 지수 분석", "data_interpretation.exposure"),
    ("참여 지수 분석", "data_interpretation.engagement"),
    ("수요 지수 분석", "data_interpretation.demand"),
    ("주요 발견사항", "key_findings"),
    ("단기 전략", "strategic_recommendations.short_term"),
    ("중기 전략", "strategic_recommendations.medium_term"),
    ("장기 전략", "strategic_recommendations.long_term"),
    ("긍정적 요인", "trend_outlook.positive_factors"),
    ("부정적 요인", "trend_outlook.negative_factors"),
    ("예상 시나리오", "trend_outlook.scenarios"),
    ("주의사항", "risk_factors"),
    ("기회요소", "opportunities"),
    ("액션 아이템", "action_items"),
)

SCENARIO_KEYS = (
    ("최적 시나리오", "best"),
    ("기본 시나리오", "base"),
    ("최악 시나리오", "worst"),
)

LIST_FIELDS = {
    "key_findings",
    "strategic_recommendations.short_term",
    "strategic_recommendations.medium_term",
    "strategic_recommendations.long_term",
    "trend_outlook.positive_factors",
    "trend_outlook.negative_factors",
    "risk_factors",
    "opportunities",
    "action_items",
}

_HEADER_RE = re.compile(r"^\s*#{1,6}\s*(.*)$")
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")


def _clean(text: str) -> str:
    return text.replace("**", "").strip()


def _list_items(lines: List[str]) -> List[str]:
    """Bullet or numbered lines; continuation lines are folded into the previous item."""
    items: List[str] = []
    for line in lines:
        if not line.strip():
            continue
        if _BULLET_RE.match(line) or not items:
            item = _clean(_BULLET_RE.sub("", line, count=1))
            if item:
                items.append(item)
        else:
            items[-1] = f"{items[-1]} {_clean(line)}"
    return items


def _scenarios(lines: List[str]) -> Dict[str, str]:
    found: Dict[str, str] = {}
    for item in _list_items(lines):
        for label, key in SCENARIO_KEYS:
            if label in item:
                _, _, text = item.partition(label)
                found[key] = text.lstrip(" :：").strip()
                break
    return found


def _field_for(title: str) -> Optional[str]:
    for keyword, field in SECTION_FIELDS:
        if keyword in title:
            return field
    return None


def parse_insight_response(text: str) -> InsightResult:
    """
    Map a sectioned model response onto an InsightResult.

    Sections start at markdown header lines; a header is matched by the
    first known Korean title it contains, unknown headers are ignored.
    List sections take one item per bullet or numbered line.

    Args:
        text: Raw completion text

    Returns:
        InsightResult with whichever sections were present; missing ones stay empty
    """
    sections: Dict[str, List[str]] = {}
    current: Optional[str] = None
    for line in (text or "").splitlines():
        header = _HEADER_RE.match(line)
        if header:
            current = _field_for(header.group(1))
            if current is not None:
                sections.setdefault(current, [])
            continue
        if current is not None:
            sections[current].append(line)

    data: Dict[str, dict] = {}
    for field, lines in sections.items():
        if field == "trend_outlook.scenarios":
            value = _scenarios(lines)
        elif field in LIST_FIELDS:
            value = _list_items(lines)
        else:
            value = "\n".join(line.rstrip() for line in lines).strip()

        target = data
        *parents, leaf = field.split(".")
        for parent in parents:
            target = target.setdefault(parent, {})
        target[leaf] = value

    return InsightResult.model_validate(data)


def build_prompt(record: AnalysisRecord) -> str:
    s = record.sources
    m = record.metrics
    return f"""# 화제성 분석 데이터

키워드: {record.keyword}
분석 날짜: {record.date.isoformat()}

## 지수 점수
- 종합 지수: {m.overall}/100 ({grade("overall", m.overall)})
- 노출 지수: {m.exposure}/100 ({grade("exposure", m.exposure)})
- 참여 지수: {m.engagement}/100 ({grade("engagement", m.engagement)})
- 수요 지수: {m.demand}/100 ({grade("demand", m.demand)})

## 뉴스 데이터
- 기사 수: {s.news.article_count}
- 총 조회수: {s.news.total_views:,}
- 평균 조회수: {s.news.avg_views:,}

## 검색 트렌드
- 검색량: {s.trend.search_volume:g}
- 트렌드 점수: {s.trend.trend_score}
- 쇼핑인사이트: {s.trend.shopping_insight}

## 동영상 데이터
- 동영상 수: {s.video.video_count}
- 총 조회수: {s.video.total_views:,}
- 총 좋아요: {s.video.total_likes:,}
- 총 댓글: {s.video.total_comments:,}

## 마이크로블로그 데이터
- 게시물 수: {s.microblog.post_count}
- 총 좋아요: {s.microblog.total_likes:,}
- 총 공유: {s.microblog.total_reshares:,}
- 총 댓글: {s.microblog.total_replies:,}

## 사진 공유 데이터
- 포스트 수: {s.photo.post_count}
- 총 좋아요: {s.photo.total_likes:,}
- 총 댓글: {s.photo.total_comments:,}

## 숏폼 동영상 데이터
- 동영상 수: {s.short_video.video_count}
- 총 조회수: {s.short_video.total_views:,}
- 총 좋아요: {s.short_video.total_likes:,}

---

{RESPONSE_FORMAT}"""


def fallback_insights(record: AnalysisRecord) -> InsightResult:
    """
    Rule-based insight used when the model is unavailable or its answer is unusable.

    Every field is populated so downstream renderers never see empty sections.
    """
    m = record.metrics
    strongest = max(("exposure", "engagement", "demand"), key=lambda name: getattr(m, name))
    weakest = min(("exposure", "engagement", "demand"), key=lambda name: getattr(m, name))
    failed = ", ".join(record.failed_sources)

    findings = [
        f"Overall index {m.overall}/100 ({grade('overall', m.overall)})",
        f"Strongest signal: {strongest} index at {getattr(m, strongest)}/100",
        f"Weakest signal: {weakest} index at {getattr(m, weakest)}/100",
    ]
    if failed:
        findings.append(f"Sources unavailable for this run: {failed}")

    return InsightResult.model_validate(
        {
            "summary": (
                f'Hot-topic analysis for "{record.keyword}" is complete. '
                f"The overall index is {m.overall}/100, which is {grade('overall', m.overall)}."
            ),
            "data_interpretation": {
                "exposure": "The exposure index reflects how widely the keyword appears across media platforms.",
                "engagement": "The engagement index reflects how actively audiences react to content about the keyword.",
                "demand": "The demand index reflects search interest and purchase intent for the keyword.",
            },
            "key_findings": findings,
            "strategic_recommendations": {
                "short_term": ["Review the collected source data manually before acting"],
                "medium_term": ["Keep monitoring the keyword to establish a trend"],
                "long_term": ["Re-run the analysis once automated insights are available"],
            },
            "trend_outlook": {
                "positive_factors": [f"{strongest.capitalize()} index is the leading signal"],
                "negative_factors": [f"{weakest.capitalize()} index is lagging"],
                "scenarios": {
                    "best": "Interest keeps building and the overall index rises over the next runs",
                    "base": "The overall index stays within its current grade",
                    "worst": "Interest fades and the overall index drops a grade",
                },
            },
            "risk_factors": ["Automated insight generation was unavailable", "Manual review is required"],
            "opportunities": [f"Lean on the {strongest} signal when planning communication"],
            "action_items": [
                "1. [High] Review the source breakdown for this keyword",
                "2. [Medium] Compare with previous analyses of the keyword",
                "3. [Low] Re-run once insight generation is restored",
            ],
        }
    )


class InsightService:
    """Generates an InsightResult for a record; never raises."""

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self._client = client
        self.model = model or settings.INSIGHT_MODEL

    def _get_client(self) -> Optional[AsyncOpenAI]:
        """Get the API client only when one was injected or an API key is configured."""
        if self._client is not None:
            return self._client
        if not settings.OPENAI_API_KEY:
            return None
        self._client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.INSIGHT_BASE_URL or None,
            timeout=settings.HTTP_TIMEOUT * 4,
        )
        return self._client

    async def generate_insights(self, record: AnalysisRecord) -> InsightResult:
        client = self._get_client()
        if client is None:
            logger.warning("No insight API key configured; using fallback insights for %r", record.keyword)
            return fallback_insights(record)

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(record)},
                ],
                temperature=0.7,
                max_tokens=settings.INSIGHT_MAX_TOKENS,
            )
            content = (response.choices[0].message.content or "").strip()
            insight = parse_insight_response(content)
        except Exception as e:
            logger.warning("Insight generation failed for %r: %s", record.keyword, e)
            return fallback_insights(record)

        if not insight.summary:
            logger.warning("Insight response for %r had no summary; using fallback", record.keyword)
            return fallback_insights(record)
        return insight
