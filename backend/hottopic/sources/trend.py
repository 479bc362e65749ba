"""
Search trend collector backed by Naver DataLab.
"""
from __future__ import annotations

import logging
from datetime import date

from hottopic.config import settings
from hottopic.core.errors import CollectorError
from hottopic.schemas import TrendMetrics
from hottopic.sources.base import SourceCollector

logger = logging.getLogger(__name__)

DATALAB_SEARCH_URL = "https://openapi.naver.com/v1/datalab/search"
DATALAB_SHOPPING_URL = "https://openapi.naver.com/v1/datalab/shopping/categories"


def _ratios(payload: dict) -> list[float]:
    results = payload.get("results") or []
    if not results:
        return []
    return [float(point.get("ratio") or 0) for point in results[0].get("data") or []]


class TrendCollector(SourceCollector):
    """Relative search volume (DataLab ratios) plus best-effort shopping interest."""

    source_name = "trend"

    def _headers(self) -> dict:
        return {
            "X-Naver-Client-Id": settings.NAVER_CLIENT_ID,
            "X-Naver-Client-Secret": settings.NAVER_CLIENT_SECRET,
            "Content-Type": "application/json",
        }

    async def collect(self, keyword: str, start: date, end: date) -> TrendMetrics:
        self.require(NAVER_CLIENT_ID=settings.NAVER_CLIENT_ID, NAVER_CLIENT_SECRET=settings.NAVER_CLIENT_SECRET)

        body = {
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
            "timeUnit": "date",
            "keywordGroups": [{"groupName": keyword, "keywords": [keyword]}],
        }
        ratios = _ratios(await self.request_json("POST", DATALAB_SEARCH_URL, json=body, headers=self._headers()))
        search_volume = sum(ratios)
        days = max(len(ratios), 1)

        shopping_total = 0.0
        try:
            shopping_body = {
                "startDate": start.isoformat(),
                "endDate": end.isoformat(),
                "timeUnit": "date",
                "category": [{"name": keyword, "param": [keyword]}],
            }
            shopping = await self.request_json(
                "POST", DATALAB_SHOPPING_URL, json=shopping_body, headers=self._headers()
            )
            shopping_total = sum(_ratios(shopping))
        except CollectorError as e:
            logger.info("Shopping insight unavailable for %s: %s", keyword, e.message)

        return TrendMetrics(
            search_volume=search_volume,
            trend_score=round(search_volume / days),
            shopping_insight=round(shopping_total / days),
        )
