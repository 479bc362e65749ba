"""
News search collector.

Uses the Naver news search API when credentials are configured and falls
back to the Google News RSS search feed otherwise. Neither exposes view
counts, so every article is credited with ESTIMATED_VIEWS_PER_ARTICLE.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List
from urllib.parse import urlencode

import feedparser

from hottopic.config import ESTIMATED_VIEWS_PER_ARTICLE, TOP_N_ITEMS, settings
from hottopic.schemas import NewsArticle, NewsMetrics
from hottopic.sources.base import SourceCollector
from hottopic.utils import extract_domain_from_url, parse_utc_datetime, strip_html

logger = logging.getLogger(__name__)

NAVER_NEWS_URL = "https://openapi.naver.com/v1/search/news.json"
GOOGLE_NEWS_RSS_URL = "https://news.google.com/rss/search"


def build_news_metrics(articles: List[NewsArticle]) -> NewsMetrics:
    """
    Aggregate articles into news metrics using the per-article view estimate.

    Args:
        articles: Articles in the source's relevance order

    Returns:
        NewsMetrics with estimated views and the top articles
    """
    count = len(articles)
    total_views = count * ESTIMATED_VIEWS_PER_ARTICLE
    top = [a.model_copy(update={"views": ESTIMATED_VIEWS_PER_ARTICLE}) for a in articles[:TOP_N_ITEMS]]
    return NewsMetrics(
        article_count=count,
        total_views=total_views,
        avg_views=round(total_views / max(count, 1)),
        top_articles=top,
    )


class NewsCollector(SourceCollector):
    """Collects news article counts for a keyword."""

    source_name = "news"
    DISPLAY = 100

    async def collect(self, keyword: str, start: date, end: date) -> NewsMetrics:
        if settings.NAVER_CLIENT_ID and settings.NAVER_CLIENT_SECRET:
            articles = await self._fetch_naver(keyword)
        else:
            logger.debug("Naver credentials not set; using Google News RSS for %s", keyword)
            articles = await self._fetch_google_rss(keyword)
        return build_news_metrics(articles)

    async def _fetch_naver(self, keyword: str) -> List[NewsArticle]:
        headers = {
            "X-Naver-Client-Id": settings.NAVER_CLIENT_ID,
            "X-Naver-Client-Secret": settings.NAVER_CLIENT_SECRET,
        }
        params = {"query": keyword, "display": self.DISPLAY, "sort": "sim"}
        data = await self.request_json("GET", NAVER_NEWS_URL, params=params, headers=headers)

        articles: List[NewsArticle] = []
        for item in data.get("items") or []:
            url = item.get("originallink") or item.get("link") or ""
            articles.append(
                NewsArticle(
                    title=strip_html(item.get("title")),
                    url=url,
                    source=extract_domain_from_url(url) if url else "",
                    published_at=parse_utc_datetime(item.get("pubDate")),
                )
            )
        return articles

    async def _fetch_google_rss(self, keyword: str) -> List[NewsArticle]:
        params = urlencode({"q": keyword, "hl": "ko", "gl": "KR", "ceid": "KR:ko"})
        response = await self.request("GET", f"{GOOGLE_NEWS_RSS_URL}?{params}")
        feed = feedparser.parse(response.text)

        articles: List[NewsArticle] = []
        for entry in feed.entries[: self.DISPLAY]:
            title = strip_html(entry.get("title"))
            link = (entry.get("link") or "").strip()
            if not title or not link:
                continue

            source = entry.get("source")
            publisher = ""
            if isinstance(source, dict):
                publisher = extract_domain_from_url(source.get("href") or "") or source.get("title", "")

            articles.append(
                NewsArticle(
                    title=title,
                    url=link,
                    source=publisher,
                    published_at=parse_utc_datetime(entry.get("published")),
                )
            )
        return articles
