"""
Collection coordinator that fans one keyword out to every content source.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import List, Optional, Sequence

import httpx

from hottopic.core.errors import CollectorError
from hottopic.models import CollectorOutcome
from hottopic.sources.base import SourceCollector, create_http_client
from hottopic.sources.microblog import MicroblogCollector
from hottopic.sources.news import NewsCollector
from hottopic.sources.photo import PhotoCollector
from hottopic.sources.short_video import ShortVideoCollector
from hottopic.sources.trend import TrendCollector
from hottopic.sources.video import VideoCollector

logger = logging.getLogger(__name__)


def build_collectors(client: Optional[httpx.AsyncClient] = None) -> List[SourceCollector]:
    """
    Instantiate the six source collectors around one shared HTTP client.

    Args:
        client: Client to share; a new one with the configured timeout and
            user agent is created when omitted (the caller closes it)

    Returns:
        Collectors in source order (news, trend, video, microblog, photo, short_video)
    """
    if client is None:
        client = create_http_client()
    return [
        NewsCollector(client),
        TrendCollector(client),
        VideoCollector(client),
        MicroblogCollector(client),
        PhotoCollector(client),
        ShortVideoCollector(client),
    ]


async def _settle(collector: SourceCollector, keyword: str, start: date, end: date) -> CollectorOutcome:
    """Run one collector and turn any failure into an outcome instead of an exception."""
    try:
        metrics = await collector.collect(keyword, start, end)
    except CollectorError as e:
        logger.warning("Collector %s failed for %r: %s", e.source, keyword, e.message)
        return CollectorOutcome(source=collector.source_name, error=e.message)
    except Exception as e:
        logger.warning("Collector %s crashed for %r: %s", collector.source_name, keyword, e, exc_info=True)
        return CollectorOutcome(source=collector.source_name, error=f"{type(e).__name__}: {e}")
    return CollectorOutcome(source=collector.source_name, metrics=metrics)


async def collect_all(
    collectors: Sequence[SourceCollector],
    keyword: str,
    start: date,
    end: date,
) -> List[CollectorOutcome]:
    """
    Collect from every source concurrently and wait for all of them to settle.

    A failing source never cancels or delays its siblings.

    Args:
        collectors: Collectors to run
        keyword: Keyword to collect for
        start: Window start (inclusive)
        end: Window end (inclusive)

    Returns:
        One CollectorOutcome per collector, in the same order
    """
    return list(await asyncio.gather(*(_settle(c, keyword, start, end) for c in collectors)))
