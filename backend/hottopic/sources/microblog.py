"""
Microblog collector backed by the X (Twitter) v2 recent search endpoint.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import List

from hottopic.config import TOP_N_ITEMS, settings
from hottopic.schemas import MicroblogMetrics, MicroblogPost
from hottopic.sources.base import SourceCollector
from hottopic.utils import end_of_day, now_utc, start_of_day, to_int

RECENT_SEARCH_URL = "https://api.twitter.com/2/tweets/search/recent"

# Recent search only reaches back seven days and end_time must trail "now"
SEARCH_LOOKBACK = timedelta(days=7) - timedelta(minutes=1)
END_TIME_MARGIN = timedelta(seconds=30)


def _iso(value) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class MicroblogCollector(SourceCollector):
    """Original posts (no reposts) with their public like/repost/reply metrics."""

    source_name = "microblog"
    MAX_RESULTS = 100

    async def collect(self, keyword: str, start: date, end: date) -> MicroblogMetrics:
        self.require(TWITTER_BEARER_TOKEN=settings.TWITTER_BEARER_TOKEN)

        now = now_utc()
        start_time = max(start_of_day(start), now - SEARCH_LOOKBACK)
        end_time = min(end_of_day(end), now - END_TIME_MARGIN)
        if start_time >= end_time:
            # Window lies entirely outside what recent search can see
            return MicroblogMetrics()

        data = await self.request_json(
            "GET",
            RECENT_SEARCH_URL,
            headers={"Authorization": f"Bearer {settings.TWITTER_BEARER_TOKEN}"},
            params={
                "query": f"{keyword} -is:retweet",
                "max_results": self.MAX_RESULTS,
                "tweet.fields": "public_metrics,created_at,author_id",
                "start_time": _iso(start_time),
                "end_time": _iso(end_time),
            },
        )
        posts = data.get("data") or []

        def metric(post: dict, name: str) -> int:
            return to_int((post.get("public_metrics") or {}).get(name))

        total_likes = sum(metric(p, "like_count") for p in posts)
        total_reshares = sum(metric(p, "retweet_count") for p in posts)
        total_replies = sum(metric(p, "reply_count") for p in posts)

        top_posts: List[MicroblogPost] = [
            MicroblogPost(
                text=p.get("text", ""),
                post_id=str(p.get("id", "")),
                author=str(p.get("author_id", "")),
                likes=metric(p, "like_count"),
                reshares=metric(p, "retweet_count"),
                replies=metric(p, "reply_count"),
            )
            for p in posts[:TOP_N_ITEMS]
        ]

        return MicroblogMetrics(
            post_count=len(posts),
            total_likes=total_likes,
            total_reshares=total_reshares,
            total_replies=total_replies,
            avg_engagement=round((total_likes + total_reshares + total_replies) / max(len(posts), 1)),
            top_posts=top_posts,
        )
