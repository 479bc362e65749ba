"""
Photo-share collector backed by the Instagram Graph API hashtag endpoints.
"""
from __future__ import annotations

from datetime import date
from typing import List

from hottopic.config import TOP_N_ITEMS, settings
from hottopic.schemas import PhotoMetrics, PhotoPost
from hottopic.sources.base import SourceCollector
from hottopic.utils import to_int

GRAPH_API_URL = "https://graph.facebook.com/v19.0"


def to_hashtag(keyword: str) -> str:
    """Hashtags cannot contain whitespace or a leading '#'."""
    return "".join(keyword.split()).lstrip("#")


class PhotoCollector(SourceCollector):
    """Recent media for the keyword's hashtag.

    The hashtag endpoint only covers recent media, so the window is not
    applied; the Graph API exposes likes and comments but not shares.
    """

    source_name = "photo"
    MEDIA_LIMIT = 50

    async def collect(self, keyword: str, start: date, end: date) -> PhotoMetrics:
        self.require(
            INSTAGRAM_ACCESS_TOKEN=settings.INSTAGRAM_ACCESS_TOKEN,
            INSTAGRAM_USER_ID=settings.INSTAGRAM_USER_ID,
        )
        hashtag = to_hashtag(keyword)
        if not hashtag:
            return PhotoMetrics()

        auth = {"user_id": settings.INSTAGRAM_USER_ID, "access_token": settings.INSTAGRAM_ACCESS_TOKEN}
        search = await self.request_json(
            "GET", f"{GRAPH_API_URL}/ig_hashtag_search", params={**auth, "q": hashtag}
        )
        matches = search.get("data") or []
        if not matches:
            return PhotoMetrics()

        media = await self.request_json(
            "GET",
            f"{GRAPH_API_URL}/{matches[0]['id']}/recent_media",
            params={
                **auth,
                "fields": "id,caption,like_count,comments_count,timestamp,permalink",
                "limit": self.MEDIA_LIMIT,
            },
        )
        posts = media.get("data") or []

        total_likes = sum(to_int(p.get("like_count")) for p in posts)
        total_comments = sum(to_int(p.get("comments_count")) for p in posts)

        top_posts: List[PhotoPost] = [
            PhotoPost(
                caption=(p.get("caption") or "")[:300],
                post_id=str(p.get("id", "")),
                author=p.get("username", ""),
                likes=to_int(p.get("like_count")),
                comments=to_int(p.get("comments_count")),
            )
            for p in posts[:TOP_N_ITEMS]
        ]

        return PhotoMetrics(
            post_count=len(posts),
            total_likes=total_likes,
            total_comments=total_comments,
            total_shares=0,
            avg_engagement=round((total_likes + total_comments) / max(len(posts), 1)),
            top_posts=top_posts,
        )
