"""
Short-video collector backed by the TikTok Research API.
"""
from __future__ import annotations

from datetime import date
from typing import List

from hottopic.config import TOP_N_ITEMS, settings
from hottopic.core.errors import CollectorError
from hottopic.schemas import ShortVideoItem, ShortVideoMetrics
from hottopic.sources.base import SourceCollector
from hottopic.utils import to_int

VIDEO_QUERY_URL = "https://open.tiktokapis.com/v2/research/video/query/"
VIDEO_FIELDS = "id,video_description,username,view_count,like_count,comment_count,share_count"


class ShortVideoCollector(SourceCollector):
    """Videos whose keywords match, with view/like/comment/share counts."""

    source_name = "short_video"
    MAX_COUNT = 100

    async def collect(self, keyword: str, start: date, end: date) -> ShortVideoMetrics:
        self.require(TIKTOK_ACCESS_TOKEN=settings.TIKTOK_ACCESS_TOKEN)

        body = {
            "query": {"and": [{"operation": "IN", "field_name": "keyword", "field_values": [keyword]}]},
            "start_date": start.strftime("%Y%m%d"),
            "end_date": end.strftime("%Y%m%d"),
            "max_count": self.MAX_COUNT,
        }
        payload = await self.request_json(
            "POST",
            VIDEO_QUERY_URL,
            params={"fields": VIDEO_FIELDS},
            json=body,
            headers={"Authorization": f"Bearer {settings.TIKTOK_ACCESS_TOKEN}"},
        )

        error = payload.get("error") or {}
        if error.get("code") not in (None, "ok"):
            raise CollectorError(self.source_name, f"{error.get('code')}: {error.get('message', '')}")

        videos = (payload.get("data") or {}).get("videos") or []

        total_views = sum(to_int(v.get("view_count")) for v in videos)
        total_likes = sum(to_int(v.get("like_count")) for v in videos)
        total_comments = sum(to_int(v.get("comment_count")) for v in videos)
        total_shares = sum(to_int(v.get("share_count")) for v in videos)

        top_videos: List[ShortVideoItem] = [
            ShortVideoItem(
                title=(v.get("video_description") or "")[:200],
                video_id=str(v.get("id", "")),
                author=v.get("username", ""),
                views=to_int(v.get("view_count")),
                likes=to_int(v.get("like_count")),
                comments=to_int(v.get("comment_count")),
                shares=to_int(v.get("share_count")),
            )
            for v in videos[:TOP_N_ITEMS]
        ]

        return ShortVideoMetrics(
            video_count=len(videos),
            total_views=total_views,
            total_likes=total_likes,
            total_comments=total_comments,
            total_shares=total_shares,
            avg_views=round(total_views / max(len(videos), 1)),
            top_videos=top_videos,
        )
