"""
Long-form video collector backed by the YouTube Data API v3.
"""
from __future__ import annotations

from datetime import date
from typing import Dict, List

from hottopic.config import TOP_N_ITEMS, settings
from hottopic.schemas import VideoItem, VideoMetrics
from hottopic.sources.base import SourceCollector
from hottopic.utils import end_of_day, start_of_day, to_int

YOUTUBE_SEARCH_URL = "https://www.googleapis.com/youtube/v3/search"
YOUTUBE_VIDEOS_URL = "https://www.googleapis.com/youtube/v3/videos"


def _rfc3339(value) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class VideoCollector(SourceCollector):
    """Video count and view/like/comment totals for videos published in the window."""

    source_name = "video"
    MAX_RESULTS = 50

    async def collect(self, keyword: str, start: date, end: date) -> VideoMetrics:
        self.require(YOUTUBE_API_KEY=settings.YOUTUBE_API_KEY)

        search = await self.request_json(
            "GET",
            YOUTUBE_SEARCH_URL,
            params={
                "part": "snippet",
                "q": keyword,
                "type": "video",
                "maxResults": self.MAX_RESULTS,
                "publishedAfter": _rfc3339(start_of_day(start)),
                "publishedBefore": _rfc3339(end_of_day(end)),
                "key": settings.YOUTUBE_API_KEY,
            },
        )
        videos = [v for v in search.get("items") or [] if (v.get("id") or {}).get("videoId")]
        if not videos:
            return VideoMetrics()

        video_ids = [v["id"]["videoId"] for v in videos]
        details = await self.request_json(
            "GET",
            YOUTUBE_VIDEOS_URL,
            params={"part": "statistics", "id": ",".join(video_ids), "key": settings.YOUTUBE_API_KEY},
        )
        stats: Dict[str, dict] = {
            item.get("id"): item.get("statistics") or {} for item in details.get("items") or []
        }

        total_views = sum(to_int(s.get("viewCount")) for s in stats.values())
        total_likes = sum(to_int(s.get("likeCount")) for s in stats.values())
        total_comments = sum(to_int(s.get("commentCount")) for s in stats.values())

        top_videos: List[VideoItem] = []
        for video in videos[:TOP_N_ITEMS]:
            video_id = video["id"]["videoId"]
            snippet = video.get("snippet") or {}
            s = stats.get(video_id, {})
            top_videos.append(
                VideoItem(
                    title=snippet.get("title", ""),
                    video_id=video_id,
                    channel_title=snippet.get("channelTitle", ""),
                    views=to_int(s.get("viewCount")),
                    likes=to_int(s.get("likeCount")),
                    comments=to_int(s.get("commentCount")),
                )
            )

        return VideoMetrics(
            video_count=len(videos),
            total_views=total_views,
            total_likes=total_likes,
            total_comments=total_comments,
            # The Data API does not expose share counts
            total_shares=0,
            avg_views=round(total_views / max(len(videos), 1)),
            top_videos=top_videos,
        )
