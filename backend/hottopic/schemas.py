# hottopic/schemas.py
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from hottopic.config import DEFAULT_WEIGHTS

DataQuality = Literal["high", "medium", "low"]
TrendDirection = Literal["increasing", "decreasing", "stable"]


# ---- Weight configuration ----

class ExposureWeights(BaseModel):
    news: float = DEFAULT_WEIGHTS["exposure"]["news"]
    video: float = DEFAULT_WEIGHTS["exposure"]["video"]
    microblog: float = DEFAULT_WEIGHTS["exposure"]["microblog"]
    photo: float = DEFAULT_WEIGHTS["exposure"]["photo"]
    short_video: float = DEFAULT_WEIGHTS["exposure"]["short_video"]


class EngagementWeights(BaseModel):
    video: float = DEFAULT_WEIGHTS["engagement"]["video"]
    microblog: float = DEFAULT_WEIGHTS["engagement"]["microblog"]
    photo: float = DEFAULT_WEIGHTS["engagement"]["photo"]
    short_video: float = DEFAULT_WEIGHTS["engagement"]["short_video"]


class DemandWeights(BaseModel):
    trend: float = DEFAULT_WEIGHTS["demand"]["trend"]
    video: float = DEFAULT_WEIGHTS["demand"]["video"]
    microblog: float = DEFAULT_WEIGHTS["demand"]["microblog"]
    photo: float = DEFAULT_WEIGHTS["demand"]["photo"]
    short_video: float = DEFAULT_WEIGHTS["demand"]["short_video"]


class OverallWeights(BaseModel):
    exposure: float = DEFAULT_WEIGHTS["overall"]["exposure"]
    engagement: float = DEFAULT_WEIGHTS["overall"]["engagement"]
    demand: float = DEFAULT_WEIGHTS["overall"]["demand"]


class EngagementDetailWeights(BaseModel):
    likes: float = DEFAULT_WEIGHTS["engagement_detail"]["likes"]
    comments: float = DEFAULT_WEIGHTS["engagement_detail"]["comments"]
    shares: float = DEFAULT_WEIGHTS["engagement_detail"]["shares"]


WEIGHT_GROUPS = ("exposure", "engagement", "demand", "overall", "engagement_detail")


class WeightConfiguration(BaseModel):
    id: Optional[int] = None
    name: str = "Custom"
    description: str = ""
    is_active: bool = False
    created_at: Optional[datetime] = None

    exposure: ExposureWeights = Field(default_factory=ExposureWeights)
    engagement: EngagementWeights = Field(default_factory=EngagementWeights)
    demand: DemandWeights = Field(default_factory=DemandWeights)
    overall: OverallWeights = Field(default_factory=OverallWeights)
    engagement_detail: EngagementDetailWeights = Field(default_factory=EngagementDetailWeights)

    def groups(self) -> Dict[str, Dict[str, float]]:
        """Weight groups keyed by group name."""
        return {name: getattr(self, name).model_dump() for name in WEIGHT_GROUPS}


class WeightConfigurationIn(BaseModel):
    name: str = "Custom"
    description: str = "Operator-defined weights"
    exposure: ExposureWeights
    engagement: EngagementWeights
    demand: DemandWeights
    overall: OverallWeights
    engagement_detail: EngagementDetailWeights
    normalize: bool = False


# ---- Per-source metrics ----

class NewsArticle(BaseModel):
    title: str = ""
    url: str = ""
    source: str = ""
    views: int = 0
    published_at: Optional[datetime] = None


class NewsMetrics(BaseModel):
    article_count: int = 0
    total_views: int = 0
    avg_views: int = 0
    top_articles: List[NewsArticle] = Field(default_factory=list)


class TrendMetrics(BaseModel):
    search_volume: float = 0.0
    trend_score: int = 0
    shopping_insight: int = 0


class VideoItem(BaseModel):
    title: str = ""
    video_id: str = ""
    channel_title: str = ""
    views: int = 0
    likes: int = 0
    comments: int = 0


class VideoMetrics(BaseModel):
    video_count: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0
    total_shares: int = 0
    avg_views: int = 0
    top_videos: List[VideoItem] = Field(default_factory=list)


class MicroblogPost(BaseModel):
    text: str = ""
    post_id: str = ""
    author: str = ""
    likes: int = 0
    reshares: int = 0
    replies: int = 0


class MicroblogMetrics(BaseModel):
    post_count: int = 0
    total_likes: int = 0
    total_reshares: int = 0
    total_replies: int = 0
    avg_engagement: int = 0
    top_posts: List[MicroblogPost] = Field(default_factory=list)


class PhotoPost(BaseModel):
    caption: str = ""
    post_id: str = ""
    author: str = ""
    likes: int = 0
    comments: int = 0
    shares: int = 0


class PhotoMetrics(BaseModel):
    post_count: int = 0
    total_likes: int = 0
    total_comments: int = 0
    total_shares: int = 0
    avg_engagement: int = 0
    top_posts: List[PhotoPost] = Field(default_factory=list)


class ShortVideoItem(BaseModel):
    title: str = ""
    video_id: str = ""
    author: str = ""
    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0


class ShortVideoMetrics(BaseModel):
    video_count: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_comments: int = 0
    total_shares: int = 0
    avg_views: int = 0
    top_videos: List[ShortVideoItem] = Field(default_factory=list)


class SourceBundle(BaseModel):
    news: NewsMetrics = Field(default_factory=NewsMetrics)
    trend: TrendMetrics = Field(default_factory=TrendMetrics)
    video: VideoMetrics = Field(default_factory=VideoMetrics)
    microblog: MicroblogMetrics = Field(default_factory=MicroblogMetrics)
    photo: PhotoMetrics = Field(default_factory=PhotoMetrics)
    short_video: ShortVideoMetrics = Field(default_factory=ShortVideoMetrics)


SOURCE_NAMES = ("news", "trend", "video", "microblog", "photo", "short_video")

# Metrics model per source name; used to build zero-valued fallbacks
SOURCE_METRIC_TYPES = {
    "news": NewsMetrics,
    "trend": TrendMetrics,
    "video": VideoMetrics,
    "microblog": MicroblogMetrics,
    "photo": PhotoMetrics,
    "short_video": ShortVideoMetrics,
}


# ---- Results ----

class Indices(BaseModel):
    exposure: int = 0
    engagement: int = 0
    demand: int = 0
    overall: int = 0


class AnalysisRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    keyword: str
    date: date
    analysis_date: datetime
    sources: SourceBundle = Field(default_factory=SourceBundle)
    metrics: Indices = Field(default_factory=Indices)
    weight_configuration_id: Optional[int] = None
    data_quality: DataQuality = "medium"
    failed_sources: List[str] = Field(default_factory=list)
    processing_time_ms: int = 0
    insight_id: Optional[int] = None
    report_id: Optional[str] = None
    report_path: Optional[str] = None


class DataInterpretation(BaseModel):
    exposure: str = ""
    engagement: str = ""
    demand: str = ""


class StrategicRecommendations(BaseModel):
    short_term: List[str] = Field(default_factory=list)
    medium_term: List[str] = Field(default_factory=list)
    long_term: List[str] = Field(default_factory=list)


class Scenarios(BaseModel):
    best: str = ""
    base: str = ""
    worst: str = ""


class TrendOutlook(BaseModel):
    positive_factors: List[str] = Field(default_factory=list)
    negative_factors: List[str] = Field(default_factory=list)
    scenarios: Scenarios = Field(default_factory=Scenarios)


class InsightResult(BaseModel):
    summary: str = ""
    data_interpretation: DataInterpretation = Field(default_factory=DataInterpretation)
    key_findings: List[str] = Field(default_factory=list)
    strategic_recommendations: StrategicRecommendations = Field(default_factory=StrategicRecommendations)
    trend_outlook: TrendOutlook = Field(default_factory=TrendOutlook)
    risk_factors: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)
    action_items: List[str] = Field(default_factory=list)


class IndexStats(BaseModel):
    average: float = 0.0
    min: int = 0
    max: int = 0


class KeywordStats(BaseModel):
    keyword: str
    count: int
    exposure: IndexStats = Field(default_factory=IndexStats)
    engagement: IndexStats = Field(default_factory=IndexStats)
    demand: IndexStats = Field(default_factory=IndexStats)
    overall: IndexStats = Field(default_factory=IndexStats)
    trend: TrendDirection = "stable"


# ---- API payloads ----

class AnalysisRequest(BaseModel):
    keywords: List[str]
    start_date: str
    end_date: str


class AnalysisRecordResponse(AnalysisRecord):
    grades: Dict[str, str] = Field(default_factory=dict)
    insight: Optional[InsightResult] = None


class AnalysisBatchResponse(BaseModel):
    count: int
    results: List[AnalysisRecordResponse]
