"""
Application configuration with environment variable support.
"""
from __future__ import annotations

from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Storage
    DB_URL: str = "sqlite:///./hot_topics.db"
    REPORTS_DIR: str = "reports"

    # Naver (news search + DataLab)
    NAVER_CLIENT_ID: str = ""
    NAVER_CLIENT_SECRET: str = ""

    # Video / social platforms
    YOUTUBE_API_KEY: str = ""
    TWITTER_BEARER_TOKEN: str = ""
    INSTAGRAM_ACCESS_TOKEN: str = ""
    INSTAGRAM_USER_ID: str = ""
    TIKTOK_ACCESS_TOKEN: str = ""

    # Insight generation (any OpenAI-compatible endpoint)
    OPENAI_API_KEY: str = ""
    INSIGHT_BASE_URL: str = ""
    INSIGHT_MODEL: str = "gpt-4o-mini"
    INSIGHT_MAX_TOKENS: int = 1500

    # Outbound HTTP
    HTTP_TIMEOUT: float = 15.0
    USER_AGENT: str = "hot-topic-index/0.1"

    # Scoring
    CLAMP_INDICES: bool = False

    # CORS
    CORS_ALLOW_ORIGINS: list[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


settings = Settings()


# Weight groups must each sum to 1 within this tolerance
WEIGHT_SUM_EPSILON: float = 0.01

# Number of items each collector keeps for drill-down lists
TOP_N_ITEMS: int = 10

# News search results carry no view counts; each article is credited with this many views
ESTIMATED_VIEWS_PER_ARTICLE: int = 1000

DEFAULT_WEIGHT_NAME = "Default"
DEFAULT_WEIGHT_DESCRIPTION = "Default weight configuration"

DEFAULT_WEIGHTS: Dict[str, Dict[str, float]] = {
    "exposure": {
        "news": 0.30,
        "video": 0.20,
        "microblog": 0.20,
        "photo": 0.15,
        "short_video": 0.15,
    },
    "engagement": {
        "video": 0.25,
        "microblog": 0.25,
        "photo": 0.25,
        "short_video": 0.25,
    },
    "demand": {
        "trend": 0.40,
        "video": 0.20,
        "microblog": 0.20,
        "photo": 0.10,
        "short_video": 0.10,
    },
    "overall": {
        "exposure": 0.40,
        "engagement": 0.35,
        "demand": 0.25,
    },
    "engagement_detail": {
        "likes": 0.40,
        "comments": 0.30,
        "shares": 0.30,
    },
}

# Multipliers turning a raw volume counter into a 0-100 source score
EXPOSURE_FACTORS: Dict[str, float] = {
    "news": 2.0,             # article count
    "video": 1 / 10000,      # total views
    "microblog": 5.0,        # post count
    "photo": 3.0,            # post count
    "short_video": 1 / 5000, # total views
}

# Per-item engagement is divided by these before saturating at 100
ENGAGEMENT_DIVISORS: Dict[str, float] = {
    "video": 100.0,
    "microblog": 50.0,
    "photo": 200.0,
    "short_video": 100.0,
}

DEMAND_FACTORS: Dict[str, float] = {
    "trend": 1.0,        # search volume, already relative
    "video": 10.0,       # item count
    "microblog": 8.0,
    "photo": 15.0,
    "short_video": 12.0,
}

# Grade breakpoints (very high, high, medium); anything below is "low"
GRADE_BREAKPOINTS: Dict[str, tuple[int, int, int]] = {
    "exposure": (81, 61, 31),
    "engagement": (76, 51, 26),
    "demand": (81, 61, 31),
    "overall": (81, 61, 41),
}

# Overall index must move by more than this across the last three records to count as a trend
TREND_DELTA: int = 5
TREND_WINDOW: int = 3
