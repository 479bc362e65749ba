from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    true,
)

from hottopic.db.session import Base


def utcnow():
    """Timezone-aware UTC now."""
    return datetime.now(timezone.utc)


class WeightConfigurationRow(Base):
    __tablename__ = "weight_configurations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, default="")
    is_active = Column(Boolean, default=False, nullable=False)

    # One JSON object per weight group, e.g. {"news": 0.3, "video": 0.2, ...}
    exposure = Column(JSON, nullable=False)
    engagement = Column(JSON, nullable=False)
    demand = Column(JSON, nullable=False)
    overall = Column(JSON, nullable=False)
    engagement_detail = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=utcnow, index=True)

    __table_args__ = (
        # At most one active configuration
        Index(
            "uix_weight_single_active",
            "is_active",
            unique=True,
            sqlite_where=is_active == true(),
            postgresql_where=is_active == true(),
        ),
    )


class InsightRow(Base):
    __tablename__ = "hot_topic_insights"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    keyword = Column(String(200), index=True)
    payload = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=utcnow)


class AnalysisRow(Base):
    __tablename__ = "hot_topic_analyses"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    keyword = Column(String(200), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    analysis_date = Column(DateTime, default=utcnow)

    # Raw per-source metrics, {"news": {...}, "trend": {...}, ...}
    sources = Column(JSON, nullable=False)

    exposure = Column(Integer, default=0)
    engagement = Column(Integer, default=0)
    demand = Column(Integer, default=0)
    overall = Column(Integer, default=0, index=True)

    weight_configuration_id = Column(Integer, ForeignKey("weight_configurations.id"), nullable=True)
    data_quality = Column(String(10), default="medium")
    failed_sources = Column(JSON, default=list)
    processing_time_ms = Column(Integer, default=0)

    # References to collaborator outputs; not owned, no cascade
    insight_id = Column(Integer, nullable=True)
    report_id = Column(String(64), nullable=True, index=True)
    report_path = Column(String(500), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("keyword", "date", name="uix_analysis_keyword_date"),
    )
