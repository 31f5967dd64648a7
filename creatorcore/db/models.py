from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from creatorcore.db.base import Base
from creatorcore.db.enums import (
    ClassificationRunStatusEnum,
    ConfidenceEnum,
    GenreSourceEnum,
    RiskModeEnum,
    SwipeActionEnum,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Money columns come back as float; fit scores are already floats.
Money = Numeric(14, 2, asdecimal=False)


class Org(Base):
    __tablename__ = "orgs"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    external_id: Mapped[Optional[str]] = mapped_column(Text, unique=True, nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Campaign(Base):
    __tablename__ = "campaigns"
    __table_args__ = (UniqueConstraint("org_id", "slug", name="uq_campaigns_org_slug"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    platforms: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    budget: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    genre: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    genre_source: Mapped[GenreSourceEnum] = mapped_column(
        Enum(GenreSourceEnum, name="genre_source"),
        default=GenreSourceEnum.unset,
        server_default=GenreSourceEnum.unset.value,
        nullable=False,
    )
    genre_confidence: Mapped[Optional[ConfidenceEnum]] = mapped_column(
        Enum(ConfidenceEnum, name="genre_confidence"), nullable=True
    )
    genre_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Creator(Base):
    __tablename__ = "creators"
    __table_args__ = (UniqueConstraint("org_id", "handle", name="uq_creators_org_handle"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    # Lower-cased handle; this is the creator_id exposed by the API.
    handle: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    platforms: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    platform_handles: Mapped[dict[str, str]] = mapped_column(JSON, default=dict, nullable=False)
    agency: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_views: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_posts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    avg_views: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    cost_to_date: Mapped[float] = mapped_column(Money, default=0.0, nullable=False)
    # Percentage, 0-100.
    success_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    campaign_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rate: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class CampaignCreator(Base):
    __tablename__ = "campaign_creators"
    __table_args__ = (UniqueConstraint("campaign_id", "creator_id", name="uq_campaign_creators_pair"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    campaign_id: Mapped[UUID] = mapped_column(ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    creator_id: Mapped[UUID] = mapped_column(ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True)
    posts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    views: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    spend: Mapped[float] = mapped_column(Money, default=0.0, nullable=False)


class GenreClassificationRun(Base):
    __tablename__ = "genre_classification_runs"
    __table_args__ = (
        Index(
            "uq_genre_runs_single_running",
            "status",
            unique=True,
            postgresql_where=sa.text("status = 'running'"),
            sqlite_where=sa.text("status = 'running'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[ClassificationRunStatusEnum] = mapped_column(
        Enum(ClassificationRunStatusEnum, name="classification_run_status"),
        default=ClassificationRunStatusEnum.pending,
        nullable=False,
    )
    total_candidates: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    classified: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    heuristic_hits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    search_hits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cache_hits: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    marked_unclassified: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    marked_other: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failures: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    search_calls: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    remaining: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class GenreSearchCache(Base):
    __tablename__ = "genre_search_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    artist_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    artist_name: Mapped[str] = mapped_column(Text, nullable=False)
    genre: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    confidence: Mapped[Optional[str]] = mapped_column(String(length=16), nullable=True)
    searched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class CreatorGenreLabel(Base):
    __tablename__ = "creator_genre_labels"
    __table_args__ = (UniqueConstraint("creator_id", "genre", name="uq_creator_genre_labels_pair"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id: Mapped[UUID] = mapped_column(ForeignKey("creators.id", ondelete="CASCADE"), nullable=False)
    genre: Mapped[str] = mapped_column(Text, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    source: Mapped[str] = mapped_column(Text, default="campaign_rollup", nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class RecommendationRun(Base):
    __tablename__ = "recommendation_runs"
    __table_args__ = (Index("idx_recommendation_runs_campaign_generated", "campaign_id", "generated_at"),)

    id: Mapped[str] = mapped_column(String(length=64), primary_key=True)
    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False, index=True)
    campaign_id: Mapped[UUID] = mapped_column(ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False)
    objective: Mapped[str] = mapped_column(Text, nullable=False)
    budget: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    risk_mode: Mapped[RiskModeEnum] = mapped_column(Enum(RiskModeEnum, name="risk_mode"), nullable=False)
    per_creator_cap: Mapped[Optional[float]] = mapped_column(Money, nullable=True)
    result_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    genre_filters: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    platform_filters: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    persisted: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by_user: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Recommendation(Base):
    __tablename__ = "recommendations"
    __table_args__ = (Index("idx_recommendations_run_rank", "run_id", "rank"),)

    run_id: Mapped[str] = mapped_column(
        ForeignKey("recommendation_runs.id", ondelete="CASCADE"), primary_key=True
    )
    creator_id: Mapped[str] = mapped_column(Text, primary_key=True)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    fit_score: Mapped[float] = mapped_column(Float, nullable=False)
    estimated_spend: Mapped[float] = mapped_column(Money, nullable=False)
    auto_shortlisted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    score_breakdown: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    rationale: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)


class CampaignSwipe(Base):
    __tablename__ = "campaign_swipes"
    __table_args__ = (
        UniqueConstraint("run_id", "creator_id", name="uq_campaign_swipes_run_creator"),
        Index("idx_campaign_swipes_org_creator", "org_id", "creator_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[UUID] = mapped_column(ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False)
    run_id: Mapped[str] = mapped_column(ForeignKey("recommendation_runs.id", ondelete="CASCADE"), nullable=False)
    creator_id: Mapped[str] = mapped_column(Text, nullable=False)
    action: Mapped[SwipeActionEnum] = mapped_column(Enum(SwipeActionEnum, name="swipe_action"), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    actor_user_id: Mapped[str] = mapped_column(Text, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
