from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from creatorcore.config import settings
from creatorcore.db.enums import RiskModeEnum, UserRoleEnum
from creatorcore.db.models import Campaign, Creator, Recommendation, RecommendationRun, utcnow
from creatorcore.db.repositories.campaigns import UNCLASSIFIED_GENRE, CampaignsRepository
from creatorcore.db.repositories.creators import CreatorsRepository
from creatorcore.db.repositories.recommendations import RecommendationsRepository
from creatorcore.db.repositories.swipes import CampaignSwipesRepository
from creatorcore.errors import DeadlineExceededError, InternalError, InvalidInputError, NotFoundError
from creatorcore.services.scoring import Candidate, allocate_budget, rank_candidates, score_creator

logger = logging.getLogger(__name__)

DEFAULT_OBJECTIVE = "maximize_views"
DEFAULT_RISK_MODE = RiskModeEnum.hybrid
MAX_FILTER_VALUES = 20
MAX_FILTER_LENGTH = 64
MAX_OBJECTIVE_LENGTH = 64

FINANCIAL_ROLES = {UserRoleEnum.admin.value, UserRoleEnum.analyst.value}
FINANCIAL_FIELDS = ("budget", "per_creator_cap", "total_spend")
ROW_FINANCIAL_FIELDS = ("estimated_spend",)


@dataclass
class RecommendationOptions:
    budget: Optional[float] = None
    objective: str = DEFAULT_OBJECTIVE
    risk_mode: RiskModeEnum = DEFAULT_RISK_MODE
    genres: list[str] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)
    limit: int = 25
    per_creator_cap: Optional[float] = None


def normalize_filters(values: Optional[Iterable[str]], name: str) -> list[str]:
    """Trim, drop empties and de-duplicate case-insensitively, keeping first-seen order."""
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in values or []:
        value = (raw or "").strip()
        if not value:
            continue
        if len(value) > MAX_FILTER_LENGTH:
            raise InvalidInputError(f"{name} filter values must be at most {MAX_FILTER_LENGTH} characters")
        key = value.lower()
        if key in seen:
            continue
        seen.add(key)
        cleaned.append(value)
    if len(cleaned) > MAX_FILTER_VALUES:
        raise InvalidInputError(f"At most {MAX_FILTER_VALUES} {name} filters are allowed")
    return cleaned


def _positive_amount(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount) or amount <= 0:
        return None
    return amount


def build_options(
    *,
    budget: Optional[float] = None,
    objective: Optional[str] = None,
    risk_mode: Optional[str] = None,
    genres: Optional[Iterable[str]] = None,
    platforms: Optional[Iterable[str]] = None,
    limit: Optional[int] = None,
    per_creator_cap: Optional[float] = None,
) -> RecommendationOptions:
    """Normalise raw request options. Non-positive or non-finite amounts are ignored."""
    mode = DEFAULT_RISK_MODE
    if risk_mode is not None and str(risk_mode).strip():
        try:
            mode = RiskModeEnum(str(risk_mode).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(m.value for m in RiskModeEnum)
            raise InvalidInputError(f"risk_mode must be one of: {allowed}") from exc

    cleaned_objective = (objective or "").strip() or DEFAULT_OBJECTIVE
    if len(cleaned_objective) > MAX_OBJECTIVE_LENGTH:
        raise InvalidInputError(f"objective must be at most {MAX_OBJECTIVE_LENGTH} characters")

    resolved_limit = settings.RECOMMENDATION_DEFAULT_LIMIT if limit is None else int(limit)
    resolved_limit = max(1, min(resolved_limit, settings.RECOMMENDATION_MAX_LIMIT))

    return RecommendationOptions(
        budget=_positive_amount(budget),
        objective=cleaned_objective,
        risk_mode=mode,
        genres=normalize_filters(genres, "genre"),
        platforms=normalize_filters(platforms, "platform"),
        limit=resolved_limit,
        per_creator_cap=_positive_amount(per_creator_cap),
    )


class _Deadline:
    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds

    def check(self, stage: str) -> None:
        if time.monotonic() > self.expires_at:
            raise DeadlineExceededError(f"Recommendation generation exceeded {self.seconds:.1f}s during {stage}")


def _is_classified(genre: Optional[str]) -> bool:
    return bool(genre and genre.strip() and genre != UNCLASSIFIED_GENRE)


def _lower_set(values: Iterable[str]) -> set[str]:
    return {value.lower() for value in values or []}


def _guardrail(creator: Creator, campaign_platforms: set[str]) -> Optional[str]:
    if campaign_platforms and not (_lower_set(creator.platforms) & campaign_platforms):
        return "platform_mismatch"
    if (
        (creator.total_posts or 0) >= settings.COOLING_MIN_POSTS
        and (creator.success_rate or 0) / 100.0 < settings.COOLING_SUCCESS_RATE
    ):
        return "cooling"
    return None


def _auto_shortlist(risk_mode: RiskModeEnum, fit_score: float) -> bool:
    if risk_mode == RiskModeEnum.auto:
        return True
    if risk_mode == RiskModeEnum.hybrid:
        return fit_score > settings.AUTO_SHORTLIST_THRESHOLD
    return False


def _use_snapshot(session: Session) -> None:
    # One consistent snapshot for pool, labels and swipe history.
    if session.get_bind().dialect.name != "postgresql":
        return
    if session.in_transaction():
        session.commit()
    session.connection(execution_options={"isolation_level": "REPEATABLE READ"})


def _row_payload(candidate: Candidate, rank: int, auto_shortlisted: bool) -> dict[str, Any]:
    return {
        "creator_id": candidate.creator_id,
        "rank": rank,
        "fit_score": candidate.fit_score,
        "estimated_spend": candidate.estimated_spend,
        "auto_shortlisted": auto_shortlisted,
        "score_breakdown": candidate.score_breakdown,
        "rationale": candidate.rationale,
    }


def generate(
    session: Session,
    *,
    org_id: str,
    campaign_slug: str,
    options: RecommendationOptions,
    persist: bool = True,
    user_id: Optional[str] = None,
) -> dict[str, Any]:
    """
    Score, rank and budget creators for a campaign.

    Output depends only on the campaign, the creator pool and prior swipe
    history; repeated calls differ only in run_id and generated_at. When
    ``persist`` is false nothing is written.
    """
    deadline = _Deadline(settings.RECOMMENDATION_TIMEOUT_SECONDS)
    _use_snapshot(session)

    campaign: Optional[Campaign] = CampaignsRepository(session).get_by_slug(org_id, campaign_slug)
    if not campaign:
        raise NotFoundError("Campaign not found")

    budget = options.budget if options.budget is not None else _positive_amount(campaign.budget)
    target_genres = options.genres or ([campaign.genre] if _is_classified(campaign.genre) else [])
    required_platforms = options.platforms or list(campaign.platforms or [])
    campaign_platforms = _lower_set(campaign.platforms)

    creators_repo = CreatorsRepository(session)
    pool = creators_repo.list_pool(org_id, settings.RECOMMENDATION_POOL_LIMIT)
    labels = creators_repo.genre_labels([creator.id for creator in pool])
    if options.genres:
        wanted = _lower_set(options.genres)
        pool = [c for c in pool if any(label.genre.lower() in wanted for label in labels.get(c.id, []))]
    if options.platforms:
        wanted = _lower_set(options.platforms)
        pool = [c for c in pool if _lower_set(c.platforms) & wanted]
    deadline.check("candidate pool")

    skipped: list[dict[str, str]] = []
    eligible: list[Creator] = []
    for creator in pool:
        reason = _guardrail(creator, campaign_platforms)
        if reason:
            skipped.append({"creator_id": creator.handle, "reason": reason})
        else:
            eligible.append(creator)

    feedback = CampaignSwipesRepository(session).feedback_counts(org_id, [c.handle for c in eligible])
    candidates = [
        score_creator(
            creator,
            labels=labels.get(creator.id, []),
            target_genres=target_genres,
            required_platforms=required_platforms,
            feedback=feedback.get(creator.handle),
            feedback_weight=settings.FEEDBACK_WEIGHT,
        )
        for creator in eligible
    ]
    deadline.check("scoring")

    allocation = allocate_budget(
        rank_candidates(candidates),
        limit=options.limit,
        budget=budget,
        per_creator_cap=options.per_creator_cap,
    )
    skipped.extend({"creator_id": creator_id, "reason": "over_cap"} for creator_id in allocation.over_cap)

    rows = [
        _row_payload(candidate, rank, _auto_shortlist(options.risk_mode, candidate.fit_score))
        for rank, candidate in enumerate(allocation.included, start=1)
    ]
    deadline.check("allocation")

    generated_at = utcnow()
    run_id: Optional[str] = None
    if persist:
        run_id = uuid4().hex
        run = RecommendationRun(
            id=run_id,
            org_id=campaign.org_id,
            campaign_id=campaign.id,
            objective=options.objective,
            budget=budget,
            risk_mode=options.risk_mode,
            per_creator_cap=options.per_creator_cap,
            result_limit=options.limit,
            genre_filters=list(options.genres),
            platform_filters=list(options.platforms),
            persisted=True,
            created_by_user=user_id,
            generated_at=generated_at,
        )
        records = [
            Recommendation(
                run_id=run_id,
                creator_id=row["creator_id"],
                rank=row["rank"],
                fit_score=row["fit_score"],
                estimated_spend=row["estimated_spend"],
                auto_shortlisted=row["auto_shortlisted"],
                score_breakdown=row["score_breakdown"],
                rationale=row["rationale"],
            )
            for row in rows
        ]
        try:
            RecommendationsRepository(session).create_run(run, records)
        except SQLAlchemyError as exc:
            logger.exception(
                "Failed to persist recommendation run",
                extra={"org_id": org_id, "campaign_slug": campaign_slug, "run_id": run_id},
            )
            raise InternalError("Unable to save recommendation run") from exc

    logger.info(
        "Generated recommendations",
        extra={
            "org_id": org_id,
            "campaign_slug": campaign_slug,
            "run_id": run_id,
            "pool": len(pool),
            "included": len(rows),
            "skipped": len(skipped),
        },
    )
    return {
        "campaign_slug": campaign.slug,
        "objective": options.objective,
        "budget": budget,
        "risk_mode": options.risk_mode.value,
        "per_creator_cap": options.per_creator_cap,
        "genres": list(options.genres),
        "platforms": list(options.platforms),
        "recommendations": rows,
        "auto_shortlisted_count": sum(1 for row in rows if row["auto_shortlisted"]),
        "skipped": skipped,
        "total_spend": allocation.total_spend,
        "run_id": run_id,
        "generated_at": generated_at,
    }


def get_run(session: Session, *, org_id: str, run_id: str) -> dict[str, Any]:
    repo = RecommendationsRepository(session)
    run = repo.get_run(org_id, run_id)
    if not run:
        raise NotFoundError("Recommendation run not found")
    swipes = {swipe.creator_id: swipe for swipe in CampaignSwipesRepository(session).list_for_run(run.id)}
    rows = []
    for record in repo.list_rows(run.id):
        swipe = swipes.get(record.creator_id)
        rows.append(
            {
                "creator_id": record.creator_id,
                "rank": record.rank,
                "fit_score": record.fit_score,
                "estimated_spend": record.estimated_spend,
                "auto_shortlisted": record.auto_shortlisted,
                "score_breakdown": record.score_breakdown,
                "rationale": record.rationale,
                "swipe": (
                    {"action": swipe.action.value, "note": swipe.note, "recorded_at": swipe.recorded_at}
                    if swipe
                    else None
                ),
            }
        )
    campaign = session.get(Campaign, run.campaign_id)
    return {
        "run_id": run.id,
        "campaign_slug": campaign.slug if campaign else None,
        "objective": run.objective,
        "budget": run.budget,
        "risk_mode": run.risk_mode.value,
        "per_creator_cap": run.per_creator_cap,
        "genres": list(run.genre_filters or []),
        "platforms": list(run.platform_filters or []),
        "recommendations": rows,
        "auto_shortlisted_count": sum(1 for row in rows if row["auto_shortlisted"]),
        "total_spend": round(sum(row["estimated_spend"] for row in rows), 2),
        "generated_at": run.generated_at,
    }


def shape_for_role(payload: dict[str, Any], role: str) -> dict[str, Any]:
    """Drop spend fields for roles that cannot see financials."""
    if role in FINANCIAL_ROLES:
        return payload
    shaped = {key: value for key, value in payload.items() if key not in FINANCIAL_FIELDS}
    shaped["recommendations"] = [
        {key: value for key, value in row.items() if key not in ROW_FINANCIAL_FIELDS}
        for row in payload.get("recommendations", [])
    ]
    return shaped
