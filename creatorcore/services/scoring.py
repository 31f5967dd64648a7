from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from creatorcore.db.models import Creator, CreatorGenreLabel

WEIGHTS: dict[str, float] = {
    "genre_fit": 0.3,
    "audience_fit": 0.25,
    "historical_roi": 0.2,
    "platform_fit": 0.15,
    "novelty": 0.1,
}
NEUTRAL_FIT = 0.5
ROI_VIEWS_SCALE = 6.0
NOVELTY_CAMPAIGN_SCALE = 20.0
BASE_SPEND = 125.0
SPEND_PER_VIEW = 0.018


@dataclass
class Candidate:
    creator_id: str
    fit_score: float
    estimated_spend: float
    score_breakdown: dict[str, float] = field(default_factory=dict)
    rationale: dict[str, Any] = field(default_factory=dict)


def estimate_spend(creator: Creator) -> float:
    if creator.rate is not None and creator.rate > 0:
        return float(creator.rate)
    return float(round(BASE_SPEND + (creator.avg_views or 0) * SPEND_PER_VIEW))


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def genre_fit(labels: Sequence[CreatorGenreLabel], target_genres: Sequence[str]) -> float:
    if not target_genres:
        return NEUTRAL_FIT
    wanted = {genre.lower() for genre in target_genres}
    weights = [label.weight for label in labels if label.genre.lower() in wanted]
    return _clamp(max(weights)) if weights else 0.0


def platform_fit(creator_platforms: Iterable[str], required: Sequence[str]) -> float:
    if not required:
        return 1.0
    have = {p.lower() for p in creator_platforms or []}
    wanted = {p.lower() for p in required}
    return len(have & wanted) / len(wanted)


def feedback_signal(counts: Optional[Mapping[str, int]]) -> float:
    """Right swipes push towards +1 and left swipes towards -1; maybe only dilutes."""
    if not counts:
        return 0.0
    right = counts.get("right", 0)
    left = counts.get("left", 0)
    maybe = counts.get("maybe", 0)
    return (right - left) / (right + left + maybe + 1)


def score_creator(
    creator: Creator,
    *,
    labels: Sequence[CreatorGenreLabel],
    target_genres: Sequence[str],
    required_platforms: Sequence[str],
    feedback: Optional[Mapping[str, int]],
    feedback_weight: float,
) -> Candidate:
    breakdown = {
        "genre_fit": genre_fit(labels, target_genres),
        "audience_fit": _clamp((creator.success_rate or 0) / 100.0),
        "historical_roi": _clamp(math.log10((creator.total_views or 0) + 1) / ROI_VIEWS_SCALE),
        "platform_fit": platform_fit(creator.platforms, required_platforms),
        "novelty": 1.0 - min((creator.campaign_count or 0) / NOVELTY_CAMPAIGN_SCALE, 1.0),
    }
    signal = feedback_signal(feedback)
    breakdown = {key: round(value, 4) for key, value in breakdown.items()}
    breakdown["feedback"] = round(signal, 4)

    raw = sum(WEIGHTS[key] * breakdown[key] for key in WEIGHTS) + feedback_weight * signal
    top_genre = labels[0].genre if labels else None
    return Candidate(
        creator_id=creator.handle,
        fit_score=round(_clamp(raw), 4),
        estimated_spend=estimate_spend(creator),
        score_breakdown=breakdown,
        rationale={
            "top_genre": top_genre,
            "success_rate": creator.success_rate,
            "total_views": creator.total_views,
            "campaign_count": creator.campaign_count,
            "platforms": list(creator.platforms or []),
            "agency": creator.agency,
            "feedback": dict(feedback) if feedback else {},
        },
    )


def rank_candidates(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Fit score descending, then cheaper first, then creator id."""
    return sorted(candidates, key=lambda c: (-c.fit_score, c.estimated_spend, c.creator_id))


@dataclass
class Allocation:
    included: list[Candidate]
    total_spend: float
    over_cap: list[str]


def allocate_budget(
    ranked: Sequence[Candidate],
    *,
    limit: int,
    budget: Optional[float],
    per_creator_cap: Optional[float],
) -> Allocation:
    """
    Walk ranked candidates and take them while the limit and budget allow.

    A candidate above the per-creator cap is passed over. The first candidate
    that would push the running total past the budget ends the walk.
    """
    included: list[Candidate] = []
    over_cap: list[str] = []
    total = 0.0
    for candidate in ranked:
        if len(included) >= limit:
            break
        if per_creator_cap is not None and candidate.estimated_spend > per_creator_cap:
            over_cap.append(candidate.creator_id)
            continue
        if budget is not None and total + candidate.estimated_spend > budget:
            break
        included.append(candidate)
        total += candidate.estimated_spend
    return Allocation(included=included, total_spend=round(total, 2), over_cap=over_cap)
