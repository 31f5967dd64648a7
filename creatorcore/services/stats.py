from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from creatorcore.db.models import utcnow
from creatorcore.db.repositories.campaigns import CampaignsRepository
from creatorcore.db.repositories.creators import CreatorsRepository
from creatorcore.db.repositories.recommendations import RecommendationsRepository
from creatorcore.db.repositories.swipes import CampaignSwipesRepository
from creatorcore.services.recommendations import FINANCIAL_ROLES

STATS_FINANCIAL_FIELDS = ("total_budget", "total_spend")


def build_stats(session: Session, org_id: str) -> dict[str, Any]:
    campaigns_repo = CampaignsRepository(session)
    campaign_totals = campaigns_repo.totals(org_id)
    coverage = campaigns_repo.coverage(org_id)
    creator_totals = CreatorsRepository(session).count(org_id)
    return {
        "campaigns": campaign_totals["campaigns"],
        "classified_campaigns": coverage["classified"],
        "creators": creator_totals["creators"],
        "recommendation_runs": RecommendationsRepository(session).count_runs(org_id),
        "swipes": CampaignSwipesRepository(session).counts_by_action(org_id),
        "total_budget": campaign_totals["total_budget"],
        "total_spend": creator_totals["total_spend"],
        "generated_at": utcnow(),
    }


def shape_stats_for_role(payload: dict[str, Any], role: str) -> dict[str, Any]:
    if role in FINANCIAL_ROLES:
        return payload
    return {key: value for key, value in payload.items() if key not in STATS_FINANCIAL_FIELDS}
