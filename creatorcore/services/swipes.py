from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from creatorcore.db.enums import SwipeActionEnum
from creatorcore.db.repositories.campaigns import CampaignsRepository
from creatorcore.db.repositories.creators import normalize_handle
from creatorcore.db.repositories.recommendations import RecommendationsRepository
from creatorcore.db.repositories.swipes import CampaignSwipesRepository
from creatorcore.errors import InternalError, NotFoundError

logger = logging.getLogger(__name__)

MAX_NOTE_LENGTH = 2000


def record_swipe(
    session: Session,
    *,
    org_id: str,
    user_id: str,
    run_id: str,
    creator_id: str,
    action: SwipeActionEnum,
    note: Optional[str] = None,
    campaign_slug: Optional[str] = None,
) -> dict[str, Any]:
    """
    Record a decision on a creator recommended in ``run_id``.

    The run must belong to the caller's org and the creator must be one of its
    rows. Repeating a swipe on the same pair overwrites the earlier decision.
    """
    recommendations_repo = RecommendationsRepository(session)
    run = recommendations_repo.get_run(org_id, run_id)
    if not run:
        logger.info("Swipe rejected: unknown run", extra={"org_id": org_id, "run_id": run_id})
        raise NotFoundError("Recommendation run not found")
    if campaign_slug is not None:
        campaign = CampaignsRepository(session).get_by_slug(org_id, campaign_slug)
        if not campaign or campaign.id != run.campaign_id:
            raise NotFoundError("Recommendation run not found for this campaign")

    handle = normalize_handle(creator_id)
    if not recommendations_repo.has_creator(run.id, handle):
        logger.info(
            "Swipe rejected: creator not in run",
            extra={"org_id": org_id, "run_id": run_id, "creator_id": handle},
        )
        raise NotFoundError("Creator was not recommended in this run")

    cleaned_note = (note or "").strip()[:MAX_NOTE_LENGTH] or None
    try:
        swipe = CampaignSwipesRepository(session).upsert(
            org_id=org_id,
            run_id=run.id,
            creator_id=handle,
            action=action,
            note=cleaned_note,
            actor_user_id=user_id,
        )
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to record swipe", extra={"org_id": org_id, "run_id": run_id, "creator_id": handle})
        raise InternalError("Unable to record swipe") from exc

    return {
        "run_id": swipe.run_id,
        "creator_id": swipe.creator_id,
        "action": swipe.action.value,
        "note": swipe.note,
        "recorded_at": swipe.recorded_at,
    }
