from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from creatorcore.auth.dependencies import AuthContext, get_current_user
from creatorcore.config import settings
from creatorcore.db.deps import get_session
from creatorcore.schemas.swipes import SwipeCreate
from creatorcore.services import recommendations as recommendations_service
from creatorcore.services.swipes import record_swipe


def require_recommendations_enabled() -> None:
    if not settings.RECOMMENDATIONS_ENABLED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="feature_disabled")


router = APIRouter(tags=["recommendations"], dependencies=[Depends(require_recommendations_enabled)])


def _split_csv(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return raw.split(",")


@router.get("/campaigns/{slug}/recommendations")
def get_recommendations(
    slug: str,
    budget: Optional[float] = Query(default=None),
    limit: Optional[int] = Query(default=None),
    per_creator_cap: Optional[float] = Query(default=None),
    objective: Optional[str] = Query(default=None),
    risk_mode: Optional[str] = Query(default=None),
    genres: Optional[str] = Query(default=None, description="Comma-separated genre filters"),
    platforms: Optional[str] = Query(default=None, description="Comma-separated platform filters"),
    persist: bool = Query(default=True),
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    options = recommendations_service.build_options(
        budget=budget,
        objective=objective,
        risk_mode=risk_mode,
        genres=_split_csv(genres),
        platforms=_split_csv(platforms),
        limit=limit,
        per_creator_cap=per_creator_cap,
    )
    result = recommendations_service.generate(
        session,
        org_id=auth.org_id,
        campaign_slug=slug,
        options=options,
        persist=persist,
        user_id=auth.user_id,
    )
    return jsonable_encoder(recommendations_service.shape_for_role(result, auth.role))


@router.post("/campaigns/{slug}/swipes", status_code=status.HTTP_201_CREATED)
def create_swipe(
    slug: str,
    payload: SwipeCreate,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    swipe = record_swipe(
        session,
        org_id=auth.org_id,
        user_id=auth.user_id,
        run_id=payload.run_id,
        creator_id=payload.creator_id,
        action=payload.action,
        note=payload.note,
        campaign_slug=slug,
    )
    return jsonable_encoder(swipe)


@router.get("/recommendation-runs/{run_id}")
def get_recommendation_run(
    run_id: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    run = recommendations_service.get_run(session, org_id=auth.org_id, run_id=run_id)
    return jsonable_encoder(recommendations_service.shape_for_role(run, auth.role))
