from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from creatorcore.auth.dependencies import AuthContext, get_current_user
from creatorcore.db.deps import get_session
from creatorcore.db.enums import UserRoleEnum
from creatorcore.db.models import Campaign
from creatorcore.db.repositories.campaigns import CampaignsRepository
from creatorcore.errors import NotFoundError
from creatorcore.schemas.campaigns import ManualGenreUpdate
from creatorcore.services.recommendations import FINANCIAL_ROLES

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


def _serialize_campaign(campaign: Campaign, role: str) -> dict[str, Any]:
    payload = {
        "slug": campaign.slug,
        "title": campaign.title,
        "platforms": list(campaign.platforms or []),
        "budget": campaign.budget,
        "genre": campaign.genre,
        "genre_source": campaign.genre_source.value,
        "genre_confidence": campaign.genre_confidence.value if campaign.genre_confidence else None,
        "genre_updated_at": campaign.genre_updated_at,
        "created_at": campaign.created_at,
    }
    if role not in FINANCIAL_ROLES:
        payload.pop("budget")
    return jsonable_encoder(payload)


@router.get("/{slug}")
def get_campaign(
    slug: str,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    campaign = CampaignsRepository(session).get_by_slug(auth.org_id, slug)
    if not campaign:
        raise NotFoundError("Campaign not found")
    return _serialize_campaign(campaign, auth.role)


@router.patch("/{slug}/genre")
def set_campaign_genre(
    slug: str,
    payload: ManualGenreUpdate,
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> dict:
    if auth.role == UserRoleEnum.viewer.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Viewers cannot change campaign genres")
    campaign = CampaignsRepository(session).set_manual_genre(auth.org_id, slug, payload.genre)
    if not campaign:
        raise NotFoundError("Campaign not found")
    return _serialize_campaign(campaign, auth.role)
