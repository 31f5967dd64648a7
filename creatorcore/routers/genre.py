from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from creatorcore.auth.dependencies import AuthContext, require_admin_or_cron, require_cron_secret
from creatorcore.db.deps import get_session
from creatorcore.errors import InvalidInputError
from creatorcore.genre.search import build_default_resolver
from creatorcore.services.classification import run_genre_classification
from creatorcore.services.genre_health import build_genre_health

router = APIRouter(tags=["genre"])


@router.post("/genre/classify", dependencies=[Depends(require_cron_secret)])
def classify_genres(session: Session = Depends(get_session)) -> dict:
    """Run one classification batch inline. A batch already in progress answers 409."""
    summary = run_genre_classification(session, build_default_resolver())
    return jsonable_encoder(summary)


@router.get("/admin/genre-health")
def genre_health(
    org_id: Optional[str] = None,
    auth: Optional[AuthContext] = Depends(require_admin_or_cron),
    session: Session = Depends(get_session),
) -> dict:
    # Admins always see their own org; cron callers may pass an org id or get all orgs.
    scope = auth.org_id if auth else org_id
    if scope is not None:
        try:
            UUID(scope)
        except ValueError as exc:
            raise InvalidInputError("org_id must be a UUID") from exc
    return jsonable_encoder(build_genre_health(session, scope))
