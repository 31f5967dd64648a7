from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from creatorcore.auth.dependencies import AuthContext, get_current_user
from creatorcore.db.deps import get_session
from creatorcore.services.cache import StaleWhileRevalidateView, get_view_cache, make_cache_key
from creatorcore.services.stats import build_stats, shape_stats_for_role

router = APIRouter(tags=["stats"])


@router.get("/stats")
def get_stats(
    auth: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session),
    cache: StaleWhileRevalidateView = Depends(get_view_cache),
) -> dict:
    key = make_cache_key("stats", org_id=auth.org_id, role=auth.role)
    bind = session.get_bind()

    def load() -> dict:
        # Background refreshes outlive the request, so each load opens its own session.
        with Session(bind=bind) as load_session:
            return jsonable_encoder(shape_stats_for_role(build_stats(load_session, auth.org_id), auth.role))

    return cache.get_or_load(key, load)
