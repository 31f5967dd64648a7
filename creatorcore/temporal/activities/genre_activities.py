from __future__ import annotations

from typing import Any, Dict

from temporalio import activity

from creatorcore.db.base import session_scope
from creatorcore.genre.search import build_default_resolver
from creatorcore.services.classification import run_genre_classification


@activity.defn
def run_genre_classification_activity(params: Dict[str, Any] | None = None) -> Dict[str, Any]:
    """Run one classification batch and return the run summary with ISO timestamps."""
    with session_scope() as session:
        summary = run_genre_classification(session, build_default_resolver())
    activity.logger.info(
        "Genre classification activity finished",
        extra={"run_id": summary["id"], "classified": summary["classified"]},
    )
    return {
        key: value.isoformat() if hasattr(value, "isoformat") else value
        for key, value in summary.items()
    }
