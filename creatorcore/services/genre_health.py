from __future__ import annotations

from typing import Any, Optional

from sqlalchemy.orm import Session

from creatorcore.db.models import utcnow
from creatorcore.db.repositories.campaigns import CampaignsRepository
from creatorcore.db.repositories.classification_runs import ClassificationRunsRepository
from creatorcore.services.classification import serialize_run

RECENT_RUNS_LIMIT = 10
RECENT_FAILURES_LIMIT = 5


def _pct(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(part / total * 100, 2)


def build_genre_health(session: Session, org_id: Optional[str]) -> dict[str, Any]:
    """Read-only classification health. Coverage is per org (all orgs when None); runs are global."""
    campaigns_repo = CampaignsRepository(session)
    runs_repo = ClassificationRunsRepository(session)

    coverage = campaigns_repo.coverage(org_id)
    coverage["classified_pct"] = _pct(coverage["classified"], coverage["total"])
    coverage["unclassified_pct"] = _pct(coverage["unclassified"], coverage["total"])

    latest = runs_repo.latest_success()
    return {
        "coverage": coverage,
        "latest_successful_run_at": latest.completed_at if latest else None,
        "recent_failures": [serialize_run(run) for run in runs_repo.list_recent_failures(RECENT_FAILURES_LIMIT)],
        "recent_runs": [serialize_run(run) for run in runs_repo.list_recent(RECENT_RUNS_LIMIT)],
        "source_breakdown": campaigns_repo.source_breakdown(org_id),
        "generated_at": utcnow(),
    }
