from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select

from creatorcore.db.models import Recommendation, RecommendationRun
from creatorcore.db.repositories.base import Repository, as_uuid


class RecommendationsRepository(Repository):
    def create_run(self, run: RecommendationRun, rows: List[Recommendation]) -> RecommendationRun:
        """Insert a run and all of its rows in a single transaction."""
        try:
            self.session.add(run)
            self.session.flush()
            self.session.add_all(rows)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(run)
        return run

    def get_run(self, org_id: str, run_id: str) -> Optional[RecommendationRun]:
        stmt = select(RecommendationRun).where(
            RecommendationRun.org_id == as_uuid(org_id), RecommendationRun.id == run_id
        )
        return self.session.scalars(stmt).first()

    def list_rows(self, run_id: str) -> List[Recommendation]:
        stmt = select(Recommendation).where(Recommendation.run_id == run_id).order_by(Recommendation.rank.asc())
        return list(self.session.scalars(stmt).all())

    def has_creator(self, run_id: str, creator_id: str) -> bool:
        stmt = select(Recommendation.creator_id).where(
            Recommendation.run_id == run_id, Recommendation.creator_id == creator_id
        )
        return self.session.scalars(stmt).first() is not None

    def count_runs(self, org_id: str) -> int:
        stmt = select(func.count(RecommendationRun.id)).where(RecommendationRun.org_id == as_uuid(org_id))
        return int(self.session.scalar(stmt) or 0)
