from __future__ import annotations

from collections import defaultdict
from typing import Iterable, List, Optional

from sqlalchemy import func, select

from creatorcore.db.enums import SwipeActionEnum
from creatorcore.db.models import CampaignSwipe, utcnow
from creatorcore.db.repositories.base import Repository, as_uuid


class CampaignSwipesRepository(Repository):
    def upsert(
        self,
        *,
        org_id: str,
        run_id: str,
        creator_id: str,
        action: SwipeActionEnum,
        note: Optional[str],
        actor_user_id: str,
    ) -> CampaignSwipe:
        """Record a decision; a repeat on the same (run, creator) overwrites the previous one."""
        stmt = self.upsert_statement(CampaignSwipe).values(
            org_id=as_uuid(org_id),
            run_id=run_id,
            creator_id=creator_id,
            action=action,
            note=note,
            actor_user_id=actor_user_id,
            recorded_at=utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[CampaignSwipe.run_id, CampaignSwipe.creator_id],
            set_={
                "action": stmt.excluded.action,
                "note": stmt.excluded.note,
                "actor_user_id": stmt.excluded.actor_user_id,
                "recorded_at": stmt.excluded.recorded_at,
            },
        )
        self.session.execute(stmt)
        swipe = self.get(run_id, creator_id)
        self.session.commit()
        return swipe

    def get(self, run_id: str, creator_id: str) -> Optional[CampaignSwipe]:
        stmt = (
            select(CampaignSwipe)
            .where(CampaignSwipe.run_id == run_id, CampaignSwipe.creator_id == creator_id)
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).first()

    def list_for_run(self, run_id: str) -> List[CampaignSwipe]:
        stmt = select(CampaignSwipe).where(CampaignSwipe.run_id == run_id).order_by(CampaignSwipe.creator_id.asc())
        return list(self.session.scalars(stmt).all())

    def feedback_counts(self, org_id: str, creator_ids: Iterable[str]) -> dict[str, dict[str, int]]:
        """
        Per-creator action counts across runs. Each (run, creator) pair holds
        only its latest decision, so counting rows sums distinct runs.
        """
        ids = list(creator_ids)
        counts: dict[str, dict[str, int]] = defaultdict(lambda: {action.value: 0 for action in SwipeActionEnum})
        if not ids:
            return counts
        stmt = (
            select(CampaignSwipe.creator_id, CampaignSwipe.action, func.count())
            .where(CampaignSwipe.org_id == as_uuid(org_id), CampaignSwipe.creator_id.in_(ids))
            .group_by(CampaignSwipe.creator_id, CampaignSwipe.action)
        )
        for creator_id, action, total in self.session.execute(stmt).all():
            key = action.value if isinstance(action, SwipeActionEnum) else str(action)
            counts[creator_id][key] += int(total)
        return counts

    def counts_by_action(self, org_id: str) -> dict[str, int]:
        stmt = (
            select(CampaignSwipe.action, func.count())
            .where(CampaignSwipe.org_id == as_uuid(org_id))
            .group_by(CampaignSwipe.action)
        )
        counts = {action.value: 0 for action in SwipeActionEnum}
        for action, total in self.session.execute(stmt).all():
            key = action.value if isinstance(action, SwipeActionEnum) else str(action)
            counts[key] = int(total)
        return counts
