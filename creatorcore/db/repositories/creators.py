from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable, List, Optional

from sqlalchemy import delete, func, select

from creatorcore.db.models import Campaign, CampaignCreator, Creator, CreatorGenreLabel, utcnow
from creatorcore.db.repositories.base import Repository, as_uuid
from creatorcore.db.repositories.campaigns import UNCLASSIFIED_GENRE

ROLLUP_SOURCE = "campaign_rollup"


def normalize_handle(handle: str) -> str:
    return (handle or "").strip().lstrip("@").lower()


class CreatorsRepository(Repository):
    def get_by_handle(self, org_id: str, handle: str) -> Optional[Creator]:
        stmt = select(Creator).where(Creator.org_id == as_uuid(org_id), Creator.handle == normalize_handle(handle))
        return self.session.scalars(stmt).first()

    def list_pool(self, org_id: str, limit: int) -> List[Creator]:
        stmt = select(Creator).where(Creator.org_id == as_uuid(org_id)).order_by(Creator.handle.asc()).limit(limit)
        return list(self.session.scalars(stmt).all())

    def genre_labels(self, creator_ids: Iterable[Any]) -> dict[Any, list[CreatorGenreLabel]]:
        ids = list(creator_ids)
        labels: dict[Any, list[CreatorGenreLabel]] = defaultdict(list)
        if not ids:
            return labels
        stmt = (
            select(CreatorGenreLabel)
            .where(CreatorGenreLabel.creator_id.in_(ids))
            .order_by(CreatorGenreLabel.weight.desc(), CreatorGenreLabel.genre.asc())
        )
        for label in self.session.scalars(stmt).all():
            labels[label.creator_id].append(label)
        return labels

    def count(self, org_id: str) -> dict[str, Any]:
        stmt = select(func.count(Creator.id), func.coalesce(func.sum(Creator.cost_to_date), 0)).where(
            Creator.org_id == as_uuid(org_id)
        )
        count, total_spend = self.session.execute(stmt).one()
        return {"creators": int(count or 0), "total_spend": float(total_spend or 0)}

    def refresh_genre_rollups(self) -> int:
        """
        Rebuild every creator's genre mix from the genres of the campaigns they
        took part in. Weight is the share of the creator's classified campaigns.
        """
        stmt = (
            select(CampaignCreator.org_id, CampaignCreator.creator_id, Campaign.genre, func.count())
            .join(Campaign, Campaign.id == CampaignCreator.campaign_id)
            .where(
                Campaign.genre.is_not(None),
                func.trim(Campaign.genre) != "",
                Campaign.genre != UNCLASSIFIED_GENRE,
            )
            .group_by(CampaignCreator.org_id, CampaignCreator.creator_id, Campaign.genre)
        )
        per_creator: dict[Any, dict[str, Any]] = {}
        for org_id, creator_id, genre, total in self.session.execute(stmt).all():
            entry = per_creator.setdefault(creator_id, {"org_id": org_id, "genres": {}})
            entry["genres"][genre] = int(total)

        now = utcnow()
        labels: list[CreatorGenreLabel] = []
        for creator_id, entry in per_creator.items():
            total = sum(entry["genres"].values())
            if total <= 0:
                continue
            for genre, count in entry["genres"].items():
                share = round(count / total, 4)
                labels.append(
                    CreatorGenreLabel(
                        org_id=entry["org_id"],
                        creator_id=creator_id,
                        genre=genre,
                        weight=share,
                        confidence=min(1.0, share),
                        source=ROLLUP_SOURCE,
                        updated_at=now,
                    )
                )

        try:
            self.session.execute(delete(CreatorGenreLabel).where(CreatorGenreLabel.source == ROLLUP_SOURCE))
            self.session.add_all(labels)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return len(labels)
