from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import case, func, or_, select, update

from creatorcore.db.enums import ConfidenceEnum, GenreSourceEnum
from creatorcore.db.models import Campaign, utcnow
from creatorcore.db.repositories.base import Repository, as_uuid
from creatorcore.genre.taxonomy import OTHER_GENRE

UNCLASSIFIED_GENRE = "Unclassified"


def _is_unclassified():
    return or_(
        Campaign.genre.is_(None),
        func.trim(Campaign.genre) == "",
        Campaign.genre == UNCLASSIFIED_GENRE,
    )


class CampaignsRepository(Repository):
    def get_by_slug(self, org_id: str, slug: str) -> Optional[Campaign]:
        stmt = select(Campaign).where(Campaign.org_id == as_uuid(org_id), Campaign.slug == slug)
        return self.session.scalars(stmt).first()

    def list_unclassified(self, limit: int) -> List[Campaign]:
        """Classification candidates across all orgs; the batch runs in system context."""
        stmt = (
            select(Campaign)
            .where(
                _is_unclassified(),
                Campaign.genre_source != GenreSourceEnum.manual,
                Campaign.title.is_not(None),
            )
            .order_by(Campaign.created_at.asc(), Campaign.id.asc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt).all())

    def count_unclassified(self) -> int:
        stmt = select(func.count()).select_from(Campaign).where(_is_unclassified())
        return int(self.session.scalar(stmt) or 0)

    def assign_genre(
        self,
        campaign_id: Any,
        *,
        genre: str,
        source: GenreSourceEnum,
        confidence: Optional[ConfidenceEnum],
    ) -> bool:
        """
        Conditionally write a classified genre.

        Returns True only when the stored genre actually changed. Manual
        overrides are never replaced and re-assigning the same genre is a no-op.
        """
        stmt = (
            update(Campaign)
            .where(
                Campaign.id == campaign_id,
                Campaign.genre_source != GenreSourceEnum.manual,
                or_(Campaign.genre.is_(None), Campaign.genre != genre),
            )
            .values(
                genre=genre,
                genre_source=source,
                genre_confidence=confidence,
                genre_updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.commit()
        return result.rowcount == 1

    def set_manual_genre(self, org_id: str, slug: str, genre: str) -> Optional[Campaign]:
        campaign = self.get_by_slug(org_id, slug)
        if not campaign:
            return None
        campaign.genre = genre
        campaign.genre_source = GenreSourceEnum.manual
        campaign.genre_confidence = ConfidenceEnum.high
        campaign.genre_updated_at = utcnow()
        self.session.commit()
        self.session.refresh(campaign)
        return campaign

    def coverage(self, org_id: Optional[str]) -> dict[str, int]:
        """Counts for one org, or across all orgs when org_id is None."""
        classified_expr = case((_is_unclassified(), 0), else_=1)
        stmt = select(
            func.count(Campaign.id),
            func.coalesce(func.sum(classified_expr), 0),
            func.coalesce(func.sum(case((Campaign.genre == OTHER_GENRE, 1), else_=0)), 0),
        )
        if org_id is not None:
            stmt = stmt.where(Campaign.org_id == as_uuid(org_id))
        total, classified, other_count = self.session.execute(stmt).one()
        total = int(total or 0)
        classified = int(classified or 0)
        return {
            "total": total,
            "classified": classified,
            "unclassified": total - classified,
            "other_count": int(other_count or 0),
        }

    def source_breakdown(self, org_id: Optional[str]) -> list[dict[str, Any]]:
        count = func.count(Campaign.id).label("count")
        stmt = (
            select(Campaign.genre_source, count)
            .group_by(Campaign.genre_source)
            .order_by(count.desc(), Campaign.genre_source.asc())
        )
        if org_id is not None:
            stmt = stmt.where(Campaign.org_id == as_uuid(org_id))
        return [
            {"source": source.value if isinstance(source, GenreSourceEnum) else str(source), "count": int(total)}
            for source, total in self.session.execute(stmt).all()
        ]

    def totals(self, org_id: str) -> dict[str, Any]:
        stmt = select(
            func.count(Campaign.id),
            func.coalesce(func.sum(Campaign.budget), 0),
        ).where(Campaign.org_id == as_uuid(org_id))
        count, total_budget = self.session.execute(stmt).one()
        return {"campaigns": int(count or 0), "total_budget": float(total_budget or 0)}
