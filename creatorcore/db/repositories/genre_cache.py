from __future__ import annotations

from typing import Optional

from sqlalchemy import select

from creatorcore.db.models import GenreSearchCache, utcnow
from creatorcore.db.repositories.base import Repository


def artist_key(artist_name: str) -> str:
    return (artist_name or "").strip().lower()


class GenreCacheRepository(Repository):
    def lookup(self, artist_name: str) -> Optional[GenreSearchCache]:
        key = artist_key(artist_name)
        if not key:
            return None
        stmt = select(GenreSearchCache).where(GenreSearchCache.artist_key == key)
        return self.session.scalars(stmt).first()

    def store(self, artist_name: str, genre: Optional[str], confidence: Optional[str]) -> None:
        """Upsert a search outcome. A null genre records that the search found nothing."""
        now = utcnow()
        stmt = self.upsert_statement(GenreSearchCache).values(
            artist_key=artist_key(artist_name),
            artist_name=artist_name.strip(),
            genre=genre,
            confidence=confidence,
            searched_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[GenreSearchCache.artist_key],
            set_={
                "genre": stmt.excluded.genre,
                "confidence": stmt.excluded.confidence,
                "searched_at": stmt.excluded.searched_at,
            },
        )
        self.session.execute(stmt)
        self.session.commit()
