from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from creatorcore.genre.taxonomy import BRAND_GENRE, DEFAULT_TAXONOMY


class ManualGenreUpdate(BaseModel):
    genre: str = Field(..., min_length=1, max_length=64)

    @field_validator("genre")
    @classmethod
    def validate_genre(cls, value: str) -> str:
        cleaned = value.strip()
        if cleaned != BRAND_GENRE and not DEFAULT_TAXONOMY.is_genre(cleaned):
            allowed = ", ".join((*DEFAULT_TAXONOMY.genres, BRAND_GENRE))
            raise ValueError(f"genre must be one of: {allowed}")
        return cleaned
