from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from creatorcore.config import settings
from creatorcore.db.enums import ConfidenceEnum
from creatorcore.genre.taxonomy import BRAND_GENRE, DEFAULT_TAXONOMY, Taxonomy
from creatorcore.genre.title_parser import parse_entity

ENTITY_MATCH_WEIGHT = 3
MULTI_WORD_KEYWORD_WEIGHT = 2
DESCRIPTOR_KEYWORD_WEIGHT = 1
MIN_TITLE_KEYWORD_LENGTH = 3
MAX_DESCRIPTOR_LENGTH = 6

_PLATFORM_NOISE_RE = re.compile(r"\b(?:TikTok|Instagram|IG|Twitter|YouTube|Snapchat)\b", re.IGNORECASE)


@dataclass(frozen=True)
class GenreMatch:
    genre: str
    confidence: ConfidenceEnum


@dataclass(frozen=True)
class ScoreThresholds:
    high: int
    medium: int
    low: int

    @classmethod
    def from_settings(cls) -> "ScoreThresholds":
        return cls(
            high=settings.GENRE_HIGH_SCORE,
            medium=settings.GENRE_MEDIUM_SCORE,
            low=settings.GENRE_LOW_SCORE,
        )


@lru_cache(maxsize=2048)
def _word_pattern(keyword: str) -> re.Pattern[str]:
    # Keywords can start or end with punctuation ("Fred again..", "R&B"), so \b is not enough.
    return re.compile(rf"(?<![A-Za-z0-9]){re.escape(keyword)}(?![A-Za-z0-9])", re.IGNORECASE)


def contains_word(text: str, keyword: str) -> bool:
    return bool(keyword) and _word_pattern(keyword).search(text) is not None


def detect_brand(title: str, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> bool:
    cleaned = _PLATFORM_NOISE_RE.sub(" ", title or "")
    return any(contains_word(cleaned, keyword) for keyword in taxonomy.brand_keywords)


def _keyword_weight(keyword: str) -> int:
    if len(keyword) <= MAX_DESCRIPTOR_LENGTH and " " not in keyword:
        return DESCRIPTOR_KEYWORD_WEIGHT
    return MULTI_WORD_KEYWORD_WEIGHT


def score_genres(title: str, entity: Optional[str], taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> dict[str, int]:
    entity_lower = (entity or "").lower()
    scores: dict[str, int] = {}
    for genre, keywords in taxonomy.genre_keywords.items():
        score = 0
        for keyword in keywords:
            keyword_lower = keyword.lower()
            if entity_lower and (keyword_lower in entity_lower or entity_lower in keyword_lower):
                score += ENTITY_MATCH_WEIGHT
            if len(keyword) >= MIN_TITLE_KEYWORD_LENGTH and contains_word(title, keyword):
                score += _keyword_weight(keyword)
        scores[genre] = score
    return scores


def decide(scores: dict[str, int], thresholds: ScoreThresholds) -> Optional[GenreMatch]:
    """Pick the leading genre, or None on a tie or no signal."""
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    if not ranked:
        return None
    top_genre, top = ranked[0]
    runner_up = ranked[1][1] if len(ranked) > 1 else 0
    if top >= thresholds.high and top > runner_up:
        return GenreMatch(top_genre, ConfidenceEnum.high)
    if top >= thresholds.medium and top > runner_up:
        return GenreMatch(top_genre, ConfidenceEnum.medium)
    if top >= thresholds.low and runner_up == 0:
        return GenreMatch(top_genre, ConfidenceEnum.low)
    return None


def classify_heuristically(
    title: str,
    taxonomy: Taxonomy = DEFAULT_TAXONOMY,
    thresholds: Optional[ScoreThresholds] = None,
) -> Optional[GenreMatch]:
    """
    Classify a campaign title against the taxonomy without external calls.

    Brand keywords win outright. An entity that is itself a taxonomy keyword is
    a high-confidence match. Otherwise per-genre scores decide, and None means
    the title is ambiguous and should be escalated.
    """
    if not title or not title.strip():
        return None
    if detect_brand(title, taxonomy):
        return GenreMatch(BRAND_GENRE, ConfidenceEnum.high)

    entity = parse_entity(title)
    if entity:
        entity_lower = entity.lower()
        for genre, keywords in taxonomy.genre_keywords.items():
            if any(keyword.lower() == entity_lower for keyword in keywords):
                return GenreMatch(genre, ConfidenceEnum.high)

    scores = score_genres(title, entity, taxonomy)
    return decide(scores, thresholds or ScoreThresholds.from_settings())
