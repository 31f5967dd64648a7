from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from creatorcore.config import settings
from creatorcore.db.enums import ConfidenceEnum
from creatorcore.errors import DeadlineExceededError, ResolverError
from creatorcore.genre.taxonomy import DEFAULT_TAXONOMY, Taxonomy

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE_MIN_SCORE = 4
MEDIUM_CONFIDENCE_MIN_SCORE = 2
RESULT_COUNT = 5


@dataclass(frozen=True)
class GenreResolution:
    genre: str
    confidence: ConfidenceEnum


class GenreResolver(Protocol):
    def resolve(self, artist: str) -> Optional[GenreResolution]: ...


def _count_term(text: str, term: str) -> int:
    pattern = re.compile(rf"(?<![A-Za-z0-9]){re.escape(term)}(?![A-Za-z0-9])", re.IGNORECASE)
    return len(pattern.findall(text))


def score_search_text(text: str, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> Optional[GenreResolution]:
    """Score free text (search titles and snippets) against each genre's search terms."""
    if not text:
        return None
    scores: dict[str, int] = {}
    for genre, terms in taxonomy.search_terms.items():
        if not taxonomy.is_genre(genre):
            continue
        score = sum(_count_term(text, term) for term in terms)
        if score:
            scores[genre] = score
    if not scores:
        return None

    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    top_genre, top = ranked[0]
    runner_up = ranked[1][1] if len(ranked) > 1 else 0
    if top >= HIGH_CONFIDENCE_MIN_SCORE and top >= 2 * runner_up:
        confidence = ConfidenceEnum.high
    elif top >= MEDIUM_CONFIDENCE_MIN_SCORE:
        confidence = ConfidenceEnum.medium
    else:
        confidence = ConfidenceEnum.low
    return GenreResolution(genre=top_genre, confidence=confidence)


def _result_items(payload: Any) -> list[Any]:
    # Brave omits "web" entirely when a query has no web results.
    web = payload.get("web") if isinstance(payload, dict) else payload
    if web is None:
        return []
    results = web.get("results") if isinstance(web, dict) else None
    if not isinstance(web, dict) or not isinstance(results, (list, type(None))):
        raise ResolverError("Brave search returned an unexpected payload")
    return results or []


def _result_text(results: list[Any]) -> str:
    parts: list[str] = []
    for item in results:
        if not isinstance(item, dict):
            continue
        for key in ("title", "description"):
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                parts.append(value)
    return " ".join(parts)


class BraveGenreResolver:
    """Resolve an artist's genre from Brave Web Search result snippets."""

    def __init__(
        self,
        *,
        api_key: str,
        url: str = "https://api.search.brave.com/res/v1/web/search",
        timeout_seconds: float = 10.0,
        taxonomy: Taxonomy = DEFAULT_TAXONOMY,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not api_key:
            raise ValueError("Brave search requires an API key")
        self.api_key = api_key
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.taxonomy = taxonomy
        self._client = client

    def _get(self, params: dict[str, Any]) -> httpx.Response:
        headers = {"Accept": "application/json", "X-Subscription-Token": self.api_key}
        if self._client is not None:
            return self._client.get(self.url, params=params, headers=headers, timeout=self.timeout_seconds)
        request_timeout = httpx.Timeout(timeout=self.timeout_seconds, connect=min(self.timeout_seconds, 5.0))
        with httpx.Client(timeout=request_timeout) as client:
            return client.get(self.url, params=params, headers=headers)

    def resolve(self, artist: str) -> Optional[GenreResolution]:
        query = f'"{artist.strip()}" music genre'
        try:
            response = self._get({"q": query, "count": RESULT_COUNT})
        except httpx.TimeoutException as exc:
            raise DeadlineExceededError(
                f"Brave search timed out after {self.timeout_seconds:.1f}s for {artist!r}"
            ) from exc
        except httpx.RequestError as exc:
            raise ResolverError(f"Brave search request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ResolverError(f"Brave search error {response.status_code}: {response.text.strip()[:200]}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise ResolverError("Brave search returned invalid JSON") from exc

        resolution = score_search_text(_result_text(_result_items(payload)), self.taxonomy)
        logger.info(
            "Brave genre search",
            extra={
                "artist": artist,
                "genre": resolution.genre if resolution else None,
                "confidence": resolution.confidence.value if resolution else None,
            },
        )
        return resolution


def build_default_resolver(taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> Optional[BraveGenreResolver]:
    if not settings.BRAVE_SEARCH_API_KEY:
        logger.info("BRAVE_SEARCH_API_KEY not set; genre search escalation disabled")
        return None
    return BraveGenreResolver(
        api_key=settings.BRAVE_SEARCH_API_KEY,
        url=settings.BRAVE_SEARCH_URL,
        timeout_seconds=settings.GENRE_SEARCH_TIMEOUT_SECONDS,
        taxonomy=taxonomy,
    )
