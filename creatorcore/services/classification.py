from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from creatorcore.config import settings
from creatorcore.db.enums import ClassificationRunStatusEnum, ConfidenceEnum, GenreSourceEnum
from creatorcore.db.models import GenreClassificationRun
from creatorcore.db.repositories.campaigns import CampaignsRepository
from creatorcore.db.repositories.classification_runs import ClassificationRunsRepository
from creatorcore.db.repositories.creators import CreatorsRepository
from creatorcore.db.repositories.genre_cache import GenreCacheRepository
from creatorcore.errors import DeadlineExceededError, InternalError, ResolverError
from creatorcore.genre.classifier import ScoreThresholds, classify_heuristically
from creatorcore.genre.search import GenreResolution, GenreResolver
from creatorcore.genre.taxonomy import DEFAULT_TAXONOMY, OTHER_GENRE, Taxonomy
from creatorcore.genre.title_parser import parse_entity

logger = logging.getLogger(__name__)


@dataclass
class ClassificationLimits:
    batch_limit: int
    max_search_calls: int
    search_timeout_seconds: float

    @classmethod
    def from_settings(cls) -> "ClassificationLimits":
        return cls(
            batch_limit=settings.GENRE_BATCH_LIMIT,
            max_search_calls=settings.GENRE_MAX_SEARCH_CALLS,
            search_timeout_seconds=settings.GENRE_SEARCH_TIMEOUT_SECONDS,
        )


def serialize_run(run: GenreClassificationRun) -> dict[str, Any]:
    return {
        "id": run.id,
        "status": run.status.value if isinstance(run.status, ClassificationRunStatusEnum) else run.status,
        "started_at": run.started_at,
        "completed_at": run.completed_at,
        "total_candidates": run.total_candidates,
        "classified": run.classified,
        "heuristic_hits": run.heuristic_hits,
        "search_hits": run.search_hits,
        "cache_hits": run.cache_hits,
        "marked_unclassified": run.marked_unclassified,
        "marked_other": run.marked_other,
        "failures": run.failures,
        "search_calls": run.search_calls,
        "remaining": run.remaining,
        "error_message": run.error_message,
    }


class _Batch:
    """Classifies one run's candidates, writing counters as each item settles."""

    def __init__(
        self,
        session: Session,
        run_id: int,
        resolver: Optional[GenreResolver],
        taxonomy: Taxonomy,
        thresholds: ScoreThresholds,
        limits: ClassificationLimits,
        executor: ThreadPoolExecutor,
    ) -> None:
        self.run_id = run_id
        self.resolver = resolver
        self.taxonomy = taxonomy
        self.thresholds = thresholds
        self.limits = limits
        self.executor = executor
        self.runs_repo = ClassificationRunsRepository(session)
        self.campaigns_repo = CampaignsRepository(session)
        self.cache_repo = GenreCacheRepository(session)
        self.search_calls = 0

    def _assign(
        self,
        campaign_id: Any,
        genre: str,
        source: GenreSourceEnum,
        confidence: ConfidenceEnum,
        **hits: int,
    ) -> None:
        changed = self.campaigns_repo.assign_genre(campaign_id, genre=genre, source=source, confidence=confidence)
        self.runs_repo.increment(
            self.run_id,
            classified=1 if changed else 0,
            marked_other=1 if changed and genre == OTHER_GENRE else 0,
            **hits,
        )

    def _unclassified(self) -> None:
        self.runs_repo.increment(self.run_id, marked_unclassified=1)

    def _search(self, artist: str) -> Optional[GenreResolution]:
        future = self.executor.submit(self.resolver.resolve, artist)
        try:
            return future.result(timeout=self.limits.search_timeout_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            raise DeadlineExceededError(f"Genre search for {artist!r} exceeded its deadline") from exc

    def classify(self, campaign_id: Any, title: Optional[str]) -> None:
        if not title or not title.strip():
            self.runs_repo.increment(self.run_id, failures=1)
            return

        match = classify_heuristically(title, self.taxonomy, self.thresholds)
        if match:
            self._assign(campaign_id, match.genre, GenreSourceEnum.heuristic, match.confidence, heuristic_hits=1)
            return

        artist = parse_entity(title)
        if not artist:
            self._unclassified()
            return

        cached = self.cache_repo.lookup(artist)
        if cached is not None:
            if self.taxonomy.is_genre(cached.genre):
                confidence = ConfidenceEnum(cached.confidence) if cached.confidence else ConfidenceEnum.low
                self._assign(campaign_id, cached.genre, GenreSourceEnum.search, confidence, cache_hits=1)
            else:
                self.runs_repo.increment(self.run_id, cache_hits=1, marked_unclassified=1)
            return

        if self.resolver is None or self.search_calls >= self.limits.max_search_calls:
            self._unclassified()
            return

        self.search_calls += 1
        self.runs_repo.increment(self.run_id, search_calls=1)
        try:
            resolution = self._search(artist)
        except (DeadlineExceededError, ResolverError) as exc:
            logger.warning(
                "Genre search failed",
                extra={"run_id": self.run_id, "artist": artist, "error": str(exc)},
            )
            self.runs_repo.increment(self.run_id, failures=1)
            return

        self.cache_repo.store(
            artist,
            resolution.genre if resolution else None,
            resolution.confidence.value if resolution else None,
        )
        logger.info(
            "Escalated genre search",
            extra={"run_id": self.run_id, "artist": artist, "genre": resolution.genre if resolution else None},
        )
        if resolution and self.taxonomy.is_genre(resolution.genre):
            self._assign(campaign_id, resolution.genre, GenreSourceEnum.search, resolution.confidence, search_hits=1)
        else:
            self._unclassified()


def run_genre_classification(
    session: Session,
    resolver: Optional[GenreResolver] = None,
    *,
    taxonomy: Taxonomy = DEFAULT_TAXONOMY,
    thresholds: Optional[ScoreThresholds] = None,
    limits: Optional[ClassificationLimits] = None,
) -> dict[str, Any]:
    """
    Run one classification batch over unclassified campaigns.

    Raises RunAlreadyActiveError without doing any work when another run is in
    progress. Per-item problems (blank titles, search timeouts, resolver
    errors) are counted as failures and the batch continues. A persistence
    failure aborts the run, marks it failed and raises InternalError.
    """
    limits = limits or ClassificationLimits.from_settings()
    thresholds = thresholds or ScoreThresholds.from_settings()
    runs_repo = ClassificationRunsRepository(session)
    campaigns_repo = CampaignsRepository(session)

    run = runs_repo.start_run()
    run_id = run.id
    logger.info("Genre classification run started", extra={"run_id": run_id})

    try:
        candidates = [(c.id, c.title) for c in campaigns_repo.list_unclassified(limits.batch_limit)]
        runs_repo.increment(run_id, total_candidates=len(candidates))
        executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="genre-search")
        try:
            batch = _Batch(session, run_id, resolver, taxonomy, thresholds, limits, executor)
            for campaign_id, title in candidates:
                batch.classify(campaign_id, title)
        finally:
            # A resolver call past its deadline keeps its thread; do not wait on it.
            executor.shutdown(wait=False, cancel_futures=True)
        CreatorsRepository(session).refresh_genre_rollups()
        remaining = campaigns_repo.count_unclassified()
        runs_repo.complete(run_id, status=ClassificationRunStatusEnum.success, remaining=remaining)
    except SQLAlchemyError as exc:
        _fail_run(session, run_id, exc)
        raise InternalError("Genre classification failed due to a persistence error") from exc
    except Exception as exc:
        _fail_run(session, run_id, exc)
        raise

    finished = runs_repo.get(run_id)
    summary = serialize_run(finished)
    logger.info(
        "Genre classification run finished",
        extra={
            "run_id": run_id,
            "classified": summary["classified"],
            "failures": summary["failures"],
            "search_calls": summary["search_calls"],
            "remaining": summary["remaining"],
        },
    )
    return summary


def _fail_run(session: Session, run_id: int, exc: BaseException) -> None:
    logger.exception("Genre classification run failed", extra={"run_id": run_id})
    session.rollback()
    try:
        ClassificationRunsRepository(session).complete(
            run_id,
            status=ClassificationRunStatusEnum.failed,
            error_message=str(exc) or exc.__class__.__name__,
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Unable to mark genre classification run as failed", extra={"run_id": run_id})
