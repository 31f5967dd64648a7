import threading
import time
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest
from sqlalchemy import select

from creatorcore.db.enums import ClassificationRunStatusEnum, ConfidenceEnum, GenreSourceEnum
from creatorcore.db.models import Campaign, CreatorGenreLabel
from creatorcore.db.repositories.campaigns import CampaignsRepository
from creatorcore.db.repositories.classification_runs import ClassificationRunsRepository
from creatorcore.db.repositories.genre_cache import GenreCacheRepository
from creatorcore.errors import ResolverError, RunAlreadyActiveError
from creatorcore.genre.classifier import ScoreThresholds
from creatorcore.genre.search import BraveGenreResolver, GenreResolution
from creatorcore.genre.taxonomy import DEFAULT_TAXONOMY
from creatorcore.services.classification import ClassificationLimits, _Batch, run_genre_classification

LIMITS = ClassificationLimits(batch_limit=50, max_search_calls=10, search_timeout_seconds=2.0)


class FakeResolver:
    def __init__(self, answers=None):
        self.answers = answers or {}
        self.calls: list[str] = []

    def resolve(self, artist):
        self.calls.append(artist)
        return self.answers.get(artist)


class SlowResolver(FakeResolver):
    def resolve(self, artist):
        self.calls.append(artist)
        time.sleep(0.5)
        return GenreResolution("Pop", ConfidenceEnum.high)


class BlockingResolver(FakeResolver):
    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def resolve(self, artist):
        self.calls.append(artist)
        self.release.wait(timeout=5)
        return None


class FailingResolver(FakeResolver):
    def __init__(self, exc):
        super().__init__()
        self.exc = exc

    def resolve(self, artist):
        self.calls.append(artist)
        raise self.exc


def _genre(db_session, campaign_id):
    return db_session.scalar(
        select(Campaign.genre).where(Campaign.id == campaign_id).execution_options(populate_existing=True)
    )


def test_run_counts_every_outcome(db_session, make_campaign):
    drake = make_campaign("drake", "Drake - God's Plan")
    nike = make_campaign("nike", "Nike x Drake Air Max")
    podcast = make_campaign("podcast", "Comedy Podcast Special")
    summer = make_campaign("summer", "Summer Vibes - Part 1")
    make_campaign("blank", "   ")
    mystery = make_campaign("mystery", "Mystery Artist - New Single")
    resolver = FakeResolver({"Summer Vibes": GenreResolution("Pop", ConfidenceEnum.medium)})

    summary = run_genre_classification(db_session, resolver, limits=LIMITS)

    assert summary["status"] == "success"
    assert summary["completed_at"] is not None
    assert summary["total_candidates"] == 6
    assert summary["classified"] == 4
    assert summary["heuristic_hits"] == 3
    assert summary["search_hits"] == 1
    assert summary["cache_hits"] == 0
    assert summary["marked_unclassified"] == 1
    assert summary["marked_other"] == 1
    assert summary["failures"] == 1
    assert summary["search_calls"] == 2
    assert summary["remaining"] == 2
    assert sorted(resolver.calls) == ["Mystery Artist", "Summer Vibes"]

    assert _genre(db_session, drake.id) == "Hip-Hop/Rap"
    assert _genre(db_session, nike.id) == "Brand"
    assert _genre(db_session, podcast.id) == "Other"
    assert _genre(db_session, summer.id) == "Pop"
    assert _genre(db_session, mystery.id) is None

    cached = GenreCacheRepository(db_session).lookup("mystery artist")
    assert cached is not None and cached.genre is None


def test_cached_search_is_reused_within_a_batch(db_session, make_campaign):
    make_campaign("part-1", "Summer Vibes - Part 1")
    make_campaign("part-2", "Summer Vibes | Part 2")
    resolver = FakeResolver({"Summer Vibes": GenreResolution("Pop", ConfidenceEnum.medium)})

    summary = run_genre_classification(db_session, resolver, limits=LIMITS)

    assert resolver.calls == ["Summer Vibes"]
    assert summary["search_calls"] == 1
    assert summary["search_hits"] == 1
    assert summary["cache_hits"] == 1
    assert summary["classified"] == 2


def test_second_run_only_sees_leftovers(db_session, make_campaign):
    make_campaign("drake", "Drake - God's Plan")
    make_campaign("mystery", "Mystery Artist - New Single")
    resolver = FakeResolver()

    first = run_genre_classification(db_session, resolver, limits=LIMITS)
    second = run_genre_classification(db_session, resolver, limits=LIMITS)

    assert first["classified"] == 1
    assert second["total_candidates"] == 1
    assert second["classified"] == 0
    assert second["cache_hits"] == 1
    assert second["marked_unclassified"] == 1
    assert second["search_calls"] == 0
    assert resolver.calls == ["Mystery Artist"]


def test_concurrent_start_is_rejected(db_session, make_campaign):
    make_campaign("drake", "Drake - God's Plan")
    runs_repo = ClassificationRunsRepository(db_session)
    active = runs_repo.start_run()

    with pytest.raises(RunAlreadyActiveError):
        run_genre_classification(db_session, FakeResolver(), limits=LIMITS)

    still_active = runs_repo.get(active.id)
    assert still_active.status == ClassificationRunStatusEnum.running
    assert still_active.classified == 0
    assert [run.id for run in runs_repo.list_recent()] == [active.id]


def test_search_timeout_counts_as_failure(db_session, make_campaign):
    make_campaign("summer", "Summer Vibes - Part 1")
    limits = ClassificationLimits(batch_limit=10, max_search_calls=5, search_timeout_seconds=0.05)

    summary = run_genre_classification(db_session, SlowResolver(), limits=limits)

    assert summary["status"] == "success"
    assert summary["failures"] == 1
    assert summary["search_calls"] == 1
    assert summary["classified"] == 0
    assert GenreCacheRepository(db_session).lookup("Summer Vibes") is None


def test_resolver_error_counts_as_failure(db_session, make_campaign):
    make_campaign("summer", "Summer Vibes - Part 1")

    summary = run_genre_classification(db_session, FailingResolver(ResolverError("bad gateway")), limits=LIMITS)

    assert summary["status"] == "success"
    assert summary["failures"] == 1
    assert GenreCacheRepository(db_session).lookup("Summer Vibes") is None


def test_search_budget_exhausted_marks_unclassified(db_session, make_campaign):
    make_campaign("summer", "Summer Vibes - Part 1")
    resolver = FakeResolver({"Summer Vibes": GenreResolution("Pop", ConfidenceEnum.high)})
    limits = ClassificationLimits(batch_limit=10, max_search_calls=0, search_timeout_seconds=1.0)

    summary = run_genre_classification(db_session, resolver, limits=limits)

    assert resolver.calls == []
    assert summary["marked_unclassified"] == 1
    assert summary["search_calls"] == 0


def test_unexpected_error_marks_run_failed(db_session, make_campaign):
    make_campaign("summer", "Summer Vibes - Part 1")

    with pytest.raises(RuntimeError):
        run_genre_classification(db_session, FailingResolver(RuntimeError("boom")), limits=LIMITS)

    runs_repo = ClassificationRunsRepository(db_session)
    run = runs_repo.list_recent(1)[0]
    assert run.status == ClassificationRunStatusEnum.failed
    assert run.error_message == "boom"
    assert run.completed_at is not None
    assert runs_repo.get_active() is None
    assert runs_repo.list_recent_failures()[0].id == run.id


def test_completed_run_counters_are_frozen(db_session, make_campaign):
    make_campaign("drake", "Drake - God's Plan")
    summary = run_genre_classification(db_session, None, limits=LIMITS)

    runs_repo = ClassificationRunsRepository(db_session)
    assert runs_repo.increment(summary["id"], failures=1) is False
    assert runs_repo.complete(summary["id"], status=ClassificationRunStatusEnum.failed) is False
    assert runs_repo.get(summary["id"]).failures == 0


def test_manual_genre_is_never_overwritten(db_session, make_campaign):
    campaign = make_campaign("manual", "Drake - God's Plan", genre="Pop", genre_source=GenreSourceEnum.manual)
    repo = CampaignsRepository(db_session)

    changed = repo.assign_genre(
        campaign.id, genre="Hip-Hop/Rap", source=GenreSourceEnum.heuristic, confidence=ConfidenceEnum.high
    )

    assert changed is False
    assert _genre(db_session, campaign.id) == "Pop"


def test_rollups_follow_campaign_genres(db_session, make_campaign, make_creator, add_participation):
    drake = make_campaign("drake", "Drake - God's Plan")
    summer = make_campaign("summer", "Summer Vibes - Part 1")
    creator = make_creator("mixer")
    add_participation(drake, creator)
    add_participation(summer, creator)
    resolver = FakeResolver({"Summer Vibes": GenreResolution("Pop", ConfidenceEnum.high)})

    run_genre_classification(db_session, resolver, limits=LIMITS)

    labels = db_session.scalars(
        select(CreatorGenreLabel).where(
            CreatorGenreLabel.creator_id == creator.id,
            CreatorGenreLabel.source == "campaign_rollup",
        )
    ).all()
    assert {label.genre: label.weight for label in labels} == {"Hip-Hop/Rap": 0.5, "Pop": 0.5}


def test_malformed_search_payload_counts_as_failure(db_session, make_campaign):
    drake = make_campaign("drake", "Drake - God's Plan")
    make_campaign("summer", "Summer Vibes - Part 1")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"web": ["unexpected"]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    resolver = BraveGenreResolver(api_key="brave-test-key", url="https://search.test/web", client=client)

    summary = run_genre_classification(db_session, resolver, limits=LIMITS)

    assert summary["status"] == "success"
    assert summary["failures"] == 1
    assert summary["search_calls"] == 1
    assert summary["classified"] == 1
    assert _genre(db_session, drake.id) == "Hip-Hop/Rap"
    assert GenreCacheRepository(db_session).lookup("Summer Vibes") is None


def test_hung_search_does_not_hold_up_the_run(db_session, make_campaign):
    make_campaign("summer", "Summer Vibes - Part 1")
    resolver = BlockingResolver()
    limits = ClassificationLimits(batch_limit=10, max_search_calls=5, search_timeout_seconds=0.05)

    started = time.monotonic()
    try:
        summary = run_genre_classification(db_session, resolver, limits=limits)
        elapsed = time.monotonic() - started
        assert not resolver.release.is_set()
    finally:
        resolver.release.set()

    assert elapsed < 2
    assert summary["status"] == "success"
    assert summary["failures"] == 1


def test_assign_genre_is_idempotent(db_session, make_campaign):
    campaign = make_campaign("drake", "Drake - God's Plan")
    repo = CampaignsRepository(db_session)

    first = repo.assign_genre(
        campaign.id, genre="Hip-Hop/Rap", source=GenreSourceEnum.heuristic, confidence=ConfidenceEnum.high
    )
    second = repo.assign_genre(
        campaign.id, genre="Hip-Hop/Rap", source=GenreSourceEnum.search, confidence=ConfidenceEnum.low
    )

    assert first is True
    assert second is False
    assert _genre(db_session, campaign.id) == "Hip-Hop/Rap"


def test_reassigning_the_same_genre_is_not_counted(db_session, make_campaign):
    campaign = make_campaign("drake", "Drake - God's Plan", genre="Hip-Hop/Rap", genre_source=GenreSourceEnum.heuristic)
    runs_repo = ClassificationRunsRepository(db_session)
    run = runs_repo.start_run()

    with ThreadPoolExecutor(max_workers=1) as executor:
        batch = _Batch(db_session, run.id, None, DEFAULT_TAXONOMY, ScoreThresholds.from_settings(), LIMITS, executor)
        batch._assign(campaign.id, "Hip-Hop/Rap", GenreSourceEnum.heuristic, ConfidenceEnum.high, heuristic_hits=1)

    counters = runs_repo.get(run.id)
    assert counters.classified == 0
    assert counters.marked_other == 0
    assert counters.heuristic_hits == 1
