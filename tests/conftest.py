import os
import sys
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("DATABASE_URL", f"sqlite:///{ROOT_DIR / 'test_creatorcore.db'}")
os.environ.setdefault("CLERK_JWT_ISSUER", "https://clerk.test")
os.environ.setdefault("CLERK_JWKS_URL", "https://clerk.test/.well-known/jwks.json")
os.environ.setdefault("CLERK_AUDIENCE", "creatorcore-test")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

from fastapi.testclient import TestClient  # noqa: E402

from creatorcore.auth.dependencies import AuthContext, get_current_user  # noqa: E402
from creatorcore.db import models  # noqa: E402,F401
from creatorcore.db.base import Base, SessionLocal, engine  # noqa: E402
from creatorcore.db.deps import get_session  # noqa: E402
from creatorcore.db.enums import GenreSourceEnum  # noqa: E402
from creatorcore.db.models import Campaign, CampaignCreator, Creator, CreatorGenreLabel, Org  # noqa: E402
from creatorcore.main import app  # noqa: E402
from creatorcore.services.cache import InMemoryTTLCache, StaleWhileRevalidateView, get_view_cache  # noqa: E402

TEST_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
OTHER_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
TEST_ORG_EXTERNAL_ID = "org_test"


@pytest.fixture()
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    session.add_all(
        [
            Org(id=TEST_ORG_ID, name="Test Org", external_id=TEST_ORG_EXTERNAL_ID),
            Org(id=OTHER_ORG_ID, name="Other Org", external_id="org_other"),
        ]
    )
    session.commit()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def make_campaign(db_session):
    def _make(
        slug: str,
        title: str,
        *,
        org_id: uuid.UUID = TEST_ORG_ID,
        genre: str | None = None,
        genre_source: GenreSourceEnum = GenreSourceEnum.unset,
        platforms: list[str] | None = None,
        budget: float | None = None,
    ) -> Campaign:
        campaign = Campaign(
            org_id=org_id,
            slug=slug,
            title=title,
            genre=genre,
            genre_source=genre_source,
            platforms=platforms or [],
            budget=budget,
        )
        db_session.add(campaign)
        db_session.commit()
        db_session.refresh(campaign)
        return campaign

    return _make


@pytest.fixture()
def make_creator(db_session):
    def _make(
        handle: str,
        *,
        org_id: uuid.UUID = TEST_ORG_ID,
        genres: dict[str, float] | None = None,
        **fields,
    ) -> Creator:
        fields.setdefault("platforms", ["tiktok"])
        creator = Creator(org_id=org_id, handle=handle.lower(), **fields)
        db_session.add(creator)
        db_session.flush()
        for genre, weight in (genres or {}).items():
            db_session.add(
                CreatorGenreLabel(
                    org_id=org_id,
                    creator_id=creator.id,
                    genre=genre,
                    weight=weight,
                    confidence=weight,
                    source="manual_seed",
                )
            )
        db_session.commit()
        db_session.refresh(creator)
        return creator

    return _make


@pytest.fixture()
def add_participation(db_session):
    def _add(campaign: Campaign, creator: Creator, *, posts: int = 1, views: int = 1000, spend: float = 100.0):
        row = CampaignCreator(
            org_id=campaign.org_id,
            campaign_id=campaign.id,
            creator_id=creator.id,
            posts=posts,
            views=views,
            spend=spend,
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _add


@pytest.fixture()
def auth_context() -> AuthContext:
    return AuthContext(user_id="test-user", org_id=str(TEST_ORG_ID), role="analyst")


@pytest.fixture()
def view_cache():
    executor = ThreadPoolExecutor(max_workers=1)
    cache = StaleWhileRevalidateView(InMemoryTTLCache(ttl_seconds=45, max_stale_seconds=300), executor=executor)
    try:
        yield cache
    finally:
        executor.shutdown(wait=True)


@pytest.fixture()
def api_client(db_session, auth_context, view_cache):
    def get_session_override():
        try:
            yield db_session
        finally:
            pass

    def get_user_override():
        return auth_context

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_current_user] = get_user_override
    app.dependency_overrides[get_view_cache] = lambda: view_cache
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()
