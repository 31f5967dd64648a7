import uuid

import pytest

from creatorcore.db.enums import GenreSourceEnum, SwipeActionEnum
from creatorcore.db.repositories.swipes import CampaignSwipesRepository
from creatorcore.errors import NotFoundError
from creatorcore.services.recommendations import build_options, generate, get_run
from creatorcore.services.swipes import record_swipe

ORG = "00000000-0000-0000-0000-000000000001"
OTHER_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


@pytest.fixture()
def run_id(db_session, make_campaign, make_creator):
    make_campaign(
        "gods-plan",
        "Drake - God's Plan",
        genre="Hip-Hop/Rap",
        genre_source=GenreSourceEnum.heuristic,
        platforms=["tiktok"],
    )
    make_creator("alpha", genres={"Hip-Hop/Rap": 1.0}, success_rate=50, total_views=10_000, rate=300)
    make_creator("bravo", genres={"Hip-Hop/Rap": 1.0}, success_rate=50, total_views=10_000, rate=300)
    result = generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=True)
    return result["run_id"]


def _swipe(db_session, run_id, creator_id, action, **kwargs):
    return record_swipe(
        db_session,
        org_id=kwargs.pop("org_id", ORG),
        user_id="user-1",
        run_id=run_id,
        creator_id=creator_id,
        action=action,
        **kwargs,
    )


def test_swipe_is_recorded_and_visible_on_run(db_session, run_id):
    swipe = _swipe(db_session, run_id, "@Alpha", SwipeActionEnum.right, note="  great fit  ", campaign_slug="gods-plan")

    assert swipe["creator_id"] == "alpha"
    assert swipe["action"] == "right"
    assert swipe["note"] == "great fit"

    rows = {row["creator_id"]: row for row in get_run(db_session, org_id=ORG, run_id=run_id)["recommendations"]}
    assert rows["alpha"]["swipe"]["action"] == "right"
    assert rows["bravo"]["swipe"] is None


def test_repeat_swipe_overwrites_previous_decision(db_session, run_id):
    _swipe(db_session, run_id, "alpha", SwipeActionEnum.right)
    _swipe(db_session, run_id, "alpha", SwipeActionEnum.left, note="changed mind")

    swipes = CampaignSwipesRepository(db_session).list_for_run(run_id)
    assert len(swipes) == 1
    assert swipes[0].action == SwipeActionEnum.left
    assert swipes[0].note == "changed mind"


def test_swipe_rejects_creator_outside_run(db_session, run_id):
    with pytest.raises(NotFoundError):
        _swipe(db_session, run_id, "nobody", SwipeActionEnum.right)


def test_swipe_rejects_other_org_and_wrong_campaign(db_session, run_id, make_campaign):
    make_campaign("other-campaign", "Zach Bryan - Pink Skies")

    with pytest.raises(NotFoundError):
        _swipe(db_session, run_id, "alpha", SwipeActionEnum.right, org_id=str(OTHER_ORG_ID))
    with pytest.raises(NotFoundError):
        _swipe(db_session, run_id, "alpha", SwipeActionEnum.right, campaign_slug="other-campaign")
    with pytest.raises(NotFoundError):
        _swipe(db_session, "missing-run", "alpha", SwipeActionEnum.right)


def test_feedback_accumulates_across_runs(db_session, run_id):
    second_run = generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=True)
    _swipe(db_session, run_id, "alpha", SwipeActionEnum.right)
    _swipe(db_session, second_run["run_id"], "alpha", SwipeActionEnum.right)
    _swipe(db_session, run_id, "bravo", SwipeActionEnum.left)

    counts = CampaignSwipesRepository(db_session).feedback_counts(ORG, ["alpha", "bravo"])
    assert counts["alpha"] == {"left": 0, "right": 2, "maybe": 0}
    assert counts["bravo"] == {"left": 1, "right": 0, "maybe": 0}

    first_rows = get_run(db_session, org_id=ORG, run_id=run_id)["recommendations"]
    assert [row["creator_id"] for row in first_rows] == ["alpha", "bravo"]


def test_feedback_moves_next_ranking(db_session, run_id):
    _swipe(db_session, run_id, "bravo", SwipeActionEnum.right)
    _swipe(db_session, run_id, "alpha", SwipeActionEnum.left)

    result = generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=False)

    rows = result["recommendations"]
    assert [row["creator_id"] for row in rows] == ["bravo", "alpha"]
    assert rows[0]["score_breakdown"]["feedback"] == 0.5
    assert rows[1]["score_breakdown"]["feedback"] == -0.5
