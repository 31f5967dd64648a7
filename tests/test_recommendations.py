import math
import uuid

import pytest
from sqlalchemy import func, select

from creatorcore.db.enums import GenreSourceEnum, RiskModeEnum
from creatorcore.config import settings
from creatorcore.db.models import Recommendation, RecommendationRun
from creatorcore.errors import DeadlineExceededError, InvalidInputError, NotFoundError
from creatorcore.services.recommendations import build_options, generate, get_run, shape_for_role
from creatorcore.services.scoring import Candidate, allocate_budget, feedback_signal, rank_candidates

ORG = "00000000-0000-0000-0000-000000000001"
OTHER_ORG_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


def _candidate(creator_id, fit, spend):
    return Candidate(creator_id=creator_id, fit_score=fit, estimated_spend=spend)


def test_budget_walk_stops_at_first_overflow():
    ranked = rank_candidates([_candidate("c1", 0.9, 500), _candidate("c2", 0.8, 800), _candidate("c3", 0.8, 300)])
    assert [c.creator_id for c in ranked] == ["c1", "c3", "c2"]

    allocation = allocate_budget(ranked, limit=3, budget=1000, per_creator_cap=None)
    assert [c.creator_id for c in allocation.included] == ["c1", "c3"]
    assert allocation.total_spend == 800


def test_cap_skips_without_stopping():
    ranked = rank_candidates([_candidate("c1", 0.9, 900), _candidate("c2", 0.8, 200)])
    allocation = allocate_budget(ranked, limit=5, budget=None, per_creator_cap=500)
    assert [c.creator_id for c in allocation.included] == ["c2"]
    assert allocation.over_cap == ["c1"]


def test_limit_bounds_inclusion():
    ranked = rank_candidates([_candidate(f"c{i}", 0.5, 10) for i in range(5)])
    allocation = allocate_budget(ranked, limit=2, budget=None, per_creator_cap=None)
    assert [c.creator_id for c in allocation.included] == ["c0", "c1"]


def test_feedback_signal_direction():
    assert feedback_signal(None) == 0.0
    assert feedback_signal({"right": 3, "left": 0, "maybe": 0}) == 0.75
    assert feedback_signal({"right": 0, "left": 1, "maybe": 0}) == -0.5
    assert feedback_signal({"right": 1, "left": 1, "maybe": 2}) == 0.0


def test_build_options_normalises_input():
    options = build_options(
        budget=-5,
        genres=[" Pop ", "pop", "", "Rock"],
        platforms=["TikTok", "tiktok"],
        limit=0,
        per_creator_cap=math.inf,
    )
    assert options.budget is None
    assert options.per_creator_cap is None
    assert options.genres == ["Pop", "Rock"]
    assert options.platforms == ["TikTok"]
    assert options.limit == 1
    assert options.risk_mode == RiskModeEnum.hybrid
    assert options.objective == "maximize_views"
    assert build_options(limit=1000).limit == 100


def test_build_options_rejects_malformed_input():
    with pytest.raises(InvalidInputError):
        build_options(risk_mode="yolo")
    with pytest.raises(InvalidInputError):
        build_options(genres=[f"genre-{i}" for i in range(21)])
    with pytest.raises(InvalidInputError):
        build_options(platforms=["x" * 65])


@pytest.fixture()
def seeded(make_campaign, make_creator):
    campaign = make_campaign(
        "gods-plan",
        "Drake - God's Plan",
        genre="Hip-Hop/Rap",
        genre_source=GenreSourceEnum.heuristic,
        platforms=["tiktok"],
        budget=5000,
    )
    make_creator(
        "alpha",
        genres={"Hip-Hop/Rap": 1.0},
        success_rate=80,
        total_views=1_000_000,
        avg_views=50_000,
        campaign_count=2,
        rate=1000,
    )
    make_creator("bravo", genres={"Pop": 1.0}, success_rate=60, total_views=10_000, rate=500)
    make_creator("charlie", genres={"Hip-Hop/Rap": 1.0}, platforms=["instagram"], success_rate=90, rate=100)
    make_creator("delta", genres={"Hip-Hop/Rap": 0.8}, success_rate=20, total_posts=10, rate=100)
    make_creator("outsider", org_id=OTHER_ORG_ID, genres={"Hip-Hop/Rap": 1.0}, success_rate=99, rate=10)
    return campaign


def test_generate_ranks_and_applies_guardrails(db_session, seeded):
    result = generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=False)

    rows = result["recommendations"]
    assert [row["creator_id"] for row in rows] == ["alpha", "bravo"]
    assert [row["rank"] for row in rows] == [1, 2]
    assert rows[0]["fit_score"] == pytest.approx(0.94, abs=1e-3)
    assert rows[0]["fit_score"] > rows[1]["fit_score"]
    assert rows[0]["auto_shortlisted"] is True
    assert rows[1]["auto_shortlisted"] is False
    assert result["auto_shortlisted_count"] == 1
    assert result["skipped"] == [
        {"creator_id": "charlie", "reason": "platform_mismatch"},
        {"creator_id": "delta", "reason": "cooling"},
    ]
    assert result["budget"] == 5000
    assert result["total_spend"] == 1500
    assert result["run_id"] is None
    assert rows[0]["rationale"]["top_genre"] == "Hip-Hop/Rap"
    assert set(rows[0]["score_breakdown"]) >= {"genre_fit", "audience_fit", "historical_roi", "feedback"}


def test_generate_is_deterministic(db_session, seeded):
    first = generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=False)
    second = generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=False)

    assert first["recommendations"] == second["recommendations"]
    assert first["skipped"] == second["skipped"]
    assert first["total_spend"] == second["total_spend"]


def test_generate_persists_run_and_rows(db_session, seeded):
    result = generate(
        db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=True, user_id="u1"
    )

    assert result["run_id"]
    count = db_session.scalar(
        select(func.count()).select_from(Recommendation).where(Recommendation.run_id == result["run_id"])
    )
    assert count == 2

    stored = get_run(db_session, org_id=ORG, run_id=result["run_id"])
    assert stored["campaign_slug"] == "gods-plan"
    assert [row["creator_id"] for row in stored["recommendations"]] == ["alpha", "bravo"]
    assert all(row["swipe"] is None for row in stored["recommendations"])

    with pytest.raises(NotFoundError):
        get_run(db_session, org_id=str(OTHER_ORG_ID), run_id=result["run_id"])


def test_generate_past_deadline_persists_nothing(db_session, seeded, monkeypatch):
    monkeypatch.setattr(settings, "RECOMMENDATION_TIMEOUT_SECONDS", -1.0)

    with pytest.raises(DeadlineExceededError):
        generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=True)

    assert db_session.scalar(select(func.count()).select_from(RecommendationRun)) == 0
    assert db_session.scalar(select(func.count()).select_from(Recommendation)) == 0


def test_generate_falls_back_to_campaign_budget(db_session, seeded):
    seeded.budget = 1200
    db_session.commit()

    result = generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(), persist=False)

    assert [row["creator_id"] for row in result["recommendations"]] == ["alpha"]
    assert result["budget"] == 1200
    assert result["total_spend"] == 1000


def test_generate_reports_over_cap(db_session, seeded):
    options = build_options(per_creator_cap=800)
    result = generate(db_session, org_id=ORG, campaign_slug="gods-plan", options=options, persist=False)

    assert [row["creator_id"] for row in result["recommendations"]] == ["bravo"]
    assert {"creator_id": "alpha", "reason": "over_cap"} in result["skipped"]
    assert all(row["estimated_spend"] <= 800 for row in result["recommendations"])


def test_generate_genre_filter_narrows_pool(db_session, seeded):
    result = generate(
        db_session, org_id=ORG, campaign_slug="gods-plan", options=build_options(genres=["pop"]), persist=False
    )

    rows = result["recommendations"]
    assert [row["creator_id"] for row in rows] == ["bravo"]
    assert rows[0]["score_breakdown"]["genre_fit"] == 1.0
    assert result["genres"] == ["pop"]


@pytest.mark.parametrize("risk_mode, expected", [("auto", [True, True]), ("manual", [False, False])])
def test_risk_mode_controls_shortlisting(db_session, seeded, risk_mode, expected):
    result = generate(
        db_session,
        org_id=ORG,
        campaign_slug="gods-plan",
        options=build_options(risk_mode=risk_mode),
        persist=False,
    )
    assert [row["auto_shortlisted"] for row in result["recommendations"]] == expected
    assert result["risk_mode"] == risk_mode


def test_generate_is_tenant_scoped(db_session, seeded, make_campaign):
    make_campaign("elsewhere", "Drake - God's Plan", org_id=OTHER_ORG_ID)

    with pytest.raises(NotFoundError):
        generate(db_session, org_id=ORG, campaign_slug="elsewhere", options=build_options(), persist=False)

    result = generate(
        db_session, org_id=str(OTHER_ORG_ID), campaign_slug="elsewhere", options=build_options(), persist=False
    )
    assert [row["creator_id"] for row in result["recommendations"]] == ["outsider"]


def test_shape_for_role_hides_financials():
    payload = {
        "campaign_slug": "gods-plan",
        "budget": 5000,
        "per_creator_cap": None,
        "total_spend": 1500,
        "recommendations": [{"creator_id": "alpha", "estimated_spend": 1000, "fit_score": 0.9}],
    }

    assert shape_for_role(payload, "analyst") is payload
    shaped = shape_for_role(payload, "viewer")
    assert "budget" not in shaped and "total_spend" not in shaped and "per_creator_cap" not in shaped
    assert shaped["recommendations"] == [{"creator_id": "alpha", "fit_score": 0.9}]
