"""Initial schema"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    op.execute("CREATE TYPE genre_source AS ENUM ('heuristic','search','manual','unset');")
    op.execute("CREATE TYPE genre_confidence AS ENUM ('high','medium','low');")
    op.execute("CREATE TYPE classification_run_status AS ENUM ('pending','running','success','failed');")
    op.execute("CREATE TYPE risk_mode AS ENUM ('manual','hybrid','auto');")
    op.execute("CREATE TYPE swipe_action AS ENUM ('left','right','maybe');")

    uuid = postgresql.UUID(as_uuid=True)
    money = sa.Numeric(14, 2)

    genre_source_enum = postgresql.ENUM(name="genre_source", create_type=False)
    genre_confidence_enum = postgresql.ENUM(name="genre_confidence", create_type=False)
    run_status_enum = postgresql.ENUM(name="classification_run_status", create_type=False)
    risk_mode_enum = postgresql.ENUM(name="risk_mode", create_type=False)
    swipe_action_enum = postgresql.ENUM(name="swipe_action", create_type=False)

    op.create_table(
        "orgs",
        sa.Column("id", uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("external_id", sa.Text(), nullable=True, unique=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )

    op.create_table(
        "campaigns",
        sa.Column("id", uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("org_id", uuid, sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("platforms", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("budget", money, nullable=True),
        sa.Column("genre", sa.Text(), nullable=True),
        sa.Column("genre_source", genre_source_enum, nullable=False, server_default="unset"),
        sa.Column("genre_confidence", genre_confidence_enum, nullable=True),
        sa.Column("genre_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("org_id", "slug", name="uq_campaigns_org_slug"),
    )
    op.create_index("ix_campaigns_org_id", "campaigns", ["org_id"])

    op.create_table(
        "creators",
        sa.Column("id", uuid, primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("org_id", uuid, sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("handle", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("platforms", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("platform_handles", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("agency", sa.Text(), nullable=True),
        sa.Column("total_views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("total_posts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_views", sa.Float(), nullable=False, server_default="0"),
        sa.Column("cost_to_date", money, nullable=False, server_default="0"),
        sa.Column("success_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("campaign_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rate", money, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("org_id", "handle", name="uq_creators_org_handle"),
    )
    op.create_index("ix_creators_org_id", "creators", ["org_id"])

    op.create_table(
        "campaign_creators",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", uuid, sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("campaign_id", uuid, sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("creator_id", uuid, sa.ForeignKey("creators.id", ondelete="CASCADE"), nullable=False),
        sa.Column("posts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("views", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("spend", money, nullable=False, server_default="0"),
        sa.UniqueConstraint("campaign_id", "creator_id", name="uq_campaign_creators_pair"),
    )
    op.create_index("ix_campaign_creators_creator_id", "campaign_creators", ["creator_id"])

    op.create_table(
        "genre_classification_runs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", run_status_enum, nullable=False, server_default="pending"),
        sa.Column("total_candidates", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("classified", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("heuristic_hits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("search_hits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cache_hits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("marked_unclassified", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("marked_other", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("failures", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("search_calls", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("remaining", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
    )
    op.create_index(
        "uq_genre_runs_single_running",
        "genre_classification_runs",
        ["status"],
        unique=True,
        postgresql_where=sa.text("status = 'running'"),
    )

    op.create_table(
        "genre_search_cache",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("artist_key", sa.Text(), nullable=False, unique=True),
        sa.Column("artist_name", sa.Text(), nullable=False),
        sa.Column("genre", sa.Text(), nullable=True),
        sa.Column("confidence", sa.String(length=16), nullable=True),
        sa.Column("searched_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )

    op.create_table(
        "creator_genre_labels",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", uuid, sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("creator_id", uuid, sa.ForeignKey("creators.id", ondelete="CASCADE"), nullable=False),
        sa.Column("genre", sa.Text(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("source", sa.Text(), nullable=False, server_default="campaign_rollup"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("creator_id", "genre", name="uq_creator_genre_labels_pair"),
    )
    op.create_index("ix_creator_genre_labels_org_id", "creator_genre_labels", ["org_id"])

    op.create_table(
        "recommendation_runs",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("org_id", uuid, sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("campaign_id", uuid, sa.ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("objective", sa.Text(), nullable=False),
        sa.Column("budget", money, nullable=True),
        sa.Column("risk_mode", risk_mode_enum, nullable=False),
        sa.Column("per_creator_cap", money, nullable=True),
        sa.Column("result_limit", sa.Integer(), nullable=False),
        sa.Column("genre_filters", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("platform_filters", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("persisted", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by_user", sa.Text(), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
    )
    op.create_index("ix_recommendation_runs_org_id", "recommendation_runs", ["org_id"])
    op.create_index(
        "idx_recommendation_runs_campaign_generated",
        "recommendation_runs",
        ["campaign_id", "generated_at"],
    )

    op.create_table(
        "recommendations",
        sa.Column(
            "run_id",
            sa.String(length=64),
            sa.ForeignKey("recommendation_runs.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("creator_id", sa.Text(), primary_key=True),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("fit_score", sa.Float(), nullable=False),
        sa.Column("estimated_spend", money, nullable=False),
        sa.Column("auto_shortlisted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("score_breakdown", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("rationale", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
    )
    op.create_index("idx_recommendations_run_rank", "recommendations", ["run_id", "rank"])

    op.create_table(
        "campaign_swipes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("org_id", uuid, sa.ForeignKey("orgs.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "run_id",
            sa.String(length=64),
            sa.ForeignKey("recommendation_runs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("creator_id", sa.Text(), nullable=False),
        sa.Column("action", swipe_action_enum, nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("actor_user_id", sa.Text(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("run_id", "creator_id", name="uq_campaign_swipes_run_creator"),
    )
    op.create_index("idx_campaign_swipes_org_creator", "campaign_swipes", ["org_id", "creator_id"])


def downgrade() -> None:
    op.drop_table("campaign_swipes")
    op.drop_table("recommendations")
    op.drop_table("recommendation_runs")
    op.drop_table("creator_genre_labels")
    op.drop_table("genre_search_cache")
    op.drop_index("uq_genre_runs_single_running", table_name="genre_classification_runs")
    op.drop_table("genre_classification_runs")
    op.drop_table("campaign_creators")
    op.drop_table("creators")
    op.drop_table("campaigns")
    op.drop_table("orgs")

    op.execute("DROP TYPE IF EXISTS swipe_action;")
    op.execute("DROP TYPE IF EXISTS risk_mode;")
    op.execute("DROP TYPE IF EXISTS classification_run_status;")
    op.execute("DROP TYPE IF EXISTS genre_confidence;")
    op.execute("DROP TYPE IF EXISTS genre_source;")
