"""Initial progression schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, **kw) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), **kw)


def upgrade() -> None:
    op.create_table(
        "user_progression",
        sa.Column("user_id", sa.BigInteger(), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("faction", sa.String(50), nullable=True),
        sa.Column("cumulative_xp", sa.Integer(), server_default="0"),
        sa.Column("warrior_affinity", sa.Float(), server_default="0"),
        sa.Column("mage_affinity", sa.Float(), server_default="0"),
        sa.Column("archetype_warrior", sa.Float(), server_default="0"),
        sa.Column("archetype_mage", sa.Float(), server_default="0"),
        sa.Column("archetype_templar", sa.Float(), server_default="0"),
        _timestamp("created_at", server_default=sa.func.now()),
        _timestamp("updated_at", server_default=sa.func.now()),
    )
    op.create_index("ix_user_progression_xp_desc", "user_progression", ["cumulative_xp"])

    op.create_table(
        "daily_activity",
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("user_progression.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("day", sa.Date(), primary_key=True),
        sa.Column("active", sa.Boolean(), server_default="false"),
        sa.Column("state", sa.Integer(), nullable=True),
        sa.Column("dominant_archetype", sa.String(20), nullable=True),
        sa.Column("chat_engaged", sa.Boolean(), server_default="false"),
        sa.Column("xp_earned", sa.Integer(), server_default="0"),
        _timestamp("updated_at", server_default=sa.func.now()),
    )

    op.create_table(
        "stat_totals",
        sa.Column(
            "user_id", sa.BigInteger(),
            sa.ForeignKey("user_progression.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("stat", sa.String(100), primary_key=True),
        sa.Column("total", sa.Integer(), server_default="0"),
    )

    op.create_table(
        "award_ledger",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("xp_earned", sa.Integer(), server_default="0"),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("claim_key", sa.String(40), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        _timestamp("timestamp", server_default=sa.func.now()),
        sa.UniqueConstraint(
            "user_id", "category", "action", "claim_key", name="uq_award_ledger_claim",
        ),
    )
    op.create_index(
        "ix_award_ledger_user_action_time", "award_ledger",
        ["user_id", "category", "action", "timestamp"],
    )
    op.create_index(
        "ix_award_ledger_user_action_day", "award_ledger",
        ["user_id", "category", "action", "day"],
    )

    op.create_table(
        "multiplier_boosts",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("multiplier", sa.Float(), nullable=False),
        sa.Column("applies_to", postgresql.JSONB(), nullable=True),
        _timestamp("expires_at", nullable=False),
        sa.Column("source", sa.String(50), nullable=False),
        _timestamp("created_at", server_default=sa.func.now()),
    )
    op.create_index(
        "ix_multiplier_boosts_user_expiry", "multiplier_boosts", ["user_id", "expires_at"],
    )

    op.create_table(
        "global_xp_events",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("kind", sa.String(20), nullable=False, server_default="double_xp"),
        sa.Column("faction", sa.String(50), nullable=True),
        _timestamp("start_time", nullable=False),
        _timestamp("end_time", nullable=False),
        sa.Column("multiplier_factor", sa.Float(), server_default="2.0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="scheduled"),
        sa.Column("created_by", sa.BigInteger(), nullable=True),
        _timestamp("created_at", server_default=sa.func.now()),
    )
    op.create_index(
        "ix_global_xp_events_window", "global_xp_events", ["start_time", "end_time"],
    )

    op.create_table(
        "duels",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("challenger_id", sa.BigInteger(), nullable=False),
        sa.Column("opponent_id", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _timestamp("created_at", nullable=False),
        _timestamp("start_time", nullable=False),
        _timestamp("end_time", nullable=False),
        _timestamp("completed_at", nullable=True),
        sa.Column("challenger_start_xp", sa.Integer(), server_default="0"),
        sa.Column("challenger_start_warrior", sa.Float(), server_default="0"),
        sa.Column("challenger_start_mage", sa.Float(), server_default="0"),
        sa.Column("opponent_start_xp", sa.Integer(), server_default="0"),
        sa.Column("opponent_start_warrior", sa.Float(), server_default="0"),
        sa.Column("opponent_start_mage", sa.Float(), server_default="0"),
        sa.Column("challenger_final_xp", sa.Integer(), nullable=True),
        sa.Column("challenger_final_warrior", sa.Float(), nullable=True),
        sa.Column("challenger_final_mage", sa.Float(), nullable=True),
        sa.Column("opponent_final_xp", sa.Integer(), nullable=True),
        sa.Column("opponent_final_warrior", sa.Float(), nullable=True),
        sa.Column("opponent_final_mage", sa.Float(), nullable=True),
        sa.Column("challenger_balance_penalty", sa.Boolean(), server_default="false"),
        sa.Column("opponent_balance_penalty", sa.Boolean(), server_default="false"),
        sa.Column("winner_id", sa.BigInteger(), nullable=True),
    )
    op.create_index("ix_duels_challenger_status", "duels", ["challenger_id", "status"])
    op.create_index("ix_duels_opponent_status", "duels", ["opponent_id", "status"])
    op.create_index("ix_duels_status_end", "duels", ["status", "end_time"])

    op.create_table(
        "duel_stats",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "duel_id", sa.Integer(),
            sa.ForeignKey("duels.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("stat_name", sa.String(100), nullable=False),
        sa.Column("stat_value", sa.Integer(), server_default="0"),
        sa.Column("xp_earned", sa.Integer(), server_default="0"),
        sa.Column("warrior_change", sa.Float(), server_default="0"),
        sa.Column("mage_change", sa.Float(), server_default="0"),
        _timestamp("recorded_at", server_default=sa.func.now()),
    )

    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("updated_at", server_default=sa.func.now()),
    )
    op.create_index("ix_settings_category", "settings", ["category"])


def downgrade() -> None:
    op.drop_table("settings")
    op.drop_table("duel_stats")
    op.drop_table("duels")
    op.drop_table("global_xp_events")
    op.drop_table("multiplier_boosts")
    op.drop_table("award_ledger")
    op.drop_table("stat_totals")
    op.drop_table("daily_activity")
    op.drop_table("user_progression")
