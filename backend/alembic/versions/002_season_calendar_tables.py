"""Add season calendar tables: seasonconfig, seasontimeslot, specialsaturday, matchday,
scheduledmatch, restcounter, generationlog

Revision ID: 002_season_calendar
Revises: 001_league
Create Date: 2026-09-01 00:00:01.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "002_season_calendar"
down_revision = "001_league"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "seasonconfig",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("playoffs_start_date", sa.Date(), nullable=True),
        sa.Column("vueltas", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("rounds_planned", sa.Integer(), nullable=True),
        sa.Column("max_games_per_day", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("match_weekday", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("alternate_home_away", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("flex_every", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("continues_from_season_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("generation_in_progress", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("generation_started_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.id"]),
        sa.ForeignKeyConstraint(["continues_from_season_id"], ["seasonconfig.id"]),
    )
    op.create_index("ix_seasonconfig_league_id", "seasonconfig", ["league_id"])

    op.create_table(
        "seasontimeslot",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("time_slot_id", sa.Integer(), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default="1"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["season_id"], ["seasonconfig.id"]),
        sa.ForeignKeyConstraint(["time_slot_id"], ["timeslot.id"]),
        sa.UniqueConstraint("season_id", "time_slot_id", name="uq_season_time_slot"),
    )
    op.create_index("ix_seasontimeslot_season_id", "seasontimeslot", ["season_id"])

    op.create_table(
        "specialsaturday",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("field_ids", sa.JSON(), nullable=True),
        sa.Column("time_slot_ids", sa.JSON(), nullable=True),
        sa.Column("description", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["season_id"], ["seasonconfig.id"]),
        sa.UniqueConstraint("season_id", "day_date", name="uq_season_special_day"),
    )
    op.create_index("ix_specialsaturday_season_id", "specialsaturday", ["season_id"])

    op.create_table(
        "matchday",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("vuelta", sa.Integer(), nullable=True),
        sa.Column("kind", sa.String(), nullable=False, server_default="regular"),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_playoff", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["season_id"], ["seasonconfig.id"]),
        sa.UniqueConstraint("season_id", "day_date", name="uq_season_matchday_date"),
    )
    op.create_index("ix_matchday_season_id", "matchday", ["season_id"])

    op.create_table(
        "scheduledmatch",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("matchday_id", sa.Integer(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("vuelta", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("sequence_in_round", sa.Integer(), nullable=False),
        sa.Column("home_team_id", sa.Integer(), nullable=False),
        sa.Column("away_team_id", sa.Integer(), nullable=True),
        sa.Column("is_bye", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("field_id", sa.Integer(), nullable=True),
        sa.Column("time_slot_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["season_id"], ["seasonconfig.id"]),
        sa.ForeignKeyConstraint(["matchday_id"], ["matchday.id"]),
        sa.ForeignKeyConstraint(["home_team_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["away_team_id"], ["team.id"]),
        sa.ForeignKeyConstraint(["field_id"], ["playingfield.id"]),
        sa.ForeignKeyConstraint(["time_slot_id"], ["timeslot.id"]),
        sa.UniqueConstraint("matchday_id", "field_id", "time_slot_id", name="uq_matchday_field_slot"),
        sa.CheckConstraint(
            "(is_bye AND away_team_id IS NULL)"
            " OR (NOT is_bye AND away_team_id IS NOT NULL AND away_team_id <> home_team_id)",
            name="ck_scheduledmatch_bye_shape",
        ),
    )
    op.create_index("ix_scheduledmatch_season_id", "scheduledmatch", ["season_id"])
    op.create_index("ix_scheduledmatch_matchday_id", "scheduledmatch", ["matchday_id"])
    op.create_index("ix_scheduledmatch_status", "scheduledmatch", ["status"])

    op.create_table(
        "restcounter",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("team_id", sa.Integer(), nullable=False),
        sa.Column("byes_assigned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("carried_byes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["season_id"], ["seasonconfig.id"]),
        sa.ForeignKeyConstraint(["team_id"], ["team.id"]),
        sa.UniqueConstraint("season_id", "team_id", name="uq_restcounter_season_team"),
    )
    op.create_index("ix_restcounter_season_id", "restcounter", ["season_id"])

    op.create_table(
        "generationlog",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("outcome", sa.String(), nullable=False),
        sa.Column("dry_run", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("config_version", sa.String(), nullable=False, server_default="calendar_v1"),
        sa.Column("input_hash", sa.String(length=16), nullable=True),
        sa.Column("output_hash", sa.String(length=16), nullable=True),
        sa.Column("matchdays_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("matches_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("byes_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("duration_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_code", sa.String(), nullable=True),
        sa.Column("warnings_json", sa.Text(), nullable=True),
        sa.Column("conflict_json", sa.Text(), nullable=True),
        sa.Column("parameters_json", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["season_id"], ["seasonconfig.id"]),
    )
    op.create_index("ix_generationlog_season_id", "generationlog", ["season_id"])


def downgrade() -> None:
    op.drop_index("ix_generationlog_season_id", table_name="generationlog")
    op.drop_table("generationlog")
    op.drop_index("ix_restcounter_season_id", table_name="restcounter")
    op.drop_table("restcounter")
    op.drop_index("ix_scheduledmatch_status", table_name="scheduledmatch")
    op.drop_index("ix_scheduledmatch_matchday_id", table_name="scheduledmatch")
    op.drop_index("ix_scheduledmatch_season_id", table_name="scheduledmatch")
    op.drop_table("scheduledmatch")
    op.drop_index("ix_matchday_season_id", table_name="matchday")
    op.drop_table("matchday")
    op.drop_index("ix_specialsaturday_season_id", table_name="specialsaturday")
    op.drop_table("specialsaturday")
    op.drop_index("ix_seasontimeslot_season_id", table_name="seasontimeslot")
    op.drop_table("seasontimeslot")
    op.drop_index("ix_seasonconfig_league_id", table_name="seasonconfig")
    op.drop_table("seasonconfig")
