"""Create league tables: league, team, playingfield, timeslot

Revision ID: 001_league
Revises:
Create Date: 2026-09-01 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_league"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "league",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_league_code", "league", ["code"], unique=True)

    op.create_table(
        "team",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.id"]),
        sa.UniqueConstraint("league_id", "name", name="uq_league_team_name"),
    )
    op.create_index("ix_team_league_id", "team", ["league_id"])

    op.create_table(
        "playingfield",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("description", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.id"]),
        sa.UniqueConstraint("league_id", "name", name="uq_league_field_name"),
    )
    op.create_index("ix_playingfield_league_id", "playingfield", ["league_id"])

    op.create_table(
        "timeslot",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("league_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("active_by_default", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("description", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["league_id"], ["league.id"]),
        sa.UniqueConstraint("league_id", "name", name="uq_league_time_slot_name"),
    )
    op.create_index("ix_timeslot_league_id", "timeslot", ["league_id"])


def downgrade() -> None:
    op.drop_index("ix_timeslot_league_id", table_name="timeslot")
    op.drop_table("timeslot")
    op.drop_index("ix_playingfield_league_id", table_name="playingfield")
    op.drop_table("playingfield")
    op.drop_index("ix_team_league_id", table_name="team")
    op.drop_table("team")
    op.drop_index("ix_league_code", table_name="league")
    op.drop_table("league")
