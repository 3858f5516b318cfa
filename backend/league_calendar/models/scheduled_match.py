from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from league_calendar.models.matchday import Matchday

MATCH_STATUS_SCHEDULED = "scheduled"
MATCH_STATUS_IN_PROGRESS = "in_progress"
MATCH_STATUS_FINISHED = "finished"
MATCH_STATUS_POSTPONED = "postponed"
MATCH_STATUS_CANCELLED = "cancelled"

# Rows in these states are never deleted or rewritten by regeneration
PLAYED_MATCH_STATUSES = frozenset({MATCH_STATUS_IN_PROGRESS, MATCH_STATUS_FINISHED})


class ScheduledMatch(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("matchday_id", "field_id", "time_slot_id", name="uq_matchday_field_slot"),
        CheckConstraint(
            "(is_bye AND away_team_id IS NULL)"
            " OR (NOT is_bye AND away_team_id IS NOT NULL AND away_team_id <> home_team_id)",
            name="ck_scheduledmatch_bye_shape",
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasonconfig.id", index=True)
    matchday_id: int = Field(foreign_key="matchday.id", index=True)
    round_number: int
    vuelta: int = Field(default=1)
    sequence_in_round: int

    home_team_id: int = Field(foreign_key="team.id")
    away_team_id: Optional[int] = Field(default=None, foreign_key="team.id")  # null only for byes
    is_bye: bool = Field(default=False)

    # Null for byes
    field_id: Optional[int] = Field(default=None, foreign_key="playingfield.id")
    time_slot_id: Optional[int] = Field(default=None, foreign_key="timeslot.id")

    status: str = Field(default=MATCH_STATUS_SCHEDULED)  # "scheduled" | "in_progress" | "finished" | ...
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationship
    matchday: "Matchday" = Relationship(back_populates="matches")
