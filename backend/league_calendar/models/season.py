from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from league_calendar.models.league import League
    from league_calendar.models.matchday import Matchday

SEASON_STATUS_DRAFT = "draft"
SEASON_STATUS_GENERATED = "generated"
SEASON_STATUS_PUBLISHED = "published"

GENERATABLE_SEASON_STATUSES = frozenset({SEASON_STATUS_DRAFT, SEASON_STATUS_GENERATED})


class SeasonConfig(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    name: str
    start_date: date
    end_date: date
    playoffs_start_date: Optional[date] = Field(default=None)

    # Full passes through the round-robin cycle
    vueltas: int = Field(default=2)
    # Explicit round count; wins over vueltas when set
    rounds_planned: Optional[int] = Field(default=None)
    max_games_per_day: int = Field(default=5)
    match_weekday: int = Field(default=5)  # 0=Monday .. 6=Sunday; 5=Saturday
    alternate_home_away: bool = Field(default=True)
    flex_every: int = Field(default=0)  # every Nth eligible date held in reserve; 0 disables
    continues_from_season_id: Optional[int] = Field(default=None, foreign_key="seasonconfig.id")

    status: str = Field(default=SEASON_STATUS_DRAFT)  # "draft" | "generated" | "published"
    generation_in_progress: bool = Field(default=False)
    generation_started_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    league: "League" = Relationship(back_populates="seasons")
    matchdays: List["Matchday"] = Relationship(back_populates="season")
