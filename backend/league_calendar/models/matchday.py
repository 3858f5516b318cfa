from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from league_calendar.models.scheduled_match import ScheduledMatch
    from league_calendar.models.season import SeasonConfig


class Matchday(SQLModel, table=True):
    """One competition date ("jornada") of a season."""

    __table_args__ = (SAUniqueConstraint("season_id", "day_date", name="uq_season_matchday_date"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasonconfig.id", index=True)
    number: int
    day_date: date
    vuelta: Optional[int] = Field(default=None)
    kind: str = Field(default="regular")  # "regular" | "flex" | "playoff"
    capacity: int = Field(default=0)
    # Playoff dates are placeholders filled by a separate process
    is_playoff: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    season: "SeasonConfig" = Relationship(back_populates="matchdays")
    matches: List["ScheduledMatch"] = Relationship(back_populates="matchday")
