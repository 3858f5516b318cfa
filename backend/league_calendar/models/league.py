from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from league_calendar.models.playing_field import PlayingField
    from league_calendar.models.season import SeasonConfig
    from league_calendar.models.team import Team
    from league_calendar.models.time_slot import TimeSlot


class League(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    code: str = Field(index=True, unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    teams: List["Team"] = Relationship(back_populates="league")
    playing_fields: List["PlayingField"] = Relationship(back_populates="league")
    time_slots: List["TimeSlot"] = Relationship(back_populates="league")
    seasons: List["SeasonConfig"] = Relationship(back_populates="league")
