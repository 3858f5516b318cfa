from datetime import time
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from league_calendar.models.league import League


class TimeSlot(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("league_id", "name", name="uq_league_time_slot_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    name: str  # e.g. "M1", "M2", "T1"
    start_time: time
    end_time: time
    # Seasons inherit this unless a SeasonTimeSlot row says otherwise
    active_by_default: bool = Field(default=True)
    sort_order: int = Field(default=1)
    description: Optional[str] = None

    # Relationship
    league: "League" = Relationship(back_populates="time_slots")
