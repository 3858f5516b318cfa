from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class SeasonTimeSlot(SQLModel, table=True):
    """Per-season enable/disable of a league time slot, overriding `active_by_default`."""

    __table_args__ = (SAUniqueConstraint("season_id", "time_slot_id", name="uq_season_time_slot"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasonconfig.id", index=True)
    time_slot_id: int = Field(foreign_key="timeslot.id")
    is_enabled: bool = Field(default=True)
