from datetime import date
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, SQLModel


class SpecialDayKind(str, Enum):
    blackout = "blackout"
    capacity_override = "capacity_override"
    flex = "flex"


class SpecialSaturday(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("season_id", "day_date", name="uq_season_special_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasonconfig.id", index=True)
    day_date: date
    kind: SpecialDayKind = Field(sa_column=Column(String, nullable=False))

    # capacity_override only; empty lists mean "keep the season default"
    capacity: Optional[int] = Field(default=None)
    field_ids: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))
    time_slot_ids: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))

    description: Optional[str] = None
