from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from league_calendar.models.league import League


class PlayingField(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("league_id", "name", name="uq_league_field_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    league_id: int = Field(foreign_key="league.id", index=True)
    name: str
    sort_order: int = Field(default=1)  # lower fills first
    is_active: bool = Field(default=True)
    description: Optional[str] = None

    # Relationship
    league: "League" = Relationship(back_populates="playing_fields")
