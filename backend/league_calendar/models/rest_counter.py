from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class RestCounter(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("season_id", "team_id", name="uq_restcounter_season_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasonconfig.id", index=True)
    team_id: int = Field(foreign_key="team.id")
    byes_assigned: int = Field(default=0)  # this season
    carried_byes: int = Field(default=0)  # total from the season this one continues
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def total_byes(self) -> int:
        return self.byes_assigned + self.carried_byes
