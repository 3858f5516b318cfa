"""
Season Guards

Reusable lookups for season-scoped endpoints.
"""

from fastapi import HTTPException
from sqlmodel import Session

from league_calendar.models.season import SeasonConfig


def get_season_or_404(session: Session, season_id: int) -> SeasonConfig:
    """
    Get a season or raise 404.

    Raises:
        HTTPException 404: Season not found
    """
    season = session.get(SeasonConfig, season_id)

    if not season:
        raise HTTPException(status_code=404, detail=f"Season {season_id} not found")

    return season
