from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from league_calendar.database import get_session
from league_calendar.models import GenerationLog, Matchday, RestCounter, ScheduledMatch
from league_calendar.services.calendar_orchestrator import generate_season_calendar
from league_calendar.utils.season_guards import get_season_or_404

router = APIRouter()


# ============================================================================
# Request / Response Models
# ============================================================================


class GenerateCalendarRequest(BaseModel):
    dryRun: bool = False


class GenerateCalendarResponse(BaseModel):
    seasonId: int
    generationLogId: Optional[int] = None
    outcome: str
    dryRun: bool
    matchdaysCreated: int
    matchesCreated: int
    byesCreated: int
    byeDistribution: Dict[str, int]
    warnings: List[Dict[str, Any]]
    stats: Optional[Dict[str, Any]] = None
    inputHash: Optional[str] = None
    outputHash: Optional[str] = None
    conflict: Optional[Dict[str, Any]] = None
    matchdays: Optional[List[Dict[str, Any]]] = None


class ScheduledMatchResponse(BaseModel):
    id: int
    round_number: int
    vuelta: int
    sequence_in_round: int
    home_team_id: int
    away_team_id: Optional[int]
    is_bye: bool
    field_id: Optional[int]
    time_slot_id: Optional[int]
    status: str

    model_config = ConfigDict(from_attributes=True)


class MatchdayResponse(BaseModel):
    id: int
    number: int
    day_date: date
    vuelta: Optional[int]
    kind: str
    capacity: int
    is_playoff: bool
    matches: List[ScheduledMatchResponse] = []


class SeasonCalendarResponse(BaseModel):
    season_id: int
    status: str
    matchdays: List[MatchdayResponse]


class GenerationLogResponse(BaseModel):
    id: int
    season_id: int
    created_at: datetime
    outcome: str
    dry_run: bool
    config_version: str
    input_hash: Optional[str]
    output_hash: Optional[str]
    matchdays_created: int
    matches_created: int
    byes_created: int
    duration_ms: int
    error_code: Optional[str]
    warnings_json: Optional[str]
    conflict_json: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class RestCounterResponse(BaseModel):
    team_id: int
    byes_assigned: int
    carried_byes: int
    total_byes: int

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/seasons/{season_id}/calendar:generate", response_model=GenerateCalendarResponse)
def generate_calendar(
    season_id: int,
    body: Optional[GenerateCalendarRequest] = None,
    dry_run: bool = Query(False, alias="dryRun", description="Compute and log without writing the calendar"),
    session: Session = Depends(get_session),
):
    """
    Generate (or regenerate) the season calendar.

    Played matches are kept and pinned; everything unplayed is replaced.

    Raises:
        404: Season not found
        422: Season configuration cannot be generated
        409: Scheduling conflict or another generation already running
    """
    dry = dry_run or (body is not None and body.dryRun)
    result = generate_season_calendar(session, season_id, dry_run=dry)
    return GenerateCalendarResponse(**result.to_dict())


@router.get("/seasons/{season_id}/calendar", response_model=SeasonCalendarResponse)
def get_season_calendar(season_id: int, session: Session = Depends(get_session)):
    """Matchdays of a season in order, each with its matches"""
    season = get_season_or_404(session, season_id)

    matchdays = session.exec(
        select(Matchday).where(Matchday.season_id == season_id).order_by(Matchday.number)
    ).all()
    matches = session.exec(
        select(ScheduledMatch)
        .where(ScheduledMatch.season_id == season_id)
        .order_by(ScheduledMatch.round_number, ScheduledMatch.sequence_in_round)
    ).all()

    by_matchday: Dict[int, List[ScheduledMatchResponse]] = {}
    for m in matches:
        by_matchday.setdefault(m.matchday_id, []).append(ScheduledMatchResponse.model_validate(m))

    return SeasonCalendarResponse(
        season_id=season_id,
        status=season.status,
        matchdays=[
            MatchdayResponse(
                id=md.id,
                number=md.number,
                day_date=md.day_date,
                vuelta=md.vuelta,
                kind=md.kind,
                capacity=md.capacity,
                is_playoff=md.is_playoff,
                matches=by_matchday.get(md.id, []),
            )
            for md in matchdays
        ],
    )


@router.get("/seasons/{season_id}/calendar/logs", response_model=List[GenerationLogResponse])
def list_generation_logs(
    season_id: int,
    limit: int = Query(50, ge=1, le=500),
    session: Session = Depends(get_session),
):
    """Generation audit log, newest first"""
    get_season_or_404(session, season_id)

    logs = session.exec(
        select(GenerationLog)
        .where(GenerationLog.season_id == season_id)
        .order_by(GenerationLog.id.desc())  # type: ignore[union-attr]
        .limit(limit)
    ).all()
    return logs


@router.get("/seasons/{season_id}/rest-counters", response_model=List[RestCounterResponse])
def list_rest_counters(season_id: int, session: Session = Depends(get_session)):
    get_season_or_404(session, season_id)

    counters = session.exec(
        select(RestCounter).where(RestCounter.season_id == season_id).order_by(RestCounter.team_id)
    ).all()
    return counters
