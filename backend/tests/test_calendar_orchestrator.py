"""
Tests for season calendar generation end to end

Tests:
- Worked example: 5 teams, 2 rounds, mid-season blackout
- Scheduling conflict leaves no schedule rows and one failure log
- Idempotent regeneration
- Played matches survive regeneration
- Generation flag (concurrency) handling
- Dry run
- Configuration errors
- Season continuation and rest counters
"""

import json
from datetime import date, datetime, timedelta

import pytest
from sqlmodel import Session, select

from league_calendar.models import (
    GenerationLog,
    Matchday,
    RestCounter,
    ScheduledMatch,
    SeasonConfig,
    SeasonTimeSlot,
    SpecialDayKind,
    SpecialSaturday,
    Team,
    TimeSlot,
)
from league_calendar.models.scheduled_match import MATCH_STATUS_FINISHED, MATCH_STATUS_SCHEDULED
from league_calendar.services.calendar_errors import (
    ConcurrencyConflict,
    ConfigurationError,
    SchedulingConflict,
    SeasonNotFound,
)
from league_calendar.services.calendar_orchestrator import generate_season_calendar


def _matches(session: Session, season_id: int):
    return session.exec(
        select(ScheduledMatch)
        .where(ScheduledMatch.season_id == season_id)
        .order_by(ScheduledMatch.round_number, ScheduledMatch.sequence_in_round)
    ).all()


def _matchdays(session: Session, season_id: int):
    return session.exec(select(Matchday).where(Matchday.season_id == season_id).order_by(Matchday.number)).all()


def _logs(session: Session, season_id: int):
    return session.exec(select(GenerationLog).where(GenerationLog.season_id == season_id).order_by(GenerationLog.id)).all()


# ============================================================================
# Happy path
# ============================================================================


def test_five_teams_two_rounds_with_blackout(session: Session, make_season):
    season = make_season(team_count=5, rounds_planned=2, max_games_per_day=4)
    session.add(SpecialSaturday(season_id=season.id, day_date=date(2026, 1, 10), kind=SpecialDayKind.blackout))
    session.commit()

    result = generate_season_calendar(session, season.id)

    assert result.outcome == "success"
    assert result.matchdays_created == 2
    assert result.matches_created == 4
    assert result.byes_created == 2

    matchdays = _matchdays(session, season.id)
    assert [md.day_date for md in matchdays] == [date(2026, 1, 3), date(2026, 1, 17)]

    matches = _matches(session, season.id)
    assert len(matches) == 6
    for rnd in (1, 2):
        in_round = [m for m in matches if m.round_number == rnd]
        assert len([m for m in in_round if not m.is_bye]) == 2
        assert len([m for m in in_round if m.is_bye]) == 1

    byes = sorted(result.bye_distribution.values())
    assert byes == [0, 0, 0, 1, 1]

    counters = session.exec(select(RestCounter).where(RestCounter.season_id == season.id)).all()
    assert len(counters) == 5
    totals = [c.total_byes for c in counters]
    assert max(totals) - min(totals) <= 1

    season = session.get(SeasonConfig, season.id)
    assert season.status == "generated"
    assert season.generation_in_progress is False

    logs = _logs(session, season.id)
    assert len(logs) == 1
    assert logs[0].outcome == "success"
    assert logs[0].matches_created == 4
    assert logs[0].input_hash and logs[0].output_hash


def test_non_bye_matches_have_distinct_teams_and_cells(session: Session, make_season):
    season = make_season(
        team_count=7, field_count=2, slot_count=2, max_games_per_day=4, vueltas=2, end_date=date(2026, 6, 27)
    )

    generate_season_calendar(session, season.id)

    matches = _matches(session, season.id)
    cells = set()
    for m in matches:
        if m.is_bye:
            assert m.away_team_id is None and m.field_id is None
            continue
        assert m.away_team_id is not None and m.away_team_id != m.home_team_id
        cell = (m.matchday_id, m.field_id, m.time_slot_id)
        assert cell not in cells
        cells.add(cell)

    assert len([m for m in matches if not m.is_bye]) == 7 * 6


def test_vueltas_drive_round_count(session: Session, make_season):
    season = make_season(team_count=4, vueltas=2, max_games_per_day=2)

    result = generate_season_calendar(session, season.id)

    assert {m.round_number for m in _matches(session, season.id)} == set(range(1, 7))
    assert result.matches_created == 12


def test_disabled_time_slot_is_not_used(session: Session, make_season):
    season = make_season(team_count=4, slot_count=2, vueltas=1)
    slots = session.exec(select(TimeSlot).where(TimeSlot.league_id == season.league_id).order_by(TimeSlot.sort_order)).all()
    session.add(SeasonTimeSlot(season_id=season.id, time_slot_id=slots[1].id, is_enabled=False))
    session.commit()

    generate_season_calendar(session, season.id)

    used = {m.time_slot_id for m in _matches(session, season.id) if not m.is_bye}
    assert used == {slots[0].id}


def test_playoff_placeholders_are_created(session: Session, make_season):
    season = make_season(
        team_count=4, vueltas=1, end_date=date(2026, 2, 14), playoffs_start_date=date(2026, 2, 7)
    )

    generate_season_calendar(session, season.id)

    matchdays = _matchdays(session, season.id)
    playoff = [md for md in matchdays if md.is_playoff]
    assert [md.day_date for md in playoff] == [date(2026, 2, 7), date(2026, 2, 14)]
    assert [md.number for md in matchdays] == list(range(1, len(matchdays) + 1))
    assert all(not md.matches for md in playoff)


# ============================================================================
# Failures
# ============================================================================


def test_conflict_persists_nothing_but_a_failure_log(session: Session, make_season):
    season = make_season(team_count=4, vueltas=1, slot_count=1, max_games_per_day=1, end_date=date(2026, 1, 17))

    with pytest.raises(SchedulingConflict) as exc_info:
        generate_season_calendar(session, season.id)

    assert exc_info.value.blocking_pairing["round"] == 2
    assert exc_info.value.blocking_pairing["teamB"] != "bye"

    assert _matches(session, season.id) == []
    assert _matchdays(session, season.id) == []

    logs = _logs(session, season.id)
    assert len(logs) == 1
    assert logs[0].outcome == "failure"
    assert logs[0].error_code == "SCHEDULING_CONFLICT"
    assert json.loads(logs[0].conflict_json)["blockingPairing"]["round"] == 2

    season = session.get(SeasonConfig, season.id)
    assert season.generation_in_progress is False
    assert season.status == "draft"


def test_conflict_keeps_previous_calendar(session: Session, make_season):
    season = make_season(team_count=4, vueltas=1, end_date=date(2026, 3, 28))
    generate_season_calendar(session, season.id)
    before = [(m.round_number, m.home_team_id, m.away_team_id) for m in _matches(session, season.id)]

    season = session.get(SeasonConfig, season.id)
    season.end_date = date(2026, 1, 4)
    session.add(season)
    session.commit()

    with pytest.raises(SchedulingConflict):
        generate_season_calendar(session, season.id)

    after = [(m.round_number, m.home_team_id, m.away_team_id) for m in _matches(session, season.id)]
    assert after == before


def test_unknown_season(session: Session):
    with pytest.raises(SeasonNotFound):
        generate_season_calendar(session, 999)
    assert session.exec(select(GenerationLog)).all() == []


def test_fewer_than_two_active_teams(session: Session, make_season):
    season = make_season(team_count=2)
    team = session.exec(select(Team).where(Team.league_id == season.league_id)).first()
    team.is_active = False
    session.add(team)
    session.commit()

    with pytest.raises(ConfigurationError):
        generate_season_calendar(session, season.id)

    logs = _logs(session, season.id)
    assert len(logs) == 1
    assert logs[0].error_code == "CONFIGURATION_ERROR"


def test_published_season_is_not_generatable(session: Session, make_season):
    season = make_season(status="published")
    with pytest.raises(ConfigurationError):
        generate_season_calendar(session, season.id)


def test_no_eligible_dates(session: Session, make_season):
    # Sunday to Friday: no Saturday inside the window
    season = make_season(start_date=date(2026, 1, 4), end_date=date(2026, 1, 9))
    with pytest.raises(ConfigurationError) as exc_info:
        generate_season_calendar(session, season.id)
    assert "No eligible match dates" in str(exc_info.value)


def test_bad_capacity_override(session: Session, make_season):
    season = make_season()
    session.add(
        SpecialSaturday(
            season_id=season.id,
            day_date=date(2026, 1, 3),
            kind=SpecialDayKind.capacity_override,
            field_ids=[12345],
        )
    )
    session.commit()

    with pytest.raises(ConfigurationError):
        generate_season_calendar(session, season.id)


# ============================================================================
# Regeneration
# ============================================================================


def test_regeneration_is_idempotent(session: Session, make_season):
    season = make_season(team_count=5, vueltas=2, max_games_per_day=2)

    first = generate_season_calendar(session, season.id)
    rows_first = [
        (m.round_number, m.sequence_in_round, m.home_team_id, m.away_team_id, m.field_id, m.time_slot_id)
        for m in _matches(session, season.id)
    ]
    second = generate_season_calendar(session, season.id)
    rows_second = [
        (m.round_number, m.sequence_in_round, m.home_team_id, m.away_team_id, m.field_id, m.time_slot_id)
        for m in _matches(session, season.id)
    ]

    assert first.output_hash == second.output_hash
    assert first.input_hash == second.input_hash
    assert rows_first == rows_second
    assert len(_matchdays(session, season.id)) == first.matchdays_created
    assert len(session.exec(select(RestCounter).where(RestCounter.season_id == season.id)).all()) == 5
    assert len(_logs(session, season.id)) == 2


def test_played_matches_survive_regeneration(session: Session, make_season):
    season = make_season(team_count=5, vueltas=1, max_games_per_day=2)
    generate_season_calendar(session, season.id)

    played = [m for m in _matches(session, season.id) if m.round_number == 1 and not m.is_bye]
    for m in played:
        m.status = MATCH_STATUS_FINISHED
        session.add(m)
    session.commit()
    played_ids = {m.id for m in played}
    total_before = len(_matches(session, season.id))

    result = generate_season_calendar(session, season.id)

    assert result.outcome == "success"
    matches = _matches(session, season.id)
    assert len(matches) == total_before
    assert played_ids <= {m.id for m in matches}
    assert all(m.status == MATCH_STATUS_FINISHED for m in matches if m.id in played_ids)
    assert all(m.status == MATCH_STATUS_SCHEDULED for m in matches if m.id not in played_ids)
    # The played pairings are not inserted a second time
    assert result.matches_created == len([m for m in matches if not m.is_bye]) - len(played_ids)
    # The matchday holding the played round is reused, not created again
    matchdays = session.exec(select(Matchday).where(Matchday.season_id == season.id)).all()
    assert len(matchdays) == 5
    assert result.matchdays_created == 4
    assert _logs(session, season.id)[-1].matchdays_created == 4


def test_orphaned_played_match_gives_partial_outcome(session: Session, make_season):
    season = make_season(team_count=5, vueltas=1, max_games_per_day=2)
    generate_season_calendar(session, season.id)

    played = next(m for m in _matches(session, season.id) if not m.is_bye)
    played.status = MATCH_STATUS_FINISHED
    session.add(played)
    away_team = session.get(Team, played.away_team_id)
    away_team.is_active = False
    session.add(away_team)
    session.commit()
    played_id = played.id

    result = generate_season_calendar(session, season.id)

    assert result.outcome == "partial"
    assert any(w.code == "PROTECTED_MATCH_ORPHANED" for w in result.warnings)
    kept = session.get(ScheduledMatch, played_id)
    assert kept is not None and kept.status == MATCH_STATUS_FINISHED
    assert _logs(session, season.id)[-1].outcome == "partial"


# ============================================================================
# Concurrency
# ============================================================================


def test_running_generation_is_rejected(session: Session, make_season):
    season = make_season()
    season.generation_in_progress = True
    season.generation_started_at = datetime.utcnow()
    session.add(season)
    session.commit()

    with pytest.raises(ConcurrencyConflict):
        generate_season_calendar(session, season.id)

    season = session.get(SeasonConfig, season.id)
    # The other run's flag is left alone
    assert season.generation_in_progress is True
    assert _matches(session, season.id) == []
    logs = _logs(session, season.id)
    assert len(logs) == 1
    assert logs[0].error_code == "GENERATION_ALREADY_RUNNING"


def test_stale_generation_flag_is_taken_over(session: Session, make_season):
    season = make_season(team_count=4, vueltas=1)
    season.generation_in_progress = True
    season.generation_started_at = datetime.utcnow() - timedelta(hours=2)
    session.add(season)
    session.commit()

    result = generate_season_calendar(session, season.id)

    assert result.outcome == "success"
    assert session.get(SeasonConfig, season.id).generation_in_progress is False


# ============================================================================
# Dry run
# ============================================================================


def test_dry_run_writes_only_a_log(session: Session, make_season):
    season = make_season(team_count=5, rounds_planned=2, max_games_per_day=4)

    result = generate_season_calendar(session, season.id, dry_run=True)

    assert result.dry_run is True
    assert result.outcome == "success"
    assert len(result.matchdays) == 2
    assert sum(len(md["matches"]) for md in result.matchdays) == 6
    assert _matches(session, season.id) == []
    assert _matchdays(session, season.id) == []
    logs = _logs(session, season.id)
    assert len(logs) == 1 and logs[0].dry_run is True
    assert session.get(SeasonConfig, season.id).status == "draft"


def test_dry_run_reports_conflict_without_raising(session: Session, make_season):
    season = make_season(team_count=4, vueltas=1, slot_count=1, max_games_per_day=1, end_date=date(2026, 1, 17))

    result = generate_season_calendar(session, season.id, dry_run=True)

    assert result.outcome == "failure"
    assert result.conflict["blockingPairing"]["round"] == 2
    assert _logs(session, season.id)[0].error_code == "SCHEDULING_CONFLICT"


# ============================================================================
# Warnings and continuation
# ============================================================================


def test_zero_rounds_warns(session: Session, make_season):
    season = make_season(team_count=4, rounds_planned=0)

    result = generate_season_calendar(session, season.id)

    assert result.matches_created == 0
    assert [w.code for w in result.warnings] == ["NO_ROUNDS_REQUESTED"]


def test_flex_dates_warning(session: Session, make_season):
    season = make_season(team_count=4, vueltas=1, end_date=date(2026, 1, 24), flex_every=2)

    result = generate_season_calendar(session, season.id)

    assert any(w.code == "FLEX_DATES_USED" for w in result.warnings)
    kinds = [md.kind for md in _matchdays(session, season.id)]
    assert kinds == ["regular", "flex", "regular"]


def test_soft_limit_warnings(session: Session, make_season, monkeypatch):
    from league_calendar import settings

    monkeypatch.setattr(settings, "CALENDAR_TEAM_COUNT_WARNING", 3)
    monkeypatch.setattr(settings, "CALENDAR_VUELTAS_WARNING", 0)
    season = make_season(team_count=4, vueltas=1)

    result = generate_season_calendar(session, season.id)

    codes = {w.code for w in result.warnings}
    assert {"TEAM_COUNT_HIGH", "VUELTAS_HIGH"} <= codes


def test_continuation_carries_byes(session: Session, make_season):
    previous = make_season(team_count=5, rounds_planned=2)
    generate_season_calendar(session, previous.id)
    rested = {
        c.team_id
        for c in session.exec(select(RestCounter).where(RestCounter.season_id == previous.id)).all()
        if c.byes_assigned
    }
    assert len(rested) == 2

    season = SeasonConfig(
        league_id=previous.league_id,
        name="Temporada 2026 B",
        start_date=date(2026, 4, 4),
        end_date=date(2026, 6, 27),
        rounds_planned=2,
        max_games_per_day=2,
        continues_from_season_id=previous.id,
    )
    session.add(season)
    session.commit()
    session.refresh(season)

    result = generate_season_calendar(session, season.id)

    # Teams that rested last season do not rest again
    assert all(result.bye_distribution[t] == 0 for t in rested)
    counters = session.exec(select(RestCounter).where(RestCounter.season_id == season.id)).all()
    totals = [c.total_byes for c in counters]
    assert max(totals) - min(totals) <= 1
    assert sum(c.carried_byes for c in counters) == 2


def test_log_timestamps_share_the_season_clock(session: Session, make_season):
    season = make_season(team_count=4, vueltas=1)
    before = datetime.utcnow()

    result = generate_season_calendar(session, season.id)

    log = session.get(GenerationLog, result.generation_log_id)
    assert GenerationLog(season_id=season.id, outcome="success").created_at.tzinfo is None
    assert before <= log.created_at <= datetime.utcnow()
    refreshed = session.get(SeasonConfig, season.id)
    assert refreshed.updated_at <= log.created_at + timedelta(seconds=1)
