"""
Calendar Orchestrator - one-call season calendar generation

Pipeline for generate_season_calendar(season_id):
0. Load + validate the config snapshot (teams, fields, slots, special dates)
1. Take the season's generation flag (skipped for dry runs)
2. Pin already played matches
3. Round-robin pairings + plan validation
4. Bye fairness
5. Slot allocation
6. Clear unplayed rows, insert matchdays/matches, upsert rest counters
7. Write the GenerationLog and commit once

A scheduling conflict aborts before step 6, so nothing but the failure log is ever
committed. Every attempt leaves exactly one GenerationLog row.
"""

import hashlib
import json
import logging
import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from league_calendar import settings
from league_calendar.models import GenerationLog, Matchday, RestCounter, ScheduledMatch, SeasonConfig
from league_calendar.models.generation_log import (
    GENERATION_OUTCOME_FAILURE,
    GENERATION_OUTCOME_PARTIAL,
    GENERATION_OUTCOME_SUCCESS,
)
from league_calendar.models.scheduled_match import PLAYED_MATCH_STATUSES
from league_calendar.models.season import SEASON_STATUS_GENERATED
from league_calendar.services.calendar_config import CONFIG_VERSION, CalendarGenerationConfig, load_generation_config
from league_calendar.services.calendar_errors import (
    CalendarGenerationError,
    ConcurrencyConflict,
    GenerationWarning,
    SchedulingConflict,
    SeasonNotFound,
)
from league_calendar.services.calendar_stats import compute_calendar_stats
from league_calendar.services.pairing_generator import generate_pairings, validate_plan
from league_calendar.services.rest_fairness import balance_byes
from league_calendar.services.slot_allocator import AllocationResult, PinnedCell, allocate

logger = logging.getLogger(__name__)

PinnedMap = Dict[Tuple[int, int, Any], PinnedCell]

# ============================================================================
# Response Models
# ============================================================================


class CalendarGenerationResult:
    """Complete result of one generation run"""

    def __init__(self, season_id: int, dry_run: bool = False):
        self.season_id = season_id
        self.dry_run = dry_run
        self.outcome = GENERATION_OUTCOME_SUCCESS
        self.generation_log_id: Optional[int] = None
        self.matchdays_created = 0
        self.matches_created = 0
        self.byes_created = 0
        self.bye_distribution: Dict[int, int] = {}
        self.warnings: List[GenerationWarning] = []
        self.stats: Optional[Dict[str, Any]] = None
        self.conflict: Optional[Dict[str, Any]] = None
        self.matchdays: Optional[List[Dict[str, Any]]] = None  # dry run preview
        self.input_hash: Optional[str] = None
        self.output_hash: Optional[str] = None
        self.failed_step: Optional[str] = None

    def to_dict(self):
        result = {
            "seasonId": self.season_id,
            "generationLogId": self.generation_log_id,
            "outcome": self.outcome,
            "dryRun": self.dry_run,
            "matchdaysCreated": self.matchdays_created,
            "matchesCreated": self.matches_created,
            "byesCreated": self.byes_created,
            "byeDistribution": {str(t): c for t, c in sorted(self.bye_distribution.items())},
            "warnings": [w.to_dict() for w in self.warnings],
            "stats": self.stats,
            "inputHash": self.input_hash,
            "outputHash": self.output_hash,
        }
        if self.conflict is not None:
            result["conflict"] = self.conflict
        if self.matchdays is not None:
            result["matchdays"] = self.matchdays
        return result


# ============================================================================
# Generation flag
# ============================================================================


def _acquire_generation_lock(session: Session, season_id: int) -> None:
    """
    Compare-and-set the season's generation flag and commit it on its own.

    A flag older than CALENDAR_LOCK_STALE_SECONDS is taken over.

    Raises:
        ConcurrencyConflict: Another run holds the flag
    """
    now = datetime.utcnow()
    stale_before = now - timedelta(seconds=settings.CALENDAR_LOCK_STALE_SECONDS)
    stmt = (
        update(SeasonConfig)
        .where(SeasonConfig.id == season_id)
        .where(
            or_(
                SeasonConfig.generation_in_progress == False,  # noqa: E712
                SeasonConfig.generation_started_at == None,  # noqa: E711
                SeasonConfig.generation_started_at < stale_before,
            )
        )
        .values(generation_in_progress=True, generation_started_at=now)
    )
    acquired = session.connection().execute(stmt).rowcount == 1
    if not acquired:
        session.rollback()
        raise ConcurrencyConflict(
            f"A calendar generation is already running for season {season_id}; retry later", season_id=season_id
        )
    session.commit()
    logger.info("CALENDAR: generation flag taken for season %s", season_id)


def _release_generation_lock(session: Session, season_id: int) -> None:
    season = session.get(SeasonConfig, season_id)
    if season is not None:
        season.generation_in_progress = False
        season.generation_started_at = None
        session.add(season)


# ============================================================================
# Played matches
# ============================================================================


def _load_played_matches(session: Session, season_id: int) -> List[Tuple[ScheduledMatch, Matchday]]:
    return session.exec(
        select(ScheduledMatch, Matchday)
        .join(Matchday, ScheduledMatch.matchday_id == Matchday.id)
        .where(
            ScheduledMatch.season_id == season_id,
            ScheduledMatch.is_bye == False,  # noqa: E712
            col(ScheduledMatch.status).in_(PLAYED_MATCH_STATUSES),
        )
        .order_by(ScheduledMatch.round_number, ScheduledMatch.sequence_in_round)
    ).all()


def _pinned_cells(played: List[Tuple[ScheduledMatch, Matchday]]) -> PinnedMap:
    return {
        (m.round_number, m.home_team_id, m.away_team_id): (md.day_date, m.field_id, m.time_slot_id)
        for m, md in played
    }


# ============================================================================
# Hashing
# ============================================================================


def hash_calendar_output(allocation: AllocationResult) -> str:
    """
    Canonical hash of the generated calendar, independent of row ids.
    Sorted by (date, round, sequence) for stability.
    """
    placement_tuples = sorted(
        (
            str(p.day_date),
            p.pairing.round_number,
            p.pairing.sequence,
            p.pairing.home_team_id,
            p.pairing.away_team_id,
            p.field_id,
            p.time_slot_id,
        )
        for p in allocation.placements
    )
    matchday_tuples = [(md.number, str(md.day_date), md.kind) for md in allocation.matchdays]
    payload = json.dumps({"placements": placement_tuples, "matchdays": matchday_tuples}, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode()).hexdigest()[:16]


# ============================================================================
# Persistence
# ============================================================================


def _clear_unplayed(session: Session, season_id: int, kept_matchday_ids: set) -> Tuple[int, int]:
    """Delete unplayed matches, then matchdays left without a played match."""
    matches = session.exec(select(ScheduledMatch).where(ScheduledMatch.season_id == season_id)).all()
    deleted_matches = 0
    for m in matches:
        if m.is_bye or m.status not in PLAYED_MATCH_STATUSES:
            session.delete(m)
            deleted_matches += 1
    session.flush()

    matchdays = session.exec(select(Matchday).where(Matchday.season_id == season_id)).all()
    deleted_matchdays = 0
    for md in matchdays:
        if md.id not in kept_matchday_ids:
            session.delete(md)
            deleted_matchdays += 1
    session.flush()
    return deleted_matches, deleted_matchdays


def _persist_calendar(session: Session, season_id: int, allocation: AllocationResult) -> Tuple[int, int, int]:
    """
    Insert the new matchdays and matches; played matchdays are reused by date.

    Returns:
        (matchdays inserted, matches inserted, byes inserted)
    """
    by_date = {md.day_date: md for md in session.exec(select(Matchday).where(Matchday.season_id == season_id)).all()}

    matchdays = 0
    for planned in allocation.matchdays:
        if planned.day_date in by_date:
            continue
        row = Matchday(
            season_id=season_id,
            number=planned.number,
            day_date=planned.day_date,
            vuelta=planned.vuelta,
            kind=planned.kind,
            capacity=planned.capacity,
            is_playoff=planned.is_playoff,
        )
        session.add(row)
        by_date[planned.day_date] = row
        matchdays += 1
    session.flush()

    matches = 0
    byes = 0
    for p in allocation.placements:
        if p.pinned:
            continue
        pairing = p.pairing
        session.add(
            ScheduledMatch(
                season_id=season_id,
                matchday_id=by_date[p.day_date].id,
                round_number=pairing.round_number,
                vuelta=pairing.vuelta,
                sequence_in_round=pairing.sequence,
                home_team_id=pairing.home_team_id,
                away_team_id=pairing.away_team_id,
                is_bye=pairing.is_bye,
                field_id=p.field_id,
                time_slot_id=p.time_slot_id,
            )
        )
        if pairing.is_bye:
            byes += 1
        else:
            matches += 1
    session.flush()

    # Regular dates first, then playoff placeholders, both chronological
    ordered = sorted(by_date.values(), key=lambda md: (md.is_playoff, md.day_date))
    for number, md in enumerate(ordered, start=1):
        md.number = number
        session.add(md)
    return matchdays, matches, byes


def _upsert_rest_counters(
    session: Session,
    season_id: int,
    bye_counts: Dict[int, int],
    carried: Dict[int, int],
) -> None:
    existing = {
        c.team_id: c for c in session.exec(select(RestCounter).where(RestCounter.season_id == season_id)).all()
    }
    now = datetime.utcnow()
    for team_id, counter in existing.items():
        if team_id not in bye_counts:
            session.delete(counter)
    for team_id, byes in bye_counts.items():
        counter = existing.get(team_id) or RestCounter(season_id=season_id, team_id=team_id)
        counter.byes_assigned = byes
        counter.carried_byes = carried.get(team_id, 0)
        counter.updated_at = now
        session.add(counter)


def _write_log(
    session: Session,
    result: CalendarGenerationResult,
    started: float,
    error_code: Optional[str] = None,
    parameters: Optional[Dict[str, Any]] = None,
) -> GenerationLog:
    log = GenerationLog(
        season_id=result.season_id,
        outcome=result.outcome,
        dry_run=result.dry_run,
        config_version=CONFIG_VERSION,
        input_hash=result.input_hash,
        output_hash=result.output_hash,
        matchdays_created=result.matchdays_created,
        matches_created=result.matches_created,
        byes_created=result.byes_created,
        duration_ms=int((time.perf_counter() - started) * 1000),
        error_code=error_code,
        warnings_json=json.dumps([w.to_dict() for w in result.warnings]),
        conflict_json=json.dumps(result.conflict) if result.conflict is not None else None,
        parameters_json=json.dumps(parameters, default=str) if parameters is not None else None,
    )
    session.add(log)
    return log


def _record_failure(
    session: Session,
    result: CalendarGenerationResult,
    started: float,
    error_code: str,
    release_lock: bool,
    parameters: Optional[Dict[str, Any]] = None,
) -> None:
    """Write the failure log (and drop the flag this run holds) in a fresh transaction."""
    result.outcome = GENERATION_OUTCOME_FAILURE
    result.matchdays_created = 0
    result.matches_created = 0
    result.byes_created = 0
    try:
        log = _write_log(session, result, started, error_code=error_code, parameters=parameters)
        if release_lock:
            _release_generation_lock(session, result.season_id)
        session.commit()
        result.generation_log_id = log.id
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not record failed generation for season %s", result.season_id)


def _preview(allocation: AllocationResult) -> List[Dict[str, Any]]:
    by_date: Dict[Any, List[Dict[str, Any]]] = {}
    for p in allocation.placements:
        by_date.setdefault(p.day_date, []).append(
            {
                "round": p.pairing.round_number,
                "sequence": p.pairing.sequence,
                "homeTeamId": p.pairing.home_team_id,
                "awayTeamId": p.pairing.away_team_id,
                "isBye": p.pairing.is_bye,
                "fieldId": p.field_id,
                "timeSlotId": p.time_slot_id,
                "pinned": p.pinned,
            }
        )
    return [
        {
            "number": md.number,
            "date": md.day_date.isoformat(),
            "vuelta": md.vuelta,
            "kind": md.kind,
            "isPlayoff": md.is_playoff,
            "matches": sorted(by_date.get(md.day_date, []), key=lambda m: (m["round"], m["sequence"])),
        }
        for md in allocation.matchdays
    ]


def _soft_warnings(config: CalendarGenerationConfig) -> List[GenerationWarning]:
    warnings = []
    if len(config.team_ids) > settings.CALENDAR_TEAM_COUNT_WARNING:
        warnings.append(
            GenerationWarning(
                "TEAM_COUNT_HIGH",
                f"{len(config.team_ids)} active teams exceeds the usual limit of {settings.CALENDAR_TEAM_COUNT_WARNING}",
            )
        )
    if config.vueltas > settings.CALENDAR_VUELTAS_WARNING:
        warnings.append(
            GenerationWarning(
                "VUELTAS_HIGH",
                f"{config.vueltas} vueltas exceeds the usual limit of {settings.CALENDAR_VUELTAS_WARNING}",
            )
        )
    return warnings


# ============================================================================
# Main Orchestrator Function
# ============================================================================


def generate_season_calendar(session: Session, season_id: int, dry_run: bool = False) -> CalendarGenerationResult:
    """
    Generate (or regenerate) the calendar of one season.

    Args:
        session: Database session
        season_id: SeasonConfig ID
        dry_run: Compute and log the would-be calendar without touching schedule rows

    Returns:
        CalendarGenerationResult; for dry runs a scheduling conflict is reported in
        `conflict` instead of being raised

    Raises:
        SeasonNotFound: Unknown season (no log row is written)
        ConfigurationError: Season cannot be generated as configured
        ConcurrencyConflict: Another run holds the season
        SchedulingConflict: Dates x capacity cannot hold every pairing
        RuntimeError: Unexpected failure; the transaction was rolled back
    """
    started = time.perf_counter()
    result = CalendarGenerationResult(season_id, dry_run=dry_run)

    season = session.get(SeasonConfig, season_id)
    if season is None:
        raise SeasonNotFound(f"Season {season_id} not found", season_id=season_id)

    lock_held = False
    parameters: Optional[Dict[str, Any]] = None
    logger.info("CALENDAR: generation started for season %s (dry_run=%s)", season_id, dry_run)

    try:
        # ====================================================================
        # Step 0: Snapshot + validate
        # ====================================================================
        result.failed_step = "VALIDATE"
        config = load_generation_config(session, season)
        parameters = config.to_dict()
        result.warnings.extend(_soft_warnings(config))

        # ====================================================================
        # Step 1: Generation flag
        # ====================================================================
        if not dry_run:
            result.failed_step = "ACQUIRE_LOCK"
            _acquire_generation_lock(session, season_id)
            lock_held = True

        # ====================================================================
        # Step 2: Pin played matches
        # ====================================================================
        result.failed_step = "LOAD_PLAYED"
        played = _load_played_matches(session, season_id)
        pinned = _pinned_cells(played)
        result.input_hash = config.input_hash(list(pinned))

        # ====================================================================
        # Step 3: Pairings
        # ====================================================================
        result.failed_step = "PAIRINGS"
        plan = generate_pairings(config.team_ids, config.round_count, config.alternate_home_away)
        for message in plan.warnings:
            result.warnings.append(GenerationWarning("NO_ROUNDS_REQUESTED", message))
        errors = validate_plan(plan)
        if errors:
            raise ValueError(f"Pairing plan failed validation: {errors[:3]}")

        # ====================================================================
        # Step 4: Bye fairness
        # ====================================================================
        result.failed_step = "FAIRNESS"
        fairness = balance_byes(plan, carried=config.carried, fixed_keys=frozenset(pinned))
        for message in fairness.warnings:
            result.warnings.append(GenerationWarning("FAIRNESS_IMBALANCE", message))
        result.bye_distribution = dict(fairness.bye_counts)

        planned_keys = {p.key for p in fairness.plan.all_pairings()}
        for m, md in played:
            key = (m.round_number, m.home_team_id, m.away_team_id)
            if key in planned_keys:
                continue
            message = (
                f"Played match {m.id} ({m.home_team_id} vs {m.away_team_id}, round {m.round_number}, "
                f"{md.day_date}) is no longer part of the calendar and was kept unchanged"
            )
            result.warnings.append(
                GenerationWarning("PROTECTED_MATCH_ORPHANED", message, team_id=m.home_team_id, round_number=m.round_number)
            )
            logger.warning("CALENDAR: %s", message)

        # ====================================================================
        # Step 5: Slot allocation
        # ====================================================================
        result.failed_step = "ALLOCATE"
        allocation = allocate(fairness.plan, config.allocator, pinned)
        if allocation.flex_dates_used:
            result.warnings.append(
                GenerationWarning(
                    "FLEX_DATES_USED",
                    "Reserved flex dates were needed: " + ", ".join(d.isoformat() for d in allocation.flex_dates_used),
                )
            )

        played_dates = {md.day_date for _, md in played}
        result.matchdays_created = sum(1 for md in allocation.matchdays if md.day_date not in played_dates)
        result.matches_created = sum(1 for p in allocation.placements if not p.pairing.is_bye and not p.pinned)
        result.byes_created = sum(1 for p in allocation.placements if p.pairing.is_bye)
        result.stats = compute_calendar_stats(allocation.placements, list(config.team_ids)).to_dict()
        result.output_hash = hash_calendar_output(allocation)

        if allocation.conflict is not None:
            result.conflict = allocation.conflict.to_dict()
            if not dry_run:
                raise SchedulingConflict(
                    allocation.conflict.reason,
                    blocking_pairing=allocation.conflict.pairing.describe(),
                    season_id=season_id,
                )

        if any(w.code == "PROTECTED_MATCH_ORPHANED" for w in result.warnings):
            result.outcome = GENERATION_OUTCOME_PARTIAL

        # ====================================================================
        # Dry run: log only
        # ====================================================================
        if dry_run:
            result.failed_step = "WRITE_LOG"
            if result.conflict is not None:
                result.outcome = GENERATION_OUTCOME_FAILURE
            result.matchdays = _preview(allocation)
            log = _write_log(
                session,
                result,
                started,
                error_code=SchedulingConflict.code if result.conflict is not None else None,
                parameters=parameters,
            )
            session.commit()
            result.generation_log_id = log.id
            result.failed_step = None
            logger.info(
                "CALENDAR: dry run for season %s: %s matchdays, %s matches, outcome %s",
                season_id,
                result.matchdays_created,
                result.matches_created,
                result.outcome,
            )
            return result

        # ====================================================================
        # Step 6: Replace unplayed rows
        # ====================================================================
        result.failed_step = "CLEAR_EXISTING"
        deleted_matches, deleted_matchdays = _clear_unplayed(session, season_id, {md.id for _, md in played})
        logger.info(
            "CALENDAR: cleared %s unplayed matches and %s matchdays for season %s",
            deleted_matches,
            deleted_matchdays,
            season_id,
        )

        result.failed_step = "PERSIST"
        persisted = _persist_calendar(session, season_id, allocation)
        result.matchdays_created, result.matches_created, result.byes_created = persisted
        _upsert_rest_counters(session, season_id, fairness.bye_counts, fairness.carried)

        season = session.get(SeasonConfig, season_id)
        season.status = SEASON_STATUS_GENERATED
        _release_generation_lock(session, season_id)

        # ====================================================================
        # Step 7: Log + single commit
        # ====================================================================
        result.failed_step = "WRITE_LOG"
        log = _write_log(session, result, started, parameters=parameters)
        session.commit()
        lock_held = False
        result.generation_log_id = log.id
        result.failed_step = None

        logger.info(
            "CALENDAR: season %s generated: %s matchdays, %s matches, %s byes, %s warnings, outcome %s",
            season_id,
            result.matchdays_created,
            result.matches_created,
            result.byes_created,
            len(result.warnings),
            result.outcome,
        )
        return result

    except CalendarGenerationError as e:
        session.rollback()
        logger.warning("CALENDAR: generation for season %s rejected at step %s: %s", season_id, result.failed_step, e)
        _record_failure(session, result, started, e.code, release_lock=lock_held, parameters=parameters)
        raise

    except Exception as e:
        session.rollback()
        logger.exception("Calendar generation failed, transaction rolled back")
        step = result.failed_step
        _record_failure(session, result, started, "INTERNAL_ERROR", release_lock=lock_held, parameters=parameters)
        raise RuntimeError(f"Calendar generation failed at step {step}: {e}") from e
