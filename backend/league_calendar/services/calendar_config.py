"""
Generation config snapshot.

All league and season rows a generation run depends on are read once, validated, and
frozen into a CalendarGenerationConfig. The pure components (pairing, fairness,
allocation) only ever see this snapshot, never the database.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from sqlmodel import Session, select

from league_calendar.models import (
    PlayingField,
    RestCounter,
    SeasonConfig,
    SeasonTimeSlot,
    SpecialDayKind,
    SpecialSaturday,
    Team,
    TimeSlot,
)
from league_calendar.models.season import GENERATABLE_SEASON_STATUSES
from league_calendar.services.calendar_errors import ConfigurationError
from league_calendar.services.pairing_generator import rounds_for_vueltas
from league_calendar.services.slot_allocator import (
    AllocatorConfig,
    Blackout,
    CapacityOverride,
    DayOverride,
    FieldRef,
    FlexReserve,
    SlotRef,
    enumerate_dates,
)

logger = logging.getLogger(__name__)

CONFIG_VERSION = "calendar_v1"


@dataclass(frozen=True)
class CalendarGenerationConfig:
    season_id: int
    league_id: int
    team_ids: Tuple[int, ...]
    round_count: int
    vueltas: int
    alternate_home_away: bool
    allocator: AllocatorConfig
    carried_byes: Tuple[Tuple[int, int], ...] = ()
    config_version: str = CONFIG_VERSION

    @property
    def carried(self) -> Dict[int, int]:
        return dict(self.carried_byes)

    def to_dict(self) -> Dict[str, Any]:
        a = self.allocator
        return {
            "configVersion": self.config_version,
            "seasonId": self.season_id,
            "teamIds": list(self.team_ids),
            "roundCount": self.round_count,
            "vueltas": self.vueltas,
            "alternateHomeAway": self.alternate_home_away,
            "startDate": a.start_date.isoformat(),
            "endDate": a.end_date.isoformat(),
            "playoffsStartDate": a.playoffs_start_date.isoformat() if a.playoffs_start_date else None,
            "maxGamesPerDay": a.max_games_per_day,
            "weekday": a.weekday,
            "flexEvery": a.flex_every,
            "fieldIds": [f.id for f in a.fields],
            "timeSlotIds": [s.id for s in a.time_slots],
            "overrides": {d.isoformat(): describe_override(o) for d, o in sorted(a.overrides.items())},
            "carriedByes": {str(t): c for t, c in self.carried_byes},
        }

    def input_hash(self, pinned_keys: List[Tuple[int, int, Any]]) -> str:
        """Canonical hash of everything that decides the generated calendar."""
        payload = json.dumps(
            {"config": self.to_dict(), "pinned": sorted(list(k) for k in pinned_keys)},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(payload.encode()).hexdigest()[:16]


def describe_override(override: DayOverride) -> Dict[str, Any]:
    if isinstance(override, Blackout):
        return {"kind": SpecialDayKind.blackout.value, "reason": override.reason}
    if isinstance(override, CapacityOverride):
        return {
            "kind": SpecialDayKind.capacity_override.value,
            "capacity": override.capacity,
            "fieldIds": list(override.field_ids),
            "timeSlotIds": list(override.time_slot_ids),
        }
    return {"kind": SpecialDayKind.flex.value, "reason": override.reason}


# ============================================================================
# Snapshot loading
# ============================================================================


def _to_override(row: SpecialSaturday, field_ids: set, slot_ids: set) -> DayOverride:
    kind = SpecialDayKind(row.kind)
    if kind == SpecialDayKind.blackout:
        return Blackout(reason=row.description)
    if kind == SpecialDayKind.flex:
        return FlexReserve(reason=row.description)

    if row.capacity is not None and row.capacity < 0:
        raise ConfigurationError(f"Special date {row.day_date}: capacity must not be negative (got {row.capacity})")
    unknown_fields = set(row.field_ids or []) - field_ids
    if unknown_fields:
        raise ConfigurationError(f"Special date {row.day_date}: unknown or inactive fields {sorted(unknown_fields)}")
    unknown_slots = set(row.time_slot_ids or []) - slot_ids
    if unknown_slots:
        raise ConfigurationError(f"Special date {row.day_date}: unknown time slots {sorted(unknown_slots)}")
    return CapacityOverride(
        capacity=row.capacity,
        field_ids=tuple(row.field_ids or ()),
        time_slot_ids=tuple(row.time_slot_ids or ()),
    )


def _enabled_time_slots(session: Session, season: SeasonConfig) -> Tuple[List[SlotRef], List[SlotRef]]:
    catalog_rows = session.exec(
        select(TimeSlot)
        .where(TimeSlot.league_id == season.league_id)
        .order_by(TimeSlot.sort_order, TimeSlot.id)
    ).all()
    toggles = {
        row.time_slot_id: row.is_enabled
        for row in session.exec(select(SeasonTimeSlot).where(SeasonTimeSlot.season_id == season.id)).all()
    }

    catalog = [SlotRef(s.id, s.name, s.start_time, s.end_time, s.sort_order) for s in catalog_rows]
    enabled = [
        ref for ref, row in zip(catalog, catalog_rows) if toggles.get(row.id, row.active_by_default)
    ]
    return enabled, catalog


def _carried_byes(session: Session, season: SeasonConfig, team_ids: List[int]) -> Tuple[Tuple[int, int], ...]:
    if season.continues_from_season_id is None:
        return ()
    counters = session.exec(
        select(RestCounter).where(RestCounter.season_id == season.continues_from_season_id)
    ).all()
    wanted = set(team_ids)
    return tuple(sorted((c.team_id, c.total_byes) for c in counters if c.team_id in wanted))


def load_generation_config(session: Session, season: SeasonConfig) -> CalendarGenerationConfig:
    """
    Read and validate everything a run needs for `season`.

    Raises:
        ConfigurationError: Season not generatable, fewer than 2 active teams, bad date
            window, no fields or time slots, bad special dates, or no eligible dates
    """
    if season.status not in GENERATABLE_SEASON_STATUSES:
        raise ConfigurationError(
            f"Season {season.id} has status '{season.status}'; only draft or generated seasons can be generated",
            season_id=season.id,
        )
    if season.start_date >= season.end_date:
        raise ConfigurationError(
            f"Season start date {season.start_date} must be before end date {season.end_date}", season_id=season.id
        )
    if season.max_games_per_day < 1:
        raise ConfigurationError("Maximum games per day must be at least 1", season_id=season.id)
    if season.vueltas < 0 or (season.rounds_planned is not None and season.rounds_planned < 0):
        raise ConfigurationError("Round counts must not be negative", season_id=season.id)
    if not 0 <= season.match_weekday <= 6:
        raise ConfigurationError(f"Match weekday must be 0..6 (got {season.match_weekday})", season_id=season.id)

    teams = session.exec(
        select(Team)
        .where(Team.league_id == season.league_id, Team.is_active == True)  # noqa: E712
        .order_by(Team.name, Team.id)
    ).all()
    team_ids = [t.id for t in teams]
    if len(team_ids) < 2:
        raise ConfigurationError(
            f"At least 2 active teams are required (league has {len(team_ids)})", season_id=season.id
        )

    field_rows = session.exec(
        select(PlayingField)
        .where(PlayingField.league_id == season.league_id, PlayingField.is_active == True)  # noqa: E712
        .order_by(PlayingField.sort_order, PlayingField.id)
    ).all()
    if not field_rows:
        raise ConfigurationError("League has no active playing fields", season_id=season.id)
    fields = tuple(FieldRef(f.id, f.name, f.sort_order) for f in field_rows)

    slots, catalog = _enabled_time_slots(session, season)
    if not slots:
        raise ConfigurationError("Season has no enabled time slots", season_id=season.id)

    special_rows = session.exec(
        select(SpecialSaturday).where(SpecialSaturday.season_id == season.id).order_by(SpecialSaturday.day_date)
    ).all()
    field_ids = {f.id for f in fields}
    slot_ids = {s.id for s in catalog}
    try:
        overrides = {row.day_date: _to_override(row, field_ids, slot_ids) for row in special_rows}
    except ValueError as exc:
        raise ConfigurationError(f"Invalid special date kind: {exc}", season_id=season.id) from exc

    allocator = AllocatorConfig(
        start_date=season.start_date,
        end_date=season.end_date,
        max_games_per_day=season.max_games_per_day,
        fields=fields,
        time_slots=tuple(slots),
        slot_catalog=tuple(catalog),
        overrides=overrides,
        weekday=season.match_weekday,
        flex_every=max(season.flex_every, 0),
        playoffs_start_date=season.playoffs_start_date,
    )

    days, _ = enumerate_dates(allocator)
    if not days:
        raise ConfigurationError(
            f"No eligible match dates between {season.start_date} and {allocator.last_regular_date}",
            season_id=season.id,
        )

    if season.rounds_planned is not None:
        round_count = season.rounds_planned
    else:
        round_count = rounds_for_vueltas(len(team_ids), season.vueltas)

    config = CalendarGenerationConfig(
        season_id=season.id,
        league_id=season.league_id,
        team_ids=tuple(team_ids),
        round_count=round_count,
        vueltas=season.vueltas,
        alternate_home_away=season.alternate_home_away,
        allocator=allocator,
        carried_byes=_carried_byes(session, season, team_ids),
    )
    logger.info(
        "CALENDAR: snapshot for season %s: %s teams, %s rounds, %s eligible dates, %s fields, %s slots",
        season.id,
        len(team_ids),
        round_count,
        len(days),
        len(fields),
        len(slots),
    )
    return config
