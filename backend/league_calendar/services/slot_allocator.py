"""
Slot Allocator - places pairings on concrete (date, field, time slot) cells.

Rules:
1. Candidate dates follow the season weekday (Saturday by default) from start to the
   last regular date (the day before playoffs when a playoff start is configured).
2. A Blackout override removes the date. A CapacityOverride replaces the day's capacity
   and/or its field and time-slot sets. A FlexReserve date (or every `flex_every`-th
   eligible date) is held back and only used when regular dates are not enough.
3. Effective capacity = min(capacity, fields x time slots). Cells fill time-slot first,
   fields inside each slot, both in their configured order.
4. Rounds are walked in order and every round opens on a fresh date; a round that does
   not fit spills onto the next eligible date. Pairings inside a round keep their
   sequence order.
5. Byes take no cell and no capacity; they are recorded on the date where their round
   starts.
6. Pinned pairings (already played) keep their recorded cell; those cells stay reserved
   and count toward the date's capacity.

Running out of dates stops the walk and reports the first pairing that could not be
placed. Nothing is dropped and capacity is never exceeded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Dict, List, Mapping, Optional, Set, Tuple, Union

from league_calendar.services.pairing_generator import Pairing, PairingPlan, Round

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]  # (field_id, time_slot_id)
PinnedCell = Tuple[date, Optional[int], Optional[int]]


# ============================================================================
# Inputs
# ============================================================================


@dataclass(frozen=True)
class FieldRef:
    id: int
    name: str
    sort_order: int = 0


@dataclass(frozen=True)
class SlotRef:
    id: int
    name: str
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    sort_order: int = 0


@dataclass(frozen=True)
class Blackout:
    reason: Optional[str] = None


@dataclass(frozen=True)
class CapacityOverride:
    capacity: Optional[int] = None
    field_ids: Tuple[int, ...] = ()
    time_slot_ids: Tuple[int, ...] = ()


@dataclass(frozen=True)
class FlexReserve:
    reason: Optional[str] = None


DayOverride = Union[Blackout, CapacityOverride, FlexReserve]


@dataclass(frozen=True)
class AllocatorConfig:
    start_date: date
    end_date: date
    max_games_per_day: int
    fields: Tuple[FieldRef, ...]
    time_slots: Tuple[SlotRef, ...]  # enabled for the season
    slot_catalog: Tuple[SlotRef, ...] = ()  # every league slot, for override lookups
    overrides: Mapping[date, DayOverride] = field(default_factory=dict)
    weekday: int = 5
    flex_every: int = 0
    playoffs_start_date: Optional[date] = None

    @property
    def last_regular_date(self) -> date:
        if self.playoffs_start_date is not None:
            return min(self.end_date, self.playoffs_start_date - timedelta(days=1))
        return self.end_date


# ============================================================================
# Outputs
# ============================================================================


@dataclass
class PlannedDay:
    day_date: date
    kind: str  # "regular" | "flex"
    capacity: int
    cells: List[Cell] = field(default_factory=list)


@dataclass(frozen=True)
class SkippedDate:
    day_date: date
    reason: str


@dataclass(frozen=True)
class Placement:
    pairing: Pairing
    day_date: date
    field_id: Optional[int] = None
    time_slot_id: Optional[int] = None
    pinned: bool = False


@dataclass(frozen=True)
class PlannedMatchday:
    number: int
    day_date: date
    vuelta: Optional[int]
    kind: str
    capacity: int
    is_playoff: bool = False


@dataclass(frozen=True)
class AllocationConflict:
    pairing: Pairing
    reason: str
    last_date_tried: Optional[date] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "blockingPairing": self.pairing.describe(),
            "reason": self.reason,
            "lastDateTried": self.last_date_tried.isoformat() if self.last_date_tried else None,
        }


@dataclass
class AllocationResult:
    placements: List[Placement] = field(default_factory=list)
    matchdays: List[PlannedMatchday] = field(default_factory=list)
    skipped_dates: List[SkippedDate] = field(default_factory=list)
    conflict: Optional[AllocationConflict] = None
    flex_dates_used: List[date] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.conflict is None


# ============================================================================
# Date enumeration
# ============================================================================


def _weekday_dates(first: date, last: date, weekday: int) -> List[date]:
    current = first + timedelta(days=(weekday - first.weekday()) % 7)
    dates = []
    while current <= last:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def _day_cells(config: AllocatorConfig, override: Optional[DayOverride]) -> Tuple[int, List[Cell]]:
    fields = list(config.fields)
    slots = list(config.time_slots)
    capacity = config.max_games_per_day

    if isinstance(override, CapacityOverride):
        if override.capacity is not None:
            capacity = override.capacity
        if override.field_ids:
            wanted = set(override.field_ids)
            fields = [f for f in config.fields if f.id in wanted]
        if override.time_slot_ids:
            wanted = set(override.time_slot_ids)
            catalog = config.slot_catalog or config.time_slots
            slots = sorted((s for s in catalog if s.id in wanted), key=lambda s: (s.sort_order, s.id))

    cells = [(f.id, s.id) for s in slots for f in fields]
    return max(0, min(capacity, len(cells))), cells


def enumerate_dates(config: AllocatorConfig) -> Tuple[List[PlannedDay], List[SkippedDate]]:
    """
    List regular-season candidate dates in chronological order.

    Returns:
        (eligible days including flex days, dates removed by a blackout)
    """
    days: List[PlannedDay] = []
    skipped: List[SkippedDate] = []
    eligible_count = 0

    for d in _weekday_dates(config.start_date, config.last_regular_date, config.weekday):
        override = config.overrides.get(d)
        if isinstance(override, Blackout):
            skipped.append(SkippedDate(d, override.reason or "blackout"))
            continue

        eligible_count += 1
        kind = "regular"
        if isinstance(override, FlexReserve):
            kind = "flex"
        elif config.flex_every > 0 and eligible_count % config.flex_every == 0:
            kind = "flex"

        capacity, cells = _day_cells(config, override)
        days.append(PlannedDay(day_date=d, kind=kind, capacity=capacity, cells=cells))

    return days, skipped


def playoff_dates(config: AllocatorConfig) -> List[date]:
    """Candidate dates from the playoff start to the season end, blackouts excluded."""
    if config.playoffs_start_date is None:
        return []
    return [
        d
        for d in _weekday_dates(config.playoffs_start_date, config.end_date, config.weekday)
        if not isinstance(config.overrides.get(d), Blackout)
    ]


# ============================================================================
# Placement walk
# ============================================================================


def _walk(
    plan: PairingPlan,
    days: List[PlannedDay],
    pinned: Mapping[Tuple[int, int, object], PinnedCell],
) -> Tuple[List[Placement], Optional[AllocationConflict]]:
    used: Dict[date, Set[Cell]] = {d.day_date: set() for d in days}
    load: Dict[date, int] = {d.day_date: 0 for d in days}
    for day_date, field_id, slot_id in pinned.values():
        if field_id is None or slot_id is None:
            continue
        used.setdefault(day_date, set()).add((field_id, slot_id))
        load[day_date] = load.get(day_date, 0) + 1

    # Dates already holding played matches belong to those rounds and teams
    played_rounds: Dict[date, Set[int]] = {}
    played_teams: Dict[date, Set[int]] = {}
    for (round_number, home_id, away_id), (day_date, _, _) in pinned.items():
        played_rounds.setdefault(day_date, set()).add(round_number)
        teams = played_teams.setdefault(day_date, set())
        teams.add(home_id)
        if isinstance(away_id, int):
            teams.add(away_id)

    def blocked(day_date: date, rnd: Round, pairing: Optional[Pairing] = None) -> bool:
        if played_rounds.get(day_date, set()) - {rnd.number}:
            return True
        if pairing is None:
            return False
        return bool(played_teams.get(day_date, set()) & {pairing.home_team_id, pairing.away})

    placements: List[Placement] = []
    day_index = {d.day_date: i for i, d in enumerate(days)}
    last_used = -1

    for rnd in plan.rounds:
        idx = last_used + 1
        anchor: Optional[date] = None

        for pairing in rnd.matches:
            if pairing.key in pinned:
                day_date, field_id, slot_id = pinned[pairing.key]
                placements.append(Placement(pairing, day_date, field_id, slot_id, pinned=True))
                anchor = anchor or day_date
                if day_date in day_index:
                    last_used = max(last_used, day_index[day_date])
                continue

            cell = None
            while idx < len(days):
                day = days[idx]
                if load[day.day_date] < day.capacity and not blocked(day.day_date, rnd, pairing):
                    cell = next((c for c in day.cells if c not in used[day.day_date]), None)
                    if cell is not None:
                        break
                idx += 1

            if cell is None:
                last_tried = days[-1].day_date if days else None
                return placements, AllocationConflict(
                    pairing=pairing,
                    reason="No date, field or time slot left before the end of the regular season",
                    last_date_tried=last_tried,
                )

            day = days[idx]
            used[day.day_date].add(cell)
            load[day.day_date] += 1
            last_used = max(last_used, idx)
            placements.append(Placement(pairing, day.day_date, cell[0], cell[1]))
            anchor = anchor or day.day_date

        for pairing in rnd.pairings:
            if not pairing.is_bye:
                continue
            while anchor is None and idx < len(days) and blocked(days[idx].day_date, rnd):
                idx += 1
            if anchor is None and idx < len(days):
                anchor = days[idx].day_date
                last_used = max(last_used, idx)
            if anchor is None:
                return placements, AllocationConflict(
                    pairing=pairing,
                    reason="No date left to record the bye before the end of the regular season",
                    last_date_tried=days[-1].day_date if days else None,
                )
            placements.append(Placement(pairing, anchor))

    return placements, None


def _build_matchdays(
    placements: List[Placement],
    days: List[PlannedDay],
    config: AllocatorConfig,
) -> List[PlannedMatchday]:
    by_date = {d.day_date: d for d in days}
    vueltas: Dict[date, int] = {}
    for p in placements:
        current = vueltas.get(p.day_date)
        if current is None or p.pairing.vuelta < current:
            vueltas[p.day_date] = p.pairing.vuelta

    matchdays: List[PlannedMatchday] = []
    for number, d in enumerate(sorted(vueltas), start=1):
        day = by_date.get(d)
        matchdays.append(
            PlannedMatchday(
                number=number,
                day_date=d,
                vuelta=vueltas[d],
                kind=day.kind if day else "regular",
                capacity=day.capacity if day else 0,
            )
        )

    capacity = min(config.max_games_per_day, len(config.fields) * len(config.time_slots))
    for offset, d in enumerate(playoff_dates(config), start=len(matchdays) + 1):
        matchdays.append(
            PlannedMatchday(number=offset, day_date=d, vuelta=None, kind="playoff", capacity=capacity, is_playoff=True)
        )
    return matchdays


def allocate(
    plan: PairingPlan,
    config: AllocatorConfig,
    pinned: Optional[Mapping[Tuple[int, int, object], PinnedCell]] = None,
) -> AllocationResult:
    """
    Place every pairing of the plan.

    Regular dates are tried first; if they are not enough and flex dates exist, the
    walk is repeated with flex dates included.

    Args:
        plan: Fairness-adjusted pairing plan
        config: Season dates, capacity, fields, time slots and overrides
        pinned: Pairing key -> (date, field_id, time_slot_id) for already played matches

    Returns:
        AllocationResult; `conflict` is set when some pairing could not be placed, in
        which case `placements` holds everything placed before it.
    """
    pinned = pinned or {}
    all_days, skipped = enumerate_dates(config)
    regular_days = [d for d in all_days if d.kind == "regular"]

    placements, conflict = _walk(plan, regular_days, pinned)
    days_used = regular_days
    flex_used: List[date] = []

    if conflict is not None and len(regular_days) < len(all_days):
        logger.info("ALLOCATOR: regular dates exhausted at round %s, retrying with flex dates", conflict.pairing.round_number)
        placements, conflict = _walk(plan, all_days, pinned)
        days_used = all_days
        placed_dates = {p.day_date for p in placements}
        flex_used = [d.day_date for d in all_days if d.kind == "flex" and d.day_date in placed_dates]

    result = AllocationResult(
        placements=placements,
        matchdays=_build_matchdays(placements, days_used, config),
        skipped_dates=skipped,
        conflict=conflict,
        flex_dates_used=flex_used,
    )

    if conflict is not None:
        logger.warning(
            "ALLOCATOR: could not place round %s pairing %s: %s",
            conflict.pairing.round_number,
            conflict.pairing.describe(),
            conflict.reason,
        )
    return result
