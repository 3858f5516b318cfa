"""
Calendar statistics for a generated (or previewed) season.

Per team: games, home, away, byes. Per field and per time slot: matches placed.
Also the average number of matches per regular matchday.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from league_calendar.services.slot_allocator import Placement


@dataclass
class TeamLine:
    team_id: int
    games: int = 0
    home: int = 0
    away: int = 0
    byes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"teamId": self.team_id, "games": self.games, "home": self.home, "away": self.away, "byes": self.byes}


@dataclass
class CalendarStats:
    teams: Dict[int, TeamLine] = field(default_factory=dict)
    field_usage: Dict[int, int] = field(default_factory=dict)
    time_slot_usage: Dict[int, int] = field(default_factory=dict)
    matchdays_used: int = 0
    matches_per_matchday: float = 0.0

    @property
    def max_home_away_gap(self) -> int:
        if not self.teams:
            return 0
        return max(abs(t.home - t.away) for t in self.teams.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "teams": [line.to_dict() for line in self.teams.values()],
            "fieldUsage": {str(k): v for k, v in sorted(self.field_usage.items())},
            "timeSlotUsage": {str(k): v for k, v in sorted(self.time_slot_usage.items())},
            "matchdaysUsed": self.matchdays_used,
            "matchesPerMatchday": round(self.matches_per_matchday, 2),
            "maxHomeAwayGap": self.max_home_away_gap,
        }


def compute_calendar_stats(placements: Iterable[Placement], team_ids: List[int]) -> CalendarStats:
    stats = CalendarStats(teams={t: TeamLine(team_id=t) for t in team_ids})
    fields: Counter = Counter()
    slots: Counter = Counter()
    dates = set()
    matches = 0

    for placement in placements:
        pairing = placement.pairing
        if pairing.is_bye:
            stats.teams.setdefault(pairing.home_team_id, TeamLine(pairing.home_team_id)).byes += 1
            continue

        home = stats.teams.setdefault(pairing.home_team_id, TeamLine(pairing.home_team_id))
        away = stats.teams.setdefault(pairing.away, TeamLine(pairing.away))
        home.games += 1
        home.home += 1
        away.games += 1
        away.away += 1

        matches += 1
        dates.add(placement.day_date)
        if placement.field_id is not None:
            fields[placement.field_id] += 1
        if placement.time_slot_id is not None:
            slots[placement.time_slot_id] += 1

    stats.field_usage = dict(fields)
    stats.time_slot_usage = dict(slots)
    stats.matchdays_used = len(dates)
    stats.matches_per_matchday = matches / len(dates) if dates else 0.0
    return stats
