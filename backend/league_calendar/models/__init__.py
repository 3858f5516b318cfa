from league_calendar.models.generation_log import GenerationLog
from league_calendar.models.league import League
from league_calendar.models.matchday import Matchday
from league_calendar.models.playing_field import PlayingField
from league_calendar.models.rest_counter import RestCounter
from league_calendar.models.scheduled_match import ScheduledMatch
from league_calendar.models.season import SeasonConfig
from league_calendar.models.season_time_slot import SeasonTimeSlot
from league_calendar.models.special_saturday import SpecialDayKind, SpecialSaturday
from league_calendar.models.team import Team
from league_calendar.models.time_slot import TimeSlot

__all__ = [
    "League",
    "Team",
    "PlayingField",
    "TimeSlot",
    "SeasonConfig",
    "SeasonTimeSlot",
    "SpecialSaturday",
    "SpecialDayKind",
    "Matchday",
    "ScheduledMatch",
    "RestCounter",
    "GenerationLog",
]
