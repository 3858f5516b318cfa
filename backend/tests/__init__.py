# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from league_calendar.models.generation_log import GenerationLog  # noqa: F401
from league_calendar.models.league import League  # noqa: F401
from league_calendar.models.matchday import Matchday  # noqa: F401
from league_calendar.models.playing_field import PlayingField  # noqa: F401
from league_calendar.models.rest_counter import RestCounter  # noqa: F401
from league_calendar.models.scheduled_match import ScheduledMatch  # noqa: F401
from league_calendar.models.season import SeasonConfig  # noqa: F401
from league_calendar.models.season_time_slot import SeasonTimeSlot  # noqa: F401
from league_calendar.models.special_saturday import SpecialSaturday  # noqa: F401
from league_calendar.models.team import Team  # noqa: F401
from league_calendar.models.time_slot import TimeSlot  # noqa: F401
