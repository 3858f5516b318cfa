"""
Calendar generation error taxonomy.

Every error carries a stable `code` and the HTTP status the API answers with.
Non-fatal conditions (fairness, protected matches, flex usage) are GenerationWarning
records instead of exceptions.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


class CalendarGenerationError(Exception):
    """Base class for failures of a generation run"""

    code = "CALENDAR_GENERATION_ERROR"
    status_code = 500

    def __init__(self, message: str, season_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.season_id = season_id

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "reason": self.message}


class SeasonNotFound(CalendarGenerationError):
    code = "SEASON_NOT_FOUND"
    status_code = 404


class ConfigurationError(CalendarGenerationError):
    """Bad season state, fewer than 2 active teams, no eligible dates, ..."""

    code = "CONFIGURATION_ERROR"
    status_code = 422


class SchedulingConflict(CalendarGenerationError):
    """Dates x capacity cannot hold every pairing; nothing was persisted."""

    code = "SCHEDULING_CONFLICT"
    status_code = 409

    def __init__(self, message: str, blocking_pairing: Dict[str, Any], season_id: Optional[int] = None):
        super().__init__(message, season_id=season_id)
        self.blocking_pairing = blocking_pairing

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["blockingPairing"] = self.blocking_pairing
        return result


class ConcurrencyConflict(CalendarGenerationError):
    """Another generation run holds the season; safe to retry later."""

    code = "GENERATION_ALREADY_RUNNING"
    status_code = 409


@dataclass
class GenerationWarning:
    """Non-fatal issue found during a run"""

    code: str
    message: str
    team_id: Optional[int] = None
    round_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "teamId": self.team_id,
            "round": self.round_number,
        }
