from datetime import datetime
from typing import Optional

from sqlmodel import Column, Field, SQLModel, Text

GENERATION_OUTCOME_SUCCESS = "success"
GENERATION_OUTCOME_PARTIAL = "partial"
GENERATION_OUTCOME_FAILURE = "failure"


class GenerationLog(SQLModel, table=True):
    """Append-only audit row, one per generation attempt."""

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: int = Field(foreign_key="seasonconfig.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    outcome: str  # "success" | "partial" | "failure"
    dry_run: bool = Field(default=False)
    config_version: str = Field(default="calendar_v1")
    input_hash: Optional[str] = Field(default=None, max_length=16)
    output_hash: Optional[str] = Field(default=None, max_length=16)
    matchdays_created: int = Field(default=0)
    matches_created: int = Field(default=0)
    byes_created: int = Field(default=0)
    duration_ms: int = Field(default=0)
    error_code: Optional[str] = Field(default=None)
    warnings_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    conflict_json: Optional[str] = Field(default=None, sa_column=Column(Text))
    parameters_json: Optional[str] = Field(default=None, sa_column=Column(Text))
