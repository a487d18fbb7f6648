from pydantic import ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional

from schemas.common import CamelModel


class ProgressResponse(CamelModel):
    user_id: str
    xp: int
    level: int
    completed_lesson_ids: list[str]
    completed_scenario_ids: list[str]
    financial_health_score: int
    last_activity: datetime

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ProgressWarning(CamelModel):
    """Set when the outcome was computed but could not be saved."""
    code: str = "PROGRESS_NOT_SAVED"
    message: str


class ProgressEnvelope(CamelModel):
    progress: ProgressResponse


class CompletionResponse(CamelModel):
    xp_earned: int
    progress: Optional[ProgressResponse] = None
    warning: Optional[ProgressWarning] = None
