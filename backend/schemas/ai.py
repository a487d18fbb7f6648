from pydantic import Field
from typing import Optional, Literal

from schemas.common import CamelModel
from schemas.user import ExperienceLevel, LearningStyle

TextSource = Literal["generated", "fallback"]


class ProfileHint(CamelModel):
    """Optional learner hints used to tune prompt language."""
    experience_level: Optional[ExperienceLevel] = None
    learning_style: Optional[LearningStyle] = None


class ExplainRequest(CamelModel):
    concept: str = Field(..., min_length=1, max_length=200)
    context: Optional[str] = Field(None, max_length=2000)
    user_profile: Optional[ProfileHint] = None


class ExplainResponse(CamelModel):
    explanation: str
    source: TextSource


# Upper bound for simulator amounts; keeps 100 years at 100% finite
MAX_AMOUNT = 1_000_000_000


class WealthRequest(CamelModel):
    initial_amount: float = Field(..., ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    monthly_contribution: float = Field(..., ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    annual_return: float = Field(..., ge=0, le=100, allow_inf_nan=False)  # percent
    years: int = Field(..., ge=1, le=100)
    user_profile: Optional[ProfileHint] = None


class WealthPoint(CamelModel):
    year: int
    value: float


class WealthResponse(CamelModel):
    data_points: list[WealthPoint]
    final_value: float
    total_contributions: float
    gains: float
    explanation: str
    source: TextSource


class ReflectRequest(CamelModel):
    decision_point_id: str = Field(..., min_length=1)
    choice_id: str = Field(..., min_length=1)
    user_profile: Optional[ProfileHint] = None


class ReflectResponse(CamelModel):
    reflection: str
    source: TextSource
