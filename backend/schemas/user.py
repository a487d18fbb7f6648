from pydantic import Field, field_validator
from datetime import datetime
from typing import Literal, Union

from schemas.common import CamelModel

ExperienceLevel = Literal["beginner", "intermediate", "advanced"]
LearningStyle = Literal["visual", "textual", "interactive"]


class AccessibilitySettings(CamelModel):
    font_size: Literal["small", "medium", "large"] = "medium"
    high_contrast: bool = False
    colorblind_mode: Literal["none", "protanopia", "deuteranopia", "tritanopia"] = "none"


class OnboardingRequest(CamelModel):
    experience_level: ExperienceLevel
    financial_goals: Union[list[str], str]
    risk_comfort: int = Field(..., ge=1, le=10)
    learning_style: LearningStyle

    @field_validator("financial_goals")
    @classmethod
    def _goals_as_list(cls, v):
        goals = [v] if isinstance(v, str) else list(v)
        goals = [g.strip() for g in goals if g and g.strip()]
        if not goals:
            raise ValueError("at least one financial goal is required")
        return goals


class UserProfileResponse(CamelModel):
    id: str
    created_at: datetime
    experience_level: ExperienceLevel
    financial_goals: list[str]
    risk_comfort: int
    learning_style: LearningStyle
    accessibility: AccessibilitySettings


class OnboardingResponse(CamelModel):
    user_profile: UserProfileResponse
    recommended_lessons: list[str]
    recommended_scenarios: list[str]
