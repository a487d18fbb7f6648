from pydantic import Field, model_validator
from typing import Optional, Any, Literal

from schemas.common import CamelModel, FrozenCamelModel
from schemas.progress import ProgressResponse, ProgressWarning

ScenarioCategory = Literal["first-job", "rent", "debt", "market-crash", "emergency"]


class ScenarioState(FrozenCamelModel):
    """Simulated financial snapshot carried between decisions."""
    savings: float
    debt: float
    monthly_income: float
    monthly_expenses: float
    stress_level: float  # 1-10
    financial_knowledge: float  # 1-10


class ImpactDelta(FrozenCamelModel):
    savings_change: float = 0
    debt_change: float = 0
    expense_change: float = 0
    stress_change: float = 0
    knowledge_change: float = 0


class Choice(FrozenCamelModel):
    id: str
    text: str
    short_term_impact: ImpactDelta
    long_term_impact: ImpactDelta


class DecisionPoint(FrozenCamelModel):
    id: str
    prompt: str
    choices: tuple[Choice, ...] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_choice_ids(self):
        ids = [c.id for c in self.choices]
        if len(ids) != len(set(ids)):
            raise ValueError(f"duplicate choice id in decision point {self.id}")
        return self


class Scenario(FrozenCamelModel):
    id: str
    title: str
    description: str
    category: ScenarioCategory
    difficulty_level: int = Field(..., ge=1, le=3)
    decision_points: tuple[DecisionPoint, ...]
    initial_state: ScenarioState


# ── Requests / responses ────────────────────────────────────────────

class DecisionRequest(CamelModel):
    decision_point_id: str = Field(..., min_length=1)
    choice_id: str = Field(..., min_length=1)
    # Checked field by field by the decision engine (MALFORMED_STATE)
    current_state: dict[str, Any]
    user_id: Optional[str] = Field(None, max_length=64)


class DecisionResponse(CamelModel):
    new_state: ScenarioState
    ai_reflection: str
    reflection_source: Literal["generated", "fallback"]
    xp_earned: int
    progress: Optional[ProgressResponse] = None
    warning: Optional[ProgressWarning] = None


class ScenarioCompleteRequest(CamelModel):
    final_state: dict[str, Any]
    user_id: Optional[str] = Field(None, max_length=64)


class ScenarioListResponse(CamelModel):
    scenarios: list[Scenario]


class ScenarioDetailResponse(CamelModel):
    scenario: Scenario
