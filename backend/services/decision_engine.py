"""
Deterministic scenario decision engine.

Applies a choice's short- and long-term impacts to a simulated financial
state, clamps the result, and computes the XP the decision is worth.
Pure: no persistence, no I/O.
"""
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Mapping, Union

from errors import MalformedStateError, NotFoundError
from schemas.scenario import Choice, DecisionPoint, ImpactDelta, Scenario, ScenarioState
from services.rounding import round_half_up

# XP per decision
MIN_DECISION_XP = 10
MAX_DECISION_XP = 50
BASE_DECISION_XP = 20

STRESS_RANGE = (1, 10)
KNOWLEDGE_RANGE = (1, 10)

# (python field, wire field)
STATE_FIELDS = (
    ("savings", "savings"),
    ("debt", "debt"),
    ("monthly_income", "monthlyIncome"),
    ("monthly_expenses", "monthlyExpenses"),
    ("stress_level", "stressLevel"),
    ("financial_knowledge", "financialKnowledge"),
)


def clamp(value, low, high):
    return max(low, min(high, value))


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def coerce_state(raw: Union[ScenarioState, Mapping[str, Any], None]) -> ScenarioState:
    """Turn a client-supplied state into a ScenarioState or raise MalformedStateError."""
    if isinstance(raw, ScenarioState):
        return raw
    if not isinstance(raw, Mapping):
        raise MalformedStateError("State must be an object with six numeric fields")

    values = {}
    problems = []
    for name, wire in STATE_FIELDS:
        if wire in raw:
            value = raw[wire]
        elif name in raw:
            value = raw[name]
        else:
            problems.append({"field": wire, "message": f"{wire} is required"})
            continue
        if not _is_number(value):
            problems.append({"field": wire, "message": f"{wire} must be a number"})
            continue
        values[name] = value

    if problems:
        raise MalformedStateError("Scenario state is malformed", details=problems)
    return ScenarioState(**values)


def combined_delta(choice: Choice) -> ImpactDelta:
    """Sum of short- and long-term impacts; both apply in the same step."""
    st, lt = choice.short_term_impact, choice.long_term_impact
    return ImpactDelta(
        savings_change=st.savings_change + lt.savings_change,
        debt_change=st.debt_change + lt.debt_change,
        expense_change=st.expense_change + lt.expense_change,
        stress_change=st.stress_change + lt.stress_change,
        knowledge_change=st.knowledge_change + lt.knowledge_change,
    )


def transition(state: ScenarioState, delta: ImpactDelta) -> ScenarioState:
    return ScenarioState(
        savings=max(0, state.savings + delta.savings_change),
        debt=max(0, state.debt + delta.debt_change),
        monthly_income=state.monthly_income,
        monthly_expenses=max(0, state.monthly_expenses + delta.expense_change),
        stress_level=clamp(state.stress_level + delta.stress_change, *STRESS_RANGE),
        financial_knowledge=clamp(state.financial_knowledge + delta.knowledge_change, *KNOWLEDGE_RANGE),
    )


def decision_xp(old_knowledge: float, new_knowledge: float) -> int:
    """Knowledge gain plus a base award, bounded to [10, 50]."""
    xp = clamp(new_knowledge - old_knowledge + BASE_DECISION_XP, MIN_DECISION_XP, MAX_DECISION_XP)
    return round_half_up(xp)


@dataclass(frozen=True)
class DecisionOutcome:
    decision_point: DecisionPoint
    choice: Choice
    new_state: ScenarioState
    xp_earned: int

    @property
    def delta(self) -> ImpactDelta:
        return combined_delta(self.choice)


class DecisionEngine:
    """Resolves decision points and choices within one scenario."""

    def __init__(self, scenario: Scenario):
        self.scenario = scenario
        self._points = {dp.id: dp for dp in scenario.decision_points}

    def get_initial_state(self) -> ScenarioState:
        return self.scenario.initial_state

    def find_decision_point(self, decision_point_id: str) -> DecisionPoint:
        dp = self._points.get(decision_point_id)
        if dp is None:
            raise NotFoundError(f"Decision point with id {decision_point_id} not found")
        return dp

    def find_choice(self, decision_point_id: str, choice_id: str) -> tuple[DecisionPoint, Choice]:
        dp = self.find_decision_point(decision_point_id)
        for choice in dp.choices:
            if choice.id == choice_id:
                return dp, choice
        raise NotFoundError(f"Choice with id {choice_id} not found")

    def is_terminal(self, decision_point_id: str) -> bool:
        points = self.scenario.decision_points
        return bool(points) and points[-1].id == decision_point_id

    def decide(self, decision_point_id: str, choice_id: str, current_state) -> DecisionOutcome:
        dp, choice = self.find_choice(decision_point_id, choice_id)
        state = coerce_state(current_state)
        new_state = transition(state, combined_delta(choice))
        xp = decision_xp(state.financial_knowledge, new_state.financial_knowledge)
        return DecisionOutcome(decision_point=dp, choice=choice, new_state=new_state, xp_earned=xp)


def apply_choice(scenario: Scenario, decision_point_id: str, choice_id: str, current_state) -> tuple[ScenarioState, int]:
    """(scenario, decision point id, choice id, state) -> (new state, xp earned)."""
    outcome = DecisionEngine(scenario).decide(decision_point_id, choice_id, current_state)
    return outcome.new_state, outcome.xp_earned
