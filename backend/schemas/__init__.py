from schemas.progress import (
    ProgressResponse,
    ProgressWarning,
    ProgressEnvelope,
    CompletionResponse
)
from schemas.scenario import (
    ScenarioState,
    ImpactDelta,
    Choice,
    DecisionPoint,
    Scenario,
    DecisionRequest,
    DecisionResponse,
    ScenarioCompleteRequest
)
from schemas.lesson import (
    Lesson,
    QuizQuestion,
    LessonCompleteRequest
)
from schemas.user import (
    AccessibilitySettings,
    OnboardingRequest,
    OnboardingResponse,
    UserProfileResponse
)
from schemas.ai import (
    ProfileHint,
    ExplainRequest,
    WealthRequest,
    ReflectRequest
)

__all__ = [
    # Progress
    "ProgressResponse", "ProgressWarning", "ProgressEnvelope", "CompletionResponse",
    # Scenario
    "ScenarioState", "ImpactDelta", "Choice", "DecisionPoint", "Scenario",
    "DecisionRequest", "DecisionResponse", "ScenarioCompleteRequest",
    # Lesson
    "Lesson", "QuizQuestion", "LessonCompleteRequest",
    # User
    "AccessibilitySettings", "OnboardingRequest", "OnboardingResponse", "UserProfileResponse",
    # AI
    "ProfileHint", "ExplainRequest", "WealthRequest", "ReflectRequest",
]
