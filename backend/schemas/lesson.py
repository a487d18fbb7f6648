from pydantic import Field
from typing import Optional, Literal

from schemas.common import CamelModel, FrozenCamelModel

LessonCategory = Literal["budgeting", "investing", "debt", "saving", "retirement"]


class LessonSection(FrozenCamelModel):
    type: Literal["text", "image", "interactive"]
    content: str


class LessonContent(FrozenCamelModel):
    sections: tuple[LessonSection, ...]


class QuizQuestion(FrozenCamelModel):
    id: str
    question: str
    options: tuple[str, ...]
    correct_answer: int  # index into options
    explanation: Optional[str] = None


class Lesson(FrozenCamelModel):
    id: str
    title: str
    category: LessonCategory
    content: LessonContent
    difficulty_level: int = Field(..., ge=1, le=3)  # 1=beginner, 2=intermediate, 3=advanced
    estimated_minutes: int = Field(..., ge=1)
    quiz_questions: Optional[tuple[QuizQuestion, ...]] = None


class QuizAnswer(CamelModel):
    question_id: str
    selected_answer: int = Field(..., ge=0)


class LessonCompleteRequest(CamelModel):
    score: float = Field(..., ge=0, le=100)
    answers: Optional[list[QuizAnswer]] = None
    user_id: Optional[str] = Field(None, max_length=64)


class LessonListResponse(CamelModel):
    lessons: list[Lesson]


class LessonDetailResponse(CamelModel):
    lesson: Lesson
