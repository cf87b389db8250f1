"""Request/response schemas for learning progress endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class LessonProgressResponse(BaseModel):
    completed_lessons: list[str]
    last_accessed_lesson: str | None


class LessonStateResponse(BaseModel):
    lesson_id: str
    completed: bool
    completed_at: datetime | None
    last_accessed_at: datetime

    model_config = {"from_attributes": True}


class QuizQuestionPublic(BaseModel):
    """Question as shown to the learner. No answer key."""

    id: str
    question: str
    options: list[str]


class QuizSummary(BaseModel):
    quiz_id: str
    module_id: str
    title: str
    question_count: int
    passed: bool = False
    score: int | None = None


class QuizListResponse(BaseModel):
    quizzes: list[QuizSummary]
    passing_score: int


class QuizDetailResponse(BaseModel):
    quiz_id: str
    module_id: str
    title: str
    passing_score: int
    questions: list[QuizQuestionPublic]


class QuizSubmitRequest(BaseModel):
    answers: list[int] = Field(..., min_length=1)


class QuestionFeedback(BaseModel):
    id: str
    correct: bool
    correct_answer: int
    explanation: str


class QuizSubmitResponse(BaseModel):
    quiz_id: str
    score: int
    correct: int
    total: int
    passed: bool
    best_score: int
    feedback: list[QuestionFeedback]


class QuizCompletionResponse(BaseModel):
    quiz_id: str
    passed: bool
    score: int
    completed_at: datetime

    model_config = {"from_attributes": True}
