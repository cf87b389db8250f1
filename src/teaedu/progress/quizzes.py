"""Module quiz catalog and server-side grading.

Questions ship with the package (``quizzes.json``); the correct answers never
leave the server.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources

PASSING_SCORE = 70


@dataclass(frozen=True)
class QuizQuestion:
    id: str
    question: str
    options: tuple[str, ...]
    correct_answer: int
    explanation: str


@dataclass(frozen=True)
class Quiz:
    quiz_id: str
    module_id: str
    title: str
    questions: tuple[QuizQuestion, ...]


@dataclass(frozen=True)
class GradedQuiz:
    score: int
    correct: int
    total: int
    passed: bool


@lru_cache
def load_catalog() -> dict[str, Quiz]:
    """Load and index the packaged quizzes by ``quiz_id``."""
    raw = json.loads(resources.files("teaedu.progress").joinpath("quizzes.json").read_text(encoding="utf-8"))
    catalog: dict[str, Quiz] = {}
    for item in raw["quizzes"]:
        questions = tuple(
            QuizQuestion(
                id=q["id"],
                question=q["question"],
                options=tuple(q["options"]),
                correct_answer=q["correct_answer"],
                explanation=q["explanation"],
            )
            for q in item["questions"]
        )
        catalog[item["quiz_id"]] = Quiz(
            quiz_id=item["quiz_id"],
            module_id=item["module_id"],
            title=item["title"],
            questions=questions,
        )
    return catalog


def get_quiz(quiz_id: str) -> Quiz | None:
    return load_catalog().get(quiz_id)


def score_percent(correct: int, total: int) -> int:
    """Percentage rounded half up, in integer arithmetic."""
    if total <= 0:
        msg = "A quiz needs at least one question"
        raise ValueError(msg)
    return (correct * 200 + total) // (2 * total)


def grade(quiz: Quiz, answers: list[int]) -> GradedQuiz:
    """
    Grade a full set of answers (one option index per question, in order).

    Raises:
        ValueError: If the number of answers does not match the quiz.
    """
    if len(answers) != len(quiz.questions):
        msg = f"Expected {len(quiz.questions)} answers, got {len(answers)}"
        raise ValueError(msg)

    correct = sum(1 for q, a in zip(quiz.questions, answers) if q.correct_answer == a)
    score = score_percent(correct, len(quiz.questions))
    return GradedQuiz(score=score, correct=correct, total=len(quiz.questions), passed=score >= PASSING_SCORE)
