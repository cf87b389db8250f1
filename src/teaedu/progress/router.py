"""Progress API endpoints: lesson completion and module quizzes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.auth.dependencies import get_current_user, get_current_user_optional
from teaedu.auth.jwt import AuthenticatedUser
from teaedu.database import get_session
from teaedu.progress.quizzes import PASSING_SCORE, Quiz, get_quiz, grade, load_catalog
from teaedu.progress.schemas import (
    LessonProgressResponse,
    LessonStateResponse,
    QuestionFeedback,
    QuizCompletionResponse,
    QuizDetailResponse,
    QuizListResponse,
    QuizQuestionPublic,
    QuizSubmitRequest,
    QuizSubmitResponse,
    QuizSummary,
)
from teaedu.progress.service import ProgressService

router = APIRouter(prefix="/api/v1/progress", tags=["Progress"])


def _require_quiz(quiz_id: str) -> Quiz:
    quiz = get_quiz(quiz_id)
    if quiz is None:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return quiz


# ---- Lessons ----


@router.get("/lessons", response_model=LessonProgressResponse)
async def get_lesson_progress(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LessonProgressResponse:
    svc = ProgressService(db)
    return LessonProgressResponse(**await svc.list_lesson_progress(user.id))


@router.post("/lessons/{lesson_id}/toggle", response_model=LessonStateResponse)
async def toggle_lesson(
    lesson_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LessonStateResponse:
    """Mark a lesson complete, or undo it."""
    svc = ProgressService(db)
    row = await svc.toggle_lesson_complete(user.id, lesson_id)
    await db.commit()
    return LessonStateResponse.model_validate(row)


@router.post("/lessons/{lesson_id}/access", response_model=LessonStateResponse)
async def access_lesson(
    lesson_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LessonStateResponse:
    svc = ProgressService(db)
    row = await svc.touch_lesson(user.id, lesson_id)
    await db.commit()
    return LessonStateResponse.model_validate(row)


# ---- Quizzes ----


@router.get("/quizzes", response_model=QuizListResponse)
async def list_quizzes(
    user: AuthenticatedUser | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_session),
) -> QuizListResponse:
    """List module quizzes. Public; enriched with results if auth'd."""
    results = {}
    if user:
        results = {c.quiz_id: c for c in await ProgressService(db).list_quiz_completions(user.id)}

    summaries = []
    for quiz in load_catalog().values():
        done = results.get(quiz.quiz_id)
        summaries.append(
            QuizSummary(
                quiz_id=quiz.quiz_id,
                module_id=quiz.module_id,
                title=quiz.title,
                question_count=len(quiz.questions),
                passed=bool(done and done.passed),
                score=done.score if done else None,
            )
        )
    return QuizListResponse(quizzes=summaries, passing_score=PASSING_SCORE)


@router.get("/quizzes/{quiz_id}", response_model=QuizDetailResponse)
async def get_quiz_detail(quiz_id: str) -> QuizDetailResponse:
    quiz = _require_quiz(quiz_id)
    return QuizDetailResponse(
        quiz_id=quiz.quiz_id,
        module_id=quiz.module_id,
        title=quiz.title,
        passing_score=PASSING_SCORE,
        questions=[QuizQuestionPublic(id=q.id, question=q.question, options=list(q.options)) for q in quiz.questions],
    )


@router.post("/quizzes/{quiz_id}/submit", response_model=QuizSubmitResponse)
async def submit_quiz(
    quiz_id: str,
    body: QuizSubmitRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> QuizSubmitResponse:
    """Grade a full attempt and store the result. Answer keys are revealed only here."""
    quiz = _require_quiz(quiz_id)
    try:
        graded = grade(quiz, body.answers)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    row = await ProgressService(db).record_quiz_result(user.id, quiz.quiz_id, graded.score)
    await db.commit()

    return QuizSubmitResponse(
        quiz_id=quiz.quiz_id,
        score=graded.score,
        correct=graded.correct,
        total=graded.total,
        passed=graded.passed,
        best_score=row.score,
        feedback=[
            QuestionFeedback(
                id=q.id,
                correct=q.correct_answer == answer,
                correct_answer=q.correct_answer,
                explanation=q.explanation,
            )
            for q, answer in zip(quiz.questions, body.answers)
        ],
    )


@router.get("/quizzes/{quiz_id}/completion", response_model=QuizCompletionResponse)
async def get_completion(
    quiz_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> QuizCompletionResponse:
    _require_quiz(quiz_id)
    row = await ProgressService(db).get_quiz_completion(user.id, quiz_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Quiz not attempted")
    return QuizCompletionResponse.model_validate(row)
