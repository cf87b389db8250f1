"""Progress store: lesson completion, last-accessed lesson and quiz results."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import case, not_, null, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from teaedu.database import upsert_insert
from teaedu.db.models import LessonProgress, QuizCompletion
from teaedu.progress.quizzes import PASSING_SCORE

logger = structlog.get_logger()


class ProgressService:
    """Per-user learning progress. Rows are upserted with ON CONFLICT, never appended."""

    def __init__(self, db: AsyncSession, now: datetime | None = None) -> None:
        self.db = db
        self._now = now

    def now(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    # --- Lessons ---

    async def list_lesson_progress(self, user_id: str) -> dict:
        """Completed lesson ids plus the most recently accessed lesson."""
        result = await self.db.execute(
            select(LessonProgress)
            .where(LessonProgress.user_id == user_id)
            .order_by(LessonProgress.last_accessed_at.desc())
        )
        rows = list(result.scalars().all())
        return {
            "completed_lessons": [r.lesson_id for r in rows if r.completed],
            "last_accessed_lesson": rows[0].lesson_id if rows else None,
        }

    async def _get_lesson_row(self, user_id: str, lesson_id: str) -> LessonProgress:
        result = await self.db.execute(
            select(LessonProgress)
            .where(
                LessonProgress.user_id == user_id,
                LessonProgress.lesson_id == lesson_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def toggle_lesson_complete(self, user_id: str, lesson_id: str) -> LessonProgress:
        """Flip a lesson between completed and not completed."""
        now = self.now()
        stmt = upsert_insert(self.db, LessonProgress).values(
            user_id=user_id,
            lesson_id=lesson_id,
            completed=True,
            completed_at=now,
            last_accessed_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "lesson_id"],
            set_={
                "completed": not_(LessonProgress.completed),
                "completed_at": case((LessonProgress.completed, null()), else_=stmt.excluded.completed_at),
                "last_accessed_at": stmt.excluded.last_accessed_at,
            },
        )
        await self.db.execute(stmt)
        return await self._get_lesson_row(user_id, lesson_id)

    async def touch_lesson(self, user_id: str, lesson_id: str) -> LessonProgress:
        """Record that the lesson was opened, keeping its completion state."""
        now = self.now()
        stmt = upsert_insert(self.db, LessonProgress).values(
            user_id=user_id,
            lesson_id=lesson_id,
            completed=False,
            last_accessed_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "lesson_id"],
            set_={"last_accessed_at": stmt.excluded.last_accessed_at},
        )
        await self.db.execute(stmt)
        return await self._get_lesson_row(user_id, lesson_id)

    # --- Quizzes ---

    async def get_quiz_completion(self, user_id: str, quiz_id: str) -> QuizCompletion | None:
        result = await self.db.execute(
            select(QuizCompletion).where(
                QuizCompletion.user_id == user_id,
                QuizCompletion.quiz_id == quiz_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_quiz_completions(self, user_id: str) -> list[QuizCompletion]:
        result = await self.db.execute(
            select(QuizCompletion)
            .where(QuizCompletion.user_id == user_id)
            .order_by(QuizCompletion.quiz_id)
        )
        return list(result.scalars().all())

    async def record_quiz_result(self, user_id: str, quiz_id: str, score: int) -> QuizCompletion:
        """
        Upsert a quiz attempt.

        The row keeps the best score; a pass is never undone by a later failed
        attempt. ``completed_at`` moves only when the stored result improves.

        Raises:
            ValueError: If the score is outside 0-100.
        """
        if not 0 <= score <= 100:
            msg = "Score must be between 0 and 100"
            raise ValueError(msg)

        now = self.now()
        stmt = upsert_insert(self.db, QuizCompletion).values(
            user_id=user_id,
            quiz_id=quiz_id,
            passed=score >= PASSING_SCORE,
            score=score,
            completed_at=now,
        )
        improved = stmt.excluded.score > QuizCompletion.score
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "quiz_id"],
            set_={
                "score": case((improved, stmt.excluded.score), else_=QuizCompletion.score),
                "passed": or_(QuizCompletion.passed, stmt.excluded.passed),
                "completed_at": case((improved, stmt.excluded.completed_at), else_=QuizCompletion.completed_at),
            },
        )
        await self.db.execute(stmt)

        result = await self.db.execute(
            select(QuizCompletion)
            .where(QuizCompletion.user_id == user_id, QuizCompletion.quiz_id == quiz_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one()
        logger.info("quiz_result_recorded", user_id=user_id, quiz_id=quiz_id, score=score, passed=row.passed)
        return row
