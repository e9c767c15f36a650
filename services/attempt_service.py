from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from redis.asyncio import Redis
from redis.exceptions import LockNotOwnedError
from models.base import utcnow
from models.quiz import Quiz
from models.attempt import QuizAttempt, QuizAnswer
from services.enrollment_service import EnrollmentService
from services.question_store import QuestionStore
from services.grading import GradedAnswer, grade_answer, question_points, effective_passing_score, is_passed
from core.exceptions import NotFoundError, BadRequestError
from core.config import settings
from core.logger import logger


def attempt_to_dict(attempt: QuizAttempt) -> Dict[str, Any]:
    return {
        "id": attempt.id,
        "quiz_id": attempt.quiz_id,
        "user_id": attempt.user_id,
        "attempt_number": attempt.attempt_number,
        "score": attempt.score,
        "max_score": attempt.max_score,
        "is_passed": attempt.is_passed,
        "is_auto_submitted": attempt.is_auto_submitted,
        "started_at": attempt.started_at,
        "completed_at": attempt.completed_at,
    }


class AttemptService:
    """
    Quiz attempt lifecycle: NotStarted -> InProgress -> Completed.

    An attempt is completed either by the student submitting it or by the
    expiry sweeper once the quiz time limit has passed.
    """

    def __init__(self, db: AsyncSession, redis: Optional[Redis] = None):
        self.db = db
        self.redis = redis
        self.enrollments = EnrollmentService(db)
        self.questions = QuestionStore(db)

    @asynccontextmanager
    async def _lock(self, key: str):
        """Cross-process lock around check-then-write sequences (no-op without Redis)."""
        if self.redis is None:
            yield
            return

        lock = self.redis.lock(
            f"coursequiz:lock:{key}",
            timeout=settings.ATTEMPT_LOCK_TIMEOUT_SECONDS,
            blocking_timeout=settings.ATTEMPT_LOCK_TIMEOUT_SECONDS,
        )
        if not await lock.acquire():
            logger.warning("Attempt lock busy", key=key)
            raise BadRequestError("Another request for this attempt is in progress")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockNotOwnedError:
                logger.warning("Attempt lock expired before release", key=key)

    async def _get_quiz(self, quiz_id: int, live_only: bool = True) -> Quiz:
        query = select(Quiz).filter(Quiz.id == quiz_id)
        if live_only:
            query = query.filter(Quiz.live())
        result = await self.db.execute(query)
        quiz = result.scalar_one_or_none()
        if not quiz:
            raise NotFoundError("Quiz not found")
        return quiz

    async def _get_owned_attempt(self, attempt_id: int, user_id: int, for_update: bool = False) -> QuizAttempt:
        query = select(QuizAttempt).filter(
            QuizAttempt.id == attempt_id,
            QuizAttempt.user_id == user_id,
            QuizAttempt.live(),
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        attempt = result.scalar_one_or_none()
        if not attempt:
            raise NotFoundError("Quiz attempt not found")
        return attempt

    async def _get_active_attempt(self, attempt_id: int, user_id: int) -> QuizAttempt:
        result = await self.db.execute(
            select(QuizAttempt).filter(
                QuizAttempt.id == attempt_id,
                QuizAttempt.user_id == user_id,
                QuizAttempt.completed_at.is_(None),
                QuizAttempt.live(),
            )
        )
        attempt = result.scalar_one_or_none()
        if not attempt:
            raise NotFoundError("Active attempt not found")
        return attempt

    async def _live_answers(self, attempt_id: int) -> Dict[int, QuizAnswer]:
        result = await self.db.execute(
            select(QuizAnswer)
            .filter(QuizAnswer.attempt_id == attempt_id, QuizAnswer.live())
            .order_by(QuizAnswer.id)
        )
        return {answer.question_id: answer for answer in result.scalars().all()}

    async def _grade(self, question_id: int, points: Optional[int], answer: Dict[str, Any]) -> GradedAnswer:
        selected_option_id = answer.get("selected_option_id")
        option_is_correct = None
        if selected_option_id is not None:
            option = await self.questions.get_option(selected_option_id)
            if option is None:
                # Unknown option: answered, but nothing to reference
                logger.debug("Unknown option selected", question_id=question_id, option_id=selected_option_id)
                selected_option_id = None
            elif option.question_id == question_id:
                # An option from another question never counts as correct
                option_is_correct = option.is_correct

        return grade_answer(
            question_id=question_id,
            points=points,
            selected_option_id=selected_option_id,
            answer_text=answer.get("answer_text"),
            option_is_correct=option_is_correct,
        )

    def _record_answer(self, attempt: QuizAttempt, graded: GradedAnswer, previous: Optional[QuizAnswer]) -> QuizAnswer:
        """Store the graded answer as the single live row for its question."""
        is_flagged = False
        if previous is not None:
            is_flagged = previous.is_flagged
            previous.soft_delete()

        answer = QuizAnswer(
            attempt_id=attempt.id,
            question_id=graded.question_id,
            selected_option_id=graded.selected_option_id,
            answer_text=graded.answer_text,
            is_correct=graded.is_correct,
            points_earned=graded.points_earned,
            is_flagged=is_flagged,
        )
        self.db.add(answer)
        return answer

    @staticmethod
    def _is_available(quiz: Quiz, now: datetime) -> bool:
        if quiz.available_from and now < quiz.available_from:
            return False
        if quiz.available_until and now > quiz.available_until:
            return False
        return True

    async def start_attempt(self, quiz_id: int, user_id: int) -> Dict[str, Any]:
        quiz = await self._get_quiz(quiz_id)

        async with self._lock(f"start:{quiz_id}:{user_id}"):
            try:
                # Locks the enrollment row so concurrent starts are counted one at a time
                await self.enrollments.check_quiz_access(quiz_id, user_id, for_update=True)

                now = utcnow()
                if not self._is_available(quiz, now):
                    raise BadRequestError("Quiz is not available")

                if quiz.max_attempts is not None:
                    result = await self.db.execute(
                        select(func.count(QuizAttempt.id)).filter(
                            QuizAttempt.quiz_id == quiz_id,
                            QuizAttempt.user_id == user_id,
                            QuizAttempt.live(),
                        )
                    )
                    if result.scalar() >= quiz.max_attempts:
                        raise BadRequestError("Maximum attempts reached")

                result = await self.db.execute(
                    select(func.max(QuizAttempt.attempt_number)).filter(
                        QuizAttempt.quiz_id == quiz_id,
                        QuizAttempt.user_id == user_id,
                    )
                )
                attempt_number = (result.scalar() or 0) + 1

                points = await self.questions.get_question_points(quiz_id)
                max_score = sum(question_points(p) for p in points.values())

                attempt = QuizAttempt(
                    quiz_id=quiz_id,
                    user_id=user_id,
                    attempt_number=attempt_number,
                    max_score=max_score,
                    started_at=now,
                )
                self.db.add(attempt)
                await self.db.commit()
                await self.db.refresh(attempt)
            except Exception:
                await self.db.rollback()
                raise

        logger.info("Quiz attempt started", quiz_id=quiz_id, user_id=user_id,
                    attempt_id=attempt.id, attempt_number=attempt_number, max_score=max_score)
        return {
            "attempt_id": attempt.id,
            "quiz": {
                "id": quiz.id,
                "title_en": quiz.title_en,
                "title_ar": quiz.title_ar,
                "time_limit_minutes": quiz.time_limit_minutes,
                "shuffle_questions": quiz.shuffle_questions,
            },
            "attempt_number": attempt.attempt_number,
            "started_at": attempt.started_at,
        }

    async def get_questions_for_taking(self, quiz_id: int, user_id: int) -> Dict[str, Any]:
        result = await self.db.execute(
            select(QuizAttempt)
            .filter(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.user_id == user_id,
                QuizAttempt.completed_at.is_(None),
                QuizAttempt.live(),
            )
            .order_by(QuizAttempt.started_at.desc(), QuizAttempt.id.desc())
            .limit(1)
        )
        attempt = result.scalars().first()
        if not attempt:
            raise BadRequestError("No active attempt found. Please start the quiz first.")

        questions = await self.questions.get_quiz_questions(quiz_id)
        # Correctness stays hidden while the attempt is running
        options = await self.questions.get_options([q.id for q, _ in questions], include_correct=False)
        saved = await self._live_answers(attempt.id)

        return {
            "attempt_id": attempt.id,
            "quiz_id": quiz_id,
            "questions": [
                {
                    "id": q.id,
                    "question_type": q.question_type,
                    "question_text_en": q.question_text_en,
                    "question_text_ar": q.question_text_ar,
                    "points": question_points(q.points),
                    "display_order": display_order,
                    "options": options.get(q.id, []),
                }
                for q, display_order in questions
            ],
            "saved_answers": [
                {
                    "question_id": a.question_id,
                    "selected_option_id": a.selected_option_id,
                    "answer_text": a.answer_text,
                    "is_flagged": a.is_flagged,
                }
                for a in saved.values()
            ],
        }

    async def save_answer(self, attempt_id: int, user_id: int, answer: Dict[str, Any]) -> Dict[str, Any]:
        """Persist one answer while the attempt is running (save-as-you-go)."""
        async with self._lock(f"attempt:{attempt_id}"):
            try:
                attempt = await self._get_owned_attempt(attempt_id, user_id, for_update=True)
                if not attempt.is_in_progress:
                    raise BadRequestError("Quiz already submitted")

                question_id = answer.get("question_id")
                points = await self.questions.get_question_points(attempt.quiz_id)
                if question_id not in points:
                    raise BadRequestError("Question is not part of this quiz")

                existing = await self._live_answers(attempt.id)
                graded = await self._grade(question_id, points[question_id], answer)
                stored = self._record_answer(attempt, graded, existing.get(question_id))
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.debug("Answer saved", attempt_id=attempt_id, question_id=question_id)
        return {
            "question_id": stored.question_id,
            "selected_option_id": stored.selected_option_id,
            "answer_text": stored.answer_text,
            "is_flagged": stored.is_flagged,
        }

    async def submit_attempt(self, attempt_id: int, user_id: int, answers: List[Dict[str, Any]]) -> Dict[str, Any]:
        async with self._lock(f"attempt:{attempt_id}"):
            try:
                attempt = await self._get_owned_attempt(attempt_id, user_id, for_update=True)
                if not attempt.is_in_progress:
                    raise BadRequestError("Quiz already submitted")

                quiz = await self._get_quiz(attempt.quiz_id, live_only=False)
                points = await self.questions.get_question_points(attempt.quiz_id)
                existing = await self._live_answers(attempt.id)

                latest: Dict[int, Dict[str, Any]] = {}
                for answer in answers:
                    question_id = answer.get("question_id")
                    if question_id not in points:
                        # Not part of this quiz
                        logger.debug("Skipping unknown question", attempt_id=attempt_id, question_id=question_id)
                        continue
                    latest[question_id] = answer

                for question_id, answer in latest.items():
                    graded = await self._grade(question_id, points[question_id], answer)
                    existing[question_id] = self._record_answer(attempt, graded, existing.get(question_id))

                total_score = sum(a.points_earned for a in existing.values())
                passing_score = effective_passing_score(quiz.passing_score)

                attempt.score = total_score
                attempt.is_passed = is_passed(total_score, passing_score)
                attempt.completed_at = utcnow()
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info("Quiz attempt submitted", attempt_id=attempt_id, user_id=user_id,
                    score=total_score, max_score=attempt.max_score, is_passed=attempt.is_passed)
        return {
            "attempt_id": attempt.id,
            "score": total_score,
            "max_score": attempt.max_score,
            "is_passed": attempt.is_passed,
            "passing_score": passing_score,
        }

    async def auto_submit_expired(self, now: Optional[datetime] = None) -> int:
        """
        Finalize in-progress attempts whose time limit has run out.

        Scores only the answers already recorded; unanswered questions earn 0.
        Returns the number of attempts finalized.
        """
        now = now or utcnow()
        result = await self.db.execute(
            select(QuizAttempt, Quiz)
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .filter(
                QuizAttempt.completed_at.is_(None),
                QuizAttempt.live(),
                Quiz.time_limit_minutes.isnot(None),
            )
        )

        submitted = 0
        for attempt, quiz in result.all():
            elapsed_seconds = (now - attempt.started_at).total_seconds()
            if elapsed_seconds < quiz.time_limit_minutes * 60:
                continue

            total = await self.db.execute(
                select(func.coalesce(func.sum(QuizAnswer.points_earned), 0)).filter(
                    QuizAnswer.attempt_id == attempt.id,
                    QuizAnswer.live(),
                )
            )
            score = int(total.scalar())
            passed = is_passed(score, quiz.passing_score)

            # Conditional update: a submission that landed in the meantime wins
            finalized = await self.db.execute(
                update(QuizAttempt)
                .where(QuizAttempt.id == attempt.id, QuizAttempt.completed_at.is_(None))
                .values(
                    score=score,
                    is_passed=passed,
                    is_auto_submitted=True,
                    completed_at=now,
                    updated_at=now,
                )
            )
            if finalized.rowcount:
                submitted += 1
                logger.info("Expired attempt auto-submitted", attempt_id=attempt.id,
                            user_id=attempt.user_id, quiz_id=quiz.id, score=score)

        await self.db.commit()
        return submitted

    async def get_time_remaining(self, attempt_id: int, user_id: int) -> Optional[int]:
        """Seconds left on the attempt, or None when the quiz is untimed."""
        attempt = await self._get_active_attempt(attempt_id, user_id)
        quiz = await self._get_quiz(attempt.quiz_id, live_only=False)
        if quiz.time_limit_minutes is None:
            return None

        elapsed = (utcnow() - attempt.started_at).total_seconds()
        return max(0, int(quiz.time_limit_minutes * 60 - elapsed))

    async def pause_attempt(self, attempt_id: int, user_id: int):
        # Placeholder: the attempt clock keeps running, only the row is touched
        attempt = await self._get_active_attempt(attempt_id, user_id)
        attempt.updated_at = utcnow()
        await self.db.commit()
        logger.info("Quiz attempt paused", attempt_id=attempt_id, user_id=user_id)

    async def resume_attempt(self, attempt_id: int, user_id: int):
        attempt = await self._get_active_attempt(attempt_id, user_id)
        attempt.updated_at = utcnow()
        await self.db.commit()
        logger.info("Quiz attempt resumed", attempt_id=attempt_id, user_id=user_id)

    async def flag_for_review(self, attempt_id: int, question_id: int, user_id: int) -> bool:
        """Toggle the review flag on a question of a running attempt. Returns the new flag."""
        async with self._lock(f"attempt:{attempt_id}"):
            try:
                attempt = await self._get_owned_attempt(attempt_id, user_id, for_update=True)
                if not attempt.is_in_progress:
                    raise NotFoundError("Active attempt not found")

                points = await self.questions.get_question_points(attempt.quiz_id)
                if question_id not in points:
                    raise NotFoundError("Question not found in this quiz")

                existing = await self._live_answers(attempt.id)
                answer = existing.get(question_id)
                if answer is None:
                    answer = QuizAnswer(
                        attempt_id=attempt.id,
                        question_id=question_id,
                        is_correct=False,
                        points_earned=0,
                        is_flagged=True,
                    )
                    self.db.add(answer)
                else:
                    answer.is_flagged = not answer.is_flagged

                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        logger.info("Question flag toggled", attempt_id=attempt_id, question_id=question_id, flagged=answer.is_flagged)
        return answer.is_flagged

    async def get_student_attempts(self, user_id: int) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(QuizAttempt, Quiz.title_en, Quiz.title_ar)
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .filter(QuizAttempt.user_id == user_id, QuizAttempt.live())
            .order_by(QuizAttempt.started_at.desc(), QuizAttempt.id.desc())
        )
        attempts = []
        for attempt, title_en, title_ar in result.all():
            item = attempt_to_dict(attempt)
            item["quiz_title_en"] = title_en
            item["quiz_title_ar"] = title_ar
            attempts.append(item)
        return attempts
