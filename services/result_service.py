from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.user import User
from models.course import Course, CourseSection
from models.quiz import Quiz
from models.question import Question
from models.attempt import QuizAttempt, QuizAnswer
from services.attempt_service import attempt_to_dict
from services.question_store import QuestionStore
from services.grading import question_points, effective_passing_score
from core.exceptions import NotFoundError, ForbiddenError
from core.config import settings
from core.logger import logger


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "full_name": user.full_name,
    }


class ResultService:
    """
    Shapes finished (or running) attempts for the student and instructor views.

    Students see option correctness only when the quiz allows it and the
    attempt is completed. Instructors always see it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.questions = QuestionStore(db)

    async def _load_answers(self, attempt_id: int, with_options: bool) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(QuizAnswer, Question)
            .join(Question, QuizAnswer.question_id == Question.id)
            .filter(QuizAnswer.attempt_id == attempt_id, QuizAnswer.live())
            .order_by(QuizAnswer.id)
        )
        rows = result.all()

        options = {}
        if with_options:
            options = await self.questions.get_options([q.id for _, q in rows], include_correct=True)

        answers = []
        for answer, question in rows:
            item = {
                "id": answer.id,
                "question_id": question.id,
                "question_type": question.question_type,
                "question_text_en": question.question_text_en,
                "question_text_ar": question.question_text_ar,
                "selected_option_id": answer.selected_option_id,
                "answer_text": answer.answer_text,
                "is_correct": answer.is_correct,
                "points_earned": answer.points_earned,
                "max_points": question_points(question.points),
                "is_flagged": answer.is_flagged,
            }
            if with_options:
                item["explanation_en"] = question.explanation_en
                item["explanation_ar"] = question.explanation_ar
                item["options"] = options.get(question.id, [])
            answers.append(item)
        return answers

    async def get_student_result(self, attempt_id: int, user_id: int) -> Dict[str, Any]:
        result = await self.db.execute(
            select(QuizAttempt, Quiz)
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .filter(
                QuizAttempt.id == attempt_id,
                QuizAttempt.user_id == user_id,
                QuizAttempt.live(),
            )
        )
        row = result.first()
        if not row:
            raise NotFoundError("Quiz attempt not found")
        attempt, quiz = row

        reveal = bool(quiz.show_correct_answers) and not attempt.is_in_progress
        data = attempt_to_dict(attempt)
        data.update({
            "quiz_title_en": quiz.title_en,
            "quiz_title_ar": quiz.title_ar,
            "passing_score": effective_passing_score(quiz.passing_score),
            "show_correct_answers": reveal,
            "answers": await self._load_answers(attempt.id, with_options=reveal),
        })
        return data

    async def _get_instructor_attempt(self, attempt_id: int, instructor_id: int) -> Tuple[QuizAttempt, Quiz, Course, User]:
        result = await self.db.execute(
            select(QuizAttempt, Quiz, Course, User)
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .join(CourseSection, Quiz.section_id == CourseSection.id)
            .join(Course, CourseSection.course_id == Course.id)
            .join(User, QuizAttempt.user_id == User.id)
            .filter(QuizAttempt.id == attempt_id, QuizAttempt.live())
        )
        row = result.first()
        if not row:
            raise NotFoundError("Quiz attempt not found")
        attempt, quiz, course, user = row

        if course.instructor_id != instructor_id:
            logger.warning("Attempt access denied", attempt_id=attempt_id, instructor_id=instructor_id)
            raise ForbiddenError("You do not have permission to view this attempt")
        return attempt, quiz, course, user

    async def get_instructor_attempt_details(self, attempt_id: int, instructor_id: int) -> Dict[str, Any]:
        attempt, quiz, course, user = await self._get_instructor_attempt(attempt_id, instructor_id)

        data = attempt_to_dict(attempt)
        data.update({
            "quiz_title_en": quiz.title_en,
            "passing_score": effective_passing_score(quiz.passing_score),
            "course_id": course.id,
            "course_title_en": course.title_en,
            "user": user_to_dict(user),
            # Correctness is always visible to the course instructor
            "answers": await self._load_answers(attempt.id, with_options=True),
        })
        return data

    async def _list_attempts(self, *conditions, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = (
            select(QuizAttempt, Quiz, Course, User)
            .join(Quiz, QuizAttempt.quiz_id == Quiz.id)
            .join(CourseSection, Quiz.section_id == CourseSection.id)
            .join(Course, CourseSection.course_id == Course.id)
            .join(User, QuizAttempt.user_id == User.id)
            .filter(QuizAttempt.live(), *conditions)
            .order_by(QuizAttempt.completed_at.desc().nulls_last(), QuizAttempt.id.desc())
        )
        if limit:
            query = query.limit(limit)

        result = await self.db.execute(query)
        attempts = []
        for attempt, quiz, course, user in result.all():
            item = attempt_to_dict(attempt)
            item.update({
                "quiz_title_en": quiz.title_en,
                "course_id": course.id,
                "course_title_en": course.title_en,
                "user": user_to_dict(user),
            })
            attempts.append(item)
        return attempts

    async def list_quiz_attempts(self, quiz_id: int, instructor_id: int) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Course.instructor_id)
            .select_from(Quiz)
            .join(CourseSection, Quiz.section_id == CourseSection.id)
            .join(Course, CourseSection.course_id == Course.id)
            .filter(Quiz.id == quiz_id, Quiz.live())
        )
        row = result.first()
        if not row:
            raise NotFoundError("Quiz not found")
        if row.instructor_id != instructor_id:
            raise ForbiddenError("You do not have permission to view these attempts")

        return await self._list_attempts(QuizAttempt.quiz_id == quiz_id)

    async def list_instructor_attempts(self, instructor_id: int, course_id: Optional[int] = None) -> List[Dict[str, Any]]:
        conditions = [Course.instructor_id == instructor_id]
        if course_id:
            conditions.append(Course.id == course_id)
        return await self._list_attempts(*conditions, limit=settings.INSTRUCTOR_ATTEMPTS_LIMIT)

    async def review_attempt(self, attempt_id: int, instructor_id: int, feedback: str, notes: Optional[str] = None) -> Dict[str, Any]:
        # Ownership check only; there is no review storage yet
        await self._get_instructor_attempt(attempt_id, instructor_id)
        logger.info("Attempt reviewed", attempt_id=attempt_id, instructor_id=instructor_id)
        return {
            "message": "Review added successfully",
            "attempt_id": attempt_id,
            "feedback": feedback,
            "notes": notes,
        }
