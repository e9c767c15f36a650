from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from models.course import Course, CourseSection, Lesson
from models.quiz import Quiz, QuizQuestion
from models.question import Question, QuestionOption, QUESTION_TYPES
from models.base import to_naive_utc
from services.question_store import QuestionStore
from services.grading import question_points
from core.exceptions import NotFoundError, ForbiddenError, BadRequestError
from core.logger import logger

QUIZ_FIELDS = (
    "lesson_id", "title_en", "title_ar", "description_en", "description_ar",
    "time_limit_minutes", "max_attempts", "passing_score", "shuffle_questions",
    "show_correct_answers", "available_from", "available_until",
)
# Columns that cannot be cleared once set
REQUIRED_QUIZ_FIELDS = ("title_en", "shuffle_questions", "show_correct_answers")
WINDOW_FIELDS = ("available_from", "available_until")


def _quiz_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Known quiz fields only, with the availability window stored as naive UTC."""
    values = {key: value for key, value in fields.items() if key in QUIZ_FIELDS}
    for key in WINDOW_FIELDS:
        if key in values:
            values[key] = to_naive_utc(values[key])
    return values


class QuizService:
    """Instructor-side quiz authoring. Every operation checks course ownership."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.questions = QuestionStore(db)

    async def _get_owned_section(self, section_id: int, instructor_id: int) -> CourseSection:
        result = await self.db.execute(
            select(CourseSection, Course.instructor_id)
            .join(Course, CourseSection.course_id == Course.id)
            .filter(CourseSection.id == section_id, CourseSection.live(), Course.live())
        )
        row = result.first()
        if not row:
            raise NotFoundError("Section not found")
        section, owner_id = row
        if owner_id != instructor_id:
            raise ForbiddenError("You do not have permission to manage this course")
        return section

    async def _get_owned_quiz(self, quiz_id: int, instructor_id: int) -> Quiz:
        result = await self.db.execute(select(Quiz).filter(Quiz.id == quiz_id, Quiz.live()))
        quiz = result.scalar_one_or_none()
        if not quiz:
            raise NotFoundError("Quiz not found")
        await self._get_owned_section(quiz.section_id, instructor_id)
        return quiz

    async def _check_lesson(self, lesson_id: Optional[int], section_id: int):
        if lesson_id is None:
            return
        result = await self.db.execute(
            select(Lesson.id).filter(Lesson.id == lesson_id, Lesson.section_id == section_id, Lesson.live())
        )
        if result.scalar_one_or_none() is None:
            raise BadRequestError("Lesson does not belong to this section")

    async def create_quiz(self, instructor_id: int, section_id: int, title_en: str, **fields) -> Quiz:
        await self._get_owned_section(section_id, instructor_id)
        await self._check_lesson(fields.get("lesson_id"), section_id)

        quiz = Quiz(section_id=section_id, title_en=title_en)
        for key, value in _quiz_values(fields).items():
            if value is not None:
                setattr(quiz, key, value)
        self.db.add(quiz)
        await self.db.commit()
        await self.db.refresh(quiz)
        logger.info("Quiz created", quiz_id=quiz.id, section_id=section_id, instructor_id=instructor_id)
        return quiz

    async def get_quiz(self, quiz_id: int, instructor_id: int) -> Quiz:
        return await self._get_owned_quiz(quiz_id, instructor_id)

    async def get_section_quizzes(self, section_id: int, instructor_id: int) -> List[Quiz]:
        await self._get_owned_section(section_id, instructor_id)
        result = await self.db.execute(
            select(Quiz).filter(Quiz.section_id == section_id, Quiz.live()).order_by(Quiz.created_at, Quiz.id)
        )
        return list(result.scalars().all())

    async def update_quiz(self, quiz_id: int, instructor_id: int, **fields) -> Quiz:
        """Update the given quiz fields; unknown keys are ignored."""
        quiz = await self._get_owned_quiz(quiz_id, instructor_id)
        values = _quiz_values(fields)
        cleared = [key for key in REQUIRED_QUIZ_FIELDS if key in values and values[key] is None]
        if cleared:
            raise BadRequestError(f"Fields cannot be null: {', '.join(cleared)}")
        if "lesson_id" in values:
            await self._check_lesson(values["lesson_id"], quiz.section_id)

        for key, value in values.items():
            setattr(quiz, key, value)
        await self.db.commit()
        await self.db.refresh(quiz)
        logger.info("Quiz updated", quiz_id=quiz_id, instructor_id=instructor_id, fields=list(fields.keys()))
        return quiz

    async def delete_quiz(self, quiz_id: int, instructor_id: int):
        quiz = await self._get_owned_quiz(quiz_id, instructor_id)
        quiz.soft_delete()
        await self.db.commit()
        logger.info("Quiz deleted", quiz_id=quiz_id, instructor_id=instructor_id)

    async def create_question(
        self,
        instructor_id: int,
        question_type: str,
        question_text_en: str,
        course_id: Optional[int] = None,
        points: Optional[int] = 1,
        options: Optional[List[Dict[str, Any]]] = None,
        **fields,
    ) -> Question:
        """Add a question (and its options) to the course bank, or the general pool when course_id is None."""
        if question_type not in QUESTION_TYPES:
            raise BadRequestError(f"Unknown question type: {question_type}")

        if course_id is not None:
            result = await self.db.execute(select(Course).filter(Course.id == course_id, Course.live()))
            course = result.scalar_one_or_none()
            if not course:
                raise NotFoundError("Course not found")
            if course.instructor_id != instructor_id:
                raise ForbiddenError("You do not have permission to manage this course")

        options = options or []
        if question_type == "essay" and options:
            raise BadRequestError("Essay questions cannot have options")
        if question_type != "essay":
            if len(options) < 2:
                raise BadRequestError("Choice questions need at least two options")
            if not any(o.get("is_correct") for o in options):
                raise BadRequestError("At least one option must be correct")

        question = Question(
            course_id=course_id,
            question_type=question_type,
            question_text_en=question_text_en,
            question_text_ar=fields.get("question_text_ar"),
            explanation_en=fields.get("explanation_en"),
            explanation_ar=fields.get("explanation_ar"),
            points=points,
        )
        self.db.add(question)
        await self.db.flush()

        for order, option in enumerate(options):
            self.db.add(QuestionOption(
                question_id=question.id,
                option_text_en=option["option_text_en"],
                option_text_ar=option.get("option_text_ar"),
                is_correct=bool(option.get("is_correct")),
                display_order=option.get("display_order", order),
            ))

        await self.db.commit()
        await self.db.refresh(question)
        logger.info("Question created", question_id=question.id, course_id=course_id, type=question_type)
        return question

    async def add_question_to_quiz(self, quiz_id: int, question_id: int, instructor_id: int,
                                   display_order: Optional[int] = None) -> QuizQuestion:
        quiz = await self._get_owned_quiz(quiz_id, instructor_id)
        section = await self._get_owned_section(quiz.section_id, instructor_id)

        result = await self.db.execute(select(Question).filter(Question.id == question_id, Question.live()))
        question = result.scalar_one_or_none()
        if not question:
            raise NotFoundError("Question not found")
        if question.course_id is not None and question.course_id != section.course_id:
            raise BadRequestError("Question belongs to another course")

        result = await self.db.execute(
            select(QuizQuestion.id).filter(
                QuizQuestion.quiz_id == quiz_id,
                QuizQuestion.question_id == question_id,
                QuizQuestion.live(),
            )
        )
        if result.scalar_one_or_none() is not None:
            raise BadRequestError("Question is already part of this quiz")

        if display_order is None:
            result = await self.db.execute(
                select(func.max(QuizQuestion.display_order)).filter(QuizQuestion.quiz_id == quiz_id, QuizQuestion.live())
            )
            current = result.scalar()
            display_order = 0 if current is None else current + 1

        link = QuizQuestion(quiz_id=quiz_id, question_id=question_id, display_order=display_order)
        self.db.add(link)
        await self.db.commit()
        await self.db.refresh(link)
        logger.info("Question added to quiz", quiz_id=quiz_id, question_id=question_id)
        return link

    async def remove_question_from_quiz(self, quiz_id: int, question_id: int, instructor_id: int):
        """Detach a question; the question itself stays in the bank."""
        await self._get_owned_quiz(quiz_id, instructor_id)
        result = await self.db.execute(
            select(QuizQuestion).filter(
                QuizQuestion.quiz_id == quiz_id,
                QuizQuestion.question_id == question_id,
                QuizQuestion.live(),
            )
        )
        link = result.scalar_one_or_none()
        if not link:
            raise NotFoundError("Question not found in this quiz")

        link.soft_delete()
        await self.db.commit()
        logger.info("Question removed from quiz", quiz_id=quiz_id, question_id=question_id)

    async def get_quiz_questions(self, quiz_id: int, instructor_id: int) -> List[Dict[str, Any]]:
        await self._get_owned_quiz(quiz_id, instructor_id)
        questions = await self.questions.get_quiz_questions(quiz_id)
        options = await self.questions.get_options([q.id for q, _ in questions], include_correct=True)
        return [
            {
                "id": q.id,
                "question_type": q.question_type,
                "question_text_en": q.question_text_en,
                "question_text_ar": q.question_text_ar,
                "explanation_en": q.explanation_en,
                "points": question_points(q.points),
                "display_order": display_order,
                "options": options.get(q.id, []),
            }
            for q, display_order in questions
        ]
