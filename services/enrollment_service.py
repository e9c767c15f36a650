from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from models.base import utcnow
from models.course import Course, CourseSection, Enrollment
from models.quiz import Quiz
from core.exceptions import NotFoundError, ForbiddenError
from core.logger import logger

class EnrollmentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_quiz_course_id(self, quiz_id: int) -> Optional[int]:
        """Resolve quiz -> section -> course, skipping anything soft-deleted."""
        result = await self.db.execute(
            select(Course.id)
            .select_from(Quiz)
            .join(CourseSection, Quiz.section_id == CourseSection.id)
            .join(Course, CourseSection.course_id == Course.id)
            .filter(
                Quiz.id == quiz_id,
                Quiz.live(),
                CourseSection.live(),
                Course.live(),
            )
        )
        return result.scalar_one_or_none()

    async def get_active_enrollment(self, user_id: int, course_id: int, for_update: bool = False) -> Optional[Enrollment]:
        query = select(Enrollment).filter(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
            Enrollment.status == "active",
            Enrollment.live(),
            or_(Enrollment.expires_at.is_(None), Enrollment.expires_at > utcnow()),
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query.limit(1))
        return result.scalars().first()

    async def check_quiz_access(self, quiz_id: int, user_id: int, for_update: bool = False) -> int:
        """
        Verify the user may take the quiz and return the owning course id.

        With ``for_update`` the enrollment row stays locked until the caller
        commits, which serializes attempt creation per user and course.
        """
        course_id = await self.get_quiz_course_id(quiz_id)
        if course_id is None:
            raise NotFoundError("Quiz not found")

        enrollment = await self.get_active_enrollment(user_id, course_id, for_update=for_update)
        if not enrollment:
            logger.info("Quiz access denied - not enrolled", quiz_id=quiz_id, user_id=user_id, course_id=course_id)
            raise ForbiddenError("You are not enrolled in this course")

        return course_id
