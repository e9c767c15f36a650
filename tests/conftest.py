"""
Pytest configuration and fixtures for course quiz tests.
"""
import sys
import os
from datetime import timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from models.base import Base, utcnow
from models.user import User
from models.course import Course, CourseSection, Lesson, Enrollment
from models.question import Question, QuestionOption
from models.quiz import Quiz, QuizQuestion
import models.attempt  # noqa: F401  registers quiz_attempts / quiz_answers

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test; StaticPool keeps every session on one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        # SQLite leaves FK enforcement off unless asked, PostgreSQL always enforces
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_question(db):
    """Create a question with options and attach it to a quiz."""
    async def _make(quiz_id, question_type="multiple_choice", points=1, options=None,
                    display_order=0, course_id=None, text="Question"):
        if options is None and question_type != "essay":
            options = [("Right", True), ("Wrong", False)]
        question = Question(
            course_id=course_id,
            question_type=question_type,
            question_text_en=text,
            explanation_en=f"Explanation for {text}",
            points=points,
        )
        db.add(question)
        await db.flush()

        created = []
        for order, (option_text, is_correct) in enumerate(options or []):
            option = QuestionOption(
                question_id=question.id,
                option_text_en=option_text,
                is_correct=is_correct,
                display_order=order,
            )
            db.add(option)
            created.append(option)

        db.add(QuizQuestion(quiz_id=quiz_id, question_id=question.id, display_order=display_order))
        await db.commit()
        return SimpleNamespace(question=question, options=created,
                               right=next((o for o in created if o.is_correct), None),
                               wrong=next((o for o in created if not o.is_correct), None))
    return _make


@pytest_asyncio.fixture
async def seed(db):
    """
    One course owned by ``instructor`` with a single section and a timed quiz.
    ``student`` is enrolled, ``outsider`` is not.
    """
    instructor = User(username="instructor", email="instructor@example.com", full_name="Dana Instructor")
    other_instructor = User(username="other_instructor")
    student = User(username="student", email="student@example.com", full_name="Sam Student")
    outsider = User(username="outsider")
    db.add_all([instructor, other_instructor, student, outsider])
    await db.flush()

    course = Course(instructor_id=instructor.id, title_en="Algebra", title_ar="الجبر")
    db.add(course)
    await db.flush()

    section = CourseSection(course_id=course.id, title_en="Linear equations", display_order=0)
    db.add(section)
    await db.flush()

    lesson = Lesson(section_id=section.id, title_en="Solving for x")
    db.add(lesson)

    enrollment = Enrollment(user_id=student.id, course_id=course.id, status="active")
    db.add(enrollment)

    quiz = Quiz(
        section_id=section.id,
        title_en="Unit 1 Quiz",
        title_ar="اختبار الوحدة 1",
        time_limit_minutes=60,
        passing_score=1,
        show_correct_answers=True,
    )
    db.add(quiz)
    await db.commit()

    return SimpleNamespace(
        instructor=instructor,
        other_instructor=other_instructor,
        student=student,
        outsider=outsider,
        course=course,
        section=section,
        lesson=lesson,
        enrollment=enrollment,
        quiz=quiz,
    )


@pytest.fixture
def minutes_ago():
    def _ago(minutes):
        return utcnow() - timedelta(minutes=minutes)
    return _ago
