from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import NotFoundError, ForbiddenError, BadRequestError
from services.quiz_service import QuizService
from services.attempt_service import AttemptService
from models.base import utcnow

CHOICES = [
    {"option_text_en": "4", "is_correct": True},
    {"option_text_en": "5", "is_correct": False},
]


async def test_create_and_update_quiz(db, seed):
    service = QuizService(db)
    quiz = await service.create_quiz(
        seed.instructor.id, seed.section.id, "Checkpoint",
        lesson_id=seed.lesson.id, max_attempts=3, passing_score=None,
    )

    assert quiz.title_en == "Checkpoint"
    assert quiz.lesson_id == seed.lesson.id
    assert quiz.max_attempts == 3
    assert quiz.passing_score == 60
    assert quiz.show_correct_answers is True

    updated = await service.update_quiz(quiz.id, seed.instructor.id, title_en="Checkpoint 1",
                                        time_limit_minutes=20, unknown_field="ignored")
    assert updated.title_en == "Checkpoint 1"
    assert updated.time_limit_minutes == 20

    quizzes = await service.get_section_quizzes(seed.section.id, seed.instructor.id)
    assert [q.id for q in quizzes] == [seed.quiz.id, quiz.id]


async def test_create_quiz_requires_ownership(db, seed):
    with pytest.raises(ForbiddenError):
        await QuizService(db).create_quiz(seed.other_instructor.id, seed.section.id, "Hijack")
    with pytest.raises(NotFoundError):
        await QuizService(db).create_quiz(seed.instructor.id, 4242, "Nowhere")


async def test_create_quiz_rejects_lesson_of_other_section(db, seed):
    with pytest.raises(BadRequestError):
        await QuizService(db).create_quiz(seed.instructor.id, seed.section.id, "Bad", lesson_id=4242)


async def test_deleted_quiz_cannot_be_started(db, seed, make_question):
    await make_question(seed.quiz.id)
    service = QuizService(db)
    await service.delete_quiz(seed.quiz.id, seed.instructor.id)

    with pytest.raises(NotFoundError):
        await service.get_quiz(seed.quiz.id, seed.instructor.id)
    with pytest.raises(NotFoundError):
        await AttemptService(db).start_attempt(seed.quiz.id, seed.student.id)


async def test_create_question_validation(db, seed):
    service = QuizService(db)

    with pytest.raises(BadRequestError, match="Unknown question type"):
        await service.create_question(seed.instructor.id, "matching", "Match these")
    with pytest.raises(BadRequestError, match="at least two options"):
        await service.create_question(seed.instructor.id, "multiple_choice", "2 + 2?", options=CHOICES[:1])
    with pytest.raises(BadRequestError, match="must be correct"):
        await service.create_question(seed.instructor.id, "true_false", "1 = 2?", options=[
            {"option_text_en": "True"}, {"option_text_en": "False"},
        ])
    with pytest.raises(BadRequestError, match="cannot have options"):
        await service.create_question(seed.instructor.id, "essay", "Explain", options=CHOICES)
    with pytest.raises(ForbiddenError):
        await service.create_question(seed.other_instructor.id, "essay", "Explain", course_id=seed.course.id)


async def test_build_quiz_and_take_it(db, seed):
    service = QuizService(db)
    choice = await service.create_question(seed.instructor.id, "multiple_choice", "2 + 2?",
                                           course_id=seed.course.id, points=2, options=CHOICES)
    essay = await service.create_question(seed.instructor.id, "essay", "Explain your answer")

    await service.add_question_to_quiz(seed.quiz.id, choice.id, seed.instructor.id)
    await service.add_question_to_quiz(seed.quiz.id, essay.id, seed.instructor.id)

    questions = await service.get_quiz_questions(seed.quiz.id, seed.instructor.id)
    assert [q["id"] for q in questions] == [choice.id, essay.id]
    assert [o["is_correct"] for o in questions[0]["options"]] == [True, False]
    assert questions[1]["options"] == []

    started = await AttemptService(db).start_attempt(seed.quiz.id, seed.student.id)
    taking = await AttemptService(db).get_questions_for_taking(seed.quiz.id, seed.student.id)
    assert taking["attempt_id"] == started["attempt_id"]
    assert [q["points"] for q in taking["questions"]] == [2, 1]


async def test_add_question_rules(db, seed):
    service = QuizService(db)
    question = await service.create_question(seed.instructor.id, "true_false", "0 is even", options=[
        {"option_text_en": "True", "is_correct": True}, {"option_text_en": "False"},
    ])
    link = await service.add_question_to_quiz(seed.quiz.id, question.id, seed.instructor.id)
    assert link.display_order == 0

    with pytest.raises(BadRequestError, match="already part"):
        await service.add_question_to_quiz(seed.quiz.id, question.id, seed.instructor.id)
    with pytest.raises(NotFoundError):
        await service.add_question_to_quiz(seed.quiz.id, 4242, seed.instructor.id)
    with pytest.raises(ForbiddenError):
        await service.add_question_to_quiz(seed.quiz.id, question.id, seed.other_instructor.id)


async def test_remove_question_keeps_bank_entry(db, seed):
    service = QuizService(db)
    question = await service.create_question(seed.instructor.id, "essay", "Describe a line")
    await service.add_question_to_quiz(seed.quiz.id, question.id, seed.instructor.id)

    await service.remove_question_from_quiz(seed.quiz.id, question.id, seed.instructor.id)

    assert await service.get_quiz_questions(seed.quiz.id, seed.instructor.id) == []
    # The bank entry can be attached again
    await service.add_question_to_quiz(seed.quiz.id, question.id, seed.instructor.id)
    with pytest.raises(NotFoundError):
        await service.remove_question_from_quiz(seed.quiz.id, 4242, seed.instructor.id)


async def test_availability_window_stored_as_utc(db, seed, make_question):
    service = QuizService(db)
    tashkent = timezone(timedelta(hours=5))
    opened = datetime.now(tashkent) - timedelta(hours=1)
    closes = datetime.now(tashkent) + timedelta(hours=1)

    quiz = await service.create_quiz(seed.instructor.id, seed.section.id, "Windowed",
                                     available_from=opened, available_until=closes)

    assert quiz.available_from.tzinfo is None
    assert abs(quiz.available_from - (utcnow() - timedelta(hours=1))) < timedelta(minutes=1)
    await make_question(quiz.id)
    started = await AttemptService(db).start_attempt(quiz.id, seed.student.id)
    assert started["attempt_number"] == 1

    # Moving the window an hour ahead, again with an offset, closes the quiz
    later = datetime.now(tashkent) + timedelta(hours=1)
    updated = await service.update_quiz(quiz.id, seed.instructor.id, available_from=later, available_until=None)
    assert abs(updated.available_from - (utcnow() + timedelta(hours=1))) < timedelta(minutes=1)
    assert updated.available_until is None
    with pytest.raises(BadRequestError, match="not available"):
        await AttemptService(db).start_attempt(quiz.id, seed.student.id)


async def test_update_quiz_rejects_null_required_fields(db, seed):
    service = QuizService(db)

    for field in ("title_en", "shuffle_questions", "show_correct_answers"):
        with pytest.raises(BadRequestError, match=field):
            await service.update_quiz(seed.quiz.id, seed.instructor.id, **{field: None})

    # Optional fields can still be cleared
    updated = await service.update_quiz(seed.quiz.id, seed.instructor.id, time_limit_minutes=None, title_ar=None)
    assert updated.time_limit_minutes is None
    assert updated.title_en == "Unit 1 Quiz"
