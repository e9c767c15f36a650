from fastapi import FastAPI, HTTPException, Depends, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import structlog
import time

from core.config import settings
from core.exceptions import QuizError
from db.session import get_db, get_redis
from services.attempt_service import AttemptService
from services.result_service import ResultService
from services.quiz_service import QuizService
from api.auth import get_current_user
from api.schemas import (
    StartAttemptResponse,
    QuestionsForTakingResponse,
    AnswerIn,
    SavedAnswer,
    SubmitAttemptRequest,
    SubmitAttemptResponse,
    TimeRemainingResponse,
    FlagResponse,
    MessageResponse,
    MyAttempt,
    StudentResultResponse,
    InstructorAttemptItem,
    InstructorAttemptDetails,
    ReviewRequest,
    ReviewResponse,
    QuizCreate,
    QuizUpdate,
    QuizOut,
    QuestionCreate,
    QuestionOut,
    QuizQuestionAdd,
    InstructorQuestion,
)

logger = structlog.get_logger()

# API Documentation
API_DESCRIPTION = """
## Course Quiz API

Quiz attempts for enrolled students and attempt review for course instructors.

### Authentication

Every endpoint except `/health` requires a signed user token:

- Header: `X-Auth-Token: <token>`
- Or: `Authorization: Bearer <token>`

### Attempt lifecycle

1. `POST /api/quizzes/{quiz_id}/start` opens an attempt.
2. `GET /api/quizzes/{quiz_id}/questions` returns the questions without correct answers.
3. `POST /api/quizzes/attempts/{attempt_id}/answers` saves answers as you go (optional).
4. `POST /api/quizzes/attempts/{attempt_id}/submit` scores and closes the attempt.

Timed attempts that are never submitted are closed automatically once the time limit passes.
"""

TAGS_METADATA = [
    {
        "name": "attempts",
        "description": "Start, answer, submit and review your own quiz attempts.",
    },
    {
        "name": "instructor",
        "description": "Quiz authoring and attempt review for course instructors.",
    },
    {
        "name": "info",
        "description": "Service health.",
    },
]

app = FastAPI(
    title=settings.APP_NAME,
    description=API_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    logger.info(
        "Request handled",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
        duration=round(duration, 3),
    )
    return response


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    """Render domain errors (not found, forbidden, bad request) consistently"""
    logger.info("Request rejected", path=request.url.path, error=exc.error, message=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error,
            "message": exc.message,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Format HTTP exceptions consistently"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors gracefully"""
    logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "detail": str(exc) if settings.DEBUG else None,
        },
    )


@app.get("/health", tags=["info"], summary="Health check")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time(),
    }


# === Student endpoints ===

@app.post(
    "/api/quizzes/{quiz_id}/start",
    response_model=StartAttemptResponse,
    status_code=201,
    tags=["attempts"],
    summary="Start a quiz attempt",
    responses={
        400: {"description": "Maximum attempts reached or quiz not available"},
        403: {"description": "Not enrolled in the course"},
        404: {"description": "Quiz not found"},
    },
)
async def start_attempt(
    quiz_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis = Depends(get_redis),
):
    service = AttemptService(db, redis=redis)
    return await service.start_attempt(quiz_id, user_id)


@app.get(
    "/api/quizzes/my-attempts",
    response_model=List[MyAttempt],
    tags=["attempts"],
    summary="List my quiz attempts",
)
async def my_attempts(user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await AttemptService(db).get_student_attempts(user_id)


@app.get(
    "/api/quizzes/{quiz_id}/questions",
    response_model=QuestionsForTakingResponse,
    tags=["attempts"],
    summary="Get quiz questions for taking",
    description="Questions and options of the active attempt. Correct answers are never included.",
    responses={400: {"description": "No active attempt found"}},
)
async def get_questions(quiz_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await AttemptService(db).get_questions_for_taking(quiz_id, user_id)


@app.post(
    "/api/quizzes/attempts/{attempt_id}/answers",
    response_model=SavedAnswer,
    tags=["attempts"],
    summary="Save a single answer",
    responses={
        400: {"description": "Attempt already submitted or question not in quiz"},
        404: {"description": "Attempt not found"},
    },
)
async def save_answer(
    attempt_id: int,
    answer: AnswerIn,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis = Depends(get_redis),
):
    service = AttemptService(db, redis=redis)
    return await service.save_answer(attempt_id, user_id, answer.model_dump())


@app.post(
    "/api/quizzes/attempts/{attempt_id}/submit",
    response_model=SubmitAttemptResponse,
    tags=["attempts"],
    summary="Submit quiz answers",
    responses={
        400: {"description": "Quiz already submitted"},
        404: {"description": "Attempt not found"},
    },
)
async def submit_attempt(
    attempt_id: int,
    submission: SubmitAttemptRequest,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis = Depends(get_redis),
):
    service = AttemptService(db, redis=redis)
    answers = [a.model_dump() for a in submission.answers]
    return await service.submit_attempt(attempt_id, user_id, answers)


@app.get(
    "/api/quizzes/attempts/{attempt_id}/result",
    response_model=StudentResultResponse,
    tags=["attempts"],
    summary="Get quiz attempt result",
    responses={404: {"description": "Attempt not found"}},
)
async def get_result(attempt_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await ResultService(db).get_student_result(attempt_id, user_id)


@app.post(
    "/api/quizzes/attempts/{attempt_id}/pause",
    response_model=MessageResponse,
    tags=["attempts"],
    summary="Pause a quiz attempt",
    responses={404: {"description": "Active attempt not found"}},
)
async def pause_attempt(attempt_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await AttemptService(db).pause_attempt(attempt_id, user_id)
    return {"message": "Quiz attempt paused"}


@app.post(
    "/api/quizzes/attempts/{attempt_id}/resume",
    response_model=MessageResponse,
    tags=["attempts"],
    summary="Resume a paused quiz attempt",
    responses={404: {"description": "Active attempt not found"}},
)
async def resume_attempt(attempt_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await AttemptService(db).resume_attempt(attempt_id, user_id)
    return {"message": "Quiz attempt resumed"}


@app.get(
    "/api/quizzes/attempts/{attempt_id}/time-remaining",
    response_model=TimeRemainingResponse,
    tags=["attempts"],
    summary="Get remaining time for a quiz attempt",
    responses={404: {"description": "Active attempt not found"}},
)
async def time_remaining(attempt_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    remaining = await AttemptService(db).get_time_remaining(attempt_id, user_id)
    return {"time_remaining": remaining}


@app.post(
    "/api/quizzes/attempts/{attempt_id}/flag/{question_id}",
    response_model=FlagResponse,
    tags=["attempts"],
    summary="Flag a question for review",
    responses={404: {"description": "Active attempt or question not found"}},
)
async def flag_question(
    attempt_id: int,
    question_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis = Depends(get_redis),
):
    flagged = await AttemptService(db, redis=redis).flag_for_review(attempt_id, question_id, user_id)
    return {"question_id": question_id, "is_flagged": flagged}


# === Instructor endpoints ===

@app.get(
    "/api/instructor/quizzes/{quiz_id}/attempts",
    response_model=List[InstructorAttemptItem],
    tags=["instructor"],
    summary="Get all attempts for a quiz",
)
async def quiz_attempts(quiz_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await ResultService(db).list_quiz_attempts(quiz_id, user_id)


@app.get(
    "/api/instructor/attempts",
    response_model=List[InstructorAttemptItem],
    tags=["instructor"],
    summary="Get quiz attempts across my courses",
)
async def instructor_attempts(
    course_id: Optional[int] = None,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ResultService(db).list_instructor_attempts(user_id, course_id=course_id)


@app.get(
    "/api/instructor/attempts/{attempt_id}",
    response_model=InstructorAttemptDetails,
    tags=["instructor"],
    summary="Get detailed attempt information",
    responses={
        403: {"description": "Attempt belongs to another instructor's course"},
        404: {"description": "Attempt not found"},
    },
)
async def attempt_details(attempt_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await ResultService(db).get_instructor_attempt_details(attempt_id, user_id)


@app.post(
    "/api/instructor/attempts/{attempt_id}/review",
    response_model=ReviewResponse,
    tags=["instructor"],
    summary="Review a quiz attempt",
)
async def review_attempt(
    attempt_id: int,
    review: ReviewRequest,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ResultService(db).review_attempt(attempt_id, user_id, review.feedback, review.notes)


@app.post("/api/instructor/quizzes", response_model=QuizOut, status_code=201, tags=["instructor"], summary="Create quiz")
async def create_quiz(payload: QuizCreate, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    fields = payload.model_dump(exclude={"section_id", "title_en"})
    return await QuizService(db).create_quiz(user_id, payload.section_id, payload.title_en, **fields)


@app.get("/api/instructor/sections/{section_id}/quizzes", response_model=List[QuizOut], tags=["instructor"], summary="Get quizzes by section")
async def section_quizzes(section_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await QuizService(db).get_section_quizzes(section_id, user_id)


@app.get("/api/instructor/quizzes/{quiz_id}", response_model=QuizOut, tags=["instructor"], summary="Get quiz details")
async def get_quiz(quiz_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await QuizService(db).get_quiz(quiz_id, user_id)


@app.put("/api/instructor/quizzes/{quiz_id}", response_model=QuizOut, tags=["instructor"], summary="Update quiz")
async def update_quiz(
    quiz_id: int,
    update: QuizUpdate,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await QuizService(db).update_quiz(quiz_id, user_id, **update.model_dump(exclude_unset=True))


@app.delete("/api/instructor/quizzes/{quiz_id}", status_code=204, tags=["instructor"], summary="Delete quiz")
async def delete_quiz(quiz_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await QuizService(db).delete_quiz(quiz_id, user_id)
    return Response(status_code=204)


@app.post("/api/instructor/questions", response_model=QuestionOut, status_code=201, tags=["instructor"], summary="Create question")
async def create_question(payload: QuestionCreate, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    data = payload.model_dump()
    options = data.pop("options")
    for option in options:
        if option.get("display_order") is None:
            option.pop("display_order", None)
    return await QuizService(db).create_question(user_id, options=options, **data)


@app.get(
    "/api/instructor/quizzes/{quiz_id}/questions",
    response_model=List[InstructorQuestion],
    tags=["instructor"],
    summary="Get quiz questions with answers",
)
async def quiz_questions(quiz_id: int, user_id: int = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await QuizService(db).get_quiz_questions(quiz_id, user_id)


@app.post("/api/instructor/quizzes/{quiz_id}/questions", response_model=MessageResponse, status_code=201, tags=["instructor"], summary="Add question to quiz")
async def add_quiz_question(
    quiz_id: int,
    payload: QuizQuestionAdd,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await QuizService(db).add_question_to_quiz(quiz_id, payload.question_id, user_id, display_order=payload.display_order)
    return {"message": "Question added to quiz"}


@app.delete("/api/instructor/quizzes/{quiz_id}/questions/{question_id}", status_code=204, tags=["instructor"], summary="Remove question from quiz")
async def remove_quiz_question(
    quiz_id: int,
    question_id: int,
    user_id: int = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await QuizService(db).remove_question_from_quiz(quiz_id, question_id, user_id)
    return Response(status_code=204)


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)
