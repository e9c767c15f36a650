from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


# === Student: taking a quiz ===

class QuizSummary(BaseModel):
    """Reduced quiz view returned when an attempt starts."""
    id: int
    title_en: str
    title_ar: Optional[str] = None
    time_limit_minutes: Optional[int] = Field(None, description="Time limit in minutes, null when untimed")
    shuffle_questions: bool


class StartAttemptResponse(BaseModel):
    attempt_id: int
    quiz: QuizSummary
    attempt_number: int = Field(..., description="Sequential attempt number for this user and quiz, from 1")
    started_at: datetime


class TakingOption(BaseModel):
    """Answer option shown while taking a quiz. Never carries correctness."""
    id: int
    option_text_en: str
    option_text_ar: Optional[str] = None
    display_order: int


class TakingQuestion(BaseModel):
    id: int
    question_type: str
    question_text_en: str
    question_text_ar: Optional[str] = None
    points: int
    display_order: int
    options: List[TakingOption]


class SavedAnswer(BaseModel):
    question_id: int
    selected_option_id: Optional[int] = None
    answer_text: Optional[str] = None
    is_flagged: bool = False


class QuestionsForTakingResponse(BaseModel):
    attempt_id: int
    quiz_id: int
    questions: List[TakingQuestion]
    saved_answers: List[SavedAnswer]


class AnswerIn(BaseModel):
    """A single answer: an option for choice questions, free text for essays."""
    question_id: int
    selected_option_id: Optional[int] = None
    answer_text: Optional[str] = Field(None, max_length=10000)

    model_config = ConfigDict(json_schema_extra={
        "example": {"question_id": 12, "selected_option_id": 40}
    })


class SubmitAttemptRequest(BaseModel):
    answers: List[AnswerIn] = Field(default_factory=list)


class SubmitAttemptResponse(BaseModel):
    attempt_id: int
    score: int
    max_score: int
    is_passed: bool
    passing_score: int = Field(..., description="Raw point threshold the score was compared against")


class TimeRemainingResponse(BaseModel):
    time_remaining: Optional[int] = Field(None, description="Seconds left, null when the quiz is untimed")


class FlagResponse(BaseModel):
    question_id: int
    is_flagged: bool


class MessageResponse(BaseModel):
    message: str


# === Results ===

class AttemptOut(BaseModel):
    id: int
    quiz_id: int
    user_id: int
    attempt_number: int
    score: Optional[int] = None
    max_score: int
    is_passed: bool
    is_auto_submitted: bool
    started_at: datetime
    completed_at: Optional[datetime] = None


class MyAttempt(AttemptOut):
    quiz_title_en: str
    quiz_title_ar: Optional[str] = None


class ReviewOption(BaseModel):
    """Answer option including correctness, for result review."""
    id: int
    option_text_en: str
    option_text_ar: Optional[str] = None
    display_order: int
    is_correct: bool


class ResultAnswer(BaseModel):
    id: int
    question_id: int
    question_type: str
    question_text_en: str
    question_text_ar: Optional[str] = None
    selected_option_id: Optional[int] = None
    answer_text: Optional[str] = None
    is_correct: bool
    points_earned: int
    max_points: int
    is_flagged: bool
    explanation_en: Optional[str] = None
    explanation_ar: Optional[str] = None
    options: Optional[List[ReviewOption]] = None


class StudentResultResponse(AttemptOut):
    quiz_title_en: str
    quiz_title_ar: Optional[str] = None
    passing_score: int
    show_correct_answers: bool
    answers: List[ResultAnswer]


class UserOut(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class InstructorAttemptItem(AttemptOut):
    quiz_title_en: str
    course_id: int
    course_title_en: str
    user: UserOut


class InstructorAttemptDetails(AttemptOut):
    quiz_title_en: str
    passing_score: int
    course_id: int
    course_title_en: str
    user: UserOut
    answers: List[ResultAnswer]


class ReviewRequest(BaseModel):
    feedback: str = Field(..., max_length=5000)
    notes: Optional[str] = Field(None, max_length=5000)


class ReviewResponse(BaseModel):
    message: str
    attempt_id: int
    feedback: str
    notes: Optional[str] = None


# === Instructor: authoring ===

class QuizCreate(BaseModel):
    section_id: int
    lesson_id: Optional[int] = None
    title_en: str = Field(..., max_length=255)
    title_ar: Optional[str] = Field(None, max_length=255)
    description_en: Optional[str] = None
    description_ar: Optional[str] = None
    time_limit_minutes: Optional[int] = Field(None, ge=1)
    max_attempts: Optional[int] = Field(None, ge=1)
    passing_score: Optional[int] = Field(None, ge=0)
    shuffle_questions: Optional[bool] = None
    show_correct_answers: Optional[bool] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None


class QuizUpdate(BaseModel):
    lesson_id: Optional[int] = None
    title_en: Optional[str] = Field(None, max_length=255)
    title_ar: Optional[str] = Field(None, max_length=255)
    description_en: Optional[str] = None
    description_ar: Optional[str] = None
    time_limit_minutes: Optional[int] = Field(None, ge=1)
    max_attempts: Optional[int] = Field(None, ge=1)
    passing_score: Optional[int] = Field(None, ge=0)
    shuffle_questions: Optional[bool] = None
    show_correct_answers: Optional[bool] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None


class QuizOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    section_id: int
    lesson_id: Optional[int] = None
    title_en: str
    title_ar: Optional[str] = None
    description_en: Optional[str] = None
    time_limit_minutes: Optional[int] = None
    max_attempts: Optional[int] = None
    passing_score: Optional[int] = None
    shuffle_questions: bool
    show_correct_answers: bool
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None


class OptionIn(BaseModel):
    option_text_en: str
    option_text_ar: Optional[str] = None
    is_correct: bool = False
    display_order: Optional[int] = None


class QuestionCreate(BaseModel):
    course_id: Optional[int] = Field(None, description="Owning course, null for the general pool")
    question_type: str = Field(..., pattern="^(multiple_choice|true_false|essay)$")
    question_text_en: str
    question_text_ar: Optional[str] = None
    explanation_en: Optional[str] = None
    explanation_ar: Optional[str] = None
    points: int = Field(1, ge=0)
    options: List[OptionIn] = Field(default_factory=list)


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: Optional[int] = None
    question_type: str
    question_text_en: str
    points: Optional[int] = None


class QuizQuestionAdd(BaseModel):
    question_id: int
    display_order: Optional[int] = Field(None, ge=0)


class InstructorQuestion(BaseModel):
    id: int
    question_type: str
    question_text_en: str
    question_text_ar: Optional[str] = None
    explanation_en: Optional[str] = None
    points: int
    display_order: int
    options: List[ReviewOption]
