from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Index
from models.base import Base, TimestampMixin, SoftDeleteMixin, utcnow

class QuizAttempt(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    attempt_number = Column(Integer, nullable=False)

    score = Column(Integer, nullable=True)  # NULL until finished
    max_score = Column(Integer, nullable=False, default=0)
    is_passed = Column(Boolean, default=False, nullable=False)
    is_auto_submitted = Column(Boolean, default=False, nullable=False)

    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)  # NULL while in progress

    @property
    def is_in_progress(self) -> bool:
        return self.completed_at is None


class QuizAnswer(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "quiz_answers"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("quiz_attempts.id"), index=True, nullable=False)
    question_id = Column(Integer, ForeignKey("question_bank.id"), nullable=False)
    selected_option_id = Column(Integer, ForeignKey("question_options.id"), nullable=True)
    answer_text = Column(Text, nullable=True)
    is_correct = Column(Boolean, default=False, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)
    is_flagged = Column(Boolean, default=False, nullable=False)

# Sweeper scans open attempts; result views load answers per attempt
Index("idx_attempts_open", QuizAttempt.completed_at, QuizAttempt.quiz_id)
Index("idx_attempts_quiz_user", QuizAttempt.quiz_id, QuizAttempt.user_id)
Index("idx_answers_attempt_question", QuizAnswer.attempt_id, QuizAnswer.question_id)
