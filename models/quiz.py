from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from models.base import Base, TimestampMixin, SoftDeleteMixin

class Quiz(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    section_id = Column(Integer, ForeignKey("course_sections.id"), index=True, nullable=False)
    lesson_id = Column(Integer, ForeignKey("lessons.id"), index=True, nullable=True)
    title_en = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=True)
    description_en = Column(Text, nullable=True)
    description_ar = Column(Text, nullable=True)

    time_limit_minutes = Column(Integer, nullable=True)
    max_attempts = Column(Integer, nullable=True)  # NULL = unlimited
    passing_score = Column(Integer, default=60, nullable=True)
    shuffle_questions = Column(Boolean, default=False, nullable=False)
    show_correct_answers = Column(Boolean, default=True, nullable=False)

    available_from = Column(DateTime, nullable=True)
    available_until = Column(DateTime, nullable=True)


class QuizQuestion(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id"), index=True, nullable=False)
    question_id = Column(Integer, ForeignKey("question_bank.id"), index=True, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
