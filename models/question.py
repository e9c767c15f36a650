from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey
from models.base import Base, TimestampMixin, SoftDeleteMixin

QUESTION_TYPES = ("multiple_choice", "true_false", "essay")


class Question(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "question_bank"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), index=True, nullable=True)  # NULL = general pool
    question_type = Column(String(20), nullable=False)
    question_text_en = Column(Text, nullable=False)
    question_text_ar = Column(Text, nullable=True)
    explanation_en = Column(Text, nullable=True)
    explanation_ar = Column(Text, nullable=True)
    points = Column(Integer, default=1, nullable=True)


class QuestionOption(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "question_options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("question_bank.id"), index=True, nullable=False)
    option_text_en = Column(Text, nullable=False)
    option_text_ar = Column(Text, nullable=True)
    is_correct = Column(Boolean, default=False, nullable=False)
    display_order = Column(Integer, default=0, nullable=False)
