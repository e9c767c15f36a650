from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from models.base import Base, TimestampMixin, SoftDeleteMixin, utcnow

class Course(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    instructor_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    title_en = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=True)


class CourseSection(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "course_sections"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), index=True, nullable=False)
    title_en = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)


class Lesson(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    section_id = Column(Integer, ForeignKey("course_sections.id"), index=True, nullable=False)
    title_en = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=True)
    display_order = Column(Integer, default=0, nullable=False)


class Enrollment(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id"), index=True, nullable=False)
    status = Column(String(20), default="active", nullable=False)  # active, completed, cancelled
    enrolled_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)

Index("idx_enrollments_user_course", Enrollment.user_id, Enrollment.course_id)
