"""initial quiz schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-09-28 10:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1b2c3d4e5f6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _soft_delete():
    return [
        sa.Column('is_deleted', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(255), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('instructor_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title_en', sa.String(255), nullable=False),
        sa.Column('title_ar', sa.String(255), nullable=True),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_courses_instructor_id', 'courses', ['instructor_id'])

    op.create_table(
        'course_sections',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id'), nullable=False),
        sa.Column('title_en', sa.String(255), nullable=False),
        sa.Column('title_ar', sa.String(255), nullable=True),
        sa.Column('display_order', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_course_sections_course_id', 'course_sections', ['course_id'])

    op.create_table(
        'lessons',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('section_id', sa.Integer(), sa.ForeignKey('course_sections.id'), nullable=False),
        sa.Column('title_en', sa.String(255), nullable=False),
        sa.Column('title_ar', sa.String(255), nullable=True),
        sa.Column('display_order', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_lessons_section_id', 'lessons', ['section_id'])

    op.create_table(
        'enrollments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id'), nullable=False),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('enrolled_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_enrollments_user_id', 'enrollments', ['user_id'])
    op.create_index('ix_enrollments_course_id', 'enrollments', ['course_id'])
    op.create_index('idx_enrollments_user_course', 'enrollments', ['user_id', 'course_id'])

    op.create_table(
        'quizzes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('section_id', sa.Integer(), sa.ForeignKey('course_sections.id'), nullable=False),
        sa.Column('lesson_id', sa.Integer(), sa.ForeignKey('lessons.id'), nullable=True),
        sa.Column('title_en', sa.String(255), nullable=False),
        sa.Column('title_ar', sa.String(255), nullable=True),
        sa.Column('description_en', sa.Text(), nullable=True),
        sa.Column('description_ar', sa.Text(), nullable=True),
        sa.Column('time_limit_minutes', sa.Integer(), nullable=True),
        sa.Column('max_attempts', sa.Integer(), nullable=True),
        sa.Column('passing_score', sa.Integer(), server_default='60', nullable=True),
        sa.Column('shuffle_questions', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('show_correct_answers', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('available_from', sa.DateTime(), nullable=True),
        sa.Column('available_until', sa.DateTime(), nullable=True),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_quizzes_section_id', 'quizzes', ['section_id'])
    op.create_index('ix_quizzes_lesson_id', 'quizzes', ['lesson_id'])

    op.create_table(
        'question_bank',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id'), nullable=True),
        sa.Column('question_type', sa.String(20), nullable=False),
        sa.Column('question_text_en', sa.Text(), nullable=False),
        sa.Column('question_text_ar', sa.Text(), nullable=True),
        sa.Column('explanation_en', sa.Text(), nullable=True),
        sa.Column('explanation_ar', sa.Text(), nullable=True),
        sa.Column('points', sa.Integer(), server_default='1', nullable=True),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_question_bank_course_id', 'question_bank', ['course_id'])

    op.create_table(
        'question_options',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('question_bank.id'), nullable=False),
        sa.Column('option_text_en', sa.Text(), nullable=False),
        sa.Column('option_text_ar', sa.Text(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('display_order', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_question_options_question_id', 'question_options', ['question_id'])

    op.create_table(
        'quiz_questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id'), nullable=False),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('question_bank.id'), nullable=False),
        sa.Column('display_order', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_quiz_questions_quiz_id', 'quiz_questions', ['quiz_id'])
    op.create_index('ix_quiz_questions_question_id', 'quiz_questions', ['question_id'])

    op.create_table(
        'quiz_attempts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('max_score', sa.Integer(), server_default='0', nullable=False),
        sa.Column('is_passed', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_quiz_attempts_quiz_id', 'quiz_attempts', ['quiz_id'])
    op.create_index('ix_quiz_attempts_user_id', 'quiz_attempts', ['user_id'])
    op.create_index('idx_attempts_open', 'quiz_attempts', ['completed_at', 'quiz_id'])
    op.create_index('idx_attempts_quiz_user', 'quiz_attempts', ['quiz_id', 'user_id'])

    op.create_table(
        'quiz_answers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('attempt_id', sa.Integer(), sa.ForeignKey('quiz_attempts.id'), nullable=False),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('question_bank.id'), nullable=False),
        sa.Column('selected_option_id', sa.Integer(), sa.ForeignKey('question_options.id'), nullable=True),
        sa.Column('answer_text', sa.Text(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('points_earned', sa.Integer(), server_default='0', nullable=False),
        *_timestamps(),
        *_soft_delete(),
    )
    op.create_index('ix_quiz_answers_attempt_id', 'quiz_answers', ['attempt_id'])
    op.create_index('idx_answers_attempt_question', 'quiz_answers', ['attempt_id', 'question_id'])


def downgrade() -> None:
    op.drop_table('quiz_answers')
    op.drop_table('quiz_attempts')
    op.drop_table('quiz_questions')
    op.drop_table('question_options')
    op.drop_table('question_bank')
    op.drop_table('quizzes')
    op.drop_table('enrollments')
    op.drop_table('lessons')
    op.drop_table('course_sections')
    op.drop_table('courses')
    op.drop_table('users')
