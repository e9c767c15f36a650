"""add is_flagged to quiz_answers and is_auto_submitted to quiz_attempts

Revision ID: b2c3d4e5f6a7
Revises: a1b2c3d4e5f6
Create Date: 2026-10-06 14:30:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'b2c3d4e5f6a7'
down_revision: Union[str, None] = 'a1b2c3d4e5f6'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Review flag set by the student while taking the quiz
    op.add_column('quiz_answers', sa.Column('is_flagged', sa.Boolean(), server_default=sa.false(), nullable=False))
    # Distinguishes sweeper-finalized attempts from student submissions
    op.add_column('quiz_attempts', sa.Column('is_auto_submitted', sa.Boolean(), server_default=sa.false(), nullable=False))


def downgrade() -> None:
    op.drop_column('quiz_attempts', 'is_auto_submitted')
    op.drop_column('quiz_answers', 'is_flagged')
