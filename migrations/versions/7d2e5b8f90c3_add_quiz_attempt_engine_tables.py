"""Add quiz attempt engine tables

Revision ID: 7d2e5b8f90c3
Revises: 3f7a9c2e41b0
Create Date: 2026-01-19 16:44:52.730915

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = '7d2e5b8f90c3'
down_revision = '3f7a9c2e41b0'
branch_labels = None
depends_on = None


def upgrade():
    inspector = inspect(op.get_bind())
    tables = inspector.get_table_names()

    # Create quizzes table
    if 'quizzes' not in tables:
        op.create_table('quizzes',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('course_id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('summary', sa.Text(), nullable=True),
            sa.Column('time_limit_minutes', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('max_attempts', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('passing_grade', sa.Integer(), nullable=False, server_default='70'),
            sa.Column('opens_at', sa.DateTime(), nullable=True),
            sa.Column('closes_at', sa.DateTime(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_quizzes_course_id', 'quizzes', ['course_id'], unique=False)
        op.create_index('ix_quizzes_is_active', 'quizzes', ['is_active'], unique=False)
        op.create_index('ix_quizzes_course_active', 'quizzes', ['course_id', 'is_active'], unique=False)

    # Create quiz_questions table
    if 'quiz_questions' not in tables:
        op.create_table('quiz_questions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('quiz_id', sa.Integer(), nullable=False),
            sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('question_type', sa.String(length=32), nullable=False),
            sa.Column('question_text', sa.Text(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('options', sa.JSON(), nullable=True),
            sa.Column('correct_answer', sa.String(length=255), nullable=False),
            sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('quiz_id', 'position', name='uq_quiz_question_position')
        )
        op.create_index('ix_quiz_questions_quiz_id', 'quiz_questions', ['quiz_id'], unique=False)

    # Create quiz_attempts table (append-only)
    if 'quiz_attempts' not in tables:
        op.create_table('quiz_attempts',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('student_id', sa.Integer(), nullable=False),
            sa.Column('quiz_id', sa.Integer(), nullable=False),
            sa.Column('course_id', sa.Integer(), nullable=False),
            sa.Column('cohort_id', sa.Integer(), nullable=True),
            sa.Column('cohort_key', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('attempt_number', sa.Integer(), nullable=False),
            sa.Column('answers', sa.JSON(), nullable=False),
            sa.Column('results', sa.JSON(), nullable=False),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.Column('total_questions', sa.Integer(), nullable=False),
            sa.Column('percent', sa.Integer(), nullable=False),
            sa.Column('passed', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('auto_submitted', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('submission_token', sa.String(length=64), nullable=True),
            sa.Column('started_at', sa.DateTime(), nullable=True),
            sa.Column('is_late', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('submitted_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['cohort_id'], ['cohorts.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('student_id', 'quiz_id', 'cohort_key', 'attempt_number',
                                name='uq_quiz_attempt_number'),
            sa.UniqueConstraint('student_id', 'quiz_id', 'cohort_key', 'submission_token',
                                name='uq_quiz_attempt_token')
        )
        op.create_index('ix_quiz_attempts_student_id', 'quiz_attempts', ['student_id'], unique=False)
        op.create_index('ix_quiz_attempts_quiz_id', 'quiz_attempts', ['quiz_id'], unique=False)
        op.create_index('ix_quiz_attempts_owner', 'quiz_attempts', ['student_id', 'quiz_id', 'cohort_key'], unique=False)

    # Create quiz_progress table
    if 'quiz_progress' not in tables:
        op.create_table('quiz_progress',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('student_id', sa.Integer(), nullable=False),
            sa.Column('course_id', sa.Integer(), nullable=False),
            sa.Column('quiz_id', sa.Integer(), nullable=False),
            sa.Column('cohort_id', sa.Integer(), nullable=True),
            sa.Column('cohort_key', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('is_completed', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('completed_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['cohort_id'], ['cohorts.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('student_id', 'quiz_id', 'cohort_key', name='uq_quiz_progress')
        )
        op.create_index('ix_quiz_progress_student_course', 'quiz_progress', ['student_id', 'course_id'], unique=False)


def downgrade():
    op.drop_index('ix_quiz_progress_student_course', table_name='quiz_progress')
    op.drop_table('quiz_progress')
    op.drop_index('ix_quiz_attempts_owner', table_name='quiz_attempts')
    op.drop_index('ix_quiz_attempts_quiz_id', table_name='quiz_attempts')
    op.drop_index('ix_quiz_attempts_student_id', table_name='quiz_attempts')
    op.drop_table('quiz_attempts')
    op.drop_index('ix_quiz_questions_quiz_id', table_name='quiz_questions')
    op.drop_table('quiz_questions')
    op.drop_index('ix_quizzes_course_active', table_name='quizzes')
    op.drop_index('ix_quizzes_is_active', table_name='quizzes')
    op.drop_index('ix_quizzes_course_id', table_name='quizzes')
    op.drop_table('quizzes')
