"""Create user, course and cohort tables

Revision ID: 3f7a9c2e41b0
Revises:
Create Date: 2026-01-12 09:21:04.118230

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = '3f7a9c2e41b0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    inspector = inspect(op.get_bind())
    tables = inspector.get_table_names()

    if 'users' not in tables:
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('full_name', sa.String(length=255), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('user_type', sa.String(length=20), nullable=False, server_default='student'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('email')
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if 'courses' not in tables:
        op.create_table('courses',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_courses_name', 'courses', ['name'], unique=False)

    if 'course_tutors' not in tables:
        op.create_table('course_tutors',
            sa.Column('course_id', sa.Integer(), nullable=False),
            sa.Column('tutor_id', sa.Integer(), nullable=False),
            sa.Column('assigned_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['tutor_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('course_id', 'tutor_id')
        )

    if 'course_students' not in tables:
        op.create_table('course_students',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('course_id', sa.Integer(), nullable=False),
            sa.Column('student_id', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='enrolled'),
            sa.Column('assigned_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('course_id', 'student_id', name='uq_course_student')
        )
        op.create_index('ix_course_students_course_id', 'course_students', ['course_id'], unique=False)
        op.create_index('ix_course_students_student_id', 'course_students', ['student_id'], unique=False)
        op.create_index('ix_course_students_status', 'course_students', ['status'], unique=False)
        op.create_index('ix_course_students_course_status', 'course_students', ['course_id', 'status'], unique=False)

    if 'cohorts' not in tables:
        op.create_table('cohorts',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_cohorts_status', 'cohorts', ['status'], unique=False)

    if 'cohort_students' not in tables:
        op.create_table('cohort_students',
            sa.Column('cohort_id', sa.Integer(), nullable=False),
            sa.Column('student_id', sa.Integer(), nullable=False),
            sa.Column('joined_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['cohort_id'], ['cohorts.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('cohort_id', 'student_id')
        )

    if 'cohort_courses' not in tables:
        op.create_table('cohort_courses',
            sa.Column('cohort_id', sa.Integer(), nullable=False),
            sa.Column('course_id', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['cohort_id'], ['cohorts.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('cohort_id', 'course_id')
        )


def downgrade():
    op.drop_table('cohort_courses')
    op.drop_table('cohort_students')
    op.drop_index('ix_cohorts_status', table_name='cohorts')
    op.drop_table('cohorts')
    op.drop_index('ix_course_students_course_status', table_name='course_students')
    op.drop_index('ix_course_students_status', table_name='course_students')
    op.drop_index('ix_course_students_student_id', table_name='course_students')
    op.drop_index('ix_course_students_course_id', table_name='course_students')
    op.drop_table('course_students')
    op.drop_table('course_tutors')
    op.drop_index('ix_courses_name', table_name='courses')
    op.drop_table('courses')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
