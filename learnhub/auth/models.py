from datetime import datetime
from flask_login import UserMixin

from learnhub import db


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # 'student', 'tutor' or 'admin'
    user_type = db.Column(db.String(20), nullable=False, default="student")

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.user_type})>"


# Association table for Course-Tutor many-to-many relationship (must be defined before Course model)
course_tutors = db.Table(
    'course_tutors',
    db.Column('course_id', db.Integer, db.ForeignKey('courses.id', ondelete='CASCADE'), primary_key=True),
    db.Column('tutor_id', db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    db.Column('assigned_at', db.DateTime, default=datetime.utcnow, nullable=False),
)


class Course(db.Model):
    """Model for courses created by admin."""
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    tutors = db.relationship("User", secondary=course_tutors, backref="assigned_courses")

    def __repr__(self) -> str:
        return f"<Course {self.name}>"


class CourseStudent(db.Model):
    """Model for student enrollment in courses."""
    __tablename__ = "course_students"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete='CASCADE'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete='CASCADE'), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default="enrolled", index=True)  # enrolled, pending, rejected
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    course = db.relationship("Course", backref="enrollments")
    student = db.relationship("User", foreign_keys=[student_id], backref="course_enrollments")

    __table_args__ = (
        db.UniqueConstraint('course_id', 'student_id', name='uq_course_student'),
        db.Index('ix_course_students_course_status', 'course_id', 'status'),
    )

    def __repr__(self) -> str:
        return f"<CourseStudent course={self.course_id} student={self.student_id} status={self.status}>"


cohort_students = db.Table(
    'cohort_students',
    db.Column('cohort_id', db.Integer, db.ForeignKey('cohorts.id', ondelete='CASCADE'), primary_key=True),
    db.Column('student_id', db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    db.Column('joined_at', db.DateTime, default=datetime.utcnow, nullable=False),
)

cohort_courses = db.Table(
    'cohort_courses',
    db.Column('cohort_id', db.Integer, db.ForeignKey('cohorts.id', ondelete='CASCADE'), primary_key=True),
    db.Column('course_id', db.Integer, db.ForeignKey('courses.id', ondelete='CASCADE'), primary_key=True),
)


class Cohort(db.Model):
    """A group of students taking one or more courses together."""
    __tablename__ = "cohorts"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="active", index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    students = db.relationship("User", secondary=cohort_students, backref="cohorts")
    courses = db.relationship("Course", secondary=cohort_courses, backref="cohorts")

    def __repr__(self) -> str:
        return f"<Cohort {self.name}>"
