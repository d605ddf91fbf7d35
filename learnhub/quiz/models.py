"""
Database models for quiz functionality.

Question types:
- multiple-choice: options stored in order, correct answer is the option index
- true-false: correct answer stored as "true" or "false"

Quiz attempts are append-only: a retry inserts a new row, nothing updates
or deletes an attempt in normal flow.
"""
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app

from learnhub import db
from learnhub.quiz.definitions import (
    MARKS_PER_QUESTION, QuizDefinition, build_question,
)

# Stored in place of a NULL cohort so that the uniqueness constraints also
# hold for attempts taken outside any cohort.
NO_COHORT = 0


def cohort_key(cohort_id: Optional[int]) -> int:
    return cohort_id if cohort_id is not None else NO_COHORT


def _default_max_attempts():
    return current_app.config.get("QUIZ_DEFAULT_MAX_ATTEMPTS", 1)


def _default_passing_grade():
    return current_app.config.get("QUIZ_DEFAULT_PASSING_GRADE", 70)


class Quiz(db.Model):
    """
    A quiz attached to a course.

    Authored by the course builder; read-only to the attempt engine.
    """
    __tablename__ = "quizzes"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete='CASCADE'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    summary = db.Column(db.Text, nullable=True)
    time_limit_minutes = db.Column(db.Integer, nullable=False, default=0)  # 0 = unlimited
    max_attempts = db.Column(db.Integer, nullable=False, default=_default_max_attempts)
    passing_grade = db.Column(db.Integer, nullable=False, default=_default_passing_grade)  # Percent
    opens_at = db.Column(db.DateTime, nullable=True)
    closes_at = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    course = db.relationship("Course", backref="quizzes")
    questions = db.relationship(
        "QuizQuestion", backref="quiz", lazy="select",
        cascade="all, delete-orphan", order_by="QuizQuestion.position"
    )

    __table_args__ = (
        db.Index('ix_quizzes_course_active', 'course_id', 'is_active'),
    )

    def __repr__(self) -> str:
        return f"<Quiz {self.id}: {self.title}>"

    def to_definition(self) -> QuizDefinition:
        """Build the immutable definition the scoring engine grades against."""
        return QuizDefinition(
            id=self.id,
            title=self.title,
            questions=tuple(
                build_question(
                    index=position,
                    kind=question.question_type,
                    correct_answer=question.correct_answer,
                    options=question.options,
                    text=question.question_text,
                )
                for position, question in enumerate(self.questions)
            ),
            max_attempts=self.max_attempts,
            passing_grade_percent=self.passing_grade,
            time_limit_minutes=self.time_limit_minutes or 0,
        )

    def is_open(self, now: datetime, grace_seconds: int = 0) -> bool:
        if self.opens_at and now < self.opens_at:
            return False
        if self.closes_at and now > self.closes_at + timedelta(seconds=grace_seconds):
            return False
        return True

    def to_learner_dict(self) -> dict:
        """Quiz for a learner: every correct answer stripped."""
        return {
            'id': self.id,
            'courseId': self.course_id,
            'title': self.title,
            'summary': self.summary,
            'timeLimitMinutes': self.time_limit_minutes or 0,
            'maxAttempts': self.max_attempts,
            'passingGrade': self.passing_grade,
            'totalMarks': len(self.questions) * MARKS_PER_QUESTION,
            'opensAt': self.opens_at.isoformat() if self.opens_at else None,
            'closesAt': self.closes_at.isoformat() if self.closes_at else None,
            'questions': [
                question.to_learner_dict(position)
                for position, question in enumerate(self.questions)
            ],
        }


class QuizQuestion(db.Model):
    """A question of a quiz. ``position`` orders the questions."""
    __tablename__ = "quiz_questions"

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete='CASCADE'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    question_type = db.Column(db.String(32), nullable=False)  # multiple-choice, true-false
    question_text = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    options = db.Column(db.JSON, nullable=True)  # Absent for true-false
    correct_answer = db.Column(db.String(255), nullable=False)

    __table_args__ = (
        db.UniqueConstraint('quiz_id', 'position', name='uq_quiz_question_position'),
    )

    def __repr__(self) -> str:
        return f"<QuizQuestion {self.id}: {self.question_type}>"

    def to_learner_dict(self, index: int) -> dict:
        data = {
            'index': index,
            'type': self.question_type,
            'question': self.question_text,
            'description': self.description,
        }
        if self.question_type == 'multiple-choice':
            data['options'] = list(self.options or [])
        return data


class QuizAttempt(db.Model):
    """
    One submitted, scored attempt.

    ``attempt_number`` is 1-based and unique per (student, quiz, cohort);
    the unique constraint is what stops two racing submissions from both
    landing with the same number.
    """
    __tablename__ = "quiz_attempts"

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete='CASCADE'), nullable=False, index=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete='CASCADE'), nullable=False, index=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete='CASCADE'), nullable=False)
    cohort_id = db.Column(db.Integer, db.ForeignKey("cohorts.id", ondelete='CASCADE'), nullable=True)
    cohort_key = db.Column(db.Integer, nullable=False, default=NO_COHORT)
    attempt_number = db.Column(db.Integer, nullable=False)
    answers = db.Column(db.JSON, nullable=False)  # {"<question index>": value}, answered only
    results = db.Column(db.JSON, nullable=False)  # [{questionIndex, isCorrect, correctAnswer}]
    score = db.Column(db.Integer, nullable=False)
    total_questions = db.Column(db.Integer, nullable=False)
    percent = db.Column(db.Integer, nullable=False)
    passed = db.Column(db.Boolean, nullable=False, default=False)
    auto_submitted = db.Column(db.Boolean, nullable=False, default=False)
    submission_token = db.Column(db.String(64), nullable=True)
    started_at = db.Column(db.DateTime, nullable=True)  # As reported by the client
    is_late = db.Column(db.Boolean, nullable=False, default=False)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    student = db.relationship("User", foreign_keys=[student_id], backref="quiz_attempts")
    quiz = db.relationship("Quiz", backref=db.backref("attempts", lazy="dynamic"))

    __table_args__ = (
        db.UniqueConstraint('student_id', 'quiz_id', 'cohort_key', 'attempt_number',
                            name='uq_quiz_attempt_number'),
        db.UniqueConstraint('student_id', 'quiz_id', 'cohort_key', 'submission_token',
                            name='uq_quiz_attempt_token'),
        db.Index('ix_quiz_attempts_owner', 'student_id', 'quiz_id', 'cohort_key'),
    )

    def __repr__(self) -> str:
        return f"<QuizAttempt {self.id}: Student {self.student_id}, Quiz {self.quiz_id}, #{self.attempt_number}>"

    def to_dict(self) -> dict:
        """Full attempt, results included; run it through the disclosure policy before returning it to a learner."""
        return {
            'id': self.id,
            'learnerId': self.student_id,
            'quizId': self.quiz_id,
            'cohortId': self.cohort_id,
            'attemptNumber': self.attempt_number,
            'answers': dict(self.answers or {}),
            'score': self.score,
            'totalQuestions': self.total_questions,
            'percent': self.percent,
            'passed': self.passed,
            'marks': self.score * MARKS_PER_QUESTION,
            'totalMarks': self.total_questions * MARKS_PER_QUESTION,
            'autoSubmitted': self.auto_submitted,
            'isLate': self.is_late,
            'startedAt': self.started_at.isoformat() if self.started_at else None,
            'submittedAt': self.submitted_at.isoformat() if self.submitted_at else None,
            'results': list(self.results or []),
        }


class QuizProgress(db.Model):
    """Completion of a quiz item towards course progress, recorded on pass."""
    __tablename__ = "quiz_progress"

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete='CASCADE'), nullable=False)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete='CASCADE'), nullable=False)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id", ondelete='CASCADE'), nullable=False)
    cohort_id = db.Column(db.Integer, db.ForeignKey("cohorts.id", ondelete='CASCADE'), nullable=True)
    cohort_key = db.Column(db.Integer, nullable=False, default=NO_COHORT)
    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('student_id', 'quiz_id', 'cohort_key', name='uq_quiz_progress'),
        db.Index('ix_quiz_progress_student_course', 'student_id', 'course_id'),
    )

    def __repr__(self) -> str:
        return f"<QuizProgress student={self.student_id} quiz={self.quiz_id} completed={self.is_completed}>"
