"""
Pytest configuration and fixtures for testing.
Runs the app against an in-memory SQLite database.
"""
import os

# Set test environment variables BEFORE importing the app package;
# the blueprint prefix is read from config at import time.
os.environ['FLASK_ENV'] = 'testing'
os.environ['SECRET_KEY'] = 'sfndsfojoriwew09rjfjndsknfkj'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['QUIZ_API_PREFIX'] = '/quiz'
os.environ['QUIZ_DEADLINE_GRACE_SECONDS'] = '30'
os.environ['QUIZ_SUBMIT_RATE_LIMIT'] = '100'

import pytest

from learnhub import create_app, db
from learnhub.auth.models import Cohort, Course, CourseStudent, User
from learnhub.quiz.models import Quiz, QuizQuestion
from learnhub.security import get_rate_limiter


@pytest.fixture
def app():
    """Create application for testing, with a fresh database."""
    app = create_app()
    app.config['TESTING'] = True

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    """Push an application context for service-level tests."""
    with app.app_context():
        yield app


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


def add_quiz(course_id, correct_answers, max_attempts=1, passing_grade=70,
             time_limit_minutes=0, **fields):
    """
    Add a quiz whose questions are all multiple-choice with four options,
    except where the correct answer is "true"/"false".
    """
    quiz = Quiz(
        course_id=course_id,
        title=fields.pop('title', 'Unit quiz'),
        max_attempts=max_attempts,
        passing_grade=passing_grade,
        time_limit_minutes=time_limit_minutes,
        **fields
    )
    for position, correct in enumerate(correct_answers):
        if correct in ('true', 'false'):
            question = QuizQuestion(
                position=position,
                question_type='true-false',
                question_text=f'Statement {position + 1}',
                correct_answer=correct,
            )
        else:
            question = QuizQuestion(
                position=position,
                question_type='multiple-choice',
                question_text=f'Question {position + 1}',
                options=['A', 'B', 'C', 'D'],
                correct_answer=str(correct),
            )
        quiz.questions.append(question)
    db.session.add(quiz)
    db.session.commit()
    return quiz


@pytest.fixture
def seed(app):
    """
    Seed a course with an enrolled student, an outsider, a tutor and a cohort.

    Returns plain ids so tests can open their own contexts.
    """
    with app.app_context():
        student = User(email='student@test.com', full_name='Sam Student', user_type='student')
        outsider = User(email='outsider@test.com', full_name='Olly Outsider', user_type='student')
        tutor = User(email='tutor@test.com', full_name='Tess Tutor', user_type='tutor')
        other_tutor = User(email='other@test.com', full_name='Otto Tutor', user_type='tutor')
        course = Course(name='Signs 101', description='Intro course')
        db.session.add_all([student, outsider, tutor, other_tutor, course])
        db.session.flush()

        course.tutors.append(tutor)
        db.session.add(CourseStudent(course_id=course.id, student_id=student.id, status='enrolled'))

        cohort = Cohort(name='Spring cohort')
        cohort.students.append(student)
        cohort.courses.append(course)
        db.session.add(cohort)
        db.session.commit()

        # 10 questions: every correct answer is option 1 except two true/false
        correct = [1, 1, 1, 1, 1, 1, 1, 1, 'true', 'false']
        single = add_quiz(course.id, correct, max_attempts=1, title='Single shot')
        triple = add_quiz(course.id, correct, max_attempts=3, title='Three tries')
        timed = add_quiz(course.id, correct, max_attempts=3, time_limit_minutes=1, title='Timed')

        return {
            'student_id': student.id,
            'outsider_id': outsider.id,
            'tutor_id': tutor.id,
            'other_tutor_id': other_tutor.id,
            'course_id': course.id,
            'cohort_id': cohort.id,
            'single_quiz_id': single.id,
            'triple_quiz_id': triple.id,
            'timed_quiz_id': timed.id,
        }


def answers_with_score(score, total=10):
    """Answers that get exactly ``score`` of the seeded questions right."""
    correct = ['1'] * 8 + ['true', 'false']
    wrong = ['0'] * 8 + ['false', 'true']
    return {str(i): (correct[i] if i < score else wrong[i]) for i in range(total)}


def login(client, user_id):
    """Log a user in through the Flask-Login session key."""
    with client.session_transaction() as sess:
        sess['_user_id'] = str(user_id)
        sess['_fresh'] = True
