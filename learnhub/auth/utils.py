from typing import Optional

from learnhub import db
from learnhub.auth.models import CourseStudent, cohort_courses, cohort_students, course_tutors


def normalize_cohort_id(raw) -> Optional[int]:
    """
    Turn a cohort id from a query string or JSON body into an int or None.

    Clients send ``null``/``undefined`` as literal strings when no cohort
    applies; those mean "no cohort".
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError("cohortId must be an integer")
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if text in ("", "null", "undefined", "None"):
        return None
    return int(text)


def is_enrolled(student_id: int, course_id: int) -> bool:
    return CourseStudent.query.filter_by(
        course_id=course_id,
        student_id=student_id,
        status='enrolled'
    ).first() is not None


def is_cohort_member(student_id: int, cohort_id: int, course_id: int) -> bool:
    """A student belongs to the cohort and the cohort runs the course."""
    membership = db.session.query(cohort_students).filter_by(
        cohort_id=cohort_id,
        student_id=student_id
    ).first()
    if membership is None:
        return False
    offering = db.session.query(cohort_courses).filter_by(
        cohort_id=cohort_id,
        course_id=course_id
    ).first()
    return offering is not None


def is_course_tutor(tutor_id: int, course_id: int) -> bool:
    return db.session.query(course_tutors).filter_by(
        course_id=course_id,
        tutor_id=tutor_id
    ).first() is not None
