"""
Tutor routes for quiz attempts.

Tutors assigned to a course can read every learner's attempts on the
course's quizzes, results included.
"""
from flask import jsonify, request, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from learnhub import db
from learnhub.auth.models import User
from learnhub.auth.utils import is_course_tutor
from learnhub.common.audit import AttemptAuditLogger
from learnhub.common.decorators import tutor_required
from learnhub.quiz import quiz_bp
from learnhub.quiz.models import Quiz, QuizAttempt


@quiz_bp.route('/api/tutor/quizzes/<int:quiz_id>/attempts', methods=['GET'])
@tutor_required
def list_quiz_attempts(quiz_id):
    """
    List all attempts for a quiz.
    Only tutors assigned to the quiz's course can view them.
    """
    try:
        quiz = db.session.get(Quiz, quiz_id)
        if quiz is None:
            return jsonify({'success': False, 'error': 'Quiz not found', 'kind': 'QuizNotFound'}), 404

        if not is_course_tutor(current_user.id, quiz.course_id):
            AttemptAuditLogger.log_unauthorized_access(request.path, current_user.id)
            return jsonify({'success': False, 'error': 'Quiz not found or not assigned', 'kind': 'QuizNotFound'}), 404

        rows = db.session.query(QuizAttempt, User).join(
            User, QuizAttempt.student_id == User.id
        ).filter(
            QuizAttempt.quiz_id == quiz_id
        ).order_by(
            QuizAttempt.student_id, QuizAttempt.cohort_key, QuizAttempt.attempt_number
        ).all()

        attempts_data = []
        for attempt, student in rows:
            data = attempt.to_dict()
            data['learnerName'] = student.full_name
            data['learnerEmail'] = student.email
            attempts_data.append(data)

        return jsonify({
            'success': True,
            'quizId': quiz.id,
            'title': quiz.title,
            'maxAttempts': quiz.max_attempts,
            'passingGrade': quiz.passing_grade,
            'attempts': attempts_data,
            'count': len(attempts_data),
        }), 200

    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception(f"Database error while listing attempts for quiz {quiz_id}")
        return jsonify({'success': False, 'error': 'An internal error occurred. Please try again.'}), 500
