"""
Student routes for quiz attempts.

Students can:
- Check their attempt status for a quiz
- Fetch a quiz without its correct answers
- Submit an attempt
- List their own attempts
"""
from datetime import datetime, timezone

from flask import jsonify, request, current_app
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError

from learnhub import db
from learnhub.auth.utils import normalize_cohort_id
from learnhub.common.decorators import student_required
from learnhub.quiz import quiz_bp
from learnhub.quiz.disclosure import shape_attempt, shape_submit_response
from learnhub.quiz.errors import InvalidSubmission, QuizError
from learnhub.quiz.service import AttemptService
from learnhub.security import rate_limit


def _parse_quiz_id(raw) -> int:
    if raw is None or raw == '' or isinstance(raw, bool):
        raise InvalidSubmission('quizId is required')
    if isinstance(raw, float) and not raw.is_integer():
        raise InvalidSubmission('quizId must be an integer')
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidSubmission('quizId must be an integer')


def _parse_flag(raw, name: str) -> bool:
    if raw is None:
        return False
    if not isinstance(raw, bool):
        raise InvalidSubmission(f'{name} must be true or false')
    return raw


def _parse_cohort_id(raw):
    try:
        return normalize_cohort_id(raw)
    except (TypeError, ValueError):
        raise InvalidSubmission('cohortId must be an integer')


def _parse_started_at(raw):
    """ISO-8601 timestamp from the client, as naive UTC."""
    if raw in (None, ''):
        return None
    if not isinstance(raw, str):
        raise InvalidSubmission('startedAt must be an ISO-8601 timestamp')
    try:
        parsed = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        raise InvalidSubmission('startedAt must be an ISO-8601 timestamp')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _error_response(e: QuizError):
    return jsonify(e.to_dict()), e.status_code


def _server_error(action: str):
    db.session.rollback()
    current_app.logger.exception(f"Database error while {action}")
    return jsonify({'success': False, 'error': 'An internal error occurred. Please try again.'}), 500


@quiz_bp.route('/api/attempt-status', methods=['GET'])
@student_required
def attempt_status():
    """
    Latest attempt and attempt stats for the current learner.

    Query: quizId, cohortId (optional; "null"/"undefined" mean none)
    """
    try:
        quiz_id = _parse_quiz_id(request.args.get('quizId'))
        cohort_id = _parse_cohort_id(request.args.get('cohortId'))

        status = AttemptService().get_status(current_user.id, quiz_id, cohort_id)
        submission = None
        if status.latest is not None:
            submission = shape_attempt(status.latest.to_dict(), status.summary)

        return jsonify({
            'success': True,
            'submission': submission,
            'stats': status.summary.to_dict(),
            'state': status.state.value,
            'isOpen': status.is_open,
        }), 200

    except QuizError as e:
        return _error_response(e)
    except SQLAlchemyError:
        return _server_error('loading attempt status')


@quiz_bp.route('/api/attempt-submit', methods=['POST'])
@student_required
@rate_limit(per='user', config_key='QUIZ_SUBMIT_RATE_LIMIT',
            error_message='Too many submissions. Please wait a moment and try again.')
def attempt_submit():
    """
    Grade and record one attempt.

    Body: quizId, cohortId, answers, autoSubmitted, submissionToken, startedAt
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error_response(InvalidSubmission('Request body must be a JSON object'))

    try:
        quiz_id = _parse_quiz_id(data.get('quizId'))
        cohort_id = _parse_cohort_id(data.get('cohortId'))
        token = data.get('submissionToken')
        if token is not None and (not isinstance(token, str) or len(token) > 64):
            raise InvalidSubmission('submissionToken must be a string of at most 64 characters')

        outcome = AttemptService().submit(
            learner_id=current_user.id,
            quiz_id=quiz_id,
            cohort_id=cohort_id,
            answers=data.get('answers'),
            auto_submitted=_parse_flag(data.get('autoSubmitted'), 'autoSubmitted'),
            submission_token=token,
            started_at=_parse_started_at(data.get('startedAt')),
        )

        body = shape_submit_response(outcome.attempt.to_dict(), outcome.summary)
        body['state'] = outcome.state.value
        body['replayed'] = outcome.replayed
        return jsonify(body), 200

    except QuizError as e:
        return _error_response(e)
    except SQLAlchemyError:
        return _server_error('submitting quiz attempt')


@quiz_bp.route('/api/quizzes/<int:quiz_id>', methods=['GET'])
@student_required
def get_quiz(quiz_id):
    """Quiz for taking, with every correct answer removed."""
    try:
        cohort_id = _parse_cohort_id(request.args.get('cohortId'))
        status = AttemptService().get_status(current_user.id, quiz_id, cohort_id)

        return jsonify({
            'success': True,
            'quiz': status.quiz.to_learner_dict(),
            'stats': status.summary.to_dict(),
            'state': status.state.value,
            'isOpen': status.is_open,
        }), 200

    except QuizError as e:
        return _error_response(e)
    except SQLAlchemyError:
        return _server_error('loading quiz')


@quiz_bp.route('/api/quizzes/<int:quiz_id>/attempts', methods=['GET'])
@student_required
def list_my_attempts(quiz_id):
    """The learner's attempts, newest first."""
    try:
        cohort_id = _parse_cohort_id(request.args.get('cohortId'))
        service = AttemptService()
        status = service.get_status(current_user.id, quiz_id, cohort_id)
        attempts = service.history(current_user.id, quiz_id, cohort_id)

        return jsonify({
            'success': True,
            'attempts': [
                shape_attempt(attempt.to_dict(), status.summary)
                for attempt in reversed(attempts)
            ],
            'stats': status.summary.to_dict(),
        }), 200

    except QuizError as e:
        return _error_response(e)
    except SQLAlchemyError:
        return _server_error('listing attempts')
