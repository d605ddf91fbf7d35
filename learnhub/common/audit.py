"""
Audit logging for quiz attempts.

One log line per attempt-lifecycle event, so that refused, replayed and
late submissions can be traced back to a learner and a request.
"""

from flask import request, current_app, has_request_context
from datetime import datetime
import json


def _remote_addr() -> str:
    if has_request_context():
        return request.remote_addr or 'unknown'
    return 'n/a'


class AttemptAuditLogger:
    """
    Attempt event logger.

    Domain refusals are warnings, authoring faults are errors, accepted
    submissions are info.
    """

    @staticmethod
    def log_submission(learner_id: int, quiz_id: int, cohort_id, attempt_number: int,
                       percent: int, passed: bool, auto_submitted: bool):
        """
        Log an accepted submission.

        Args:
            learner_id: Learner who submitted
            quiz_id: Quiz that was attempted
            cohort_id: Cohort scope or None
            attempt_number: 1-based attempt number that was created
            percent: Rounded percentage score
            passed: Pass verdict
            auto_submitted: True when the timer triggered the submission
        """
        current_app.logger.info(
            f"QUIZ: Attempt submitted - Learner: {learner_id}, Quiz: {quiz_id}, "
            f"Cohort: {cohort_id}, Attempt: {attempt_number}, Percent: {percent}, "
            f"Passed: {passed}, Auto: {auto_submitted}, IP: {_remote_addr()}, "
            f"Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_replay(learner_id: int, quiz_id: int, attempt_id: int, token: str):
        """Log a submission token that was already used."""
        current_app.logger.info(
            f"QUIZ: Submission replayed - Learner: {learner_id}, Quiz: {quiz_id}, "
            f"Attempt ID: {attempt_id}, Token: {token[:16]}, IP: {_remote_addr()}"
        )

    @staticmethod
    def log_refused(learner_id: int, quiz_id: int, kind: str, details: dict = None):
        """
        Log a refused submission.

        Args:
            learner_id: Learner who submitted
            quiz_id: Quiz that was attempted
            kind: Error kind (AttemptNotAllowed, AttemptLimitExceeded, ...)
            details: Additional details as dictionary
        """
        current_app.logger.warning(
            f"QUIZ: Submission refused - Kind: {kind}, Learner: {learner_id}, "
            f"Quiz: {quiz_id}, Details: {json.dumps(details or {}, default=str)}, "
            f"IP: {_remote_addr()}, Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_late(learner_id: int, quiz_id: int, overrun_seconds: float):
        current_app.logger.warning(
            f"QUIZ: Late submission - Learner: {learner_id}, Quiz: {quiz_id}, "
            f"Overrun: {overrun_seconds:.0f}s, IP: {_remote_addr()}"
        )

    @staticmethod
    def log_malformed_quiz(quiz_id: int, reason: str):
        """
        Log a quiz definition that cannot be graded.

        This is an authoring fault upstream, so it is logged as an error.
        """
        current_app.logger.error(
            f"QUIZ: Malformed quiz definition - Quiz: {quiz_id}, Reason: {reason}, "
            f"Time: {datetime.utcnow().isoformat()}"
        )

    @staticmethod
    def log_unauthorized_access(resource: str, user_id: int = None):
        """
        Log unauthorized access attempt.

        Args:
            resource: Resource that was accessed
            user_id: User ID if authenticated
        """
        user_info = f"User ID: {user_id}" if user_id else "Unauthenticated"
        current_app.logger.warning(
            f"SECURITY: Unauthorized access - {user_info}, "
            f"Resource: {resource}, IP: {_remote_addr()}, "
            f"Time: {datetime.utcnow().isoformat()}"
        )
