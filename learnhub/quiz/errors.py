"""
Domain errors raised by the quiz attempt engine.

Every error carries a ``kind`` (the name the client keys its messaging on)
and the HTTP status the API answers with. Routes turn them into
``{'success': False, 'kind': ..., 'error': ...}`` bodies.
"""


class QuizError(Exception):
    """Base class for quiz engine errors."""

    kind = 'QuizError'
    status_code = 400
    default_message = 'Quiz request failed'

    def __init__(self, message: str = None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self) -> dict:
        body = {
            'success': False,
            'kind': self.kind,
            'error': self.message,
        }
        if self.details:
            body['details'] = self.details
        return body


class InvalidSubmission(QuizError):
    kind = 'InvalidSubmission'
    status_code = 400
    default_message = 'The submission payload is invalid'


class NotEnrolled(QuizError):
    kind = 'NotEnrolled'
    status_code = 403
    default_message = 'You are not enrolled in this quiz'


class QuizNotFound(QuizError):
    kind = 'QuizNotFound'
    status_code = 404
    default_message = 'Quiz not found'


class AttemptNotAllowed(QuizError):
    """Submit called while the learner may only review."""
    kind = 'AttemptNotAllowed'
    status_code = 409
    default_message = 'No further attempts are allowed for this quiz'


class AttemptLimitExceeded(QuizError):
    """A stale or racing submit arrived after the last attempt was used."""
    kind = 'AttemptLimitExceeded'
    status_code = 409
    default_message = 'No attempts remaining'


class DuplicateSubmission(QuizError):
    """Another submission claimed the same attempt number first."""
    kind = 'DuplicateSubmission'
    status_code = 409
    default_message = 'This attempt was already submitted'


class QuizNotAvailable(QuizError):
    kind = 'QuizNotAvailable'
    status_code = 409
    default_message = 'This quiz is not open for submissions'


class MalformedQuizDefinition(QuizError):
    """Authoring fault upstream; learners only see a generic message."""
    kind = 'MalformedQuizDefinition'
    status_code = 422
    default_message = 'This quiz is currently unavailable'
