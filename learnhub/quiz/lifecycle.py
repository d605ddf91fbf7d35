"""
Attempt lifecycle state machine.

The learner's position for one quiz (and cohort) is one of five states.
``NOT_STARTED``, ``RETRY_ALLOWED``, ``REVIEW_ALLOWED`` and ``LOCKED_REVIEW``
are derived from the stored attempt history; ``IN_PROGRESS`` only exists on
the client, between a start and the submission that lands.

    NOT_STARTED    --start-->  IN_PROGRESS
    RETRY_ALLOWED  --start-->  IN_PROGRESS
    IN_PROGRESS    --submit/expire-->  REVIEW_ALLOWED | RETRY_ALLOWED | LOCKED_REVIEW
    IN_PROGRESS    --abandon-->  (state derived from history, unchanged)

``transition`` is the single authority for these moves; callers never
combine ``passed``/``canRetry`` flags themselves.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from learnhub.quiz.errors import AttemptNotAllowed


class AttemptState(str, Enum):
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    REVIEW_ALLOWED = 'review_allowed'
    RETRY_ALLOWED = 'retry_allowed'
    LOCKED_REVIEW = 'locked_review'


class AttemptEvent(str, Enum):
    START = 'start'
    SUBMIT = 'submit'
    EXPIRE = 'expire'
    ABANDON = 'abandon'


@dataclass(frozen=True)
class AttemptSummary:
    """Derived view of a learner's attempt history; never stored."""

    attempts_count: int
    max_attempts: int
    passed: bool

    @property
    def can_retry(self) -> bool:
        return not self.passed and self.attempts_count < self.max_attempts

    @property
    def attempts_remaining(self) -> int:
        if self.passed:
            return 0
        return max(self.max_attempts - self.attempts_count, 0)

    def to_dict(self) -> dict:
        return {
            'attemptsCount': self.attempts_count,
            'maxAttempts': self.max_attempts,
            'passed': self.passed,
            'canRetry': self.can_retry,
        }


def summarize(passed_flags: Iterable[bool], max_attempts: int) -> AttemptSummary:
    """Build the summary from the ``passed`` flag of every stored attempt."""
    flags = list(passed_flags)
    return AttemptSummary(
        attempts_count=len(flags),
        max_attempts=max_attempts,
        passed=any(flags),
    )


def derive_state(summary: AttemptSummary) -> AttemptState:
    """Resting state implied by the stored history."""
    if summary.attempts_count == 0:
        return AttemptState.NOT_STARTED
    if summary.passed:
        return AttemptState.REVIEW_ALLOWED
    if summary.can_retry:
        return AttemptState.RETRY_ALLOWED
    return AttemptState.LOCKED_REVIEW


def transition(state: AttemptState, event: AttemptEvent,
               summary: Optional[AttemptSummary] = None) -> AttemptState:
    """
    Apply ``event`` to ``state``.

    ``summary`` is the history *after* the event for SUBMIT/EXPIRE, and the
    current history for ABANDON.

    Raises:
        AttemptNotAllowed: the event is not valid in ``state``.
    """
    if event is AttemptEvent.START:
        if state in (AttemptState.NOT_STARTED, AttemptState.RETRY_ALLOWED):
            return AttemptState.IN_PROGRESS
        raise AttemptNotAllowed(_refusal_message(state))

    if event in (AttemptEvent.SUBMIT, AttemptEvent.EXPIRE):
        if state is not AttemptState.IN_PROGRESS:
            raise AttemptNotAllowed(_refusal_message(state))
        if summary is None or summary.attempts_count == 0:
            raise ValueError("a scored transition needs the updated attempt summary")
        return derive_state(summary)

    if event is AttemptEvent.ABANDON:
        if state is not AttemptState.IN_PROGRESS:
            raise AttemptNotAllowed('There is no attempt in progress')
        if summary is None:
            raise ValueError("abandoning needs the current attempt summary")
        return derive_state(summary)

    raise ValueError(f"unknown event {event!r}")


def ensure_submittable(summary: AttemptSummary) -> AttemptState:
    """
    Check that a submission may land on top of ``summary``.

    A server-side submit is a START followed by a SUBMIT, since the
    in-progress session is never persisted. Returns the in-progress state.
    """
    state = derive_state(summary)
    return transition(state, AttemptEvent.START)


def _refusal_message(state: AttemptState) -> str:
    if state is AttemptState.REVIEW_ALLOWED:
        return 'You have already passed this quiz.'
    if state is AttemptState.LOCKED_REVIEW:
        return 'You have used all attempts for this quiz.'
    if state is AttemptState.IN_PROGRESS:
        return 'An attempt is already in progress.'
    return 'This action is not allowed right now.'
