"""
Client-side attempt session.

Holds what a learner's browser holds while taking a quiz: the answer
sheet, the current question, the countdown and the navigator. The server
never sees any of it until ``submit``; the ``submitter`` callable is the
transport (an HTTP call in the web client, ``AttemptService.submit`` in
tests).
"""
import logging
import uuid
from enum import Enum
from typing import Callable, Optional

from learnhub.quiz.lifecycle import AttemptEvent, AttemptState, transition
from learnhub.quiz.scoring import AnswerSheet

logger = logging.getLogger(__name__)


class SubmissionError(Exception):
    """The submitter failed; the answers are kept and the attempt stays open."""


class NavigatorStatus(str, Enum):
    UNANSWERED = 'unanswered'
    ANSWERED = 'answered'
    CURRENT = 'current'
    CORRECT = 'correct'
    INCORRECT = 'incorrect'
    LOCKED = 'locked'


class CountdownTimer:
    """
    Whole-second countdown driven by ``tick``.

    ``on_expire`` runs exactly once, on the tick that reaches zero. A
    cancelled timer never fires.
    """

    def __init__(self, seconds: int, on_expire: Callable[[], None]):
        self.remaining = max(int(seconds), 0)
        self._on_expire = on_expire
        self._fired = False
        self._cancelled = False

    @property
    def expired(self) -> bool:
        return self._fired

    @property
    def active(self) -> bool:
        return not self._fired and not self._cancelled

    def tick(self, seconds: int = 1) -> None:
        if not self.active:
            return
        self.remaining = max(self.remaining - seconds, 0)
        if self.remaining == 0:
            self._fired = True
            self._on_expire()

    def cancel(self) -> None:
        self._cancelled = True

    def display(self) -> str:
        minutes, seconds = divmod(self.remaining, 60)
        return f"{minutes}:{seconds:02d}"


class QuizSession:
    """
    One learner working through one quiz.

    Args:
        total_questions: Number of questions in the quiz
        time_limit_minutes: 0 for no countdown
        submitter: ``submitter(answers, auto_submitted, token) -> dict``;
            returns the submit response body or raises
        state: Resting state the learner starts from
        result: Latest scored attempt already known to the client
    """

    def __init__(self, total_questions: int, time_limit_minutes: int,
                 submitter: Callable[[dict, bool, str], dict],
                 state: AttemptState = AttemptState.NOT_STARTED,
                 result: Optional[dict] = None):
        self.total_questions = total_questions
        self.time_limit_minutes = time_limit_minutes or 0
        self._submitter = submitter
        self.state = state
        self.answers = AnswerSheet(total_questions)
        self.current_index = 0
        self.timer: Optional[CountdownTimer] = None
        self.token: Optional[str] = None
        self.result: Optional[dict] = result
        self.last_error: Optional[Exception] = None
        self._submitting = False

    @classmethod
    def from_status(cls, status: dict, total_questions: int, time_limit_minutes: int,
                    submitter: Callable[[dict, bool, str], dict]) -> "QuizSession":
        """Rebuild a session from an ``attempt-status`` body, e.g. after a page reload."""
        return cls(
            total_questions,
            time_limit_minutes,
            submitter,
            state=AttemptState(status.get('state', AttemptState.NOT_STARTED.value)),
            result=status.get('submission'),
        )

    # -- lifecycle -----------------------------------------------------

    def start(self) -> None:
        self.state = transition(self.state, AttemptEvent.START)
        self.answers = AnswerSheet(self.total_questions)
        self.current_index = 0
        self.result = None
        self.last_error = None
        # One token per attempt; a resend after a lost response replays it
        self.token = uuid.uuid4().hex
        if self.time_limit_minutes > 0:
            self.timer = CountdownTimer(self.time_limit_minutes * 60, self._expire)
        else:
            self.timer = None

    retry = start

    def abandon(self, summary) -> None:
        """Leave without submitting. No attempt is recorded."""
        self.state = transition(self.state, AttemptEvent.ABANDON, summary)
        self._stop_timer()

    def submit(self, auto: bool = False) -> Optional[dict]:
        """
        Send the answers.

        A submit while another is in flight is ignored. On failure the
        answers are kept and the session stays in progress; a manual submit
        re-raises, an automatic one records ``last_error``.
        """
        if self.state is not AttemptState.IN_PROGRESS or self._submitting:
            return None

        self._submitting = True
        try:
            response = self._submitter(self.answers.to_mapping(), auto, self.token)
        except Exception as e:
            self.last_error = e
            logger.warning("Quiz submission failed (auto=%s): %s", auto, e)
            if auto:
                return None
            raise SubmissionError(str(e)) from e
        finally:
            self._submitting = False

        self._stop_timer()
        self.result = response
        self.last_error = None
        self.state = self._resting_state(response)
        return response

    def _expire(self) -> None:
        self.submit(auto=True)

    def _stop_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()

    @staticmethod
    def _resting_state(response: dict) -> AttemptState:
        if response.get('passed'):
            return AttemptState.REVIEW_ALLOWED
        if response.get('canRetry'):
            return AttemptState.RETRY_ALLOWED
        return AttemptState.LOCKED_REVIEW

    # -- answering -----------------------------------------------------

    def select(self, value) -> None:
        if self.state is not AttemptState.IN_PROGRESS:
            return
        self.answers.set(self.current_index, value)

    def go_to(self, index: int) -> None:
        if 0 <= index < self.total_questions:
            self.current_index = index

    def next(self) -> None:
        self.go_to(self.current_index + 1)

    def previous(self) -> None:
        self.go_to(self.current_index - 1)

    def tick(self, seconds: int = 1) -> None:
        if self.timer is not None and self.state is AttemptState.IN_PROGRESS:
            self.timer.tick(seconds)

    # -- navigator -----------------------------------------------------

    def navigator(self) -> list:
        """Status of every question button, in question order."""
        if self.state is AttemptState.IN_PROGRESS:
            return [self._in_progress_status(i) for i in range(self.total_questions)]

        if self.result is None:
            return [NavigatorStatus.UNANSWERED] * self.total_questions

        results = self.result.get('results')
        if results is None:
            # Correctness withheld until the learner passes or runs out of retries
            return [NavigatorStatus.LOCKED] * self.total_questions

        by_index = {r['questionIndex']: r['isCorrect'] for r in results}
        return [
            NavigatorStatus.CORRECT if by_index.get(i) else NavigatorStatus.INCORRECT
            for i in range(self.total_questions)
        ]

    def _in_progress_status(self, index: int) -> NavigatorStatus:
        if index == self.current_index:
            return NavigatorStatus.CURRENT
        if self.answers.is_answered(index):
            return NavigatorStatus.ANSWERED
        return NavigatorStatus.UNANSWERED
