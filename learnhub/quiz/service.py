"""
Attempt lifecycle controller.

``AttemptService.get_status`` answers "what can this learner do right now?"
and ``AttemptService.submit`` grades and stores one attempt. Both work per
request; the only shared state is the attempt history of one
(learner, quiz, cohort), which only ``submit`` writes.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from learnhub import db
from learnhub.auth.utils import is_cohort_member, is_enrolled
from learnhub.common.audit import AttemptAuditLogger
from learnhub.quiz.errors import (
    AttemptLimitExceeded, AttemptNotAllowed, DuplicateSubmission, InvalidSubmission,
    MalformedQuizDefinition, NotEnrolled, QuizNotAvailable, QuizNotFound,
)
from learnhub.quiz.lifecycle import (
    AttemptEvent, AttemptState, AttemptSummary, derive_state, ensure_submittable,
    summarize, transition,
)
from learnhub.quiz.locks import KeyedLocks, submission_locks
from learnhub.quiz.models import Quiz, QuizAttempt, QuizProgress, cohort_key
from learnhub.quiz.scoring import AnswerSheet, grade


@dataclass
class AttemptStatus:
    quiz: Quiz
    latest: Optional[QuizAttempt]
    summary: AttemptSummary
    state: AttemptState
    is_open: bool


@dataclass
class SubmitOutcome:
    attempt: QuizAttempt
    summary: AttemptSummary
    state: AttemptState
    replayed: bool = False


class AttemptService:
    """
    Status queries and submissions for quiz attempts.

    Args:
        locks: Lock registry used to serialize submissions per learner+quiz+cohort
        clock: Returns the current naive UTC time
    """

    def __init__(self, locks: KeyedLocks = None, clock: Callable[[], datetime] = None):
        self._locks = locks or submission_locks
        self._clock = clock or datetime.utcnow

    # -- collaborators -------------------------------------------------

    def load_quiz(self, quiz_id: int) -> Quiz:
        quiz = db.session.get(Quiz, quiz_id)
        if quiz is None or not quiz.is_active:
            raise QuizNotFound()
        return quiz

    def check_entitlement(self, learner_id: int, quiz: Quiz, cohort_id: Optional[int]) -> None:
        if cohort_id is not None:
            entitled = is_cohort_member(learner_id, cohort_id, quiz.course_id)
        else:
            entitled = is_enrolled(learner_id, quiz.course_id)
        if not entitled:
            raise NotEnrolled()

    def history(self, learner_id: int, quiz_id: int, cohort_id: Optional[int]) -> list:
        """Stored attempts, oldest first."""
        return QuizAttempt.query.filter_by(
            student_id=learner_id,
            quiz_id=quiz_id,
            cohort_key=cohort_key(cohort_id)
        ).order_by(QuizAttempt.attempt_number).all()

    def _prior_attempts(self, learner_id: int, quiz_id: int, cohort_id: Optional[int]) -> list:
        return self.history(learner_id, quiz_id, cohort_id)

    def _find_by_token(self, learner_id: int, quiz_id: int, cohort_id: Optional[int],
                       token: str) -> Optional[QuizAttempt]:
        return QuizAttempt.query.filter_by(
            student_id=learner_id,
            quiz_id=quiz_id,
            cohort_key=cohort_key(cohort_id),
            submission_token=token
        ).first()

    # -- operations ----------------------------------------------------

    def get_status(self, learner_id: int, quiz_id: int, cohort_id: Optional[int] = None) -> AttemptStatus:
        """Latest attempt and summary for a learner. No side effects."""
        quiz = self.load_quiz(quiz_id)
        self.check_entitlement(learner_id, quiz, cohort_id)

        attempts = self.history(learner_id, quiz_id, cohort_id)
        summary = summarize((a.passed for a in attempts), quiz.max_attempts)
        grace = current_app.config.get('QUIZ_DEADLINE_GRACE_SECONDS', 0)
        return AttemptStatus(
            quiz=quiz,
            latest=attempts[-1] if attempts else None,
            summary=summary,
            state=derive_state(summary),
            is_open=quiz.is_open(self._clock(), grace),
        )

    def submit(self, learner_id: int, quiz_id: int, cohort_id: Optional[int], answers,
               auto_submitted: bool = False, submission_token: str = None,
               started_at: datetime = None) -> SubmitOutcome:
        """
        Grade and store one attempt.

        Raises:
            AttemptNotAllowed: the learner already passed or used every attempt
            AttemptLimitExceeded: a racing submission took the last attempt
            DuplicateSubmission: a racing submission took this attempt number
            MalformedQuizDefinition: the quiz cannot be graded
        """
        quiz = self.load_quiz(quiz_id)
        self.check_entitlement(learner_id, quiz, cohort_id)

        try:
            definition = quiz.to_definition()
            definition.validate()
        except MalformedQuizDefinition as e:
            AttemptAuditLogger.log_malformed_quiz(quiz_id, e.message)
            # Learners only get the generic message; the detail stays in the log
            raise MalformedQuizDefinition() from e

        sheet = AnswerSheet.from_payload(answers, definition.total_questions)

        with self._locks.hold((learner_id, quiz_id, cohort_key(cohort_id))):
            if submission_token:
                existing = self._find_by_token(learner_id, quiz_id, cohort_id, submission_token)
                if existing is not None:
                    return self._replay(existing, quiz, cohort_id, submission_token)

            prior = self._prior_attempts(learner_id, quiz_id, cohort_id)
            summary = summarize((a.passed for a in prior), quiz.max_attempts)
            try:
                ensure_submittable(summary)
            except AttemptNotAllowed:
                AttemptAuditLogger.log_refused(learner_id, quiz_id, AttemptNotAllowed.kind,
                                               summary.to_dict())
                raise

            now = self._clock()
            grace = current_app.config.get('QUIZ_DEADLINE_GRACE_SECONDS', 0)
            if not quiz.is_open(now, grace):
                AttemptAuditLogger.log_refused(learner_id, quiz_id, QuizNotAvailable.kind)
                raise QuizNotAvailable()

            attempt_number = len(prior) + 1
            if attempt_number > quiz.max_attempts:
                AttemptAuditLogger.log_refused(learner_id, quiz_id, AttemptLimitExceeded.kind,
                                               {'attemptNumber': attempt_number})
                raise AttemptLimitExceeded()

            report = grade(sheet, definition)
            is_late = self._is_late(learner_id, quiz_id, started_at, now, definition.time_limit_seconds, grace)

            attempt = QuizAttempt(
                student_id=learner_id,
                quiz_id=quiz_id,
                course_id=quiz.course_id,
                cohort_id=cohort_id,
                cohort_key=cohort_key(cohort_id),
                attempt_number=attempt_number,
                answers=sheet.to_mapping(),
                results=[r.to_dict() for r in report.results],
                score=report.score,
                total_questions=report.total_questions,
                percent=report.percent,
                passed=report.passed,
                auto_submitted=bool(auto_submitted),
                submission_token=submission_token or None,
                started_at=started_at,
                is_late=is_late,
                submitted_at=now,
            )
            try:
                db.session.add(attempt)
                if report.passed:
                    self._mark_completed(learner_id, quiz, cohort_id, now)
                db.session.commit()
            except IntegrityError:
                db.session.rollback()
                return self._resolve_conflict(learner_id, quiz, cohort_id, submission_token)

        updated = summarize([a.passed for a in prior] + [attempt.passed], quiz.max_attempts)
        event = AttemptEvent.EXPIRE if auto_submitted else AttemptEvent.SUBMIT
        state = transition(AttemptState.IN_PROGRESS, event, updated)

        AttemptAuditLogger.log_submission(
            learner_id, quiz_id, cohort_id, attempt.attempt_number,
            attempt.percent, attempt.passed, attempt.auto_submitted
        )
        return SubmitOutcome(attempt=attempt, summary=updated, state=state)

    # -- helpers -------------------------------------------------------

    def _replay(self, attempt: QuizAttempt, quiz: Quiz, cohort_id: Optional[int], token: str) -> SubmitOutcome:
        attempts = self.history(attempt.student_id, quiz.id, cohort_id)
        summary = summarize((a.passed for a in attempts), quiz.max_attempts)
        AttemptAuditLogger.log_replay(attempt.student_id, quiz.id, attempt.id, token)
        return SubmitOutcome(attempt=attempt, summary=summary, state=derive_state(summary), replayed=True)

    def _resolve_conflict(self, learner_id: int, quiz: Quiz, cohort_id: Optional[int],
                          token: Optional[str]) -> SubmitOutcome:
        """
        Another writer inserted first. Replay it if it carried our token,
        otherwise refuse without persisting anything.
        """
        if token:
            existing = self._find_by_token(learner_id, quiz.id, cohort_id, token)
            if existing is not None:
                return self._replay(existing, quiz, cohort_id, token)

        stored = len(self.history(learner_id, quiz.id, cohort_id))
        if stored >= quiz.max_attempts:
            error = AttemptLimitExceeded()
        else:
            error = DuplicateSubmission()
        AttemptAuditLogger.log_refused(learner_id, quiz.id, error.kind, {'storedAttempts': stored})
        raise error

    def _is_late(self, learner_id: int, quiz_id: int, started_at: Optional[datetime], now: datetime,
                 limit_seconds: int, grace_seconds: int) -> bool:
        """Late submissions are recorded, never rejected."""
        if started_at is None or limit_seconds <= 0:
            return False
        if started_at > now + timedelta(seconds=grace_seconds):
            raise InvalidSubmission('startedAt is in the future')
        deadline = started_at + timedelta(seconds=limit_seconds + grace_seconds)
        if now <= deadline:
            return False
        AttemptAuditLogger.log_late(learner_id, quiz_id, (now - deadline).total_seconds())
        return True

    def _mark_completed(self, learner_id: int, quiz: Quiz, cohort_id: Optional[int], now: datetime) -> None:
        progress = QuizProgress.query.filter_by(
            student_id=learner_id,
            quiz_id=quiz.id,
            cohort_key=cohort_key(cohort_id)
        ).first()
        if progress is None:
            progress = QuizProgress(
                student_id=learner_id,
                course_id=quiz.course_id,
                quiz_id=quiz.id,
                cohort_id=cohort_id,
                cohort_key=cohort_key(cohort_id),
            )
            db.session.add(progress)
        progress.is_completed = True
        progress.completed_at = progress.completed_at or now
        progress.updated_at = now

