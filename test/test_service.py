"""
Test cases for the attempt service against the database.
"""
from datetime import datetime, timedelta
import threading

import pytest

from conftest import add_quiz, answers_with_score
from learnhub import create_app, db
from learnhub.quiz.errors import (
    AttemptLimitExceeded, AttemptNotAllowed, DuplicateSubmission, InvalidSubmission,
    MalformedQuizDefinition, NotEnrolled, QuizError, QuizNotAvailable, QuizNotFound,
)
from learnhub.quiz.lifecycle import AttemptState
from learnhub.quiz.models import Quiz, QuizAttempt, QuizProgress
from learnhub.quiz.locks import KeyedLocks, submission_locks
from learnhub.quiz.service import AttemptService

FOUR_QUESTIONS = [1, 1, 'true', 'false']


@pytest.fixture
def service(app_ctx):
    return AttemptService()


@pytest.fixture
def four_question_quiz(app_ctx, seed):
    return add_quiz(seed['course_id'], FOUR_QUESTIONS, max_attempts=2, passing_grade=50).id


def one_of_four():
    return {'0': '1', '1': '0', '2': 'false', '3': 'true'}


def three_of_four():
    return {'0': '1', '1': '1', '2': 'true', '3': 'true'}


class TestScenarios:
    """Test cases for the learner journeys."""

    def test_scenario_a_failed_first_attempt(self, service, seed, four_question_quiz):
        outcome = service.submit(seed['student_id'], four_question_quiz, None, one_of_four())
        assert outcome.attempt.attempt_number == 1
        assert outcome.attempt.score == 1
        assert outcome.attempt.percent == 25
        assert outcome.attempt.passed is False
        assert outcome.summary.to_dict() == {
            'attemptsCount': 1, 'maxAttempts': 2, 'passed': False, 'canRetry': True,
        }
        assert outcome.state is AttemptState.RETRY_ALLOWED

    def test_scenario_b_retry_and_pass(self, service, seed, four_question_quiz):
        service.submit(seed['student_id'], four_question_quiz, None, one_of_four())
        outcome = service.submit(seed['student_id'], four_question_quiz, None, three_of_four())
        assert outcome.attempt.attempt_number == 2
        assert outcome.attempt.passed is True
        assert outcome.summary.can_retry is False
        assert outcome.state is AttemptState.REVIEW_ALLOWED

    def test_scenario_c_two_failures_lock(self, service, seed, four_question_quiz):
        service.submit(seed['student_id'], four_question_quiz, None, one_of_four())
        outcome = service.submit(seed['student_id'], four_question_quiz, None, {'0': '1'})
        assert outcome.summary.to_dict() == {
            'attemptsCount': 2, 'maxAttempts': 2, 'passed': False, 'canRetry': False,
        }
        assert outcome.state is AttemptState.LOCKED_REVIEW

        with pytest.raises(AttemptNotAllowed):
            service.submit(seed['student_id'], four_question_quiz, None, three_of_four())
        assert QuizAttempt.query.filter_by(quiz_id=four_question_quiz).count() == 2

    def test_scenario_d_missing_answers_never_throw(self, service, seed, four_question_quiz):
        outcome = service.submit(seed['student_id'], four_question_quiz, None, {})
        assert outcome.attempt.score == 0
        assert outcome.attempt.answers == {}
        assert all(not r['isCorrect'] for r in outcome.attempt.results)

    def test_submit_after_pass_refused(self, service, seed):
        quiz_id = seed['triple_quiz_id']
        service.submit(seed['student_id'], quiz_id, None, answers_with_score(10))
        with pytest.raises(AttemptNotAllowed, match='already passed'):
            service.submit(seed['student_id'], quiz_id, None, answers_with_score(10))


class TestAttemptNumbers:
    """Test cases for attempt numbering and concurrency."""

    def test_numbers_are_sequential(self, service, seed):
        quiz_id = seed['triple_quiz_id']
        numbers = [
            service.submit(seed['student_id'], quiz_id, None, answers_with_score(2)).attempt.attempt_number
            for _ in range(3)
        ]
        assert numbers == [1, 2, 3]

    def test_stale_read_on_last_attempt_hits_limit(self, service, seed, monkeypatch):
        quiz_id = seed['single_quiz_id']
        service.submit(seed['student_id'], quiz_id, None, answers_with_score(2))

        # Simulate a racing request that read the history before the first insert
        monkeypatch.setattr(service, '_prior_attempts', lambda *args: [])
        with pytest.raises(AttemptLimitExceeded):
            service.submit(seed['student_id'], quiz_id, None, answers_with_score(9))

        assert QuizAttempt.query.filter_by(quiz_id=quiz_id).count() == 1
        assert QuizProgress.query.filter_by(quiz_id=quiz_id).count() == 0

    def test_stale_read_with_retries_left_is_duplicate(self, service, seed, monkeypatch):
        quiz_id = seed['triple_quiz_id']
        service.submit(seed['student_id'], quiz_id, None, answers_with_score(2))

        monkeypatch.setattr(service, '_prior_attempts', lambda *args: [])
        with pytest.raises(DuplicateSubmission):
            service.submit(seed['student_id'], quiz_id, None, answers_with_score(2))
        assert QuizAttempt.query.filter_by(quiz_id=quiz_id).count() == 1

    def test_same_token_replays_attempt(self, service, seed):
        quiz_id = seed['triple_quiz_id']
        first = service.submit(seed['student_id'], quiz_id, None, answers_with_score(2),
                               auto_submitted=True, submission_token='tok-1')
        again = service.submit(seed['student_id'], quiz_id, None, answers_with_score(9),
                               auto_submitted=True, submission_token='tok-1')
        assert again.replayed is True
        assert again.attempt.id == first.attempt.id
        assert again.attempt.score == 2
        assert QuizAttempt.query.filter_by(quiz_id=quiz_id).count() == 1

    def test_token_replay_after_limit_reached(self, service, seed):
        quiz_id = seed['single_quiz_id']
        service.submit(seed['student_id'], quiz_id, None, answers_with_score(2), submission_token='tok-2')
        again = service.submit(seed['student_id'], quiz_id, None, answers_with_score(2), submission_token='tok-2')
        assert again.replayed is True
        assert again.state is AttemptState.LOCKED_REVIEW

    def test_histories_are_scoped_by_cohort(self, service, seed):
        quiz_id = seed['single_quiz_id']
        service.submit(seed['student_id'], quiz_id, None, answers_with_score(2))
        outcome = service.submit(seed['student_id'], quiz_id, seed['cohort_id'], answers_with_score(2))
        assert outcome.attempt.attempt_number == 1
        assert outcome.attempt.cohort_id == seed['cohort_id']


class TestEntitlement:
    """Test cases for quiz lookup and enrollment checks."""

    def test_outsider_not_enrolled(self, service, seed):
        with pytest.raises(NotEnrolled):
            service.get_status(seed['outsider_id'], seed['single_quiz_id'])

    def test_unknown_cohort_not_enrolled(self, service, seed):
        with pytest.raises(NotEnrolled):
            service.submit(seed['student_id'], seed['single_quiz_id'], 9999, {})

    def test_missing_quiz(self, service, seed):
        with pytest.raises(QuizNotFound):
            service.get_status(seed['student_id'], 9999)

    def test_inactive_quiz_hidden(self, service, seed):
        quiz = db.session.get(Quiz, seed['single_quiz_id'])
        quiz.is_active = False
        db.session.commit()
        with pytest.raises(QuizNotFound):
            service.get_status(seed['student_id'], quiz.id)


class TestStatus:
    """Test cases for status queries."""

    def test_not_started(self, service, seed):
        status = service.get_status(seed['student_id'], seed['triple_quiz_id'])
        assert status.latest is None
        assert status.state is AttemptState.NOT_STARTED
        assert status.is_open is True

    def test_latest_attempt_reported(self, service, seed):
        quiz_id = seed['triple_quiz_id']
        service.submit(seed['student_id'], quiz_id, None, answers_with_score(2))
        service.submit(seed['student_id'], quiz_id, None, answers_with_score(4))
        status = service.get_status(seed['student_id'], quiz_id)
        assert status.latest.attempt_number == 2
        assert status.latest.score == 4
        assert status.summary.attempts_count == 2

    def test_status_has_no_side_effects(self, service, seed):
        service.get_status(seed['student_id'], seed['triple_quiz_id'])
        assert QuizAttempt.query.count() == 0


class TestQuizDefinitionFaults:
    """Test cases for quizzes that cannot be graded."""

    def test_empty_quiz_is_malformed(self, service, seed):
        quiz_id = add_quiz(seed['course_id'], []).id
        with pytest.raises(MalformedQuizDefinition):
            service.submit(seed['student_id'], quiz_id, None, {})
        assert QuizAttempt.query.count() == 0

    def test_bad_answer_key_is_malformed(self, service, seed):
        quiz_id = add_quiz(seed['course_id'], [7]).id
        with pytest.raises(MalformedQuizDefinition) as excinfo:
            service.submit(seed['student_id'], quiz_id, None, {'0': '7'})
        assert excinfo.value.message == MalformedQuizDefinition.default_message
        assert 'option 7' not in excinfo.value.message
        # The authoring detail is kept on the chained error for the log
        assert 'option 7' in excinfo.value.__cause__.message


class TestWindowAndDeadline:
    """Test cases for the availability window and late flag."""

    def test_closed_quiz_refused(self, seed, app_ctx):
        now = datetime(2026, 3, 1, 12, 0, 0)
        quiz_id = add_quiz(seed['course_id'], [1, 1], closes_at=now - timedelta(minutes=5)).id
        service = AttemptService(clock=lambda: now)
        with pytest.raises(QuizNotAvailable):
            service.submit(seed['student_id'], quiz_id, None, {'0': '1'})
        assert service.get_status(seed['student_id'], quiz_id).is_open is False

    def test_grace_after_close(self, seed, app_ctx):
        now = datetime(2026, 3, 1, 12, 0, 0)
        quiz_id = add_quiz(seed['course_id'], [1, 1], closes_at=now - timedelta(seconds=10)).id
        service = AttemptService(clock=lambda: now)
        outcome = service.submit(seed['student_id'], quiz_id, None, {'0': '1'})
        assert outcome.attempt.attempt_number == 1

    def test_not_yet_open(self, seed, app_ctx):
        now = datetime(2026, 3, 1, 12, 0, 0)
        quiz_id = add_quiz(seed['course_id'], [1, 1], opens_at=now + timedelta(days=1)).id
        service = AttemptService(clock=lambda: now)
        with pytest.raises(QuizNotAvailable):
            service.submit(seed['student_id'], quiz_id, None, {'0': '1'})

    def test_late_submission_is_graded_and_flagged(self, seed, app_ctx):
        now = datetime(2026, 3, 1, 12, 0, 0)
        service = AttemptService(clock=lambda: now)
        outcome = service.submit(
            seed['student_id'], seed['timed_quiz_id'], None, answers_with_score(10),
            started_at=now - timedelta(minutes=5)
        )
        assert outcome.attempt.is_late is True
        assert outcome.attempt.passed is True

    def test_submission_within_limit_not_late(self, seed, app_ctx):
        now = datetime(2026, 3, 1, 12, 0, 0)
        service = AttemptService(clock=lambda: now)
        outcome = service.submit(
            seed['student_id'], seed['timed_quiz_id'], None, answers_with_score(3),
            started_at=now - timedelta(seconds=75)
        )
        assert outcome.attempt.is_late is False

    def test_start_time_in_future_rejected(self, seed, app_ctx):
        now = datetime(2026, 3, 1, 12, 0, 0)
        service = AttemptService(clock=lambda: now)
        with pytest.raises(InvalidSubmission):
            service.submit(seed['student_id'], seed['timed_quiz_id'], None, {},
                           started_at=now + timedelta(hours=1))


class TestProgress:
    """Test cases for course progress on pass."""

    def test_pass_marks_quiz_completed(self, service, seed):
        quiz_id = seed['triple_quiz_id']
        service.submit(seed['student_id'], quiz_id, seed['cohort_id'], answers_with_score(2))
        assert QuizProgress.query.filter_by(quiz_id=quiz_id).count() == 0

        service.submit(seed['student_id'], quiz_id, seed['cohort_id'], answers_with_score(8))
        progress = QuizProgress.query.filter_by(quiz_id=quiz_id).one()
        assert progress.is_completed is True
        assert progress.cohort_id == seed['cohort_id']
        assert progress.course_id == seed['course_id']


class TestDefaults:
    """Test cases for configured quiz defaults and lock bookkeeping."""

    def test_quiz_defaults_from_config(self, app_ctx, seed):
        app_ctx.config['QUIZ_DEFAULT_MAX_ATTEMPTS'] = 2
        quiz = Quiz(course_id=seed['course_id'], title='Defaults')
        db.session.add(quiz)
        db.session.commit()
        assert quiz.max_attempts == 2
        assert quiz.passing_grade == 70

    def test_locks_released_after_submit(self, service, seed):
        service.submit(seed['student_id'], seed['single_quiz_id'], None, answers_with_score(2))
        with pytest.raises(AttemptNotAllowed):
            service.submit(seed['student_id'], seed['single_quiz_id'], None, answers_with_score(2))
        assert len(submission_locks) == 0


class TestConcurrentSubmissions:
    """Test cases for racing submissions against a file-backed database."""

    WORKERS = 4

    @pytest.fixture
    def app(self, tmp_path, monkeypatch):
        """Threads need a database they can share, so use a file instead of memory."""
        monkeypatch.setenv('DATABASE_URL', f"sqlite:///{tmp_path / 'attempts.db'}")
        app = create_app()
        app.config['TESTING'] = True

        yield app

        with app.app_context():
            db.session.remove()
            db.drop_all()

    @pytest.fixture
    def last_try_quiz_id(self, app, seed):
        """Two attempts allowed, one failure already stored."""
        with app.app_context():
            correct = [1, 1, 1, 1, 1, 1, 1, 1, 'true', 'false']
            quiz_id = add_quiz(seed['course_id'], correct, max_attempts=2).id
            AttemptService().submit(seed['student_id'], quiz_id, None, answers_with_score(1))
            db.session.remove()
        return quiz_id

    def _race(self, app, learner_id, quiz_id, make_service):
        outcomes = []

        def worker():
            with app.app_context():
                try:
                    make_service().submit(learner_id, quiz_id, None, answers_with_score(2))
                    outcomes.append('ok')
                except QuizError as e:
                    outcomes.append(e.kind)
                except Exception as e:
                    outcomes.append(repr(e))
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(self.WORKERS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return outcomes

    def _stored_numbers(self, app, quiz_id):
        with app.app_context():
            return [
                a.attempt_number
                for a in QuizAttempt.query.filter_by(quiz_id=quiz_id).order_by(QuizAttempt.attempt_number)
            ]

    def test_shared_lock_admits_one_writer(self, app, seed, last_try_quiz_id):
        outcomes = self._race(app, seed['student_id'], last_try_quiz_id, AttemptService)

        assert len(outcomes) == self.WORKERS
        assert outcomes.count('ok') == 1
        assert set(outcomes) - {'ok'} == {'AttemptNotAllowed'}
        assert self._stored_numbers(app, last_try_quiz_id) == [1, 2]

    def test_unique_constraint_stops_separate_processes(self, app, seed, last_try_quiz_id, monkeypatch):
        # Every worker reads the history before any of them inserts, as
        # separate processes with their own locks would
        barrier = threading.Barrier(self.WORKERS, timeout=10)
        read_history = AttemptService._prior_attempts

        def read_then_wait(service, *args):
            prior = read_history(service, *args)
            barrier.wait()
            return prior

        monkeypatch.setattr(AttemptService, '_prior_attempts', read_then_wait)
        outcomes = self._race(app, seed['student_id'], last_try_quiz_id,
                              lambda: AttemptService(locks=KeyedLocks()))

        assert len(outcomes) == self.WORKERS
        assert outcomes.count('ok') == 1
        assert set(outcomes) - {'ok'} <= {'AttemptLimitExceeded', 'DuplicateSubmission'}
        assert self._stored_numbers(app, last_try_quiz_id) == [1, 2]
