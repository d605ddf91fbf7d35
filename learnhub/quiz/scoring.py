"""
Scoring engine.

Grading is a pure function of the submitted answers and the quiz
definition: no clock, no database, no disclosure decisions. Whether the
per-question results may be shown to the learner is decided later by
``learnhub.quiz.disclosure``.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Union

from learnhub.quiz.definitions import QuizDefinition, normalize_answer
from learnhub.quiz.errors import InvalidSubmission, MalformedQuizDefinition

logger = logging.getLogger(__name__)

AnswerValue = Union[str, int, float, bool]


class AnswerSheet:
    """
    Fixed-size answer slots, one per question index.

    A slot holding ``None`` is an unanswered question. Sizing the sheet to
    the quiz makes "unanswered" a per-slot state instead of a missing key.
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError("size must be non-negative")
        self._slots: list[Optional[AnswerValue]] = [None] * size

    @classmethod
    def from_payload(cls, payload, size: int) -> "AnswerSheet":
        """
        Build a sheet from a client payload.

        Accepts a mapping of question index to value (JSON object keys
        arrive as strings) or a list aligned with question order. Indexes
        outside the quiz are dropped; ``None``/empty values stay unanswered.
        """
        sheet = cls(size)
        if payload is None:
            return sheet

        if isinstance(payload, dict):
            items = payload.items()
        elif isinstance(payload, (list, tuple)):
            items = enumerate(payload)
        else:
            raise InvalidSubmission('answers must be an object keyed by question index')

        for raw_index, value in items:
            try:
                index = int(raw_index)
            except (TypeError, ValueError):
                raise InvalidSubmission(f'Invalid question index: {raw_index!r}')
            if not 0 <= index < size:
                logger.debug("Ignoring answer for out-of-range question index %s", index)
                continue
            if isinstance(value, (dict, list)):
                raise InvalidSubmission(f'Answer for question {index} must be a string or number')
            if value is None or value == '':
                continue
            sheet.set(index, value)
        return sheet

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index: int) -> Optional[AnswerValue]:
        return self._slots[index]

    def set(self, index: int, value: AnswerValue) -> None:
        self._slots[index] = value

    def clear(self, index: int) -> None:
        self._slots[index] = None

    def is_answered(self, index: int) -> bool:
        return self._slots[index] is not None

    def answered_count(self) -> int:
        return sum(1 for slot in self._slots if slot is not None)

    def to_mapping(self) -> dict:
        """Answered slots only, keyed by the string index (the stored shape)."""
        return {str(i): value for i, value in enumerate(self._slots) if value is not None}


@dataclass(frozen=True)
class QuestionResult:
    question_index: int
    is_correct: bool
    correct_answer: str

    def to_dict(self) -> dict:
        return {
            'questionIndex': self.question_index,
            'isCorrect': self.is_correct,
            'correctAnswer': self.correct_answer,
        }


@dataclass(frozen=True)
class GradeReport:
    score: int
    total_questions: int
    percent: int
    passed: bool
    results: tuple[QuestionResult, ...]


def percent_of(score: int, total: int) -> int:
    """
    ``round(score / total * 100)`` with halves rounded up.

    Integer arithmetic keeps 5/8 at 63 rather than Python's banker's 62.
    """
    if total <= 0:
        raise MalformedQuizDefinition('Quiz has no questions')
    return (score * 200 + total) // (total * 2)


def grade(answers: AnswerSheet, quiz: QuizDefinition) -> GradeReport:
    """
    Grade an answer sheet against a quiz.

    Raises:
        MalformedQuizDefinition: the quiz has no questions or an invalid question.
    """
    quiz.validate()
    if len(answers) != quiz.total_questions:
        raise InvalidSubmission('Answer sheet does not match the quiz')

    results = []
    for question in quiz.questions:
        submitted = answers[question.index]
        is_correct = (
            submitted is not None
            and normalize_answer(submitted, question.kind) == question.correct_answer
        )
        results.append(QuestionResult(question.index, is_correct, question.correct_answer))

    score = sum(1 for r in results if r.is_correct)
    percent = percent_of(score, quiz.total_questions)
    return GradeReport(
        score=score,
        total_questions=quiz.total_questions,
        percent=percent,
        passed=percent >= quiz.passing_grade_percent,
        results=tuple(results),
    )
