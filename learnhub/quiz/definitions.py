"""Read-only quiz definitions consumed by the attempt engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from learnhub.quiz.errors import MalformedQuizDefinition

MARKS_PER_QUESTION = 2

TRUE_FALSE_VALUES = ('true', 'false')


class QuestionKind(str, Enum):
    MULTIPLE_CHOICE = 'multiple-choice'
    TRUE_FALSE = 'true-false'


def normalize_answer(value, kind: QuestionKind) -> str:
    """
    Canonical string form of a submitted or correct answer.

    Comparison is case-sensitive, except that true/false answers are folded
    to ``"true"``/``"false"``. Integral floats (``2.0`` from a JSON client)
    compare equal to their integer option index.
    """
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value)
    if kind is QuestionKind.TRUE_FALSE and text.lower() in TRUE_FALSE_VALUES:
        return text.lower()
    return text


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    index: int
    options: tuple[str, ...]
    correct_answer: str
    text: str = ''
    kind: QuestionKind = field(default=QuestionKind.MULTIPLE_CHOICE, init=False)

    def validate(self) -> None:
        if len(self.options) < 2:
            raise MalformedQuizDefinition(
                f'Question {self.index} needs at least two options'
            )
        if self.correct_answer in (None, ''):
            raise MalformedQuizDefinition(f'Question {self.index} has no correct answer')
        if self.correct_answer.isdigit() and int(self.correct_answer) >= len(self.options):
            raise MalformedQuizDefinition(
                f'Question {self.index} points at option {self.correct_answer} '
                f'but has only {len(self.options)} options'
            )


@dataclass(frozen=True)
class TrueFalseQuestion:
    index: int
    correct_answer: str
    text: str = ''
    kind: QuestionKind = field(default=QuestionKind.TRUE_FALSE, init=False)

    @property
    def options(self) -> tuple[str, ...]:
        return ('True', 'False')

    def validate(self) -> None:
        if self.correct_answer not in TRUE_FALSE_VALUES:
            raise MalformedQuizDefinition(
                f'Question {self.index} must have a true/false correct answer'
            )


Question = Union[MultipleChoiceQuestion, TrueFalseQuestion]


@dataclass(frozen=True)
class QuizDefinition:
    """
    A quiz as the attempt engine sees it.

    ``time_limit_minutes == 0`` means unlimited. Question order is the
    identity of answers and results.
    """

    id: int
    title: str
    questions: tuple[Question, ...]
    max_attempts: int = 1
    passing_grade_percent: int = 70
    time_limit_minutes: int = 0

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def total_marks(self) -> int:
        return self.total_questions * MARKS_PER_QUESTION

    @property
    def time_limit_seconds(self) -> int:
        return max(self.time_limit_minutes, 0) * 60

    def validate(self) -> None:
        """Raise MalformedQuizDefinition if the quiz cannot be graded."""
        if not self.questions:
            raise MalformedQuizDefinition('Quiz has no questions')
        if self.max_attempts < 1:
            raise MalformedQuizDefinition('maxAttempts must be at least 1')
        if not 0 <= self.passing_grade_percent <= 100:
            raise MalformedQuizDefinition('passingGrade must be between 0 and 100')
        for position, question in enumerate(self.questions):
            if question.index != position:
                raise MalformedQuizDefinition(
                    f'Question at position {position} has index {question.index}'
                )
            question.validate()


def build_question(index: int, kind, correct_answer, options=None, text: str = '') -> Question:
    """Build the tagged question variant for a raw question record."""
    try:
        kind = QuestionKind(kind)
    except ValueError:
        raise MalformedQuizDefinition(f'Question {index} has unknown type {kind!r}')

    if correct_answer is None:
        raise MalformedQuizDefinition(f'Question {index} has no correct answer')

    if kind is QuestionKind.TRUE_FALSE:
        return TrueFalseQuestion(
            index=index,
            correct_answer=normalize_answer(correct_answer, kind),
            text=text or '',
        )
    return MultipleChoiceQuestion(
        index=index,
        options=tuple(options or ()),
        correct_answer=normalize_answer(correct_answer, kind),
        text=text or '',
    )
