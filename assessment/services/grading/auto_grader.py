"""
Auto-Grader

Scores answers at submission time. Each question type has exactly one grading
strategy and the strategies are looked up in a registry, so adding a question
type means adding one strategy class and one registry entry.

- mcq: exact string match against the correct answer
- truefalse: case-insensitive match of normalized boolean tokens
- text: never auto-graded, routed to a human evaluator

Missing or empty answers to objective questions are graded as incorrect with
a score of 0. They are never left ungraded.

Author: Assessment Development Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from django.conf import settings

from ...exams.models import Answer, Question, QuestionType
from .exceptions import GradingValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradeResult:
    """Outcome of grading one answer. ``is_correct=None`` means "needs a human"."""

    is_correct: Optional[bool]
    score_awarded: Decimal

    @property
    def graded(self) -> bool:
        return self.is_correct is not None


UNGRADED = GradeResult(is_correct=None, score_awarded=Decimal("0"))


def normalize_boolean_token(value: Optional[str]) -> Optional[str]:
    """
    Map a true/false answer onto ``"true"`` / ``"false"``.

    Returns None for anything that is not a recognised token.
    """
    if value is None:
        return None
    token = str(value).strip().lower()
    grading = getattr(settings, "ASSESSMENT", {})
    if token in grading.get("TRUE_TOKENS", ("true",)):
        return "true"
    if token in grading.get("FALSE_TOKENS", ("false",)):
        return "false"
    return None


class GradingStrategy:
    """Base class: grades a single answer text against its question."""

    question_type: str = ""
    automatic: bool = True

    def grade(self, answer_text: Optional[str], question: Question) -> GradeResult:
        raise NotImplementedError

    @staticmethod
    def _award(is_correct: bool, question: Question) -> GradeResult:
        return GradeResult(
            is_correct=is_correct,
            score_awarded=Decimal(question.marks) if is_correct else Decimal("0"),
        )


class MultipleChoiceStrategy(GradingStrategy):
    question_type = QuestionType.MCQ

    def grade(self, answer_text, question):
        if not answer_text:
            return self._award(False, question)
        return self._award(answer_text == question.correct_answer, question)


class TrueFalseStrategy(GradingStrategy):
    question_type = QuestionType.TRUE_FALSE

    def grade(self, answer_text, question):
        given = normalize_boolean_token(answer_text)
        expected = normalize_boolean_token(question.correct_answer)
        if given is None or expected is None:
            return self._award(False, question)
        return self._award(given == expected, question)


class FreeTextStrategy(GradingStrategy):
    question_type = QuestionType.TEXT
    automatic = False

    def grade(self, answer_text, question):
        return UNGRADED


GRADING_STRATEGIES: Dict[str, GradingStrategy] = {
    str(strategy.question_type): strategy
    for strategy in (MultipleChoiceStrategy(), TrueFalseStrategy(), FreeTextStrategy())
}


def get_strategy(question_type: str) -> GradingStrategy:
    try:
        return GRADING_STRATEGIES[question_type]
    except KeyError:
        raise GradingValidationError(
            f"Unsupported question type '{question_type}'",
            details={"question_type": question_type},
        )


class AutoGrader:
    """
    Grades answers with the strategy registered for their question type.

    The grader only computes and applies results to the answer instance;
    persisting is left to the submission service so that a whole submission
    is written in one transaction.
    """

    def __init__(self):
        self.logger = logger

    def grade(self, answer: Answer, question: Question) -> GradeResult:
        """
        Grade one answer.

        Args:
            answer: The answer to grade
            question: The question the answer belongs to

        Returns:
            GradeResult with ``is_correct`` and ``score_awarded``

        Raises:
            GradingValidationError: If the answer belongs to another question
        """
        if answer.question_id is not None and answer.question_id != question.pk:
            raise GradingValidationError(
                "Answer does not belong to the given question",
                details={"answer_question_id": answer.question_id, "question_id": question.pk},
            )
        return get_strategy(question.type).grade(answer.answer_text, question)

    def apply(self, answer: Answer, question: Question) -> GradeResult:
        """Grade the answer and write the result onto the (unsaved) instance."""
        result = self.grade(answer, question)
        answer.is_correct = result.is_correct
        answer.score_awarded = result.score_awarded
        answer.needs_evaluation = not get_strategy(question.type).automatic and not result.graded
        return result
