"""
Manual Evaluation Coordinator

Human grading of free text answers. Every evaluation:

1. Locks the owning attempt (row lock, released at commit)
2. Validates the grade: text answers only, score within ``[0, marks]``.
   Out-of-range scores are rejected, never clamped
3. Persists the grade on the answer and the evaluator on the attempt
4. Recomputes the attempt aggregate
5. Promotes the attempt to ``evaluated`` once nothing is left to grade

Re-evaluating an answer overwrites the previous grade.

Author: Assessment Development Team
Version: 1.0.0
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from django.db import transaction
from django.utils import timezone

from ...exams.models import Answer, Attempt, QuestionType
from .attempt_store import lock_attempt, versioned_update
from .exceptions import GradingNotFound, GradingValidationError, InvalidTransition
from .retry import retry_on_conflict
from .score_aggregator import ScoreAggregator
from .state_machine import AttemptStateMachine

logger = logging.getLogger(__name__)

EVALUABLE_STATUSES = (Attempt.Status.COMPLETED, Attempt.Status.EVALUATED)


def _parse_score(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        raise GradingValidationError("score_awarded must be a number")
    try:
        score = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise GradingValidationError(
            "score_awarded must be a number", details={"score_awarded": str(value)}
        )
    if not score.is_finite():
        raise GradingValidationError(
            "score_awarded must be a number", details={"score_awarded": str(value)}
        )
    return score


class EvaluationCoordinator:
    """Applies evaluator grades to text answers and keeps the attempt consistent."""

    def __init__(self):
        self.aggregator = ScoreAggregator()
        self.logger = logger

    # --- Validation ---

    @staticmethod
    def _check_attempt_evaluable(attempt: Attempt) -> None:
        if attempt.status not in EVALUABLE_STATUSES:
            raise InvalidTransition(
                attempt.status,
                "evaluate",
                f"Answers of a {attempt.status} attempt cannot be evaluated",
            )

    @staticmethod
    def _validated_grade(answer: Answer, is_correct: Any, score_awarded: Any) -> Decimal:
        question = answer.question
        if question.type != QuestionType.TEXT:
            raise GradingValidationError(
                "Only free text answers can be evaluated manually",
                details={"answer_id": answer.pk, "question_type": question.type},
            )
        if not isinstance(is_correct, bool):
            raise GradingValidationError(
                "is_correct must be true or false", details={"answer_id": answer.pk}
            )

        score = _parse_score(score_awarded)
        if score < 0 or score > question.marks:
            raise GradingValidationError(
                f"score_awarded must be between 0 and {question.marks}",
                details={
                    "answer_id": answer.pk,
                    "score_awarded": str(score),
                    "max_marks": question.marks,
                },
            )
        return score

    # --- Writes ---

    def _apply_grade(self, answer: Answer, is_correct: bool, score: Decimal, evaluator, remarks) -> None:
        answer.is_correct = is_correct
        answer.score_awarded = score
        answer.evaluated_by = evaluator
        answer.evaluated_at = timezone.now()
        answer.remarks = remarks
        answer.save(
            update_fields=[
                "is_correct",
                "score_awarded",
                "evaluated_by",
                "evaluated_at",
                "remarks",
            ]
        )

    def _finish(self, attempt: Attempt, evaluator, **extra_fields) -> None:
        if attempt.evaluator_id != getattr(evaluator, "pk", None) or extra_fields:
            versioned_update(attempt, evaluator=evaluator, **extra_fields)
        self.aggregator.recompute_attempt(attempt)
        AttemptStateMachine(attempt).promote_if_fully_evaluated()

    @retry_on_conflict()
    def evaluate(
        self,
        answer_id,
        is_correct,
        score_awarded,
        evaluator,
        remarks: Optional[str] = None,
        exam_id=None,
    ) -> Attempt:
        """
        Grade one free text answer.

        Args:
            answer_id: Primary key of the answer
            is_correct: Evaluator verdict
            score_awarded: Score within ``[0, question.marks]``
            evaluator: The admin user grading the answer
            remarks: Optional feedback stored on the answer
            exam_id: If given, the answer must belong to this exam

        Returns:
            The updated attempt

        Raises:
            GradingNotFound: If the answer does not exist
            GradingValidationError: For objective answers or an invalid grade
            InvalidTransition: If the attempt is not awaiting evaluation
        """
        with transaction.atomic():
            queryset = Answer.objects.select_related("question").filter(pk=answer_id)
            if exam_id is not None:
                queryset = queryset.filter(attempt__exam_id=exam_id)
            answer = queryset.first()
            if answer is None:
                raise GradingNotFound("Answer", answer_id)

            attempt = lock_attempt(answer.attempt_id)
            self._check_attempt_evaluable(attempt)
            score = self._validated_grade(answer, is_correct, score_awarded)

            self._apply_grade(answer, is_correct, score, evaluator, remarks)
            self._finish(attempt, evaluator)

        self.logger.info(
            f"Answer {answer.pk} of attempt {attempt.pk} evaluated by "
            f"{getattr(evaluator, 'pk', None)}: correct={is_correct}, score={score}, "
            f"attempt total {attempt.total_score}, status {attempt.status}"
        )
        return attempt

    def evaluate_batch(
        self,
        attempt_id,
        evaluations: Iterable[Dict[str, Any]],
        evaluator,
        remarks: Optional[str] = None,
    ) -> Attempt:
        """
        Grade several text answers of one attempt, all or nothing.

        Args:
            attempt_id: Primary key of the attempt
            evaluations: Iterable of ``{"id", "is_correct", "score_awarded", "remarks"?}``
            evaluator: The admin user grading the answers
            remarks: Optional attempt level feedback

        Returns:
            The updated attempt

        Raises:
            GradingNotFound: If the attempt or one of the answers does not exist
            GradingValidationError: If any item is invalid; nothing is written
            InvalidTransition: If the attempt is not awaiting evaluation
        """
        items: List[Dict[str, Any]] = list(evaluations)
        if not items:
            raise GradingValidationError("No evaluations given")
        return self._evaluate_batch(attempt_id, items, evaluator, remarks)

    @retry_on_conflict()
    def _evaluate_batch(
        self,
        attempt_id,
        evaluations: List[Dict[str, Any]],
        evaluator,
        remarks: Optional[str],
    ) -> Attempt:
        with transaction.atomic():
            attempt = lock_attempt(attempt_id)
            self._check_attempt_evaluable(attempt)

            answers = {
                a.pk: a
                for a in attempt.answers.select_related("question").filter(
                    pk__in=[item.get("id") for item in evaluations]
                )
            }
            graded = []
            seen = set()
            for item in evaluations:
                answer = answers.get(item.get("id"))
                if answer is None:
                    raise GradingNotFound("Answer", item.get("id"))
                if answer.pk in seen:
                    raise GradingValidationError(
                        "Answer evaluated more than once in the same batch",
                        details={"answer_id": answer.pk},
                    )
                seen.add(answer.pk)
                score = self._validated_grade(
                    answer, item.get("is_correct"), item.get("score_awarded")
                )
                graded.append((answer, item["is_correct"], score, item.get("remarks")))

            for answer, is_correct, score, answer_remarks in graded:
                self._apply_grade(answer, is_correct, score, evaluator, answer_remarks)

            extra = {"remarks": remarks} if remarks is not None else {}
            self._finish(attempt, evaluator, **extra)

        self.logger.info(
            f"Attempt {attempt.pk}: {len(graded)} answers evaluated by "
            f"{getattr(evaluator, 'pk', None)}, total {attempt.total_score}, "
            f"status {attempt.status}"
        )
        return attempt
