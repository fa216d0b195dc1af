"""
Score Aggregator

Recomputes an attempt's total score and pass state from its answer rows.
``total_score`` is only ever written here, always as the sum of the awarded
answer scores, so the stored total cannot drift from the answers.

Author: Assessment Development Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any

from django.db import transaction
from django.db.models import Sum, DecimalField, Value
from django.db.models.functions import Coalesce

from ...exams.models import Attempt, Exam
from .attempt_store import lock_attempt, versioned_update

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreSummary:
    """Aggregate score of one attempt."""

    total_score: Decimal
    percentage: float
    passed: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_score": self.total_score,
            "percentage": self.percentage,
            "passed": self.passed,
        }


def summarize(total_score: Decimal, exam: Exam) -> ScoreSummary:
    """Derive percentage and pass state for a total score."""
    if exam.total_marks:
        percentage = (total_score / Decimal(exam.total_marks) * 100).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
    else:
        percentage = Decimal("0")
    return ScoreSummary(
        total_score=total_score,
        percentage=float(percentage),
        passed=total_score >= exam.passing_marks,
    )


def sum_awarded_scores(attempt: Attempt) -> Decimal:
    """Sum of ``score_awarded`` over all answers of the attempt (null counts as 0)."""
    total = attempt.answers.aggregate(
        total=Coalesce(
            Sum("score_awarded"),
            Value(Decimal("0")),
            output_field=DecimalField(max_digits=9, decimal_places=2),
        )
    )["total"]
    return Decimal(total).quantize(Decimal("0.01"))


class ScoreAggregator:
    """
    Keeps ``Attempt.total_score`` equal to the sum of its answer scores.

    ``recompute_attempt`` is the explicit final step of every grading write;
    ``recompute`` is the standalone entry point that takes its own lock.
    """

    def __init__(self):
        self.logger = logger

    def recompute_attempt(self, attempt: Attempt) -> ScoreSummary:
        """
        Recompute the aggregate of an attempt that the caller has locked.

        The total is only written when it changed, so recomputing twice without
        intervening writes is a no-op with identical results.

        Raises:
            ConcurrencyConflict: If the attempt was modified since it was read
        """
        total = sum_awarded_scores(attempt)
        if Decimal(attempt.total_score) != total:
            versioned_update(attempt, total_score=total)
            self.logger.info(f"Attempt {attempt.pk}: total score recomputed to {total}")
        return summarize(total, attempt.exam)

    def recompute(self, attempt_id) -> ScoreSummary:
        """
        Recompute the aggregate of an attempt by id.

        Args:
            attempt_id: Primary key of the attempt

        Returns:
            ScoreSummary with total_score, percentage and passed

        Raises:
            GradingNotFound: If the attempt does not exist
        """
        with transaction.atomic():
            attempt = lock_attempt(attempt_id)
            return self.recompute_attempt(attempt)

    def current_summary(self, attempt: Attempt) -> ScoreSummary:
        """Read-only summary of the stored total, used for responses."""
        return summarize(Decimal(attempt.total_score), attempt.exam)
