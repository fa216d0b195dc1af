"""
Result Visibility

Student facing read model. An attempt's results are only visible to its owner
once the exam's results are published and the attempt is evaluated or
published. Admins see every result as soon as the attempt is submitted.

Author: Assessment Development Team
Version: 1.0.0
"""

import logging
from typing import Any, Dict

from django.db.models import QuerySet

from ...exams.models import Attempt
from .evaluation_stats import compute_evaluation_stats
from .exceptions import GradingNotFound, GradingValidationError, ResultsNotPublished
from .score_aggregator import ScoreAggregator

logger = logging.getLogger(__name__)


class ResultService:
    def __init__(self):
        self.aggregator = ScoreAggregator()
        self.logger = logger

    def get_visible_attempt(self, exam_id, user, is_admin: bool = False) -> Attempt:
        """
        Return the user's attempt of an exam if its results may be shown.

        Raises:
            GradingNotFound: If the user has no attempt for the exam
            GradingValidationError: If the attempt has not been submitted yet
            ResultsNotPublished: If a student asks before publication
        """
        attempt = (
            Attempt.objects.select_related("exam", "user")
            .filter(exam_id=exam_id, user=user)
            .first()
        )
        if attempt is None:
            raise GradingNotFound("Attempt for exam", exam_id)
        if attempt.status == Attempt.Status.PENDING:
            raise GradingValidationError("Exam has not been submitted yet")
        if not is_admin and not attempt.results_visible:
            self.logger.debug(
                f"User {user.pk} requested unpublished results of attempt {attempt.pk}"
            )
            raise ResultsNotPublished()
        return attempt

    def build_statistics(self, attempt: Attempt) -> Dict[str, Any]:
        answers = list(attempt.answers.all())
        stats = compute_evaluation_stats(attempt)
        summary = self.aggregator.current_summary(attempt)
        return {
            "total_questions": stats.total_questions,
            "correct_answers": sum(1 for a in answers if a.is_correct is True),
            "incorrect_answers": sum(1 for a in answers if a.is_correct is False),
            "pending_evaluation": sum(1 for a in answers if a.needs_evaluation),
            "total_score": summary.total_score,
            "total_marks": attempt.exam.total_marks,
            "percentage": summary.percentage,
            "passed": summary.passed,
            "passing_marks": attempt.exam.passing_marks,
            "time_taken_minutes": attempt.time_taken_minutes,
        }

    @staticmethod
    def student_attempts(user) -> QuerySet:
        return (
            Attempt.objects.select_related("exam")
            .filter(user=user)
            .order_by("-started_at")
        )
