"""
Publication Gate

Makes an exam's results visible to students. Publication is a bulk, atomic
operation per exam: the exam flag and every ``evaluated -> published``
transition commit together or not at all.

Preconditions:
- The exam has at least one attempt
- No submitted attempt is still waiting for evaluation (``completed``)

Publishing again later is allowed and only picks up attempts that became
``evaluated`` since. There is no unpublish.

Author: Assessment Development Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass

from django.db import DatabaseError, transaction
from django.utils import timezone

from ...exams.models import Attempt, Exam
from .exceptions import (
    ConcurrencyConflict,
    GradingNotFound,
    InvalidTransition,
    PublicationFailed,
)
from .retry import retry_on_conflict
from .state_machine import AttemptStateMachine

logger = logging.getLogger(__name__)


@dataclass
class PublicationResult:
    """Outcome of a publication run."""

    exam: Exam
    published_count: int

    def to_dict(self):
        return {
            "exam_id": self.exam.pk,
            "results_published": self.exam.results_published,
            "published_at": self.exam.published_at,
            "published_count": self.published_count,
        }


class PublicationGate:
    """Publishes exam results in one transaction."""

    def __init__(self):
        self.logger = logger

    def _check_preconditions(self, exam: Exam) -> None:
        attempts = Attempt.objects.filter(exam=exam)
        if not attempts.exists():
            raise PublicationFailed(
                "Exam has no attempts to publish",
                error_code="no_attempts",
                details={"exam_id": exam.pk},
            )
        awaiting = list(
            attempts.filter(status=Attempt.Status.COMPLETED).values_list("pk", flat=True)
        )
        if awaiting:
            raise PublicationFailed(
                "Some submitted attempts have not been fully evaluated",
                error_code="evaluation_incomplete",
                details={"exam_id": exam.pk, "attempt_ids": awaiting},
            )

    @retry_on_conflict()
    def _publish(self, exam_id, publisher) -> PublicationResult:
        with transaction.atomic():
            exam = Exam.objects.select_for_update().filter(pk=exam_id).first()
            if exam is None:
                raise GradingNotFound("Exam", exam_id)
            self._check_preconditions(exam)

            if not exam.results_published:
                exam.results_published = True
                exam.published_at = timezone.now()
                exam.published_by = publisher
                exam.save(
                    update_fields=[
                        "results_published",
                        "published_at",
                        "published_by",
                        "updated_at",
                    ]
                )

            published = 0
            for attempt in (
                Attempt.objects.select_for_update()
                .select_related("exam")
                .filter(exam=exam, status=Attempt.Status.EVALUATED)
            ):
                AttemptStateMachine(attempt).publish()
                published += 1

        return PublicationResult(exam=exam, published_count=published)

    def publish(self, exam_id, publisher) -> PublicationResult:
        """
        Publish the results of an exam.

        Args:
            exam_id: Primary key of the exam
            publisher: The admin user publishing the results

        Returns:
            PublicationResult with the exam and the number of published attempts

        Raises:
            GradingNotFound: If the exam does not exist
            PublicationFailed: If a precondition fails (409) or the bulk
                transition failed and was rolled back (500)
        """
        try:
            result = self._publish(exam_id, publisher)
        except (ConcurrencyConflict, InvalidTransition, DatabaseError) as e:
            self.logger.error(f"Publishing exam {exam_id} failed and was rolled back: {e}")
            raise PublicationFailed(
                "Publishing results failed, no changes were made",
                status_code=500,
                error_code="publication_rolled_back",
                details={"exam_id": exam_id, "reason": str(e)},
            ) from e

        self.logger.info(
            f"Exam {exam_id} results published by {getattr(publisher, 'pk', None)}: "
            f"{result.published_count} attempts published"
        )
        return result
