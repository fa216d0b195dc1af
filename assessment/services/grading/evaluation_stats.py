"""
Evaluation Stats

Read-only projection used by evaluators to triage attempts. The numbers are
always computed from the current answer rows in the database and never stored.

Author: Assessment Development Team
Version: 1.0.0
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any, Iterable

from django.db.models import Count, Q, QuerySet

from ...exams.models import Attempt, QuestionType, OBJECTIVE_QUESTION_TYPES

STAT_PREFIX = "stat_"


def _stat_expressions(path: str = "") -> Dict[str, Count]:
    """
    Count expressions for the stats, relative to ``path``.

    With ``path="answers__"`` they annotate an Attempt queryset, with an empty
    path they aggregate an Answer queryset.
    """
    target = path.rstrip("_") or "pk"
    return {
        "total_questions": Count(target, distinct=True),
        "evaluated_questions": Count(
            target, filter=Q(**{f"{path}is_correct__isnull": False}), distinct=True
        ),
        "auto_evaluated": Count(
            target,
            filter=Q(**{f"{path}question__type__in": OBJECTIVE_QUESTION_TYPES}),
            distinct=True,
        ),
        "manual_evaluation_needed": Count(
            target,
            filter=Q(
                **{
                    f"{path}question__type": QuestionType.TEXT,
                    f"{path}needs_evaluation": True,
                }
            ),
            distinct=True,
        ),
    }


@dataclass(frozen=True)
class EvaluationStats:
    total_questions: int
    evaluated_questions: int
    auto_evaluated: int
    manual_evaluation_needed: int

    @property
    def fully_evaluated(self) -> bool:
        return self.manual_evaluation_needed == 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["fully_evaluated"] = self.fully_evaluated
        return data


def with_evaluation_stats(queryset: QuerySet) -> QuerySet:
    """Annotate an Attempt queryset with ``stat_*`` counts in a single query."""
    return queryset.annotate(
        **{
            f"{STAT_PREFIX}{name}": expression
            for name, expression in _stat_expressions("answers__").items()
        }
    )


def compute_evaluation_stats(attempt: Attempt) -> EvaluationStats:
    """
    Stats of one attempt.

    Uses the ``stat_*`` annotations when the attempt came from
    ``with_evaluation_stats``, otherwise queries the answers directly.
    """
    if hasattr(attempt, f"{STAT_PREFIX}total_questions"):
        return EvaluationStats(
            **{
                name: getattr(attempt, f"{STAT_PREFIX}{name}")
                for name in _stat_expressions()
            }
        )
    return EvaluationStats(**attempt.answers.aggregate(**_stat_expressions()))


def summarize_exam_attempts(attempts: Iterable[Attempt]) -> Dict[str, int]:
    """Per-exam summary over attempts annotated by ``with_evaluation_stats``."""
    attempts = list(attempts)
    return {
        "total_submissions": len(attempts),
        "completed": sum(1 for a in attempts if a.status == Attempt.Status.COMPLETED),
        "evaluated": sum(1 for a in attempts if a.status == Attempt.Status.EVALUATED),
        "published": sum(1 for a in attempts if a.status == Attempt.Status.PUBLISHED),
        "fully_evaluated": sum(
            1 for a in attempts if compute_evaluation_stats(a).fully_evaluated
        ),
    }
