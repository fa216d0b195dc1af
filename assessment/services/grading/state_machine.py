"""
Attempt State Machine

Governs the lifecycle of an attempt::

    pending --submit--> completed --mark_evaluated--> evaluated --publish--> published

The chain is linear. There are no branches, reverse edges or skips. Every edge is a named
transition with an explicit guard. An invalid transition raises
``InvalidTransition`` and is never skipped silently.

- ``submit`` runs on student submission, after the auto-grading pass
- ``mark_evaluated`` runs automatically once no answer needs evaluation
- ``publish`` is only driven by the publication gate, in bulk

Author: Assessment Development Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict

from django.utils import timezone

from ...exams.models import Attempt, OBJECTIVE_QUESTION_TYPES
from .attempt_store import versioned_update
from .exceptions import InvalidTransition

logger = logging.getLogger(__name__)

Status = Attempt.Status


@dataclass(frozen=True)
class Transition:
    name: str
    source: str
    target: str
    timestamp_field: str


TRANSITIONS: Dict[str, Transition] = {
    t.name: t
    for t in (
        Transition("submit", Status.PENDING, Status.COMPLETED, "submitted_at"),
        Transition("mark_evaluated", Status.COMPLETED, Status.EVALUATED, "evaluated_at"),
        Transition("publish", Status.EVALUATED, Status.PUBLISHED, "published_at"),
    )
}


def has_ungraded_objective_answers(attempt: Attempt) -> bool:
    return attempt.answers.filter(
        question__type__in=OBJECTIVE_QUESTION_TYPES, is_correct__isnull=True
    ).exists()


def has_answers_needing_evaluation(attempt: Attempt) -> bool:
    return attempt.answers.filter(needs_evaluation=True).exists()


class AttemptStateMachine:
    """
    Drives one attempt through its lifecycle.

    The attempt must be locked by the caller (see ``attempt_store.lock_attempt``);
    status writes use the optimistic version check.
    """

    def __init__(self, attempt: Attempt):
        self.attempt = attempt
        self.logger = logger
        self._guards: Dict[str, Callable[[], str]] = {
            "submit": self._guard_submit,
            "mark_evaluated": self._guard_mark_evaluated,
            "publish": self._guard_publish,
        }

    # --- Guards: return an error message, or "" when the edge may fire ---

    def _guard_submit(self) -> str:
        if has_ungraded_objective_answers(self.attempt):
            return "All objective answers must be graded before the attempt is completed"
        return ""

    def _guard_mark_evaluated(self) -> str:
        if has_answers_needing_evaluation(self.attempt):
            return "Answers still need manual evaluation"
        return ""

    def _guard_publish(self) -> str:
        if not self.attempt.exam.results_published:
            return "Exam results must be published before attempts become published"
        if has_answers_needing_evaluation(self.attempt):
            return "Answers still need manual evaluation"
        return ""

    # --- Transitions ---

    def can(self, name: str) -> bool:
        transition = TRANSITIONS[name]
        return self.attempt.status == transition.source and not self._guards[name]()

    def _fire(self, name: str) -> Attempt:
        transition = TRANSITIONS[name]
        current = self.attempt.status
        if current != transition.source:
            raise InvalidTransition(
                current,
                name,
                f"Cannot {name.replace('_', ' ')} an attempt that is {current} "
                f"(expected {transition.source})",
            )
        reason = self._guards[name]()
        if reason:
            raise InvalidTransition(current, name, reason)

        versioned_update(
            self.attempt,
            status=transition.target,
            **{transition.timestamp_field: timezone.now()},
        )
        self.logger.info(
            f"Attempt {self.attempt.pk}: {transition.source} -> {transition.target} ({name})"
        )
        return self.attempt

    def submit(self) -> Attempt:
        return self._fire("submit")

    def mark_evaluated(self) -> Attempt:
        return self._fire("mark_evaluated")

    def publish(self) -> Attempt:
        return self._fire("publish")

    def promote_if_fully_evaluated(self) -> bool:
        """
        Fire ``mark_evaluated`` if the attempt is completed and nothing is left to grade.

        Returns:
            True if the attempt was promoted
        """
        if self.can("mark_evaluated"):
            self.mark_evaluated()
            return True
        return False
