"""
Submission Service

Student side of the attempt lifecycle.

Pipeline of a submission (one transaction, all-or-nothing):
1. Lock the attempt and check it is still pending
2. Validate every submitted question id against the exam, so a foreign
   question rejects the whole submission before anything is written
3. Store the answer texts and auto-grade every answer
4. Fire ``submit`` (pending -> completed) and recompute the aggregate
5. Fire ``mark_evaluated`` right away when no answer needs a human

While an attempt is pending its answer texts can be saved as progress and
read back to resume; nothing is graded until the submission.

Author: Assessment Development Team
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import OuterRef, Q, QuerySet, Subquery
from django.utils import timezone

from ...exams.models import Answer, Attempt, Exam, ExamStatus, QuestionType
from .attempt_store import lock_attempt
from .auto_grader import AutoGrader
from .evaluation_stats import EvaluationStats, compute_evaluation_stats
from .exceptions import GradingNotFound, GradingValidationError, InvalidTransition
from .retry import retry_on_conflict
from .score_aggregator import ScoreAggregator, ScoreSummary
from .state_machine import AttemptStateMachine

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    """Outcome of a submission."""

    attempt: Attempt
    score: ScoreSummary
    stats: EvaluationStats

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt_id": self.attempt.pk,
            "status": self.attempt.status,
            "submitted_at": self.attempt.submitted_at,
            **self.score.to_dict(),
            "passing_marks": self.attempt.exam.passing_marks,
            "auto_evaluated": self.stats.auto_evaluated,
            "manual_evaluation_needed": self.stats.manual_evaluation_needed,
            "total_questions": self.stats.total_questions,
        }


@dataclass
class AttemptProgress:
    """Saved state of a pending attempt."""

    attempt: Attempt
    saved_answers: List[Dict[str, Any]]
    time_elapsed: float
    time_remaining: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt_id": self.attempt.pk,
            "status": self.attempt.status,
            "started_at": self.attempt.started_at,
            "saved_answers": self.saved_answers,
            "time_elapsed": self.time_elapsed,
            "time_remaining": self.time_remaining,
            "time_limit": self.attempt.exam.duration,
            "total_marks": self.attempt.exam.total_marks,
        }


class SubmissionService:
    """Starts and submits exam attempts."""

    def __init__(self):
        self.grader = AutoGrader()
        self.aggregator = ScoreAggregator()
        self.logger = logger

    # --- Available exams ---

    @staticmethod
    def available_exams(user) -> QuerySet:
        """
        Active exams inside their availability window that the user can still take.

        Exams the user already submitted are left out. Every exam carries the
        user's own attempt as ``attempt_id`` / ``attempt_status`` (both ``None``
        when no attempt was started yet).
        """
        now = timezone.now()
        own_attempts = Attempt.objects.filter(exam=OuterRef("pk"), user=user)
        return (
            Exam.objects.filter(status=ExamStatus.ACTIVE)
            .filter(Q(start_date__isnull=True) | Q(start_date__lte=now))
            .filter(Q(end_date__isnull=True) | Q(end_date__gte=now))
            .exclude(
                attempts__in=Attempt.objects.filter(user=user).exclude(
                    status=Attempt.Status.PENDING
                )
            )
            .annotate(
                attempt_id=Subquery(own_attempts.values("pk")[:1]),
                attempt_status=Subquery(own_attempts.values("status")[:1]),
            )
            .order_by("-created_at")
        )

    # --- Start ---

    def start_attempt(self, exam_id, user) -> Tuple[Attempt, bool]:
        """
        Start an attempt, or resume the user's pending one.

        Args:
            exam_id: Primary key of the exam
            user: The student

        Returns:
            Tuple of (attempt, created)

        Raises:
            GradingNotFound: If the exam does not exist or is not active
            GradingValidationError: Outside the availability window, or if the
                user already submitted this exam
        """
        exam = Exam.objects.filter(pk=exam_id, status=ExamStatus.ACTIVE).first()
        if exam is None:
            raise GradingNotFound("Exam", exam_id)

        existing = Attempt.objects.filter(exam=exam, user=user).first()
        if existing is not None:
            return self._resume(existing), False

        now = timezone.now()
        if exam.start_date and now < exam.start_date:
            raise GradingValidationError("Exam has not started yet")
        if exam.end_date and now > exam.end_date:
            raise GradingValidationError("Exam has ended")

        try:
            with transaction.atomic():
                attempt = Attempt.objects.create(exam=exam, user=user, started_at=now)
                Answer.objects.bulk_create(
                    [
                        Answer(
                            attempt=attempt,
                            question=question,
                            answer_text="",
                            is_correct=None,
                            score_awarded=0,
                            needs_evaluation=question.type == QuestionType.TEXT,
                        )
                        for question in exam.questions.all()
                    ]
                )
        except IntegrityError:
            # Lost the race against a parallel start of the same user.
            existing = Attempt.objects.filter(exam=exam, user=user).first()
            if existing is None:
                raise
            return self._resume(existing), False

        self.logger.info(f"User {user.pk} started attempt {attempt.pk} for exam {exam.pk}")
        return attempt, True

    @staticmethod
    def _resume(attempt: Attempt) -> Attempt:
        if attempt.status != Attempt.Status.PENDING:
            raise GradingValidationError(
                "You have already completed this exam",
                details={"attempt_id": attempt.pk, "status": attempt.status},
            )
        return attempt

    # --- Progress ---

    @staticmethod
    def _pending_attempt(exam_id, user, lock: bool = False) -> Attempt:
        queryset = Attempt.objects.select_related("exam").filter(exam_id=exam_id, user=user)
        if lock:
            queryset = queryset.select_for_update()
        attempt: Optional[Attempt] = queryset.first()
        if attempt is None:
            raise GradingNotFound("Attempt for exam", exam_id)
        if attempt.status != Attempt.Status.PENDING:
            raise InvalidTransition(
                attempt.status, "save_progress", "Exam has already been completed"
            )
        return attempt

    @staticmethod
    def _progress(attempt: Attempt) -> AttemptProgress:
        elapsed = (timezone.now() - attempt.started_at).total_seconds() / 60
        return AttemptProgress(
            attempt=attempt,
            saved_answers=[
                {"question_id": a.question_id, "answer_text": a.answer_text}
                for a in attempt.answers.all()
            ],
            time_elapsed=round(elapsed, 2),
            time_remaining=round(max(0, attempt.exam.duration - elapsed), 2),
        )

    def get_progress(self, exam_id, user) -> AttemptProgress:
        """
        Saved answers and timing of the user's pending attempt.

        Raises:
            GradingNotFound: If the user has no attempt for the exam
            InvalidTransition: If the attempt was already submitted
        """
        return self._progress(self._pending_attempt(exam_id, user))

    def save_progress(self, exam_id, user, answers: Iterable[Dict[str, Any]]) -> AttemptProgress:
        """
        Store answer texts of a pending attempt without grading them.

        Questions left out keep their saved text.

        Raises:
            GradingNotFound: If the user has no attempt for the exam
            InvalidTransition: If the attempt was already submitted
            GradingValidationError: For duplicate or foreign question ids
        """
        submitted = self._index_submitted_answers(answers)

        with transaction.atomic():
            attempt = self._pending_attempt(exam_id, user, lock=True)
            questions = {q.pk: q for q in attempt.exam.questions.all()}
            self._check_foreign_questions(submitted, questions)

            stored = {
                a.question_id: a for a in attempt.answers.select_related("question")
            }
            for question_id, text in submitted.items():
                answer = stored.get(question_id)
                if answer is None:
                    Answer.objects.create(
                        attempt=attempt, question=questions[question_id], answer_text=text
                    )
                elif answer.answer_text != text:
                    answer.answer_text = text
                    answer.save(update_fields=["answer_text"])

        self.logger.debug(
            f"Attempt {attempt.pk}: progress saved for {len(submitted)} questions"
        )
        return self._progress(attempt)

    # --- Submit ---

    @staticmethod
    def _index_submitted_answers(answers: Iterable[Dict[str, Any]]) -> Dict[int, str]:
        submitted: Dict[int, str] = {}
        duplicates: List[int] = []
        for item in answers:
            if "question_id" not in item or item["question_id"] is None:
                raise GradingValidationError("Every answer needs a question_id")
            try:
                question_id = int(item["question_id"])
            except (TypeError, ValueError):
                raise GradingValidationError(
                    "question_id must be an integer",
                    details={"question_id": str(item["question_id"])},
                )
            if question_id in submitted:
                duplicates.append(question_id)
            text = item.get("answer_text")
            submitted[question_id] = "" if text is None else str(text)
        if duplicates:
            raise GradingValidationError(
                "Questions were answered more than once",
                details={"question_ids": sorted(set(duplicates))},
            )
        return submitted

    @staticmethod
    def _check_foreign_questions(submitted: Dict[int, str], questions: Dict[int, Any]) -> None:
        foreign = sorted(set(submitted) - set(questions))
        if foreign:
            raise GradingValidationError(
                "Submission references questions that do not belong to this exam",
                details={"question_ids": foreign},
            )

    def submit_attempt(self, attempt_id, user, answers: Iterable[Dict[str, Any]]) -> SubmissionResult:
        """
        Submit and auto-grade an attempt.

        Args:
            attempt_id: Primary key of the attempt
            user: The owning student
            answers: Iterable of ``{"question_id": int, "answer_text": str}``

        Returns:
            SubmissionResult with the updated attempt, score and stats

        Raises:
            GradingNotFound: If the attempt does not exist or is not the user's
            InvalidTransition: If the attempt was already submitted
            GradingValidationError: If an answer references a foreign question
        """
        return self._submit(attempt_id, user, self._index_submitted_answers(answers))

    @retry_on_conflict()
    def _submit(self, attempt_id, user, submitted: Dict[int, str]) -> SubmissionResult:
        with transaction.atomic():
            attempt = lock_attempt(attempt_id, user=user)
            if attempt.status != Attempt.Status.PENDING:
                raise InvalidTransition(
                    attempt.status, "submit", "Exam has already been submitted"
                )

            questions = {q.pk: q for q in attempt.exam.questions.all()}
            self._check_foreign_questions(submitted, questions)

            stored = {a.question_id: a for a in attempt.answers.all()}
            for question_id, question in questions.items():
                answer = stored.get(question_id) or Answer(attempt=attempt, question=question)
                answer.question = question
                answer.answer_text = submitted.get(question_id, answer.answer_text or "")
                self.grader.apply(answer, question)
                answer.save()

            state = AttemptStateMachine(attempt)
            state.submit()
            score = self.aggregator.recompute_attempt(attempt)
            state.promote_if_fully_evaluated()
            stats = compute_evaluation_stats(attempt)

        self.logger.info(
            f"Attempt {attempt.pk} submitted: score {score.total_score}, "
            f"{stats.auto_evaluated} auto-graded, "
            f"{stats.manual_evaluation_needed} awaiting evaluation, status {attempt.status}"
        )
        return SubmissionResult(attempt=attempt, score=score, stats=stats)
