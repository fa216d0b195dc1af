from django.db import models
from django.conf import settings
from django.utils.translation import gettext_lazy as _
from django.core.validators import MinValueValidator
from django.core.exceptions import ValidationError
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class ExamStatus(models.TextChoices):
    DRAFT = "draft", _("Draft")
    ACTIVE = "active", _("Active")
    INACTIVE = "inactive", _("Inactive")


class QuestionType(models.TextChoices):
    MCQ = "mcq", _("Multiple Choice")
    TRUE_FALSE = "truefalse", _("True / False")
    TEXT = "text", _("Free Text")


OBJECTIVE_QUESTION_TYPES = (QuestionType.MCQ, QuestionType.TRUE_FALSE)


class Exam(models.Model):
    # Fields that decide how attempts are scored; frozen once attempts exist.
    SCORING_FIELDS = ("total_marks", "passing_marks")

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    duration = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text=_("Allotted time in minutes."),
    )
    total_marks = models.PositiveIntegerField()
    passing_marks = models.PositiveIntegerField()
    exam_type = models.CharField(max_length=50, default="standard")
    status = models.CharField(
        max_length=10, choices=ExamStatus.choices, default=ExamStatus.DRAFT
    )
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)

    results_published = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)
    published_by = models.ForeignKey(
        User,
        related_name="published_exams",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )

    created_by = models.ForeignKey(
        User,
        related_name="created_exams",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Exam")
        verbose_name_plural = _("Exams")
        ordering = ["-created_at"]

    def __str__(self):
        return self.title

    def clean(self):
        if (
            self.passing_marks is not None
            and self.total_marks is not None
            and self.passing_marks > self.total_marks
        ):
            raise ValidationError(_("Passing marks cannot exceed total marks."))
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValidationError(_("Start date must be before end date."))

    def save(self, *args, **kwargs):
        self.clean()
        if not self._state.adding and self.attempts.exists():
            original = (
                Exam.objects.filter(pk=self.pk).values(*self.SCORING_FIELDS).first()
            )
            if original:
                changed = [
                    field
                    for field in self.SCORING_FIELDS
                    if original[field] != getattr(self, field)
                ]
                if changed:
                    raise ValidationError(
                        _("Scoring fields cannot change once attempts exist: %(fields)s"),
                        params={"fields": ", ".join(changed)},
                    )
        super().save(*args, **kwargs)


class Question(models.Model):
    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name="questions")
    question_text = models.TextField()
    type = models.CharField(
        max_length=10, choices=QuestionType.choices, default=QuestionType.MCQ
    )
    options = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Answer options, multiple choice only."),
    )
    correct_answer = models.CharField(
        max_length=255,
        blank=True,
        help_text=_("Expected answer, multiple choice and true/false only."),
    )
    marks = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    order_number = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = _("Question")
        verbose_name_plural = _("Questions")
        ordering = ["exam", "order_number", "id"]

    def __str__(self):
        return f"{self.question_text[:50]} ({self.type}, {self.marks} marks)"

    def clean(self):
        if self.marks is not None and self.marks < 1:
            raise ValidationError(_("Marks must be a positive integer."))

        if self.type == QuestionType.MCQ:
            if not self.options:
                raise ValidationError(_("Multiple choice questions need options."))
            if self.correct_answer not in self.options:
                raise ValidationError(_("The correct answer must be one of the options."))
        elif self.type == QuestionType.TRUE_FALSE:
            if self.options:
                raise ValidationError(_("True/false questions take no options."))
            if self.correct_answer.strip().lower() not in ("true", "false"):
                raise ValidationError(
                    _("The correct answer of a true/false question must be 'true' or 'false'.")
                )
        elif self.type == QuestionType.TEXT:
            if self.options or self.correct_answer:
                raise ValidationError(
                    _("Free text questions take neither options nor a correct answer.")
                )

        self._check_exam_not_attempted()

    def _check_exam_not_attempted(self):
        if self.exam_id and Attempt.objects.filter(exam_id=self.exam_id).exists():
            raise ValidationError(
                _("Questions cannot change once the exam has attempts.")
            )

    def save(self, *args, **kwargs):
        self.clean()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        self._check_exam_not_attempted()
        return super().delete(*args, **kwargs)


class Attempt(models.Model):
    """A single user's sitting of an exam (``UserExam``)."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        COMPLETED = "completed", _("Completed")
        EVALUATED = "evaluated", _("Evaluated")
        PUBLISHED = "published", _("Published")

    VISIBLE_STATUSES = (Status.EVALUATED, Status.PUBLISHED)

    exam = models.ForeignKey(Exam, on_delete=models.CASCADE, related_name="attempts")
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="exam_attempts")
    status = models.CharField(
        max_length=15, choices=Status.choices, default=Status.PENDING
    )
    started_at = models.DateTimeField(default=timezone.now)
    submitted_at = models.DateTimeField(null=True, blank=True)
    evaluated_at = models.DateTimeField(null=True, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    total_score = models.DecimalField(
        max_digits=7,
        decimal_places=2,
        default=0,
        help_text=_("Sum of the awarded answer scores. Computed automatically."),
    )
    evaluator = models.ForeignKey(
        User,
        related_name="evaluated_attempts",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    remarks = models.TextField(blank=True)
    version = models.PositiveIntegerField(
        default=0,
        help_text=_("Incremented on every aggregate write (optimistic locking)."),
    )

    class Meta:
        verbose_name = _("Attempt")
        verbose_name_plural = _("Attempts")
        ordering = ["-started_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "exam"], name="unique_attempt_per_user_and_exam"
            ),
        ]

    def __str__(self):
        return f"Attempt for {self.exam.title} by {self.user.username}"

    @property
    def results_visible(self) -> bool:
        """Whether the owning student may see this attempt's results."""
        return self.exam.results_published and self.status in self.VISIBLE_STATUSES

    @property
    def time_taken_minutes(self):
        if self.started_at and self.submitted_at:
            return round((self.submitted_at - self.started_at).total_seconds() / 60, 2)
        return None


class Answer(models.Model):
    attempt = models.ForeignKey(Attempt, on_delete=models.CASCADE, related_name="answers")
    question = models.ForeignKey(
        Question, on_delete=models.CASCADE, related_name="answers"
    )
    answer_text = models.TextField(blank=True, default="")
    is_correct = models.BooleanField(
        null=True,
        blank=True,
        help_text=_("Empty while the answer has not been graded."),
    )
    score_awarded = models.DecimalField(max_digits=7, decimal_places=2, default=0)
    needs_evaluation = models.BooleanField(default=False)
    evaluated_by = models.ForeignKey(
        User,
        related_name="evaluated_answers",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    evaluated_at = models.DateTimeField(null=True, blank=True)
    remarks = models.TextField(blank=True, null=True)

    class Meta:
        verbose_name = _("Answer")
        verbose_name_plural = _("Answers")
        ordering = ["attempt", "question__order_number", "question__id"]
        constraints = [
            models.UniqueConstraint(
                fields=["attempt", "question"], name="unique_answer_per_attempt_and_question"
            ),
        ]

    def __str__(self):
        return f"Answer to question {self.question_id} in attempt {self.attempt_id}"

    def sync_needs_evaluation(self) -> None:
        self.needs_evaluation = (
            self.question.type == QuestionType.TEXT and self.is_correct is None
        )

    def save(self, *args, **kwargs):
        self.sync_needs_evaluation()
        if self.score_awarded is None:
            self.score_awarded = 0
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "needs_evaluation" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["needs_evaluation"]
        super().save(*args, **kwargs)
