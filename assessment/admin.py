"""
Assessment Django Admin Configuration

The admin interface is organized into logical sections:
- User Management: user administration with the exam role profile inline
- Examination System: exam authoring with inline questions and a read-only
  view of attempts and their graded answers

Attempts are never edited here. Their status, scores and timestamps are
owned by the grading engine and only change through its services.

Author: Assessment Development Team
Version: 1.0.0
"""

from typing import Optional
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.models import User
from django.utils.translation import gettext_lazy as _
from django.db.models import QuerySet
from django.http import HttpRequest

from .models import Profile, Exam, Question, Attempt, Answer

# --- User Management Administration ---


class ProfileInline(admin.StackedInline):
    """Inline admin for the exam role of a user."""

    model = Profile
    can_delete = False
    verbose_name_plural = "Profile Information"
    fk_name = "user"
    fields = ("user_type",)

    def get_extra(
        self, request: HttpRequest, obj: Optional[User] = None, **kwargs
    ) -> int:
        """Return 0 extra forms since profile should exist or be created automatically."""
        return 0


class UserAdmin(BaseUserAdmin):
    inlines = (ProfileInline,)
    list_display = (
        "username",
        "email",
        "first_name",
        "last_name",
        "is_staff",
        "is_active",
        "get_user_type",
    )
    list_select_related = ("profile",)
    list_filter = ("is_staff", "is_superuser", "is_active", "profile__user_type")
    search_fields = ("username", "first_name", "last_name", "email")
    ordering = ("username",)

    @admin.display(description=_("User Type"))
    def get_user_type(self, instance: User) -> Optional[str]:
        try:
            return instance.profile.get_user_type_display()
        except Profile.DoesNotExist:
            return None


admin.site.unregister(User)
admin.site.register(User, UserAdmin)

# --- Examination System Administration ---


class QuestionInline(admin.TabularInline):
    """Inline admin for exam question authoring."""

    model = Question
    extra = 1
    fields = ("order_number", "type", "question_text", "options", "correct_answer", "marks")
    ordering = ("order_number",)


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    """
    Administration interface for exam authoring.

    Scoring fields and questions are locked by the models once the exam has
    attempts; results are published through the evaluation API, so the
    publication fields are read-only here.
    """

    list_display = (
        "title",
        "status",
        "total_marks",
        "passing_marks",
        "question_count",
        "results_published",
        "created_at",
    )
    list_filter = ("status", "exam_type", "results_published", "created_at")
    search_fields = ("title", "description")
    inlines = [QuestionInline]

    fieldsets = (
        (
            _("Basic Information"),
            {"fields": ("title", "description", "exam_type", "status", "duration")},
        ),
        (_("Scoring"), {"fields": ("total_marks", "passing_marks")}),
        (
            _("Availability"),
            {"fields": ("start_date", "end_date"), "classes": ("collapse",)},
        ),
        (
            _("Publication"),
            {"fields": ("results_published", "published_at", "published_by")},
        ),
        (_("Metadata"), {"fields": ("created_by", "created_at", "updated_at")}),
    )

    readonly_fields = (
        "results_published",
        "published_at",
        "published_by",
        "created_at",
        "updated_at",
    )

    @admin.display(description=_("Questions"))
    def question_count(self, obj: Exam) -> int:
        return obj.questions.count()

    def save_model(self, request, obj, form, change):
        if not change and not obj.created_by_id:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)


class AnswerInline(admin.TabularInline):
    """Read-only answers of an attempt."""

    model = Answer
    extra = 0
    can_delete = False
    fields = (
        "question",
        "answer_text",
        "is_correct",
        "score_awarded",
        "needs_evaluation",
        "evaluated_by",
        "evaluated_at",
    )
    readonly_fields = fields

    def has_add_permission(self, request: HttpRequest, obj=None) -> bool:
        return False


@admin.register(Attempt)
class AttemptAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "exam",
        "status",
        "started_at",
        "submitted_at",
        "total_score",
        "evaluator",
    )
    list_filter = ("status", "exam", "started_at")
    search_fields = ("user__username", "user__email", "exam__title")
    readonly_fields = (
        "user",
        "exam",
        "status",
        "started_at",
        "submitted_at",
        "evaluated_at",
        "published_at",
        "total_score",
        "evaluator",
        "remarks",
        "version",
    )

    fieldsets = (
        (_("Attempt Information"), {"fields": ("user", "exam", "status")}),
        (
            _("Timestamps"),
            {
                "fields": ("started_at", "submitted_at", "evaluated_at", "published_at"),
                "classes": ("collapse",),
            },
        ),
        (_("Grading"), {"fields": ("total_score", "evaluator", "remarks", "version")}),
    )

    inlines = [AnswerInline]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Attempts are only created by students starting an exam."""
        return False

    def get_queryset(self, request: HttpRequest) -> QuerySet:
        return super().get_queryset(request).select_related("user", "exam", "evaluator")
