"""
Assessment URL Configuration

URL Structure:
- my-exams/available/: exams a student can start or resume
- exams/<id>/start/, exams/<id>/progress/, attempts/<id>/submit/: taking an exam
- exams/<id>/result/, my-exams/history/: publication-gated results
- exams/<id>/evaluation/, evaluations/pending/, attempts/<id>/evaluations/:
  evaluation and publication (admins only)

Author: Assessment Development Team
Version: 1.0.0
"""

from typing import List
from django.urls import path, URLPattern

from .exams import views as exam_views

app_name = "assessment"

# --- Student URL Patterns ---

student_urlpatterns: List[URLPattern] = [
    path("my-exams/available/", exam_views.AvailableExamsView.as_view(), name="available-exams"),
    path("exams/<int:exam_id>/start/", exam_views.StartAttemptView.as_view(), name="start-attempt"),
    path("exams/<int:exam_id>/progress/", exam_views.ExamProgressView.as_view(), name="exam-progress"),
    path("attempts/<int:attempt_id>/submit/", exam_views.SubmitAttemptView.as_view(), name="submit-attempt"),
    path("exams/<int:exam_id>/result/", exam_views.ExamResultView.as_view(), name="exam-result"),
    path("my-exams/history/", exam_views.AttemptHistoryView.as_view(), name="attempt-history"),
]

# --- Evaluator URL Patterns (admin privileges required) ---

evaluator_urlpatterns: List[URLPattern] = [
    path("exams/<int:exam_id>/evaluation/", exam_views.ExamEvaluationView.as_view(), name="exam-evaluation"),
    path("evaluations/pending/", exam_views.PendingEvaluationsView.as_view(), name="pending-evaluations"),
    path("attempts/<int:attempt_id>/evaluations/", exam_views.BatchEvaluationView.as_view(), name="batch-evaluation"),
]

urlpatterns: List[URLPattern] = student_urlpatterns + evaluator_urlpatterns
