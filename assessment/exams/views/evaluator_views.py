from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions, status
from rest_framework.views import APIView
from rest_framework.response import Response

from ..models import Exam, Attempt
from ..serializers import (
    ExamSerializer,
    AttemptEvaluationSerializer,
    EvaluateAnswerSerializer,
    BatchEvaluationSerializer,
    PublicationActionSerializer,
)
from ...services.grading import (
    EvaluationCoordinator,
    PublicationGate,
    compute_evaluation_stats,
    with_evaluation_stats,
    summarize_exam_attempts,
)
from ...users.permissions import IsExamAdmin
from .mixins import GradingErrorMixin


def _evaluation_queryset():
    return with_evaluation_stats(
        Attempt.objects.select_related("user", "exam", "evaluator")
    )


class ExamEvaluationView(GradingErrorMixin, APIView):
    """
    Evaluation workspace of one exam.

    GET lists the submitted attempts with their evaluation stats,
    POST grades a single free text answer and
    PUT publishes the exam's results.
    """

    permission_classes = [permissions.IsAuthenticated, IsExamAdmin]

    def get(self, request, exam_id):
        exam = get_object_or_404(Exam, pk=exam_id)
        attempts = list(
            _evaluation_queryset()
            .filter(exam=exam)
            .exclude(status=Attempt.Status.PENDING)
            .order_by("submitted_at", "pk")
        )
        return Response(
            {
                "exam": ExamSerializer(exam).data,
                "attempts": AttemptEvaluationSerializer(attempts, many=True).data,
                "summary": summarize_exam_attempts(attempts),
            }
        )

    def post(self, request, exam_id):
        serializer = EvaluateAnswerSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data

        attempt = EvaluationCoordinator().evaluate(
            data["user_answer_id"],
            data["is_correct"],
            data["score_awarded"],
            request.user,
            remarks=data.get("remarks"),
            exam_id=exam_id,
        )
        return Response(
            {
                "message": "Answer evaluated successfully",
                "attempt_id": attempt.pk,
                "status": attempt.status,
                "total_score": attempt.total_score,
                "evaluation_stats": compute_evaluation_stats(attempt).to_dict(),
            }
        )

    def put(self, request, exam_id):
        serializer = PublicationActionSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        result = PublicationGate().publish(exam_id, request.user)
        data = result.to_dict()
        data["message"] = "Results published successfully"
        return Response(data)


class PendingEvaluationsView(generics.ListAPIView):
    """Submitted attempts that still have free text answers to grade."""

    serializer_class = AttemptEvaluationSerializer
    permission_classes = [permissions.IsAuthenticated, IsExamAdmin]

    def get_queryset(self):
        return (
            _evaluation_queryset()
            .filter(status=Attempt.Status.COMPLETED)
            .order_by("submitted_at", "pk")
        )


class BatchEvaluationView(GradingErrorMixin, APIView):
    permission_classes = [permissions.IsAuthenticated, IsExamAdmin]

    def post(self, request, attempt_id):
        serializer = BatchEvaluationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        attempt = EvaluationCoordinator().evaluate_batch(
            attempt_id,
            serializer.validated_data["evaluations"],
            request.user,
            remarks=serializer.validated_data.get("remarks"),
        )
        return Response(
            {
                "message": "Evaluations saved successfully",
                "attempt_id": attempt.pk,
                "status": attempt.status,
                "total_score": attempt.total_score,
                "evaluation_stats": compute_evaluation_stats(attempt).to_dict(),
            }
        )
