from rest_framework import generics, permissions, status
from rest_framework.views import APIView
from rest_framework.response import Response

from ..serializers import (
    AvailableExamSerializer,
    StartAttemptSerializer,
    SubmitAttemptSerializer,
    SaveProgressSerializer,
    AttemptHistorySerializer,
    AttemptResultSerializer,
)
from ...services.grading import SubmissionService, ResultService
from ...users.permissions import is_exam_admin
from .mixins import GradingErrorMixin


class AvailableExamsView(generics.ListAPIView):
    serializer_class = AvailableExamSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return SubmissionService.available_exams(self.request.user)


class StartAttemptView(GradingErrorMixin, APIView):
    """Start an attempt, or resume the student's pending attempt."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, exam_id):
        attempt, created = SubmissionService().start_attempt(exam_id, request.user)
        data = StartAttemptSerializer(attempt).data
        data["resumed"] = not created
        return Response(
            data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK
        )


class SubmitAttemptView(GradingErrorMixin, APIView):
    """Submit answers; objective questions are graded immediately."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, attempt_id):
        serializer = SubmitAttemptSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        result = SubmissionService().submit_attempt(
            attempt_id, request.user, serializer.validated_data["answers"]
        )
        data = result.to_dict()
        data["message"] = "Exam submitted successfully"
        return Response(data, status=status.HTTP_200_OK)


class ExamProgressView(GradingErrorMixin, APIView):
    """Saved answers of a pending attempt (GET), or auto-save them (POST)."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, exam_id):
        progress = SubmissionService().get_progress(exam_id, request.user)
        return Response(progress.to_dict())

    def post(self, request, exam_id):
        serializer = SaveProgressSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        progress = SubmissionService().save_progress(
            exam_id, request.user, serializer.validated_data["answers"]
        )
        data = progress.to_dict()
        data["message"] = "Progress saved successfully"
        return Response(data, status=status.HTTP_200_OK)


class ExamResultView(GradingErrorMixin, APIView):
    """Own result of an exam, only once the results are published."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, exam_id):
        admin = is_exam_admin(request.user)
        service = ResultService()
        attempt = service.get_visible_attempt(exam_id, request.user, is_admin=admin)
        return Response(
            {
                "attempt": AttemptResultSerializer(
                    attempt, context={"show_correct_answers": admin}
                ).data,
                "statistics": service.build_statistics(attempt),
            }
        )


class AttemptHistoryView(generics.ListAPIView):
    serializer_class = AttemptHistorySerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return ResultService.student_attempts(self.request.user)
