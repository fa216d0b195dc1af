from rest_framework import serializers

from .models import Exam, Question, Attempt, Answer
from ..services.grading import ScoreAggregator, compute_evaluation_stats


class ExamSerializer(serializers.ModelSerializer):
    class Meta:
        model = Exam
        fields = [
            "id",
            "title",
            "description",
            "duration",
            "total_marks",
            "passing_marks",
            "exam_type",
            "status",
            "start_date",
            "end_date",
            "results_published",
            "published_at",
        ]


class AvailableExamSerializer(ExamSerializer):
    """Exam a student can start or resume, with the student's own attempt."""

    question_count = serializers.IntegerField(source="questions.count", read_only=True)
    attempt_id = serializers.IntegerField(read_only=True, allow_null=True)
    attempt_status = serializers.CharField(read_only=True, allow_null=True)

    class Meta(ExamSerializer.Meta):
        fields = ExamSerializer.Meta.fields + ["question_count", "attempt_id", "attempt_status"]


class QuestionSerializer(serializers.ModelSerializer):
    """Question as shown to a student. Never contains the correct answer."""

    class Meta:
        model = Question
        fields = ["id", "question_text", "type", "options", "marks", "order_number"]


class QuestionAdminSerializer(serializers.ModelSerializer):
    class Meta:
        model = Question
        fields = QuestionSerializer.Meta.fields + ["correct_answer"]


class AnswerSerializer(serializers.ModelSerializer):
    """
    Answer with its grade.

    The question's correct answer is only included when the serializer
    context carries ``show_correct_answers=True`` (admin views).
    """

    question = serializers.SerializerMethodField()
    evaluated_by = serializers.CharField(source="evaluated_by.username", read_only=True, default=None)

    class Meta:
        model = Answer
        fields = [
            "id",
            "question",
            "answer_text",
            "is_correct",
            "score_awarded",
            "needs_evaluation",
            "evaluated_by",
            "evaluated_at",
            "remarks",
        ]

    def get_question(self, obj):
        if self.context.get("show_correct_answers"):
            return QuestionAdminSerializer(obj.question).data
        return QuestionSerializer(obj.question).data


class StartAttemptSerializer(serializers.ModelSerializer):
    """Attempt returned when a student starts or resumes an exam."""

    exam = ExamSerializer(read_only=True)
    questions = serializers.SerializerMethodField()
    answers = serializers.SerializerMethodField()

    class Meta:
        model = Attempt
        fields = ["id", "exam", "status", "started_at", "questions", "answers"]

    def get_questions(self, obj):
        return QuestionSerializer(obj.exam.questions.all(), many=True).data

    def get_answers(self, obj):
        return [
            {"question_id": a.question_id, "answer_text": a.answer_text}
            for a in obj.answers.all()
        ]


class SubmitAnswerSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    answer_text = serializers.CharField(
        allow_blank=True, allow_null=True, required=False, default="", trim_whitespace=False
    )


class SubmitAttemptSerializer(serializers.Serializer):
    answers = SubmitAnswerSerializer(many=True)


class SaveProgressSerializer(SubmitAttemptSerializer):
    """Same payload as a submission. Nothing is graded."""


class AttemptHistorySerializer(serializers.ModelSerializer):
    """Own attempts of a student; score fields stay empty until results are visible."""

    exam = ExamSerializer(read_only=True)
    total_score = serializers.SerializerMethodField()
    percentage = serializers.SerializerMethodField()
    passed = serializers.SerializerMethodField()
    results_visible = serializers.BooleanField(read_only=True)

    class Meta:
        model = Attempt
        fields = [
            "id",
            "exam",
            "status",
            "started_at",
            "submitted_at",
            "results_visible",
            "total_score",
            "percentage",
            "passed",
        ]

    def _summary(self, obj):
        if not obj.results_visible:
            return None
        return ScoreAggregator().current_summary(obj)

    def get_total_score(self, obj):
        summary = self._summary(obj)
        return str(summary.total_score) if summary else None

    def get_percentage(self, obj):
        summary = self._summary(obj)
        return summary.percentage if summary else None

    def get_passed(self, obj):
        summary = self._summary(obj)
        return summary.passed if summary else None


class AttemptResultSerializer(serializers.ModelSerializer):
    exam = ExamSerializer(read_only=True)
    answers = serializers.SerializerMethodField()

    class Meta:
        model = Attempt
        fields = [
            "id",
            "exam",
            "status",
            "started_at",
            "submitted_at",
            "evaluated_at",
            "published_at",
            "total_score",
            "remarks",
            "answers",
        ]

    def get_answers(self, obj):
        return AnswerSerializer(
            obj.answers.select_related("question", "evaluated_by"),
            many=True,
            context=self.context,
        ).data


class AttemptEvaluationSerializer(serializers.ModelSerializer):
    """Attempt with user info, graded answers and evaluation stats for evaluators."""

    user = serializers.SerializerMethodField()
    evaluator = serializers.CharField(source="evaluator.username", read_only=True, default=None)
    answers = serializers.SerializerMethodField()
    evaluation_stats = serializers.SerializerMethodField()

    class Meta:
        model = Attempt
        fields = [
            "id",
            "user",
            "status",
            "started_at",
            "submitted_at",
            "evaluated_at",
            "total_score",
            "evaluator",
            "remarks",
            "answers",
            "evaluation_stats",
        ]

    def get_user(self, obj):
        return {
            "id": obj.user_id,
            "username": obj.user.username,
            "email": obj.user.email,
            "full_name": obj.user.get_full_name(),
        }

    def get_answers(self, obj):
        return AnswerSerializer(
            obj.answers.select_related("question", "evaluated_by"),
            many=True,
            context={"show_correct_answers": True},
        ).data

    def get_evaluation_stats(self, obj):
        return compute_evaluation_stats(obj).to_dict()


class EvaluateAnswerSerializer(serializers.Serializer):
    user_answer_id = serializers.IntegerField()
    is_correct = serializers.BooleanField()
    score_awarded = serializers.DecimalField(max_digits=7, decimal_places=2)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BatchEvaluationItemSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    is_correct = serializers.BooleanField()
    score_awarded = serializers.DecimalField(max_digits=7, decimal_places=2)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BatchEvaluationSerializer(serializers.Serializer):
    evaluations = BatchEvaluationItemSerializer(many=True, allow_empty=False)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PublicationActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(
        choices=["publish_results"],
        error_messages={"invalid_choice": "Invalid action"},
    )
