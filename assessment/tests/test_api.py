from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from assessment.models import Answer, Attempt, Exam, ExamStatus

from .factories import make_student, make_admin, make_exam, add_mcq, add_text, answer_for


class AssessmentApiTests(TestCase):
    """End to end flow: start, submit, evaluate, publish, read the result."""

    @classmethod
    def setUpTestData(cls):
        cls.student = make_student()
        cls.admin = make_admin()
        cls.exam = make_exam(total_marks=100, passing_marks=50)
        cls.text = add_text(cls.exam, marks=20, order=1)
        cls.mcq = add_mcq(cls.exam, correct="B", marks=80, order=2)

    def setUp(self):
        self.student_client = APIClient()
        self.student_client.force_authenticate(user=self.student)
        self.admin_client = APIClient()
        self.admin_client.force_authenticate(user=self.admin)

    def _start(self):
        return self.student_client.post(
            reverse("assessment:start-attempt", args=[self.exam.pk])
        )

    def _submit(self, attempt_id):
        return self.student_client.post(
            reverse("assessment:submit-attempt", args=[attempt_id]),
            {
                "answers": [
                    {"question_id": self.mcq.pk, "answer_text": "B"},
                    {"question_id": self.text.pk, "answer_text": "My essay"},
                ]
            },
            format="json",
        )

    def _submitted_attempt(self):
        attempt_id = self._start().json()["id"]
        self._submit(attempt_id)
        return Attempt.objects.get(pk=attempt_id)

    def _evaluation_url(self):
        return reverse("assessment:exam-evaluation", args=[self.exam.pk])

    def test_start_hides_correct_answers(self):
        response = self._start()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        body = response.json()
        self.assertEqual(body["status"], Attempt.Status.PENDING)
        self.assertFalse(body["resumed"])
        self.assertEqual(len(body["questions"]), 2)
        for question in body["questions"]:
            self.assertNotIn("correct_answer", question)

        resumed = self._start()
        self.assertEqual(resumed.status_code, status.HTTP_200_OK)
        self.assertTrue(resumed.json()["resumed"])

    def test_submit_grades_objective_answers(self):
        attempt_id = self._start().json()["id"]
        response = self._submit(attempt_id)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["status"], Attempt.Status.COMPLETED)
        self.assertEqual(Decimal(str(body["total_score"])), Decimal("80"))
        self.assertEqual(body["manual_evaluation_needed"], 1)

    def test_submit_twice_conflicts(self):
        attempt_id = self._start().json()["id"]
        self._submit(attempt_id)
        response = self._submit(attempt_id)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.json()["error_code"], "invalid_transition")

    def test_submit_with_invalid_payload(self):
        attempt_id = self._start().json()["id"]
        response = self.student_client.post(
            reverse("assessment:submit-attempt", args=[attempt_id]),
            {"answers": [{"answer_text": "B"}]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_submitted_text_is_kept_verbatim(self):
        attempt_id = self._start().json()["id"]
        response = self.student_client.post(
            reverse("assessment:submit-attempt", args=[attempt_id]),
            {"answers": [{"question_id": self.mcq.pk, "answer_text": " B "}]},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        answer = Answer.objects.get(attempt_id=attempt_id, question=self.mcq)
        self.assertEqual(answer.answer_text, " B ")
        self.assertIs(answer.is_correct, False)
        self.assertEqual(answer.score_awarded, Decimal("0"))

    def test_available_exams(self):
        make_exam(title="Draft", status=ExamStatus.DRAFT)
        url = reverse("assessment:available-exams")

        response = self.student_client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        exams = {exam["id"]: exam for exam in response.json()}
        self.assertEqual(list(exams), [self.exam.pk])
        self.assertEqual(exams[self.exam.pk]["question_count"], 2)
        self.assertIsNone(exams[self.exam.pk]["attempt_status"])

        attempt_id = self._start().json()["id"]
        exams = {exam["id"]: exam for exam in self.student_client.get(url).json()}
        self.assertEqual(exams[self.exam.pk]["attempt_id"], attempt_id)
        self.assertEqual(exams[self.exam.pk]["attempt_status"], Attempt.Status.PENDING)

        self._submit(attempt_id)
        self.assertEqual(self.student_client.get(url).json(), [])

    def test_progress_is_saved_and_resumed(self):
        attempt_id = self._start().json()["id"]
        url = reverse("assessment:exam-progress", args=[self.exam.pk])

        response = self.student_client.post(
            url,
            {"answers": [{"question_id": self.text.pk, "answer_text": "First draft "}]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["message"], "Progress saved successfully")

        resumed = self.student_client.get(url)
        self.assertEqual(resumed.status_code, status.HTTP_200_OK)
        body = resumed.json()
        saved = {item["question_id"]: item["answer_text"] for item in body["saved_answers"]}
        self.assertEqual(saved[self.text.pk], "First draft ")
        self.assertEqual(body["attempt_id"], attempt_id)
        self.assertEqual(body["time_limit"], 30)
        self.assertLessEqual(body["time_remaining"], 30)
        self.assertEqual(Attempt.objects.get(pk=attempt_id).status, Attempt.Status.PENDING)

    def test_progress_after_submission_conflicts(self):
        self._submitted_attempt()
        url = reverse("assessment:exam-progress", args=[self.exam.pk])

        response = self.student_client.post(
            url, {"answers": [{"question_id": self.mcq.pk, "answer_text": "A"}]}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.json()["error_code"], "invalid_transition")
        self.assertEqual(self.student_client.get(url).status_code, status.HTTP_409_CONFLICT)

    def test_progress_without_attempt_is_not_found(self):
        response = self.student_client.get(
            reverse("assessment:exam-progress", args=[self.exam.pk])
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_students_cannot_use_evaluation_endpoints(self):
        attempt = self._submitted_attempt()
        answer = answer_for(attempt, self.text)

        responses = [
            self.student_client.get(self._evaluation_url()),
            self.student_client.post(
                self._evaluation_url(),
                {"user_answer_id": answer.pk, "is_correct": True, "score_awarded": "20"},
                format="json",
            ),
            self.student_client.put(self._evaluation_url(), {"action": "publish_results"}, format="json"),
            self.student_client.get(reverse("assessment:pending-evaluations")),
            self.student_client.post(
                reverse("assessment:batch-evaluation", args=[attempt.pk]),
                {"evaluations": [{"id": answer.pk, "is_correct": True, "score_awarded": "20"}]},
                format="json",
            ),
        ]

        for response in responses:
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIsNone(answer_for(attempt, self.text).is_correct)

    def test_anonymous_requests_are_rejected(self):
        response = APIClient().get(self._evaluation_url())
        self.assertIn(
            response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
        )

    def test_evaluation_overview(self):
        self._submitted_attempt()
        response = self.admin_client.get(self._evaluation_url())

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["summary"]["total_submissions"], 1)
        self.assertEqual(body["summary"]["completed"], 1)
        stats = body["attempts"][0]["evaluation_stats"]
        self.assertEqual(stats["total_questions"], 2)
        self.assertEqual(stats["auto_evaluated"], 1)
        self.assertEqual(stats["manual_evaluation_needed"], 1)
        self.assertFalse(stats["fully_evaluated"])

        pending = self.admin_client.get(reverse("assessment:pending-evaluations"))
        self.assertEqual(len(pending.json()), 1)

    def test_out_of_range_score_is_rejected(self):
        attempt = self._submitted_attempt()
        answer = answer_for(attempt, self.text)

        response = self.admin_client.post(
            self._evaluation_url(),
            {"user_answer_id": answer.pk, "is_correct": True, "score_awarded": "21"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["error_code"], "validation_error")
        self.assertIsNone(answer_for(attempt, self.text).is_correct)

    def test_unknown_publication_action(self):
        response = self.admin_client.put(
            self._evaluation_url(), {"action": "evaluate_users"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_full_flow_until_result_is_visible(self):
        attempt = self._submitted_attempt()
        result_url = reverse("assessment:exam-result", args=[self.exam.pk])

        response = self.admin_client.post(
            self._evaluation_url(),
            {
                "user_answer_id": answer_for(attempt, self.text).pk,
                "is_correct": True,
                "score_awarded": "15",
                "remarks": "Well argued",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], Attempt.Status.EVALUATED)

        # Evaluated but not yet published: still withheld.
        withheld = self.student_client.get(result_url)
        self.assertEqual(withheld.status_code, status.HTTP_403_FORBIDDEN)
        history = self.student_client.get(reverse("assessment:attempt-history")).json()
        self.assertIsNone(history[0]["total_score"])

        response = self.admin_client.put(
            self._evaluation_url(), {"action": "publish_results"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["published_count"], 1)
        self.assertTrue(Exam.objects.get(pk=self.exam.pk).results_published)

        response = self.student_client.get(result_url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        body = response.json()
        self.assertEqual(body["attempt"]["status"], Attempt.Status.PUBLISHED)
        self.assertEqual(body["statistics"]["correct_answers"], 2)
        self.assertEqual(body["statistics"]["percentage"], 95.0)
        self.assertTrue(body["statistics"]["passed"])
        for answer in body["attempt"]["answers"]:
            self.assertNotIn("correct_answer", answer["question"])

        history = self.student_client.get(reverse("assessment:attempt-history")).json()
        self.assertEqual(Decimal(history[0]["total_score"]), Decimal("95"))
        self.assertTrue(history[0]["passed"])

    def test_publish_before_evaluation_conflicts(self):
        self._submitted_attempt()
        response = self.admin_client.put(
            self._evaluation_url(), {"action": "publish_results"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.json()["error_code"], "evaluation_incomplete")

    def test_batch_evaluation_endpoint(self):
        attempt = self._submitted_attempt()
        response = self.admin_client.post(
            reverse("assessment:batch-evaluation", args=[attempt.pk]),
            {
                "evaluations": [
                    {"id": answer_for(attempt, self.text).pk, "is_correct": False, "score_awarded": "5"}
                ],
                "remarks": "Needs more depth",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], Attempt.Status.EVALUATED)
        attempt.refresh_from_db()
        self.assertEqual(attempt.total_score, Decimal("85"))
        self.assertEqual(attempt.remarks, "Needs more depth")
