from io import StringIO

from django.contrib.auth.models import User
from django.core.management import call_command
from django.test import TestCase

from assessment.management.commands.seed_exam_data import DEMO_EXAM_TITLE, DEMO_QUESTIONS
from assessment.models import Attempt, Exam, UserType


class SeedExamDataTests(TestCase):
    def _seed(self, *args):
        out = StringIO()
        call_command("seed_exam_data", *args, stdout=out)
        return out.getvalue()

    def test_seed_creates_demo_exam_and_users(self):
        output = self._seed()

        exam = Exam.objects.get(title=DEMO_EXAM_TITLE)
        self.assertEqual(exam.questions.count(), len(DEMO_QUESTIONS))
        self.assertEqual(exam.total_marks, sum(q["marks"] for q in DEMO_QUESTIONS))
        self.assertEqual(User.objects.get(username="exam_admin").profile.user_type, UserType.ADMIN)
        self.assertEqual(User.objects.get(username="student").profile.user_type, UserType.STUDENT)
        self.assertIn("Seeding finished", output)

    def test_seed_is_repeatable(self):
        self._seed()
        self._seed()
        self.assertEqual(Exam.objects.filter(title=DEMO_EXAM_TITLE).count(), 1)

    def test_seed_with_submission_leaves_text_answer_for_evaluation(self):
        self._seed("--with-submission")

        attempt = Attempt.objects.get(user__username="student")
        self.assertEqual(attempt.status, Attempt.Status.COMPLETED)
        self.assertEqual(attempt.answers.filter(needs_evaluation=True).count(), 1)

    def test_reset_removes_previous_attempts(self):
        self._seed("--with-submission")
        self._seed("--reset")

        self.assertFalse(Attempt.objects.exists())
        self.assertEqual(Exam.objects.filter(title=DEMO_EXAM_TITLE).count(), 1)
