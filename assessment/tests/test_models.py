from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

from assessment.models import Attempt, Answer, Question, QuestionType, UserType
from assessment.services.grading import SubmissionService, compute_evaluation_stats, with_evaluation_stats
from assessment.users.permissions import is_exam_admin

from .factories import make_student, make_admin, make_exam, add_mcq, add_text, make_scenario_exam, start_and_submit


class QuestionValidationTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.exam = make_exam()

    def _question(self, **kwargs):
        defaults = {"exam": self.exam, "question_text": "?", "marks": 1}
        defaults.update(kwargs)
        return Question(**defaults)

    def test_mcq_correct_answer_must_be_an_option(self):
        with self.assertRaises(ValidationError):
            self._question(type=QuestionType.MCQ, options=["A", "B"], correct_answer="C").save()

    def test_true_false_needs_boolean_answer(self):
        with self.assertRaises(ValidationError):
            self._question(type=QuestionType.TRUE_FALSE, correct_answer="maybe").save()

    def test_text_question_has_no_correct_answer(self):
        with self.assertRaises(ValidationError):
            self._question(type=QuestionType.TEXT, correct_answer="anything").save()

    def test_marks_must_be_positive(self):
        with self.assertRaises(ValidationError):
            self._question(type=QuestionType.TEXT, marks=0).save()


class ExamImmutabilityTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.student = make_student()
        cls.exam = make_exam(total_marks=10, passing_marks=5)
        cls.mcq = add_mcq(cls.exam)

    def test_passing_marks_cannot_exceed_total(self):
        with self.assertRaises(ValidationError):
            make_exam(title="Broken", total_marks=5, passing_marks=6)

    def test_scoring_fields_are_frozen_once_attempted(self):
        SubmissionService().start_attempt(self.exam.pk, self.student)
        self.exam.total_marks = 20
        with self.assertRaises(ValidationError):
            self.exam.save()

    def test_metadata_stays_editable_once_attempted(self):
        SubmissionService().start_attempt(self.exam.pk, self.student)
        self.exam.description = "Updated"
        self.exam.save()

    def test_questions_are_locked_once_attempted(self):
        SubmissionService().start_attempt(self.exam.pk, self.student)
        with self.assertRaises(ValidationError):
            add_text(self.exam, order=2)
        with self.assertRaises(ValidationError):
            self.mcq.delete()

    def test_question_form_validation_reports_attempted_exam(self):
        SubmissionService().start_attempt(self.exam.pk, self.student)
        question = Question(
            exam=self.exam, question_text="New", type=QuestionType.TEXT, marks=2, order_number=2
        )
        with self.assertRaises(ValidationError):
            question.full_clean()

        self.mcq.question_text = "Reworded"
        with self.assertRaises(ValidationError):
            self.mcq.clean()

    def test_one_attempt_per_user_and_exam(self):
        Attempt.objects.create(exam=self.exam, user=self.student)
        with self.assertRaises(IntegrityError):
            Attempt.objects.create(exam=self.exam, user=self.student)


class AnswerTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.student = make_student()
        cls.exam, cls.mcq, cls.true_false, cls.text = make_scenario_exam()

    def test_needs_evaluation_follows_text_grade(self):
        attempt, _ = SubmissionService().start_attempt(self.exam.pk, self.student)
        answer = attempt.answers.get(question=self.text)
        self.assertTrue(answer.needs_evaluation)

        answer.is_correct = True
        answer.save(update_fields=["is_correct"])
        answer.refresh_from_db()
        self.assertFalse(answer.needs_evaluation)

    def test_objective_answers_never_need_evaluation(self):
        attempt, _ = SubmissionService().start_attempt(self.exam.pk, self.student)
        answer = attempt.answers.get(question=self.mcq)
        answer.save()
        self.assertFalse(Answer.objects.get(pk=answer.pk).needs_evaluation)


class EvaluationStatsTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.exam, cls.mcq, cls.true_false, cls.text = make_scenario_exam()
        cls.attempt = start_and_submit(
            cls.exam, make_student(), {cls.mcq: "B", cls.true_false: "false", cls.text: "essay"}
        ).attempt

    def test_stats_from_answer_rows(self):
        stats = compute_evaluation_stats(self.attempt)

        self.assertEqual(stats.total_questions, 3)
        self.assertEqual(stats.evaluated_questions, 2)
        self.assertEqual(stats.auto_evaluated, 2)
        self.assertEqual(stats.manual_evaluation_needed, 1)
        self.assertFalse(stats.fully_evaluated)

    def test_annotated_stats_match_direct_stats(self):
        annotated = with_evaluation_stats(Attempt.objects.filter(pk=self.attempt.pk)).get()
        self.assertEqual(compute_evaluation_stats(annotated), compute_evaluation_stats(self.attempt))


class ProfileTests(TestCase):
    def test_profile_is_created_with_role(self):
        student = make_student()
        staff = User.objects.create_user(username="staff", password="x", is_staff=True)
        root = User.objects.create_superuser(username="root", password="x", email="root@test.com")

        self.assertEqual(student.profile.user_type, UserType.STUDENT)
        self.assertEqual(staff.profile.user_type, UserType.ADMIN)
        self.assertEqual(root.profile.user_type, UserType.SUPER_ADMIN)

    def test_exam_admin_decision(self):
        self.assertFalse(is_exam_admin(make_student()))
        self.assertTrue(is_exam_admin(make_admin()))
        self.assertFalse(is_exam_admin(None))
