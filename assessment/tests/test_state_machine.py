from django.test import TestCase

from assessment.models import Attempt, Answer
from assessment.services.grading import AttemptStateMachine, InvalidTransition, SubmissionService
from assessment.services.grading.state_machine import TRANSITIONS

from .factories import make_student, make_scenario_exam, start_and_submit

Status = Attempt.Status


class AttemptStateMachineTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.student = make_student()
        cls.exam, cls.mcq, cls.true_false, cls.text = make_scenario_exam()

    def _pending_attempt(self):
        attempt, _ = SubmissionService().start_attempt(self.exam.pk, self.student)
        return attempt

    def _completed_attempt(self):
        return start_and_submit(
            self.exam, self.student, {self.mcq: "B", self.true_false: "true", self.text: "essay"}
        ).attempt

    def test_transitions_form_a_linear_chain(self):
        chain = [(t.source, t.target) for t in TRANSITIONS.values()]
        self.assertEqual(
            chain,
            [
                (Status.PENDING, Status.COMPLETED),
                (Status.COMPLETED, Status.EVALUATED),
                (Status.EVALUATED, Status.PUBLISHED),
            ],
        )

    def test_submit_requires_graded_objective_answers(self):
        attempt = self._pending_attempt()
        machine = AttemptStateMachine(attempt)

        self.assertFalse(machine.can("submit"))
        with self.assertRaises(InvalidTransition):
            machine.submit()
        attempt.refresh_from_db()
        self.assertEqual(attempt.status, Status.PENDING)

    def test_submit_stamps_submitted_at_and_bumps_version(self):
        attempt = self._pending_attempt()
        Answer.objects.filter(attempt=attempt, question__in=[self.mcq, self.true_false]).update(
            is_correct=False
        )
        version = attempt.version

        AttemptStateMachine(attempt).submit()
        attempt.refresh_from_db()

        self.assertEqual(attempt.status, Status.COMPLETED)
        self.assertIsNotNone(attempt.submitted_at)
        self.assertEqual(attempt.version, version + 1)

    def test_mark_evaluated_is_guarded_by_pending_text_answers(self):
        attempt = self._completed_attempt()
        machine = AttemptStateMachine(attempt)

        self.assertFalse(machine.promote_if_fully_evaluated())
        with self.assertRaises(InvalidTransition) as ctx:
            machine.mark_evaluated()
        self.assertEqual(ctx.exception.current_status, Status.COMPLETED)
        self.assertEqual(ctx.exception.status_code, 409)

    def test_promote_when_nothing_left_to_grade(self):
        attempt = self._completed_attempt()
        Answer.objects.filter(attempt=attempt, question=self.text).update(
            is_correct=True, needs_evaluation=False
        )

        self.assertTrue(AttemptStateMachine(attempt).promote_if_fully_evaluated())
        attempt.refresh_from_db()
        self.assertEqual(attempt.status, Status.EVALUATED)
        self.assertIsNotNone(attempt.evaluated_at)

    def test_publish_requires_published_exam(self):
        attempt = self._completed_attempt()
        Answer.objects.filter(attempt=attempt, question=self.text).update(
            is_correct=True, needs_evaluation=False
        )
        machine = AttemptStateMachine(attempt)
        machine.mark_evaluated()

        with self.assertRaises(InvalidTransition):
            machine.publish()

    def test_status_never_moves_backwards_or_skips(self):
        attempt = self._completed_attempt()
        machine = AttemptStateMachine(attempt)

        with self.assertRaises(InvalidTransition):
            machine.submit()
        with self.assertRaises(InvalidTransition):
            machine.publish()
        attempt.refresh_from_db()
        self.assertEqual(attempt.status, Status.COMPLETED)
