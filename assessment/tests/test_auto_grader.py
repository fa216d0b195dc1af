from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from assessment.models import Answer, Question, QuestionType
from assessment.services.grading import AutoGrader, GRADING_STRATEGIES, GradingValidationError
from assessment.services.grading.auto_grader import get_strategy, normalize_boolean_token


def _question(type_, correct="", marks=2, pk=1, options=None):
    return Question(
        pk=pk,
        type=type_,
        correct_answer=correct,
        marks=marks,
        options=options or [],
        question_text="?",
    )


class AutoGraderTests(SimpleTestCase):
    def setUp(self):
        self.grader = AutoGrader()
        self.mcq = _question(QuestionType.MCQ, correct="Paris", marks=2, options=["Paris", "Rome"])
        self.true_false = _question(QuestionType.TRUE_FALSE, correct="true", marks=3, pk=2)
        self.text = _question(QuestionType.TEXT, marks=5, pk=3)

    def _grade(self, question, text):
        return self.grader.grade(Answer(question_id=question.pk, answer_text=text), question)

    def test_mcq_exact_match_scores_full_marks(self):
        result = self._grade(self.mcq, "Paris")
        self.assertIs(result.is_correct, True)
        self.assertEqual(result.score_awarded, Decimal("2"))

    def test_mcq_match_is_case_sensitive(self):
        result = self._grade(self.mcq, "paris")
        self.assertIs(result.is_correct, False)
        self.assertEqual(result.score_awarded, Decimal("0"))

    def test_true_false_is_case_insensitive(self):
        for text in ("true", "TRUE", " True "):
            with self.subTest(text=text):
                self.assertIs(self._grade(self.true_false, text).is_correct, True)
        result = self._grade(self.true_false, "False")
        self.assertIs(result.is_correct, False)
        self.assertEqual(result.score_awarded, Decimal("0"))

    def test_true_false_rejects_unknown_tokens(self):
        self.assertIs(self._grade(self.true_false, "yes").is_correct, False)

    def test_empty_objective_answers_are_incorrect_not_ungraded(self):
        for question in (self.mcq, self.true_false):
            for text in ("", None):
                with self.subTest(type=question.type, text=text):
                    result = self._grade(question, text)
                    self.assertIs(result.is_correct, False)
                    self.assertEqual(result.score_awarded, Decimal("0"))

    def test_text_answers_are_left_for_evaluation(self):
        result = self._grade(self.text, "A long essay")
        self.assertIsNone(result.is_correct)
        self.assertFalse(result.graded)
        self.assertEqual(result.score_awarded, Decimal("0"))

    def test_grading_is_deterministic(self):
        results = {self._grade(self.mcq, "Paris") for _ in range(5)}
        self.assertEqual(len(results), 1)

    def test_apply_sets_needs_evaluation_only_for_text(self):
        text_answer = Answer(question_id=self.text.pk, answer_text="essay")
        self.grader.apply(text_answer, self.text)
        self.assertTrue(text_answer.needs_evaluation)
        self.assertIsNone(text_answer.is_correct)

        mcq_answer = Answer(question_id=self.mcq.pk, answer_text="Rome")
        self.grader.apply(mcq_answer, self.mcq)
        self.assertFalse(mcq_answer.needs_evaluation)
        self.assertIs(mcq_answer.is_correct, False)

    def test_answer_of_another_question_is_rejected(self):
        with self.assertRaises(GradingValidationError):
            self.grader.grade(Answer(question_id=99, answer_text="Paris"), self.mcq)

    def test_every_question_type_has_one_strategy(self):
        self.assertEqual(set(GRADING_STRATEGIES), set(QuestionType.values))

    def test_unknown_question_type_is_rejected(self):
        with self.assertRaises(GradingValidationError):
            get_strategy("essay")


class BooleanTokenTests(SimpleTestCase):
    def test_default_tokens(self):
        self.assertEqual(normalize_boolean_token("TRUE"), "true")
        self.assertEqual(normalize_boolean_token("false"), "false")
        self.assertIsNone(normalize_boolean_token("maybe"))
        self.assertIsNone(normalize_boolean_token(None))

    @override_settings(ASSESSMENT={"TRUE_TOKENS": ("true", "yes"), "FALSE_TOKENS": ("false", "no")})
    def test_tokens_are_configurable(self):
        self.assertEqual(normalize_boolean_token("Yes"), "true")
        self.assertEqual(normalize_boolean_token("no"), "false")
