import logging

from django.contrib.auth.models import User
from django.core.management.base import BaseCommand
from django.db import transaction

from ...models import Exam, ExamStatus, Question, QuestionType, Profile, UserType
from ...services.grading import SubmissionService

logger = logging.getLogger(__name__)

DEMO_EXAM_TITLE = "Python Fundamentals Final Exam"

DEMO_QUESTIONS = [
    {
        "question_text": "Which keyword defines a function in Python?",
        "type": QuestionType.MCQ,
        "options": ["func", "def", "lambda", "define"],
        "correct_answer": "def",
        "marks": 2,
    },
    {
        "question_text": "Which of these is an immutable sequence type?",
        "type": QuestionType.MCQ,
        "options": ["list", "dict", "tuple", "set"],
        "correct_answer": "tuple",
        "marks": 2,
    },
    {
        "question_text": "Python lists are zero-indexed.",
        "type": QuestionType.TRUE_FALSE,
        "options": [],
        "correct_answer": "true",
        "marks": 1,
    },
    {
        "question_text": "A dict can use a list as a key.",
        "type": QuestionType.TRUE_FALSE,
        "options": [],
        "correct_answer": "false",
        "marks": 1,
    },
    {
        "question_text": "Explain the difference between a generator and a list comprehension.",
        "type": QuestionType.TEXT,
        "options": [],
        "correct_answer": "",
        "marks": 4,
    },
]

DEMO_SUBMISSION = ["def", "list", "True", "false", "A generator yields items lazily."]


class Command(BaseCommand):
    help = "Seeds a demo exam with objective and free text questions, an exam admin and a student."

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Delete the demo exam and demo users before seeding.",
        )
        parser.add_argument(
            "--with-submission",
            action="store_true",
            help="Also submit a sample attempt for the demo student.",
        )

    def _create_user(self, username, user_type, **extra):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com", **extra},
        )
        if created:
            user.set_password(username)
            user.save(update_fields=["password"])
            self.stdout.write(self.style.SUCCESS(f'User "{username}" created.'))
        Profile.objects.update_or_create(user=user, defaults={"user_type": user_type})
        return user

    def _create_exam(self, created_by):
        exam, created = Exam.objects.get_or_create(
            title=DEMO_EXAM_TITLE,
            defaults={
                "description": "Covers functions, data types and iteration.",
                "duration": 60,
                "total_marks": sum(q["marks"] for q in DEMO_QUESTIONS),
                "passing_marks": 6,
                "status": ExamStatus.ACTIVE,
                "created_by": created_by,
            },
        )
        if not created:
            self.stdout.write(
                self.style.WARNING(f'Exam "{exam.title}" already exists, skipping questions.')
            )
            return exam

        for order, data in enumerate(DEMO_QUESTIONS, start=1):
            Question.objects.create(exam=exam, order_number=order, **data)
        self.stdout.write(
            self.style.SUCCESS(f'Exam "{exam.title}" created with {len(DEMO_QUESTIONS)} questions.')
        )
        return exam

    def _submit_demo_attempt(self, exam, student):
        service = SubmissionService()
        attempt, created = service.start_attempt(exam.pk, student)
        if not created:
            self.stdout.write(self.style.WARNING("Demo student already has an attempt."))
            return
        answers = [
            {"question_id": question.pk, "answer_text": text}
            for question, text in zip(exam.questions.all(), DEMO_SUBMISSION)
        ]
        result = service.submit_attempt(attempt.pk, student, answers)
        self.stdout.write(
            self.style.SUCCESS(
                f"Demo attempt {attempt.pk} submitted: score {result.score.total_score}, "
                f"{result.stats.manual_evaluation_needed} answer(s) awaiting evaluation."
            )
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options["reset"]:
            self.stdout.write(self.style.WARNING("Deleting demo exam data..."))
            Exam.objects.filter(title=DEMO_EXAM_TITLE).delete()
            User.objects.filter(username__in=["exam_admin", "student"]).delete()
            self.stdout.write(self.style.SUCCESS("Cleanup finished."))

        admin = self._create_user("exam_admin", UserType.ADMIN)
        student = self._create_user("student", UserType.STUDENT)
        exam = self._create_exam(admin)

        if options["with_submission"]:
            self._submit_demo_attempt(exam, student)

        logger.info(f"Seeded demo exam {exam.pk}")
        self.stdout.write(self.style.SUCCESS("Seeding finished."))
