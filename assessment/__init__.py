"""
Assessment Package

Django app for the exam attempt evaluation and scoring engine.
It grades objective answers on submission, routes free-text answers
to human evaluators, keeps attempt scores consistent under concurrent
grading and gates result visibility until an exam is published.

Structure:
- users/: user profile and role-based permissions
- exams/: exams, questions, attempts, answers, serializers and API views
- services/grading/: auto-grader, evaluation coordinator, score aggregator,
  attempt state machine and publication gate
- management/: Django management commands

Author: Assessment Development Team
Version: 1.0.0
"""
