"""
Exam Views Package

Features:
- Student views: available exams, start, progress, submit, result and history of exam attempts
- Evaluator views: manual grading, pending queue and result publication
- Role based access through the IsExamAdmin permission

Author: Assessment Development Team
Version: 1.0.0
"""

from .student_views import *
from .evaluator_views import *
