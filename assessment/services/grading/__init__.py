"""
Grading Engine

Exam attempt evaluation and scoring services.

Structure:
├── auto_grader.py             # Objective grading strategies
├── evaluation_coordinator.py  # Manual grading of free text answers
├── score_aggregator.py        # Total score / percentage / pass state
├── state_machine.py           # Attempt lifecycle
├── publication_gate.py        # Bulk result publication
├── evaluation_stats.py        # Read-only evaluation projection
├── submission_service.py      # Available exams, start, progress and submit
└── result_service.py          # Publication-gated result reads

Author: Assessment Development Team
Version: 1.0.0
"""

from .exceptions import (
    GradingException,
    GradingValidationError,
    GradingNotFound,
    InvalidTransition,
    ConcurrencyConflict,
    ResultsNotPublished,
    PublicationFailed,
)
from .auto_grader import AutoGrader, GradeResult, GRADING_STRATEGIES
from .score_aggregator import ScoreAggregator, ScoreSummary
from .state_machine import AttemptStateMachine
from .evaluation_coordinator import EvaluationCoordinator
from .publication_gate import PublicationGate, PublicationResult
from .evaluation_stats import (
    EvaluationStats,
    compute_evaluation_stats,
    with_evaluation_stats,
    summarize_exam_attempts,
)
from .submission_service import SubmissionService, SubmissionResult, AttemptProgress
from .result_service import ResultService

__all__ = [
    # Exceptions
    "GradingException",
    "GradingValidationError",
    "GradingNotFound",
    "InvalidTransition",
    "ConcurrencyConflict",
    "ResultsNotPublished",
    "PublicationFailed",
    # Grading
    "AutoGrader",
    "GradeResult",
    "GRADING_STRATEGIES",
    "ScoreAggregator",
    "ScoreSummary",
    "AttemptStateMachine",
    "EvaluationCoordinator",
    "PublicationGate",
    "PublicationResult",
    # Stats
    "EvaluationStats",
    "compute_evaluation_stats",
    "with_evaluation_stats",
    "summarize_exam_attempts",
    # Attempt lifecycle
    "SubmissionService",
    "SubmissionResult",
    "AttemptProgress",
    "ResultService",
]
