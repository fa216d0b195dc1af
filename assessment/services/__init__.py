"""
Assessment Services Package

Structure:
└── grading/    # Evaluation and scoring engine

Author: Assessment Development Team
Version: 1.0.0
"""

from .grading import (
    SubmissionService,
    EvaluationCoordinator,
    PublicationGate,
    ResultService,
    ScoreAggregator,
)

__all__ = [
    "SubmissionService",
    "EvaluationCoordinator",
    "PublicationGate",
    "ResultService",
    "ScoreAggregator",
]
