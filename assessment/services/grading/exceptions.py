"""
Grading Engine Exceptions

This module provides the exception hierarchy raised by the grading services.
Every exception carries an HTTP status code and a machine-readable error code
so that API views can turn it into a response without further mapping.

Author: Assessment Development Team
Version: 1.0.0
"""

from typing import Optional, Dict, Any


class GradingException(Exception):
    """
    Base exception class for all grading engine errors.

    Attributes:
        message (str): Human-readable error message
        status_code (int): HTTP status code reported to the caller
        error_code (str): Stable identifier of the violated rule
        details (Dict[str, Any]): Additional error details

    Example:
        >>> try:
        ...     coordinator.evaluate(answer_id, True, 5, evaluator)
        ... except GradingException as e:
        ...     logger.error(f"Grading error: {e.message}")
        ...     return Response(e.to_dict(), status=e.status_code)
    """

    default_status_code = 500
    default_error_code = "grading_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code or self.default_status_code
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "exception_type": self.__class__.__name__,
        }


class GradingValidationError(GradingException):
    """
    Raised when input violates a grading rule.

    Examples are a score outside ``[0, marks]``, manual grading of an
    objective answer or a submission that references a foreign question.
    Nothing is written when this is raised.
    """

    default_status_code = 400
    default_error_code = "validation_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details=details)


class GradingNotFound(GradingException):
    """Raised when an exam, attempt or answer does not exist."""

    default_status_code = 404
    default_error_code = "not_found"

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(
            f"{resource} {identifier} not found",
            details={"resource": resource, "id": identifier},
        )


class InvalidTransition(GradingException):
    """
    Raised when an attempt cannot move to the requested status.

    Attributes:
        current_status (str): Status of the attempt at the time of the call
        transition (str): Name of the rejected transition
    """

    default_status_code = 409
    default_error_code = "invalid_transition"

    def __init__(self, current_status: str, transition: str, reason: str) -> None:
        self.current_status = current_status
        self.transition = transition
        super().__init__(
            reason,
            details={"current_status": current_status, "transition": transition},
        )


class ConcurrencyConflict(GradingException):
    """
    Raised when another writer modified an attempt aggregate concurrently.

    The retry decorator re-runs the whole operation; the exception only reaches
    the caller once every retry has failed.
    """

    default_status_code = 409
    default_error_code = "concurrency_conflict"

    def __init__(
        self,
        attempt_id: Any,
        message: str = "The attempt was modified concurrently, please retry",
    ) -> None:
        self.attempt_id = attempt_id
        super().__init__(message, details={"attempt_id": attempt_id})


class ResultsNotPublished(GradingException):
    """Raised when a student requests results that are still withheld."""

    default_status_code = 403
    default_error_code = "results_not_published"

    def __init__(self, message: str = "Results for this exam have not been published yet") -> None:
        super().__init__(message)


class PublicationFailed(GradingException):
    """
    Raised when publishing an exam's results fails.

    Either a precondition did not hold (status 409) or the bulk transition
    failed and was rolled back (status 500). In both cases no attempt and
    no exam flag changed.
    """

    default_status_code = 409
    default_error_code = "publication_failed"
