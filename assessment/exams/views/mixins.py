import logging

from rest_framework.response import Response

from ...services.grading import GradingException

logger = logging.getLogger(__name__)


class GradingErrorMixin:
    """Turns grading engine exceptions into JSON error responses."""

    def handle_exception(self, exc):
        if isinstance(exc, GradingException):
            log = logger.error if exc.status_code >= 500 else logger.info
            log(f"{self.__class__.__name__}: {exc.error_code}: {exc.message}")
            return Response(exc.to_dict(), status=exc.status_code)
        return super().handle_exception(exc)
