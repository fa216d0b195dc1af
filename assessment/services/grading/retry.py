import logging
from functools import wraps
from time import sleep

from django.conf import settings
from django.db import OperationalError, connection

from .exceptions import ConcurrencyConflict

logger = logging.getLogger(__name__)


def _grading_setting(name: str, default):
    return getattr(settings, "ASSESSMENT", {}).get(name, default)


def retry_on_conflict(max_retries=None, base_delay=None):
    """
    Decorator to re-run an attempt write after a concurrent modification.

    The decorated function must open its own ``transaction.atomic()`` block so
    every retry starts from freshly read rows.

    Args:
        max_retries: Maximum number of retries (defaults to ASSESSMENT setting)
        base_delay: Base delay in seconds, doubled on every retry

    Returns:
        Decorated function with retry logic
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            retries = (
                max_retries
                if max_retries is not None
                else _grading_setting("MAX_CONFLICT_RETRIES", 3)
            )
            delay_base = (
                base_delay
                if base_delay is not None
                else _grading_setting("CONFLICT_RETRY_BASE_DELAY", 0.05)
            )

            for attempt in range(retries + 1):
                try:
                    return func(*args, **kwargs)
                except ConcurrencyConflict as e:
                    conflict = e
                except OperationalError as e:
                    # A failed statement poisons an enclosing transaction, so only
                    # lock errors raised at the outermost level are retryable.
                    if connection.in_atomic_block:
                        raise
                    conflict = ConcurrencyConflict(
                        attempt_id=None, message=f"Database lock conflict: {e}"
                    )

                if attempt >= retries:
                    logger.error(
                        f"{func.__name__}: giving up after {retries} retries ({conflict.message})"
                    )
                    raise conflict

                delay = delay_base * (2**attempt)
                logger.warning(
                    f"{func.__name__}: concurrent modification on attempt "
                    f"{conflict.attempt_id} ({attempt + 1}/{retries + 1}). "
                    f"Retrying in {delay}s..."
                )
                sleep(delay)

        return wrapper

    return decorator
