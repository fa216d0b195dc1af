"""
Attempt Store Access

Read-modify-write helpers for the attempt aggregate (``total_score``,
``status`` and their timestamps). Every aggregate write goes through
``versioned_update`` so that two writers can never silently overwrite each
other. The row lock taken by ``lock_attempt`` serializes writers on
databases that support ``SELECT ... FOR UPDATE``. The version check covers
the rest.

Author: Assessment Development Team
Version: 1.0.0
"""

from typing import Optional

from django.db.models import F

from ...exams.models import Attempt
from .exceptions import ConcurrencyConflict, GradingNotFound


def lock_attempt(attempt_id, user=None) -> Attempt:
    """
    Lock and return an attempt. Must be called inside ``transaction.atomic()``.

    Args:
        attempt_id: Primary key of the attempt
        user: If given, the attempt must belong to this user

    Raises:
        GradingNotFound: If no (matching) attempt exists
    """
    queryset = Attempt.objects.select_for_update().filter(pk=attempt_id)
    if user is not None:
        queryset = queryset.filter(user=user)
    attempt: Optional[Attempt] = queryset.first()
    if attempt is None:
        raise GradingNotFound("Attempt", attempt_id)
    return attempt


def versioned_update(attempt: Attempt, **fields) -> Attempt:
    """
    Write ``fields`` to the attempt row if nobody else wrote it since it was read.

    The in-memory instance is updated on success, including its version.

    Raises:
        ConcurrencyConflict: If the stored version no longer matches
    """
    updated = Attempt.objects.filter(pk=attempt.pk, version=attempt.version).update(
        version=F("version") + 1, **fields
    )
    if not updated:
        raise ConcurrencyConflict(attempt.pk)

    for name, value in fields.items():
        setattr(attempt, name, value)
    attempt.version += 1
    return attempt
