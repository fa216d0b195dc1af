"""
Assessment Application Configuration

This module contains the Django application configuration for the
assessment system. Importing the user models in ``ready`` registers the
signal handlers that create a profile for every new user.

Author: Assessment Development Team
Version: 1.0.0
"""

from django.apps import AppConfig


class AssessmentConfig(AppConfig):
    """
    Configuration class for the assessment Django application.

    Attributes:
        default_auto_field: Default primary key field type for models
        name: Application name for Django registration
        verbose_name: Human-readable application name for admin interface
    """

    default_auto_field: str = "django.db.models.BigAutoField"
    name: str = "assessment"
    verbose_name: str = "Exam Assessment"

    def ready(self) -> None:
        """Connect the profile signal handlers."""
        super().ready()
        from .users import models  # noqa: F401
