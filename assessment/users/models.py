"""
Assessment User Models

This module extends Django's built-in User model with a profile that carries
the role used for authorization decisions in the grading engine.

Models:
- Profile: role information (student, admin, super_admin)

Features:
- Automatic profile creation for new users
- Role helpers consumed by the exam permission classes

Author: Assessment Development Team
Version: 1.0.0
"""

from django.db import models
from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver
from django.utils.translation import gettext_lazy as _


class UserType(models.TextChoices):
    STUDENT = "student", _("Student")
    ADMIN = "admin", _("Admin")
    SUPER_ADMIN = "super_admin", _("Super Admin")


ADMIN_USER_TYPES = (UserType.ADMIN, UserType.SUPER_ADMIN)


class Profile(models.Model):
    """
    Extended user profile for the assessment system.

    Attributes:
        user: One-to-one relationship with Django User model
        user_type: Role of the user; admins and super admins may evaluate
            answers and publish exam results

    The profile is created automatically when a new user is registered.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
        verbose_name=_("User"),
        help_text=_("Associated user account"),
    )

    user_type = models.CharField(
        max_length=20,
        choices=UserType.choices,
        default=UserType.STUDENT,
        verbose_name=_("User Type"),
        help_text=_("Role used to authorize grading and publication"),
    )

    class Meta:
        verbose_name = _("User Profile")
        verbose_name_plural = _("User Profiles")
        db_table = "assessment_profile"

    def __str__(self) -> str:
        return f"{self.user.username} Profile"

    def __repr__(self) -> str:
        return f"<Profile(user={self.user.username}, user_type={self.user_type})>"

    @property
    def is_exam_admin(self) -> bool:
        """True if the profile role allows evaluating and publishing."""
        return self.user_type in ADMIN_USER_TYPES


# --- Signal Handlers for Automatic Profile Management ---


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_profile(sender, instance, created: bool, **kwargs) -> None:
    """
    Automatically create a user profile when a new user is created.

    Superusers start out as super admins, staff users as admins and
    everybody else as students.
    """
    if created:
        if instance.is_superuser:
            user_type = UserType.SUPER_ADMIN
        elif instance.is_staff:
            user_type = UserType.ADMIN
        else:
            user_type = UserType.STUDENT
        Profile.objects.get_or_create(user=instance, defaults={"user_type": user_type})
